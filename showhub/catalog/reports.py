from __future__ import annotations

from typing import Any, Dict, List

from bson import ObjectId
from pymongo.database import Database

from showhub.db import PRODUCTS, REPORTS, insert_result, public_docs
from showhub.util.time import utcnow_iso

from .products import set_reported


def _debug(msg: str) -> None:
    print(f"[catalog] {msg}")


def report_product(
    db: Database,
    product: Dict[str, Any],
    *,
    email: str,
    reason: str | None = None,
) -> Dict[str, Any]:
    """Flag ``product`` as reported and file a complaint record for moderators."""
    set_reported(db, product["_id"], True)
    res = db[REPORTS].insert_one(
        {
            "productId": product["_id"],
            "productName": product.get("name"),
            "email": email,
            "reason": (reason or "").strip(),
            "reportedAt": utcnow_iso(),
        }
    )
    _debug(f"product reported id={product['_id']} by={email}")
    return insert_result(res)


def list_reports(db: Database) -> List[Dict[str, Any]]:
    return public_docs(db[REPORTS].find().sort("reportedAt", -1))


def dismiss_reports(db: Database, product_id: ObjectId) -> Dict[str, Any]:
    """Clear a product's report flag and drop its complaint records."""
    flag = db[PRODUCTS].update_one({"_id": product_id}, {"$set": {"reported": False}})
    res = db[REPORTS].delete_many({"productId": product_id})
    return {
        "acknowledged": bool(res.acknowledged),
        "matchedCount": int(flag.matched_count),
        "deletedCount": int(res.deleted_count),
    }
