from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from showhub.db import COUPONS, delete_result, insert_result, public_docs, update_result
from showhub.util.time import parse_iso, utcnow_iso


def normalize_code(code: Any) -> str:
    return str(code or "").strip().upper()


def _validate(fields: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(fields)
    if "code" in out:
        out["code"] = normalize_code(out["code"])
        if not out["code"]:
            raise ValueError("code_blank")
    if "discount" in out:
        # A full discount would leave nothing to charge; 99 is the ceiling.
        d = int(out["discount"])
        if not (1 <= d <= 99):
            raise ValueError("invalid_discount")
        out["discount"] = d
    if out.get("expiresAt") is not None and parse_iso(out["expiresAt"]) is None:
        raise ValueError("invalid_expires_at")
    return out


def list_coupons(db: Database) -> List[Dict[str, Any]]:
    return public_docs(db[COUPONS].find().sort("createdAt", -1))


def get_coupon(db: Database, coupon_id: ObjectId) -> Optional[Dict[str, Any]]:
    return db[COUPONS].find_one({"_id": coupon_id})


def get_coupon_by_code(db: Database, code: str) -> Optional[Dict[str, Any]]:
    c = normalize_code(code)
    if not c:
        return None
    return db[COUPONS].find_one({"code": c})


def is_active(coupon: Dict[str, Any], *, now: datetime | None = None) -> bool:
    expires = parse_iso(coupon.get("expiresAt"))
    if expires is None:
        return True
    return (now or datetime.now(timezone.utc)) < expires


def create_coupon(db: Database, fields: Dict[str, Any]) -> Dict[str, Any]:
    doc = _validate({k: v for k, v in fields.items() if v is not None})
    if "code" not in doc or "discount" not in doc:
        raise ValueError("code_and_discount_required")
    doc["createdAt"] = utcnow_iso()
    try:
        res = db[COUPONS].insert_one(doc)
    except DuplicateKeyError:
        raise ValueError("coupon_exists")
    return insert_result(res)


def update_coupon(db: Database, coupon_id: ObjectId, fields: Dict[str, Any]) -> Dict[str, Any]:
    sets = _validate({k: v for k, v in fields.items() if v is not None})
    if not sets:
        raise ValueError("nothing_to_update")
    try:
        res = db[COUPONS].update_one({"_id": coupon_id}, {"$set": sets})
    except DuplicateKeyError:
        raise ValueError("coupon_exists")
    return update_result(res)


def delete_coupon(db: Database, coupon_id: ObjectId) -> Dict[str, Any]:
    return delete_result(db[COUPONS].delete_one({"_id": coupon_id}))
