from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from showhub.db import PRODUCTS, USERS, insert_result, public_doc, public_docs, update_result
from showhub.models import ProductStatus, VoteKind
from showhub.util.time import utcnow_iso


def _debug(msg: str) -> None:
    print(f"[catalog] {msg}")


# Fields an owner may edit after submission. Status, votes, reviews and the
# report flag have dedicated operations.
EDITABLE_FIELDS = ("name", "tags", "description", "image", "externalLink")


def normalize_tags(tags: Any) -> List[str]:
    out: List[str] = []
    for t in tags or []:
        s = str(t or "").strip()
        if s and s not in out:
            out.append(s)
    return out


def get_product(db: Database, product_id: ObjectId) -> Optional[Dict[str, Any]]:
    return db[PRODUCTS].find_one({"_id": product_id})


def list_products(
    db: Database,
    *,
    page: int,
    limit: int,
    search: str | None = None,
) -> Dict[str, Any]:
    """Page through accepted products, newest first.

    With ``search``, only products having a tag that contains it
    (case-insensitive) are listed. If nothing matches, the plain accepted
    listing is returned for the same page window instead and ``fallback``
    is set.
    """
    page = max(0, int(page))
    limit = max(1, int(limit))

    base: Dict[str, Any] = {"status": ProductStatus.ACCEPTED.value}
    query = dict(base)
    fallback = False

    q = (search or "").strip()
    if q:
        query["tags"] = re.compile(re.escape(q), re.IGNORECASE)
        if db[PRODUCTS].count_documents(query, limit=1) == 0:
            query = base
            fallback = True

    total = db[PRODUCTS].count_documents(query)
    cursor = (
        db[PRODUCTS]
        .find(query)
        .sort([("posted", DESCENDING), ("_id", DESCENDING)])
        .skip(page * limit)
        .limit(limit)
    )
    return {
        "products": public_docs(cursor),
        "total": total,
        "page": page,
        "limit": limit,
        "fallback": fallback,
    }


def trending_products(db: Database, *, limit: int = 6) -> List[Dict[str, Any]]:
    """Accepted products with the most upvotes (ties broken newest first)."""
    cursor = (
        db[PRODUCTS]
        .find({"status": ProductStatus.ACCEPTED.value})
        .sort([("upvotesCount", DESCENDING), ("posted", DESCENDING)])
        .limit(max(1, int(limit)))
    )
    return public_docs(cursor)


def list_products_by_owner(db: Database, email: str) -> List[Dict[str, Any]]:
    return public_docs(db[PRODUCTS].find({"ownerEmail": email}).sort("posted", DESCENDING))


def review_queue(db: Database, *, page: int, limit: int) -> List[Dict[str, Any]]:
    """All products for moderators, pending ones first, newest first within a status.

    The window spans two queries: pending products, then the rest.
    """
    limit = max(1, int(limit))
    start = max(0, int(page)) * limit
    order = [("posted", DESCENDING), ("_id", DESCENDING)]

    pending = {"status": ProductStatus.PENDING.value}
    n_pending = db[PRODUCTS].count_documents(pending)

    docs: List[Dict[str, Any]] = []
    if start < n_pending:
        docs.extend(db[PRODUCTS].find(pending).sort(order).skip(start).limit(limit))

    remaining = limit - len(docs)
    if remaining > 0:
        rest = {"status": {"$ne": ProductStatus.PENDING.value}}
        docs.extend(
            db[PRODUCTS].find(rest).sort(order).skip(max(0, start - n_pending)).limit(remaining)
        )
    return public_docs(docs)


def create_product(db: Database, *, owner_email: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a pending product and consume one unit of the owner's posting limit.

    The limit is taken first with a single conditional update, so concurrent
    submissions cannot drive it below zero. A failed insert refunds it.
    """
    name = str(fields.get("name") or "").strip()
    if not name:
        raise ValueError("name_blank")

    owner = db[USERS].find_one_and_update(
        {"email": owner_email, "limit": {"$gt": 0}},
        {"$inc": {"limit": -1}},
        return_document=ReturnDocument.AFTER,
    )
    if owner is None:
        if db[USERS].count_documents({"email": owner_email}, limit=1) == 0:
            raise LookupError("user_not_found")
        raise PermissionError("product_limit_reached")

    doc: Dict[str, Any] = {k: fields[k] for k in EDITABLE_FIELDS if fields.get(k) is not None}
    doc["name"] = name
    doc["tags"] = normalize_tags(fields.get("tags"))
    doc.update(
        {
            "ownerEmail": owner_email,
            "ownerName": owner.get("name"),
            "status": ProductStatus.PENDING.value,
            "reported": False,
            "upvotes": [],
            "downvotes": [],
            "upvotesCount": 0,
            "downvotesCount": 0,
            "reviews": [],
            "reviewCount": 0,
            "posted": utcnow_iso(),
        }
    )

    try:
        res = db[PRODUCTS].insert_one(doc)
    except PyMongoError:
        db[USERS].update_one({"email": owner_email}, {"$inc": {"limit": 1}})
        _debug(f"insert failed, refunded limit email={owner_email}")
        raise

    _debug(f"product created id={res.inserted_id} owner={owner_email} limit_left={owner.get('limit')}")
    return insert_result(res)


def update_product(db: Database, product_id: ObjectId, fields: Dict[str, Any]) -> Dict[str, Any]:
    sets = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None}
    if "tags" in sets:
        sets["tags"] = normalize_tags(sets["tags"])
    if "name" in sets:
        sets["name"] = str(sets["name"]).strip()
        if not sets["name"]:
            raise ValueError("name_blank")
    if not sets:
        raise ValueError("nothing_to_update")
    sets["updatedAt"] = utcnow_iso()
    return update_result(db[PRODUCTS].update_one({"_id": product_id}, {"$set": sets}))


def set_status(db: Database, product_id: ObjectId, status: ProductStatus) -> Dict[str, Any]:
    res = db[PRODUCTS].update_one({"_id": product_id}, {"$set": {"status": status.value}})
    if res.matched_count:
        _debug(f"product status id={product_id} status={status.value}")
    return update_result(res)


def vote_product(db: Database, product_id: ObjectId, *, email: str, kind: VoteKind) -> Dict[str, Any]:
    """Append ``email`` to the product's ``kind`` sequence.

    Repeat votes are appended again; nothing is deduplicated.
    """
    res = db[PRODUCTS].update_one(
        {"_id": product_id},
        {"$push": {kind.value: email}, "$inc": {kind.counter_field: 1}},
    )
    return update_result(res)


def add_review(
    db: Database,
    product_id: ObjectId,
    *,
    email: str,
    name: str,
    comment: str,
    rating: int,
) -> Dict[str, Any]:
    if not (1 <= int(rating) <= 5):
        raise ValueError("invalid_rating")
    comment = (comment or "").strip()
    if not comment:
        raise ValueError("comment_blank")

    review = {
        "email": email,
        "name": (name or "").strip() or email,
        "comment": comment,
        "rating": int(rating),
        "posted": utcnow_iso(),
    }
    res = db[PRODUCTS].update_one(
        {"_id": product_id},
        {"$push": {"reviews": review}, "$inc": {"reviewCount": 1}},
    )
    return update_result(res)


def set_reported(db: Database, product_id: ObjectId, reported: bool) -> Dict[str, Any]:
    return update_result(db[PRODUCTS].update_one({"_id": product_id}, {"$set": {"reported": bool(reported)}}))


def delete_product(db: Database, product_id: ObjectId) -> Optional[Dict[str, Any]]:
    """Delete a product and hand its slot back to the owner's posting limit.

    Returns the delete acknowledgment, or None if the product was already gone.
    """
    doc = db[PRODUCTS].find_one_and_delete({"_id": product_id})
    if doc is None:
        return None

    owner_email = doc.get("ownerEmail")
    if owner_email:
        db[USERS].update_one({"email": owner_email}, {"$inc": {"limit": 1}})
        _debug(f"product deleted id={product_id} refunded owner={owner_email}")
    return {"acknowledged": True, "deletedCount": 1, "product": public_doc(doc)}
