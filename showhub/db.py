from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from showhub.config import Config


USERS = "users"
PRODUCTS = "products"
COUPONS = "coupons"
REPORTS = "reports"


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


def connect(cfg: Config) -> Database:
    """Return a handle to the configured database.

    MongoClient connects lazily and pools connections, so one handle is
    created at startup and shared by every request.
    """
    client: MongoClient = MongoClient(cfg.DB_URI, serverSelectionTimeoutMS=int(cfg.DB_TIMEOUT_MS))
    return client[cfg.DB_NAME]


def init_db(db: Database) -> None:
    """Ensure the indexes the API relies on exist (idempotent)."""
    db[USERS].create_index([("email", ASCENDING)], unique=True)
    db[PRODUCTS].create_index([("status", ASCENDING), ("posted", DESCENDING)])
    db[PRODUCTS].create_index([("ownerEmail", ASCENDING)])
    db[PRODUCTS].create_index([("tags", ASCENDING)])
    db[PRODUCTS].create_index([("upvotesCount", DESCENDING)])
    db[COUPONS].create_index([("code", ASCENDING)], unique=True)
    db[REPORTS].create_index([("productId", ASCENDING)])
    _debug(f"indexes ensured on db={db.name}")


def parse_object_id(value: Any) -> Optional[ObjectId]:
    s = str(value or "").strip()
    if not ObjectId.is_valid(s):
        return None
    return ObjectId(s)


def public_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Copy a stored document into a JSON-friendly dict (ObjectIds as strings)."""
    if doc is None:
        return None
    out: Dict[str, Any] = {}
    for k, v in doc.items():
        out[k] = str(v) if isinstance(v, ObjectId) else v
    return out


def public_docs(docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [public_doc(d) for d in docs]  # type: ignore[misc]


# Store acknowledgments are returned to callers as-is, in the driver's
# camelCase wire shape.


def insert_result(res: Any) -> Dict[str, Any]:
    return {"acknowledged": bool(res.acknowledged), "insertedId": str(res.inserted_id)}


def update_result(res: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "acknowledged": bool(res.acknowledged),
        "matchedCount": int(res.matched_count),
        "modifiedCount": int(res.modified_count),
    }
    if res.upserted_id is not None:
        out["upsertedId"] = str(res.upserted_id)
    return out


def delete_result(res: Any) -> Dict[str, Any]:
    return {"acknowledged": bool(res.acknowledged), "deletedCount": int(res.deleted_count)}
