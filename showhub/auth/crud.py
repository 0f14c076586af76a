from __future__ import annotations

from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database

from showhub.config import Config
from showhub.db import USERS, public_doc, public_docs, update_result
from showhub.models import Role
from showhub.util.time import utcnow_iso


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def normalize_email(email: Any) -> str:
    return str(email or "").strip().lower()


def get_user_by_email(db: Database, email: str) -> Optional[Dict[str, Any]]:
    e = normalize_email(email)
    if not e:
        return None
    return db[USERS].find_one({"email": e})


def get_role(db: Database, email: str) -> Optional[Role]:
    """Fresh role lookup for ``email``; None if the user is unknown or the role is unrecognized."""
    row = db[USERS].find_one({"email": normalize_email(email)}, {"role": 1})
    if row is None:
        return None
    return Role.parse(row.get("role"))


def list_users(db: Database) -> List[Dict[str, Any]]:
    return public_docs(db[USERS].find().sort("email", 1))


def create_user(
    db: Database,
    cfg: Config,
    *,
    email: str,
    name: str | None = None,
    photo: str | None = None,
    role: Role = Role.MEMBER,
) -> Dict[str, Any]:
    """Insert the user if no record with this email exists yet.

    Repeat calls are no-ops; the returned acknowledgment tells them apart
    (``upsertedId`` is present only on first insert).
    """
    e = normalize_email(email)
    if not e:
        raise ValueError("email_blank")

    doc: Dict[str, Any] = {
        "email": e,
        "role": role.value,
        "limit": int(cfg.DEFAULT_PRODUCT_LIMIT),
        "createdAt": utcnow_iso(),
    }
    if name:
        doc["name"] = name
    if photo:
        doc["photo"] = photo

    res = db[USERS].update_one({"email": e}, {"$setOnInsert": doc}, upsert=True)
    if res.upserted_id is not None:
        _debug(f"created user email={e} role={role.value}")
    return update_result(res)


def update_own_profile(
    db: Database,
    cfg: Config,
    *,
    email: str,
    subscription_id: str | None = None,
    role: Role | None = None,
) -> Dict[str, Any]:
    """Self-service update: subscribe and (re)state one's current role.

    Changing the role here is refused; role changes go through
    ``set_user_role`` behind the Admin gate.
    """
    row = get_user_by_email(db, email)
    if row is None:
        raise LookupError("user_not_found")

    if role is not None and Role.parse(row.get("role")) != role:
        raise PermissionError("role_change_requires_admin")

    sets: Dict[str, Any] = {}
    if subscription_id:
        sets["subscriptionId"] = subscription_id
        sets["subscribedAt"] = utcnow_iso()
    if not sets:
        raise ValueError("nothing_to_update")

    update: Dict[str, Any] = {"$set": sets}
    # Subscribing raises the posting quota; never lower an already higher one.
    update["$max"] = {"limit": int(cfg.SUBSCRIBER_PRODUCT_LIMIT)}
    res = db[USERS].update_one({"_id": row["_id"]}, update)
    _debug(f"user subscribed email={row['email']}")
    return update_result(res)


def set_user_role(db: Database, user_id: ObjectId, role: Role) -> Optional[Dict[str, Any]]:
    row = db[USERS].find_one_and_update(
        {"_id": user_id},
        {"$set": {"role": role.value}},
        return_document=ReturnDocument.AFTER,
    )
    if row is None:
        return None
    _debug(f"role changed email={row.get('email')} role={role.value}")
    return public_doc(row)


def bootstrap_admin_if_needed(db: Database, cfg: Config) -> Optional[Dict[str, Any]]:
    """Promote BOOTSTRAP_ADMIN_EMAIL to Admin, creating the user when missing.

    Gives a fresh deployment a deterministic way to reach the Admin routes.
    """
    email = normalize_email(cfg.BOOTSTRAP_ADMIN_EMAIL)
    if not email:
        return None

    create_user(db, cfg, email=email, role=Role.ADMIN)
    row = db[USERS].find_one_and_update(
        {"email": email},
        {"$set": {"role": Role.ADMIN.value}},
        return_document=ReturnDocument.AFTER,
    )
    return public_doc(row)
