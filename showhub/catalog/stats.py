from __future__ import annotations

from typing import Any, Dict

from pymongo.database import Database

from showhub.db import PRODUCTS, USERS


def admin_stats(db: Database) -> Dict[str, Any]:
    """Counts for the admin dashboard: users, products and reviews across all products."""
    rows = list(
        db[PRODUCTS].aggregate(
            [{"$group": {"_id": None, "reviews": {"$sum": "$reviewCount"}}}]
        )
    )
    return {
        "users": db[USERS].count_documents({}),
        "products": db[PRODUCTS].count_documents({}),
        "reviews": int(rows[0]["reviews"]) if rows else 0,
    }
