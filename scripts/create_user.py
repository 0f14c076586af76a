"""Create (or re-role) a user in the document store.

Usage:
  python scripts/create_user.py --email alice@example.com --role Moderator

NOTE: This is intended for local/dev and for seeding the first staff accounts.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from showhub.auth.crud import create_user, get_user_by_email, set_user_role
from showhub.config import load_config
from showhub.db import connect, init_db, public_doc
from showhub.models import Role


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--name", default=None)
    ap.add_argument("--role", choices=[r.value for r in Role], default=Role.MEMBER.value)
    args = ap.parse_args()

    cfg = load_config()
    db = connect(cfg)
    init_db(db)

    role = Role(args.role)
    create_user(db, cfg, email=args.email, name=args.name, role=role)
    row = get_user_by_email(db, args.email)
    assert row is not None
    if row.get("role") != role.value:
        set_user_role(db, row["_id"], role)
        row = get_user_by_email(db, args.email)

    print("User:")
    print(public_doc(row))


if __name__ == "__main__":
    main()
