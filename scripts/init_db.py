import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from showhub.auth.crud import bootstrap_admin_if_needed
from showhub.config import load_config
from showhub.db import connect, init_db


def main() -> None:
    cfg = load_config()
    db = connect(cfg)
    init_db(db)
    boot = bootstrap_admin_if_needed(db, cfg)
    if boot:
        print(f"Admin ready: {boot.get('email')}")

    print(f"DB initialized: {cfg.DB_NAME}")


if __name__ == "__main__":
    main()
