"""Seed the configured database with demo contracts.

Usage: python scripts/seed_contracts.py
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from app.core.startup import bootstrap
from app.database.db import get_db_session
from app.database.init_db import create_schema
from app.database.seed import seed_demo_data


def main() -> None:
    bootstrap()
    create_schema()
    with get_db_session() as db:
        created = seed_demo_data(db)
    if created:
        print(f"Seeded {len(created)} contracts.")
    else:
        print("Demo tenant already seeded.")


if __name__ == "__main__":
    main()
