"""
Create the audit table directly from the ORM metadata (local development / sqlite).

Production uses Alembic (scripts/release.py); this is for a fresh dev database.

Usage:
  python scripts/init_db.py
"""

import os
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.batchverify.models import Base  # noqa: E402
from scripts._db_utils import create_script_engine  # noqa: E402


def create_tables(*, database_url: str | None = None) -> list[str]:
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///batchverify.db").strip()
    engine = create_script_engine(db_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()
    return sorted(Base.metadata.tables)


def main() -> None:
    tables = create_tables()
    print(f"Tables ready: {', '.join(tables)}", flush=True)


if __name__ == "__main__":
    main()
