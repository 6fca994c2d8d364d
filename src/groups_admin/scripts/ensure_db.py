"""Utility script to create or reset the configured database schema."""
from __future__ import annotations

import argparse
import logging
import sys

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError

from groups_admin.core.settings import settings
from groups_admin.db.session import Base

logger = logging.getLogger(__name__)


def ensure_schema(db_url: str, *, drop_first: bool = False) -> None:
    """Create all tables, optionally dropping existing ones first."""
    engine = create_engine(db_url)
    try:
        if drop_first:
            Base.metadata.drop_all(bind=engine)
            logger.info("Dropped all tables")
        Base.metadata.create_all(bind=engine)
        logger.info("Schema is in place: %s", ", ".join(sorted(Base.metadata.tables)))
    finally:
        engine.dispose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Ensure or reset the configured database")
    parser.add_argument(
        "--drop-tables",
        action="store_true",
        help="Drop every table before creating the schema.",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Override database URL (defaults to effective settings URL)",
    )
    args = parser.parse_args(argv)

    try:
        ensure_schema(args.url or settings.database_url_sync, drop_first=args.drop_tables)
    except SQLAlchemyError as exc:
        logger.error("Could not prepare database: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level.upper())
    sys.exit(main())
