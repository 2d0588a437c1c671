#!/usr/bin/env python
"""Remove rarely used learned preferences.

Deletes item and supplier preferences confirmed at most once and not used
within the retention window.

Usage:
    python backend/scripts/cleanup_preferences.py [--days 365]

Environment Variables:
    DATABASE_URL: SQLAlchemy connection string
    PREFERENCE_RETENTION_DAYS: Default retention window (default: 365)
    LOG_LEVEL: Logging level (default: INFO)
"""

import argparse
import sys
from pathlib import Path

# Add backend/src to Python path
backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from config import get_settings
from database import get_session_factory
from infrastructure.repositories import SQLPreferenceStore, SQLSupplierPriceStore
from observability.logging_config import configure_logging
from preferences.learning import PreferenceLearningService
from preferences.schemas import PreferenceRetentionSettings


def main(argv=None) -> int:
    """Run the retention cleanup and print the number of removed preferences."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Remove stale learned preferences")
    parser.add_argument(
        "--days",
        type=int,
        default=settings.PREFERENCE_RETENTION_DAYS,
        help="Remove single-use preferences unused for more than this many days",
    )
    args = parser.parse_args(argv)

    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    try:
        retention = PreferenceRetentionSettings(retention_days=args.days)
    except ValueError as e:
        print(f"ERROR: Invalid retention window: {e}")
        return 1

    session_factory = get_session_factory()
    service = PreferenceLearningService(
        store=SQLPreferenceStore(session_factory),
        price_store=SQLSupplierPriceStore(session_factory),
        retention=retention,
    )

    removed = service.cleanup_stale_preferences()
    print(f"Removed {removed} preferences unused for more than {retention.retention_days} days")
    return 0


if __name__ == "__main__":
    sys.exit(main())
