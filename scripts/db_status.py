#!/usr/bin/env python3
"""
Database status script for the Listing Studio backend

Shows connectivity, missing tables and pushes waiting for reconciliation.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add the project root directory to the Python path
sys.path.append(str(Path(__file__).parent.parent))

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from listing_studio.core.config import settings
from listing_studio.db.base import SessionLocal, engine
from listing_studio.models import AmazonImagePush, PushStatus
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

REQUIRED_TABLES = [
    "users", "products", "source_images", "asset_types", "prompt_versions",
    "prompt_overrides", "generated_assets", "version_counters", "comments",
    "activity_logs", "analytics", "generation_jobs", "amazon_image_pushes",
    "prompt_templates", "template_variables",
]


def check_database_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        logger.info("✓ Database connection: OK")
        return True
    except SQLAlchemyError as e:
        logger.error(f"✗ Database connection: FAILED - {e}")
        return False


def check_tables() -> bool:
    existing = set(inspect(engine).get_table_names())
    missing = [table for table in REQUIRED_TABLES if table not in existing]
    logger.info(f"✓ Tables found: {len(REQUIRED_TABLES) - len(missing)}/{len(REQUIRED_TABLES)}")
    if missing:
        logger.warning(f"✗ Missing tables: {', '.join(missing)}")
        return False
    return True


def check_stale_pushes() -> int:
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=settings.PUSH_RECONCILE_AFTER_MINUTES)
    db = SessionLocal()
    try:
        stale = (
            db.query(AmazonImagePush)
            .filter(AmazonImagePush.status == PushStatus.PENDING.value, AmazonImagePush.created_at < cutoff)
            .count()
        )
    finally:
        db.close()
    if stale:
        logger.warning(f"✗ Pushes pending for more than {settings.PUSH_RECONCILE_AFTER_MINUTES} minutes: {stale}")
    else:
        logger.info("✓ No stale pushes")
    return stale


def main() -> int:
    logger.info(f"Database: {settings.DATABASE_URL}")
    if not check_database_connection():
        return 1
    if not check_tables():
        return 1
    check_stale_pushes()
    return 0


if __name__ == "__main__":
    sys.exit(main())
