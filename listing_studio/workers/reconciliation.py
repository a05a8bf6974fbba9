"""
Celery task resolving marketplace pushes left pending by an interrupted push
"""
import asyncio
import logging
from typing import Dict, Optional

from celery import Task

from listing_studio.db.session import get_db
from listing_studio.services.publish import PublishService
from listing_studio.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


class BasePublishingTask(Task):
    """Base task class for publishing maintenance tasks"""

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"Publishing task {task_id} failed: {exc}")

    def on_success(self, retval, task_id, args, kwargs):
        logger.info(f"Publishing task {task_id} completed: {retval}")


def run_reconciliation(older_than_minutes: Optional[int] = None, marketplace=None) -> Dict[str, int]:
    db = next(get_db())
    try:
        service = PublishService(db, marketplace=marketplace)
        return asyncio.run(service.reconcile_stale_pushes(older_than_minutes))
    finally:
        db.close()


@celery_app.task(bind=True, base=BasePublishingTask, name="listing_studio.workers.reconciliation.reconcile_stale_pushes")
def reconcile_stale_pushes(self, older_than_minutes: Optional[int] = None) -> Dict[str, int]:
    """
    Resolve push rows that stayed PENDING past the cut-off

    Args:
        older_than_minutes: Age after which a pending push counts as stale;
            defaults to PUSH_RECONCILE_AFTER_MINUTES

    Returns:
        Counts of checked, succeeded, failed and unresolved rows
    """
    logger.info(f"Reconciling pushes pending for more than {older_than_minutes or 'default'} minutes")
    return run_reconciliation(older_than_minutes)
