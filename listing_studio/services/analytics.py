"""
Daily analytics counters and dashboard summary
"""
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import structlog

from listing_studio.models.asset import GeneratedAsset
from listing_studio.models.product import Product
from listing_studio.models.review import Analytics

logger = structlog.get_logger()

COUNTERS = ("images_generated", "images_approved", "images_rejected")
MAX_UPSERT_ATTEMPTS = 5


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class AnalyticsService:
    def __init__(self, db: Session, clock: Optional[Callable[[], date]] = None):
        self.db = db
        self.clock = clock or utc_today

    def increment(self, counter: str, day: Optional[date] = None) -> None:
        """
        Add one to ``counter`` on the day's row, creating the row on first use.

        The increment is a single conditional UPDATE scoped to the day, so
        concurrent writers for the same day never lose an increment and
        writers for different days do not contend. Counters never decrease.
        Callers must not hold uncommitted work in the session.
        """
        if counter not in COUNTERS:
            raise ValueError(f"Unknown analytics counter: {counter}")
        day = day or self.clock()
        column = getattr(Analytics, counter)

        for _ in range(MAX_UPSERT_ATTEMPTS):
            result = self.db.execute(
                update(Analytics)
                .where(Analytics.date == day)
                .values({counter: column + 1})
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                self.db.commit()
                logger.info("analytics incremented", counter=counter, day=day.isoformat())
                return

            self.db.add(Analytics(date=day, **{counter: 1}))
            try:
                self.db.commit()
                logger.info("analytics row created", counter=counter, day=day.isoformat())
                return
            except IntegrityError:
                # Another writer created the row first; retry the UPDATE
                self.db.rollback()

        raise RuntimeError(f"Could not increment analytics counter {counter} for {day}")

    def record_generated(self, day: Optional[date] = None) -> None:
        self.increment("images_generated", day)

    def record_approved(self, day: Optional[date] = None) -> None:
        self.increment("images_approved", day)

    def record_rejected(self, day: Optional[date] = None) -> None:
        self.increment("images_rejected", day)

    def get_day(self, day: date) -> Optional[Analytics]:
        return self.db.query(Analytics).filter(Analytics.date == day).first()

    def summary(self, days: int = 30) -> Dict[str, Any]:
        """Per-day rows for the window plus totals and status breakdowns"""
        start = self.clock() - timedelta(days=days)
        rows = (
            self.db.query(Analytics)
            .filter(Analytics.date >= start)
            .order_by(Analytics.date.desc())
            .all()
        )

        totals = {counter: sum(getattr(row, counter) for row in rows) for counter in COUNTERS}

        product_stats = dict(
            self.db.query(Product.status, func.count(Product.id)).group_by(Product.status).all()
        )
        asset_stats = dict(
            self.db.query(GeneratedAsset.status, func.count(GeneratedAsset.id))
            .group_by(GeneratedAsset.status)
            .all()
        )
        return {
            "totals": totals,
            "daily": rows,
            "product_stats": product_stats,
            "asset_stats": asset_stats,
        }
