from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta

import pytest

from listing_studio.models import AssetStatus
from listing_studio.services.analytics import AnalyticsService
from listing_studio.services.review import ReviewService

DAY = date(2026, 3, 14)


def test_increments_only_the_given_day(db):
    service = AnalyticsService(db)
    service.record_approved(DAY - timedelta(days=1))
    for _ in range(3):
        service.record_approved(DAY)

    assert service.get_day(DAY).images_approved == 3
    assert service.get_day(DAY - timedelta(days=1)).images_approved == 1
    assert service.get_day(DAY + timedelta(days=1)) is None


def test_unknown_counter_rejected(db):
    with pytest.raises(ValueError):
        AnalyticsService(db).increment("images_deleted", DAY)


def test_n_approvals_on_one_day(db, user, product, image_type, make_asset):
    assets = [make_asset(product, image_type) for _ in range(4)]
    service = ReviewService(db)
    for asset in assets:
        service.update_status(asset.id, AssetStatus.APPROVED, actor_id=user.id)

    summary = AnalyticsService(db).summary(days=7)
    assert summary["totals"]["images_approved"] == 4
    assert summary["asset_stats"] == {"APPROVED": 4}
    assert summary["product_stats"] == {"COMPLETED": 1}


def test_concurrent_increments_are_not_lost(session_factory, engine):
    def bump(_):
        session = session_factory()
        try:
            AnalyticsService(session).record_generated(DAY)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=6) as pool:
        list(pool.map(bump, range(20)))

    session = session_factory()
    try:
        assert AnalyticsService(session).get_day(DAY).images_generated == 20
    finally:
        session.close()


def test_summary_window_uses_clock(db):
    service = AnalyticsService(db, clock=lambda: DAY)
    service.record_generated(DAY)
    service.record_generated(DAY - timedelta(days=40))

    summary = service.summary(days=30)
    assert [row.date for row in summary["daily"]] == [DAY]
    assert summary["totals"]["images_generated"] == 1
