import uuid

import pytest

from listing_studio.core.exceptions import NotFoundError, ValidationError
from listing_studio.models import ActivityLog, AssetStatus, Comment, ProductStatus
from listing_studio.services.analytics import AnalyticsService, utc_today
from listing_studio.services.review import ReviewService


def _activity(db, action=None):
    query = db.query(ActivityLog)
    if action:
        query = query.filter(ActivityLog.action == action)
    return query.all()


def test_approve_completed_image(db, user, product, image_type, make_asset):
    asset = make_asset(product, image_type)

    updated = ReviewService(db).update_status(asset.id, AssetStatus.APPROVED, actor_id=user.id)

    assert updated.status == AssetStatus.APPROVED.value
    entries = _activity(db, "IMAGE_APPROVED")
    assert len(entries) == 1
    assert entries[0].user_id == user.id
    assert entries[0].entity_id == str(asset.id)
    assert entries[0].metadata_["product_title"] == "Steel Water Bottle"
    assert entries[0].metadata_["asset_type"] == "Main Image"
    assert entries[0].metadata_["previous_status"] == "COMPLETED"
    assert AnalyticsService(db).get_day(utc_today()).images_approved == 1


def test_activity_metadata_is_a_snapshot(db, user, product, image_type, make_asset):
    asset = make_asset(product, image_type)
    ReviewService(db).update_status(asset.id, AssetStatus.REJECTED, actor_id=user.id)

    product.title = "Renamed Bottle"
    db.commit()

    entry = _activity(db, "IMAGE_REJECTED")[0]
    db.refresh(entry)
    assert entry.metadata_["product_title"] == "Steel Water Bottle"


def test_reject_counts_rejection(db, user, product, image_type, make_asset):
    asset = make_asset(product, image_type)
    ReviewService(db).update_status(asset.id, AssetStatus.REJECTED, actor_id=user.id)

    day = AnalyticsService(db).get_day(utc_today())
    assert day.images_rejected == 1
    assert day.images_approved == 0


def test_needs_rework_comment_gets_issue_tag(db, user, product, image_type, make_asset):
    asset = make_asset(product, image_type)

    ReviewService(db).update_status(
        asset.id, AssetStatus.NEEDS_REWORK, actor_id=user.id, comment="Background is grey"
    )

    comment = db.query(Comment).filter(Comment.asset_id == asset.id).one()
    assert comment.issue_tag == "REWORK_REQUESTED"
    assert comment.user_id == user.id
    assert AnalyticsService(db).get_day(utc_today()) is None


def test_explicit_issue_tag_kept(db, user, product, image_type, make_asset):
    asset = make_asset(product, image_type)
    ReviewService(db).update_status(
        asset.id, AssetStatus.NEEDS_REWORK, actor_id=user.id, comment="Blurry", issue_tag="QUALITY"
    )
    assert db.query(Comment).one().issue_tag == "QUALITY"


@pytest.mark.parametrize("status", [AssetStatus.PENDING, AssetStatus.GENERATING, AssetStatus.FAILED])
def test_unfinished_assets_cannot_be_reviewed(db, user, product, image_type, make_asset, status):
    asset = make_asset(product, image_type, status=status)

    with pytest.raises(ValidationError):
        ReviewService(db).update_status(asset.id, AssetStatus.APPROVED, actor_id=user.id)

    db.refresh(asset)
    assert asset.status == status.value
    assert _activity(db) == []


@pytest.mark.parametrize("target", ["COMPLETED", "PENDING", "FAILED", "BOGUS"])
def test_target_must_be_a_review_status(db, user, product, image_type, make_asset, target):
    asset = make_asset(product, image_type)
    with pytest.raises(ValidationError):
        ReviewService(db).update_status(asset.id, target, actor_id=user.id)


def test_unknown_asset(db, user):
    with pytest.raises(NotFoundError):
        ReviewService(db).update_status(uuid.uuid4(), AssetStatus.APPROVED, actor_id=user.id)


def test_repeated_decision_reruns_side_effects(db, user, product, image_type, make_asset):
    asset = make_asset(product, image_type)
    service = ReviewService(db)

    service.update_status(asset.id, AssetStatus.APPROVED, actor_id=user.id)
    service.update_status(asset.id, AssetStatus.APPROVED, actor_id=user.id)

    assert len(_activity(db, "IMAGE_APPROVED")) == 2
    assert AnalyticsService(db).get_day(utc_today()).images_approved == 2


def test_later_decision_wins(db, user, product, image_type, make_asset):
    asset = make_asset(product, image_type)
    service = ReviewService(db)

    service.update_status(asset.id, AssetStatus.APPROVED, actor_id=user.id)
    updated = service.update_status(asset.id, AssetStatus.REJECTED, actor_id=user.id)

    assert updated.status == AssetStatus.REJECTED.value
    day = AnalyticsService(db).get_day(utc_today())
    assert (day.images_approved, day.images_rejected) == (1, 1)


def test_video_decisions_use_video_action(db, user, product, video_type, make_asset):
    asset = make_asset(product, video_type)
    ReviewService(db).update_status(asset.id, AssetStatus.APPROVED, actor_id=user.id)
    assert len(_activity(db, "VIDEO_APPROVED")) == 1


def test_analytics_failure_does_not_undo_decision(db, user, product, image_type, make_asset, monkeypatch):
    asset = make_asset(product, image_type)

    def boom(self, counter, day=None):
        raise RuntimeError("analytics down")

    monkeypatch.setattr(AnalyticsService, "increment", boom)

    updated = ReviewService(db).update_status(asset.id, AssetStatus.APPROVED, actor_id=user.id)

    assert updated.status == AssetStatus.APPROVED.value
    db.refresh(product)
    assert product.status == ProductStatus.COMPLETED.value
    assert len(_activity(db, "IMAGE_APPROVED")) == 1


def test_comments_newest_first(db, user, product, image_type, make_asset):
    from datetime import datetime, timedelta, timezone

    asset = make_asset(product, image_type)
    service = ReviewService(db)
    first = service.add_comment(asset.id, user.id, "first")
    second = service.add_comment(asset.id, user.id, "second", issue_tag="LIGHTING")
    first.created_at = datetime.now(timezone.utc) - timedelta(minutes=5)
    db.commit()

    assert [c.id for c in service.list_comments(asset.id)] == [second.id, first.id]


def test_empty_comment_rejected(db, user, product, image_type, make_asset):
    asset = make_asset(product, image_type)
    with pytest.raises(ValidationError):
        ReviewService(db).add_comment(asset.id, user.id, "   ")
