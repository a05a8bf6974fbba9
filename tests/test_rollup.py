import pytest

from listing_studio.models import AssetStatus, ProductStatus
from listing_studio.services.review import ReviewService
from listing_studio.services.rollup import RollupEngine


def test_all_approved_completes_product(db, product, image_type, make_asset):
    make_asset(product, image_type, status=AssetStatus.APPROVED)
    make_asset(product, image_type, status=AssetStatus.APPROVED)

    assert RollupEngine(db).recompute(product.id).status == ProductStatus.COMPLETED.value


@pytest.mark.parametrize("other", [AssetStatus.PENDING, AssetStatus.REJECTED, AssetStatus.NEEDS_REWORK])
def test_mixed_statuses_leave_product_unchanged(db, product, image_type, make_asset, other):
    product.status = ProductStatus.IN_PROGRESS.value
    db.commit()
    make_asset(product, image_type, status=AssetStatus.APPROVED)
    make_asset(product, image_type, status=other)

    assert RollupEngine(db).recompute(product.id).status == ProductStatus.IN_PROGRESS.value


def test_product_without_assets_unchanged(db, product):
    assert RollupEngine(db).recompute(product.id).status == ProductStatus.NOT_STARTED.value


def test_recompute_is_repeatable(db, product, image_type, make_asset):
    make_asset(product, image_type, status=AssetStatus.APPROVED)
    engine = RollupEngine(db)

    engine.recompute(product.id)
    engine.recompute(product.id)

    assert product.status == ProductStatus.COMPLETED.value


def test_completed_product_is_not_reverted(db, user, product, image_type, make_asset):
    asset = make_asset(product, image_type)
    service = ReviewService(db)

    service.update_status(asset.id, AssetStatus.APPROVED, actor_id=user.id)
    db.refresh(product)
    assert product.status == ProductStatus.COMPLETED.value

    service.update_status(asset.id, AssetStatus.REJECTED, actor_id=user.id)
    db.refresh(product)
    assert product.status == ProductStatus.COMPLETED.value
