"""
Monotonic version allocation per (product, asset type)
"""
from uuid import UUID
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import structlog

from listing_studio.models.asset import GeneratedAsset, VersionCounter

logger = structlog.get_logger()

MAX_ALLOCATION_ATTEMPTS = 5


class VersionAllocator:
    """
    Hands out version numbers from a counter row per pair.

    Allocation is one ``UPDATE ... SET last_version = last_version + 1
    RETURNING last_version`` on the pair's row, so concurrent requests for
    the same pair serialize on that row only. A number is consumed even if
    the generation that asked for it later fails, and deleted assets never
    free their number.
    """

    def __init__(self, db: Session):
        self.db = db

    def next_version(self, product_id: UUID, asset_type_id: UUID) -> int:
        for _ in range(MAX_ALLOCATION_ATTEMPTS):
            version = self.db.execute(
                update(VersionCounter)
                .where(
                    VersionCounter.product_id == product_id,
                    VersionCounter.asset_type_id == asset_type_id,
                )
                .values(last_version=VersionCounter.last_version + 1)
                .returning(VersionCounter.last_version)
                .execution_options(synchronize_session=False)
            ).scalar_one_or_none()
            if version is not None:
                self.db.commit()
                logger.info("version allocated", product_id=str(product_id), asset_type_id=str(asset_type_id), version=version)
                return version

            # First allocation for this pair: seed from any existing assets
            current_max = (
                self.db.query(func.max(GeneratedAsset.version))
                .filter(
                    GeneratedAsset.product_id == product_id,
                    GeneratedAsset.asset_type_id == asset_type_id,
                )
                .scalar()
            ) or 0
            self.db.add(VersionCounter(
                product_id=product_id,
                asset_type_id=asset_type_id,
                last_version=current_max + 1,
            ))
            try:
                self.db.commit()
                logger.info("version counter created", product_id=str(product_id), asset_type_id=str(asset_type_id), version=current_max + 1)
                return current_max + 1
            except IntegrityError:
                # A concurrent request created the counter; allocate through it
                self.db.rollback()

        raise RuntimeError(f"Could not allocate a version for product {product_id} / asset type {asset_type_id}")
