"""
Derived product state recomputed from generated asset statuses
"""
from uuid import UUID
from sqlalchemy.orm import Session
import structlog

from listing_studio.core.exceptions import NotFoundError
from listing_studio.models.asset import GeneratedAsset
from listing_studio.models.enums import AssetStatus, ProductStatus
from listing_studio.models.product import Product

logger = structlog.get_logger()


class RollupEngine:
    """
    Sets a product COMPLETED once it has assets and every one is APPROVED.

    Any other combination leaves the status as it is: a COMPLETED product
    is not moved back when one of its assets is later re-reviewed. Safe
    to run any number of times.
    """

    def __init__(self, db: Session):
        self.db = db

    def recompute(self, product_id: UUID) -> Product:
        product = self.db.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")

        statuses = [
            status for (status,) in
            self.db.query(GeneratedAsset.status).filter(GeneratedAsset.product_id == product_id).all()
        ]
        all_approved = bool(statuses) and all(s == AssetStatus.APPROVED.value for s in statuses)

        if all_approved and product.status != ProductStatus.COMPLETED.value:
            product.status = ProductStatus.COMPLETED.value
            self.db.commit()
            logger.info("product completed", product_id=str(product_id), asset_count=len(statuses))
        return product
