"""
Product service: catalog records, source images and inventory import
"""
import asyncio
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from sqlalchemy import desc, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from listing_studio.core.config import settings
from listing_studio.core.exceptions import (
    ExternalServiceError,
    ExternalServiceTimeout,
    NotFoundError,
    ValidationError,
)
from listing_studio.models.asset import GeneratedAsset
from listing_studio.models.asset_type import AssetType
from listing_studio.models.enums import ProductStatus
from listing_studio.models.product import Product, SourceImage
from listing_studio.services.activity import ActivityService
from listing_studio.services.marketplace import (
    CatalogImage,
    MarketplaceClient,
    MarketplaceError,
    MarketplaceTimeout,
    get_marketplace_client,
)

logger = structlog.get_logger()

SOURCE_IMAGE_MAPPINGS = "sourceImageMappings"


def mapped_source_image_id(product: Product, asset_type_id: UUID) -> Optional[str]:
    """Source image chosen for an asset type on this product, if any"""
    return ((product.metadata_ or {}).get(SOURCE_IMAGE_MAPPINGS) or {}).get(str(asset_type_id))


def pick_images(images: List[CatalogImage]) -> List[CatalogImage]:
    """One image per variant, the largest one, in first-seen order"""
    best: Dict[str, CatalogImage] = {}
    for image in images:
        current = best.get(image.variant)
        if current is None or image.width * image.height > current.width * current.height:
            best[image.variant] = image
    return list(best.values())


class ProductService:
    def __init__(
        self,
        db: Session,
        marketplace: Optional[MarketplaceClient] = None,
        timeout: Optional[float] = None,
    ):
        self.db = db
        self._marketplace = marketplace
        self.timeout = timeout or settings.MARKETPLACE_TIMEOUT_SECONDS

    @property
    def marketplace(self) -> MarketplaceClient:
        if self._marketplace is None:
            self._marketplace = get_marketplace_client()
        return self._marketplace

    def create_product(
        self,
        title: str,
        category: Optional[str] = None,
        asin: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        actor_id: Optional[UUID] = None,
    ) -> Product:
        if not title or not title.strip():
            raise ValidationError("Product title must not be empty")
        product = Product(
            title=title.strip(),
            category=category,
            asin=asin or None,
            status=ProductStatus.NOT_STARTED.value,
            metadata_=dict(metadata or {}),
        )
        self.db.add(product)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError(f"A product with ASIN {asin} already exists", details={"asin": asin})
        self.db.refresh(product)
        logger.info("Product created", product_id=str(product.id), asin=asin)
        ActivityService(self.db).record(
            actor_id, "CREATE_PRODUCT", "Product", product.id, {"title": product.title, "asin": asin}
        )
        return product

    def get_product(self, product_id: UUID) -> Product:
        product = self.db.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def list_products(
        self, status: Optional[ProductStatus] = None, limit: int = 50, offset: int = 0
    ) -> List[Product]:
        query = self.db.query(Product)
        if status:
            query = query.filter(Product.status == ProductStatus(status).value)
        return query.order_by(desc(Product.created_at)).offset(offset).limit(limit).all()

    def status_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in ProductStatus}
        counts.update(dict(self.db.query(Product.status, func.count(Product.id)).group_by(Product.status).all()))
        counts["total"] = sum(counts[status.value] for status in ProductStatus)
        return counts

    def list_assets(self, product_id: UUID) -> List[GeneratedAsset]:
        self.get_product(product_id)
        return (
            self.db.query(GeneratedAsset)
            .filter(GeneratedAsset.product_id == product_id)
            .order_by(GeneratedAsset.asset_type_id, desc(GeneratedAsset.version))
            .all()
        )

    def set_source_image_mapping(
        self,
        product_id: UUID,
        asset_type_id: UUID,
        source_image_id: UUID,
        actor_id: Optional[UUID] = None,
    ) -> Product:
        """Remember which source image feeds generations of this asset type"""
        product = self.get_product(product_id)
        source_image = self.db.get(SourceImage, source_image_id)
        if not source_image or source_image.product_id != product.id:
            raise NotFoundError(f"Source image {source_image_id} not found for product {product_id}")
        asset_type = self.db.get(AssetType, asset_type_id)
        if not asset_type:
            raise NotFoundError(f"Asset type {asset_type_id} not found")

        metadata = dict(product.metadata_ or {})
        mappings = dict(metadata.get(SOURCE_IMAGE_MAPPINGS) or {})
        mappings[str(asset_type_id)] = str(source_image_id)
        metadata[SOURCE_IMAGE_MAPPINGS] = mappings
        product.metadata_ = metadata
        self.db.commit()
        self.db.refresh(product)
        logger.info(
            "source image mapping saved",
            product_id=str(product_id),
            asset_type_id=str(asset_type_id),
            source_image_id=str(source_image_id),
        )
        ActivityService(self.db).record(
            actor_id,
            "SET_SOURCE_IMAGE_MAPPING",
            "Product",
            product.id,
            {
                "asset_type_id": str(asset_type_id),
                "asset_type": asset_type.name,
                "source_image_id": str(source_image_id),
                "variant": source_image.variant,
            },
        )
        return product

    def get_source_image_mapping(self, product_id: UUID, asset_type_id: UUID) -> Optional[SourceImage]:
        """Mapped source image; a mapping to an image that no longer exists reads as none"""
        product = self.get_product(product_id)
        mapped_id = mapped_source_image_id(product, asset_type_id)
        return next((image for image in product.source_images if str(image.id) == mapped_id), None)

    async def refresh_source_images(self, product_id: UUID, actor_id: Optional[UUID] = None) -> Product:
        """Replace the product's source images with the marketplace catalog images"""
        product = self.get_product(product_id)
        if not product.asin:
            raise ValidationError("Product has no ASIN to refresh images from")
        logger.info("refresh_source_images called", product_id=str(product_id), asin=product.asin)

        marketplace = self.marketplace
        marketplace.ensure_configured()
        catalog = await self._call("Catalog lookup", marketplace.get_product_by_asin(product.asin))
        if catalog is None:
            raise NotFoundError(f"ASIN {product.asin} not found in the marketplace catalog")

        old_ids = [image.id for image in product.source_images]
        if old_ids:
            self.db.execute(
                update(GeneratedAsset)
                .where(GeneratedAsset.source_image_id.in_(old_ids))
                .values(source_image_id=None)
                .execution_options(synchronize_session="fetch")
            )
        product.source_images.clear()
        if SOURCE_IMAGE_MAPPINGS in (product.metadata_ or {}):
            product.metadata_ = {k: v for k, v in product.metadata_.items() if k != SOURCE_IMAGE_MAPPINGS}
        self.db.flush()

        for order, image in enumerate(pick_images(catalog.images)):
            product.source_images.append(SourceImage(
                variant=image.variant,
                image_order=order,
                amazon_image_url=image.link,
                width=image.width or None,
                height=image.height or None,
            ))
        self.db.commit()
        self.db.refresh(product)
        logger.info(
            "Source images refreshed",
            product_id=str(product_id),
            removed=len(old_ids),
            created=len(product.source_images),
        )
        ActivityService(self.db).record(
            actor_id,
            "REFRESH_SOURCE_IMAGES",
            "Product",
            product.id,
            {"asin": product.asin, "image_count": len(product.source_images)},
        )
        return product

    async def import_from_inventory(self, only_in_stock: bool = True, actor_id: Optional[UUID] = None) -> Dict[str, Any]:
        """Create products for inventory ASINs that are not in the catalog yet"""
        marketplace = self.marketplace
        marketplace.ensure_configured()
        inventory = await self._call("Inventory lookup", marketplace.list_inventory(only_in_stock=only_in_stock))

        known = {asin for (asin,) in self.db.query(Product.asin).filter(Product.asin.isnot(None)).all()}
        created, skipped, failed = [], 0, []
        for item in inventory:
            if item.asin in known:
                skipped += 1
                continue
            try:
                catalog = await self._call("Catalog lookup", marketplace.get_product_by_asin(item.asin))
            except ExternalServiceError as e:
                logger.warning("Catalog lookup failed during import", asin=item.asin, error=str(e))
                failed.append({"asin": item.asin, "error": str(e)})
                continue

            product = Product(
                asin=item.asin,
                title=(catalog.title if catalog else None) or item.product_name or item.asin,
                status=ProductStatus.NOT_STARTED.value,
                metadata_={
                    "quantity": item.quantity,
                    "sku": item.sku,
                    "productType": catalog.product_type if catalog else None,
                    "brand": catalog.brand if catalog else None,
                },
            )
            for order, image in enumerate(pick_images(catalog.images) if catalog else []):
                product.source_images.append(SourceImage(
                    variant=image.variant,
                    image_order=order,
                    amazon_image_url=image.link,
                    width=image.width or None,
                    height=image.height or None,
                ))
            self.db.add(product)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                skipped += 1
                continue
            known.add(item.asin)
            created.append(str(product.id))

        logger.info(
            "Inventory import finished",
            inventory_count=len(inventory),
            created=len(created),
            skipped=skipped,
            failed=len(failed),
        )
        ActivityService(self.db).record(
            actor_id,
            "IMPORT_INVENTORY",
            "Product",
            "inventory",
            {"created": len(created), "skipped": skipped, "failed": len(failed)},
        )
        return {"created": len(created), "skipped": skipped, "failed": failed, "productIds": created}

    async def _call(self, operation: str, awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except (asyncio.TimeoutError, MarketplaceTimeout):
            logger.error("Marketplace call timed out", operation=operation, timeout=self.timeout)
            raise ExternalServiceTimeout(
                f"{operation} timed out",
                service="marketplace",
                details={"timeoutSeconds": self.timeout},
            )
        except MarketplaceError as e:
            logger.error("Marketplace call failed", operation=operation, error=str(e))
            raise ExternalServiceError(f"{operation} failed: {e}", service="marketplace")
