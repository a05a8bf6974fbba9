"""
Publish pipeline: batched push of approved images into marketplace listing slots
"""
import asyncio
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy.orm import Session

from listing_studio.core.config import settings
from listing_studio.core.exceptions import (
    ExternalServiceError,
    ExternalServiceTimeout,
    NotFoundError,
    ValidationError,
)
from listing_studio.models.asset import GeneratedAsset
from listing_studio.models.enums import AmazonSlot, AssetStatus, PushStatus
from listing_studio.models.product import Product
from listing_studio.models.push import AmazonImagePush
from listing_studio.services.activity import ActivityService
from listing_studio.services.marketplace import (
    ImageSlotMapping,
    ListingUpdateResult,
    MarketplaceClient,
    MarketplaceError,
    MarketplaceTimeout,
    get_marketplace_client,
)
from listing_studio.services.storage import Storage, get_storage

logger = structlog.get_logger()

DEFAULT_PRODUCT_TYPE = "PRODUCT"


@dataclass
class PushItem:
    asset_id: UUID
    slot: str


@dataclass
class BatchResult:
    batch_id: UUID
    success: bool
    status: str
    pushes: List[AmazonImagePush] = field(default_factory=list)
    submission_id: Optional[str] = None
    issues: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def listing_sku(product: Product) -> str:
    return (product.metadata_ or {}).get("sku") or product.asin


def listing_product_type(product: Product) -> str:
    return (product.metadata_ or {}).get("productType") or DEFAULT_PRODUCT_TYPE


class PublishService:
    def __init__(
        self,
        db: Session,
        marketplace: Optional[MarketplaceClient] = None,
        storage: Optional[Storage] = None,
        timeout: Optional[float] = None,
    ):
        self.db = db
        self._marketplace = marketplace
        self._storage = storage
        self.timeout = timeout or settings.MARKETPLACE_TIMEOUT_SECONDS

    @property
    def marketplace(self) -> MarketplaceClient:
        if self._marketplace is None:
            self._marketplace = get_marketplace_client()
        return self._marketplace

    @property
    def storage(self) -> Storage:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    async def push(
        self,
        product_id: UUID,
        items: Sequence[PushItem],
        actor_id: UUID,
        max_items: Optional[int] = None,
    ) -> BatchResult:
        """
        Push approved images of one product into listing slots in a single call.

        Every precondition is checked before anything is written. One push
        row per item is then committed as PENDING before the marketplace is
        called. The marketplace accepts or rejects the batch as a whole, so
        all rows end with the same status. A transport failure or timeout
        leaves the rows PENDING for reconciliation and is raised.
        """
        max_items = max_items or settings.MAX_PUSH_BATCH_SIZE
        logger.info(
            "push called",
            product_id=str(product_id),
            item_count=len(items),
            actor_id=str(actor_id),
        )
        product, assets = self._validate(product_id, items, max_items)
        marketplace = self.marketplace
        marketplace.ensure_configured()

        sku = listing_sku(product)
        product_type = listing_product_type(product)
        urls = {item.asset_id: self.storage.public_url(assets[item.asset_id].storage_path) for item in items}

        batch_id = uuid.uuid4()
        pushes = []
        for item in items:
            push = AmazonImagePush(
                batch_id=batch_id,
                generated_asset_id=item.asset_id,
                product_id=product.id,
                asin=product.asin,
                sku=sku,
                amazon_slot=item.slot,
                image_url=urls[item.asset_id],
                status=PushStatus.PENDING.value,
            )
            self.db.add(push)
            pushes.append(push)
            assets[item.asset_id].amazon_push_status = PushStatus.PUSHING.value
        self.db.commit()
        logger.info("push rows created", batch_id=str(batch_id), sku=sku, slots=[i.slot for i in items])

        mappings = [ImageSlotMapping(slot=item.slot, image_url=urls[item.asset_id]) for item in items]
        try:
            result = await asyncio.wait_for(
                marketplace.update_listing_images(sku, mappings, product_type),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, MarketplaceTimeout):
            logger.error("Listing update timed out; push rows left pending", batch_id=str(batch_id), sku=sku)
            raise ExternalServiceTimeout(
                "Marketplace listing update timed out",
                service="marketplace",
                details={"batchId": str(batch_id), "timeoutSeconds": self.timeout},
            )
        except MarketplaceError as e:
            logger.error("Listing update failed; push rows left pending", batch_id=str(batch_id), sku=sku, error=str(e))
            raise ExternalServiceError(
                f"Marketplace listing update failed: {e}",
                service="marketplace",
                details={"batchId": str(batch_id)},
            )

        self._finalize(product, pushes, assets, result, actor_id, batch_id)
        for push in pushes:
            self.db.refresh(push)
        return BatchResult(
            batch_id=batch_id,
            success=result.success,
            status=result.status,
            pushes=pushes,
            submission_id=result.submission_id,
            issues=result.issues,
            error=result.error,
        )

    def _validate(self, product_id: UUID, items: Sequence[PushItem], max_items: int):
        if not 1 <= len(items) <= max_items:
            raise ValidationError(
                f"A push must contain between 1 and {max_items} images",
                details={"count": len(items)},
            )

        invalid_slots = [item.slot for item in items if item.slot not in AmazonSlot.__members__]
        if invalid_slots:
            raise ValidationError(
                "Unknown image slot",
                details={"invalidSlots": invalid_slots, "allowed": list(AmazonSlot.__members__)},
            )
        slots = [item.slot for item in items]
        duplicate_slots = sorted({slot for slot in slots if slots.count(slot) > 1})
        if duplicate_slots:
            raise ValidationError("Each slot may be used once per push", details={"duplicateSlots": duplicate_slots})
        asset_ids = [item.asset_id for item in items]
        duplicate_ids = sorted({str(a) for a in asset_ids if asset_ids.count(a) > 1})
        if duplicate_ids:
            raise ValidationError("Each image may be pushed once per batch", details={"duplicateIds": duplicate_ids})

        product = self.db.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        if not product.asin:
            raise ValidationError(
                "Product has no ASIN and cannot be published",
                details={"productId": str(product_id)},
            )

        assets = {
            asset.id: asset
            for asset in self.db.query(GeneratedAsset)
            .filter(GeneratedAsset.id.in_(asset_ids), GeneratedAsset.product_id == product.id)
            .all()
        }
        missing = [str(a) for a in asset_ids if a not in assets]
        if missing:
            raise ValidationError(
                "Some images were not found for this product",
                details={"missingIds": missing},
            )
        not_approved = [
            {"id": str(asset.id), "status": asset.status}
            for asset in assets.values()
            if asset.status != AssetStatus.APPROVED.value
        ]
        if not_approved:
            raise ValidationError(
                "Only approved images can be pushed",
                details={"nonApproved": not_approved},
            )
        not_stored = [str(asset.id) for asset in assets.values() if not asset.storage_path]
        if not_stored:
            raise ValidationError("Some images have no stored file", details={"missingFiles": not_stored})
        return product, assets

    def _finalize(
        self,
        product: Product,
        pushes: List[AmazonImagePush],
        assets: Dict[UUID, GeneratedAsset],
        result: ListingUpdateResult,
        actor_id: UUID,
        batch_id: UUID,
    ) -> None:
        status = PushStatus.SUCCESS if result.success else PushStatus.FAILED
        now = utc_now()
        for push in pushes:
            push.status = status.value
            push.amazon_response = result.to_dict()
            push.error_message = None if result.success else result.error
            push.completed_at = now

            asset = assets[push.generated_asset_id]
            asset.amazon_slot = push.amazon_slot
            asset.amazon_push_status = status.value
            if result.success:
                asset.amazon_pushed_at = now

        ActivityService(self.db).record(
            actor_id=actor_id,
            action=f"AMAZON_PUSH_{status.value}",
            entity_type="Product",
            entity_id=product.id,
            metadata={
                "batch_id": str(batch_id),
                "asin": product.asin,
                "sku": pushes[0].sku,
                "image_count": len(pushes),
                "slots": [push.amazon_slot for push in pushes],
                "submission_id": result.submission_id,
                "error": result.error,
            },
            commit=False,
        )
        self.db.commit()
        logger.info(
            "push finished",
            batch_id=str(batch_id),
            status=status.value,
            submission_id=result.submission_id,
        )

    def push_history(self, product_id: UUID, limit: int = 100) -> Dict[str, Any]:
        if not self.db.get(Product, product_id):
            raise NotFoundError(f"Product {product_id} not found")
        pushes = (
            self.db.query(AmazonImagePush)
            .filter(AmazonImagePush.product_id == product_id)
            .order_by(AmazonImagePush.created_at.desc())
            .limit(limit)
            .all()
        )
        counts = defaultdict(int)
        for push in pushes:
            counts[push.status] += 1
        return {
            "pushes": pushes,
            "total": len(pushes),
            "successful": counts[PushStatus.SUCCESS.value],
            "failed": counts[PushStatus.FAILED.value],
            "pending": counts[PushStatus.PENDING.value],
        }

    async def reconcile_stale_pushes(
        self, older_than_minutes: Optional[int] = None, now: Optional[datetime] = None
    ) -> Dict[str, int]:
        """
        Resolve push rows left PENDING by an interrupted push.

        The live listing is read once per SKU. A row whose slot now carries
        its image URL is marked SUCCESS, any other row FAILED. Rows for a
        SKU whose lookup fails stay PENDING for the next run.
        """
        older_than_minutes = older_than_minutes or settings.PUSH_RECONCILE_AFTER_MINUTES
        cutoff = (now or utc_now()) - timedelta(minutes=older_than_minutes)
        stale = (
            self.db.query(AmazonImagePush)
            .filter(AmazonImagePush.status == PushStatus.PENDING.value, AmazonImagePush.created_at < cutoff)
            .order_by(AmazonImagePush.created_at)
            .all()
        )
        logger.info("reconcile_stale_pushes called", stale_count=len(stale), cutoff=cutoff.isoformat())
        counts = {"checked": len(stale), "succeeded": 0, "failed": 0, "unresolved": 0}
        if not stale:
            return counts

        by_sku: Dict[str, List[AmazonImagePush]] = defaultdict(list)
        for push in stale:
            by_sku[push.sku or push.asin].append(push)

        marketplace = self.marketplace
        marketplace.ensure_configured()
        resolved_at = utc_now()
        for sku, pushes in by_sku.items():
            try:
                listing = await asyncio.wait_for(marketplace.get_listing_item(sku), timeout=self.timeout)
            except (asyncio.TimeoutError, MarketplaceError) as e:
                logger.warning("Listing lookup failed during reconciliation", sku=sku, error=str(e))
                counts["unresolved"] += len(pushes)
                continue

            attributes = (listing or {}).get("attributes") or {}
            for push in pushes:
                live = [
                    entry.get("media_location")
                    for entry in attributes.get(AmazonSlot(push.amazon_slot).attribute_name) or []
                ]
                succeeded = push.image_url in live
                status = PushStatus.SUCCESS if succeeded else PushStatus.FAILED
                push.status = status.value
                push.completed_at = resolved_at
                push.amazon_response = {"reconciled": True, "liveLocators": live}
                if not succeeded:
                    push.error_message = "Reconciliation: listing slot does not carry the pushed image"

                asset = push.asset
                if asset and asset.amazon_push_status == PushStatus.PUSHING.value:
                    asset.amazon_push_status = status.value
                    asset.amazon_slot = push.amazon_slot
                    if succeeded:
                        asset.amazon_pushed_at = resolved_at
                counts["succeeded" if succeeded else "failed"] += 1

        resolved = counts["succeeded"] + counts["failed"]
        if resolved:
            ActivityService(self.db).record(
                actor_id=None,
                action="AMAZON_PUSH_RECONCILED",
                entity_type="AmazonImagePush",
                entity_id=str(stale[0].batch_id),
                metadata={**counts, "batch_ids": sorted({str(p.batch_id) for p in stale})},
                commit=False,
            )
        self.db.commit()
        logger.info("reconciliation finished", **counts)
        return counts
