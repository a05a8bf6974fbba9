"""
Bulk generation job tickets
"""
from typing import List, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy import desc
from sqlalchemy.orm import Session

from listing_studio.core.exceptions import NotFoundError, ValidationError
from listing_studio.models.asset_type import AssetType
from listing_studio.models.enums import JobStatus
from listing_studio.models.generation import GenerationJob
from listing_studio.models.product import Product
from listing_studio.services.activity import ActivityService
from listing_studio.services.template import TemplateService

logger = structlog.get_logger()

MIN_PRIORITY = 0
MAX_PRIORITY = 10


def _unique(ids: Sequence[UUID]) -> List[UUID]:
    seen = []
    for value in ids:
        if value not in seen:
            seen.append(value)
    return seen


class JobService:
    """
    Durable queue of bulk generation requests.

    Jobs are only recorded here; a consumer takes them by priority, newest
    first within a priority.
    """

    def __init__(self, db: Session):
        self.db = db

    def enqueue(
        self,
        product_ids: Sequence[UUID],
        asset_type_ids: Sequence[UUID],
        actor_id: UUID,
        priority: int = 0,
    ) -> GenerationJob:
        product_ids = _unique(product_ids)
        asset_type_ids = _unique(asset_type_ids)
        logger.info(
            "enqueue called",
            product_count=len(product_ids),
            asset_type_count=len(asset_type_ids),
            priority=priority,
            actor_id=str(actor_id),
        )
        if not product_ids or not asset_type_ids:
            raise ValidationError("A job needs at least one product and one asset type")
        self._check_priority(priority)

        found_products = {pid for (pid,) in self.db.query(Product.id).filter(Product.id.in_(product_ids)).all()}
        missing_products = [str(pid) for pid in product_ids if pid not in found_products]
        if missing_products:
            raise NotFoundError("Some products were not found", details={"missingProductIds": missing_products})
        found_types = {
            tid for (tid,) in self.db.query(AssetType.id).filter(AssetType.id.in_(asset_type_ids)).all()
        }
        missing_types = [str(tid) for tid in asset_type_ids if tid not in found_types]
        if missing_types:
            raise NotFoundError("Some asset types were not found", details={"missingAssetTypeIds": missing_types})

        job = GenerationJob(
            product_ids=[str(pid) for pid in product_ids],
            asset_type_ids=[str(tid) for tid in asset_type_ids],
            status=JobStatus.QUEUED.value,
            priority=priority,
            total_images=len(product_ids) * len(asset_type_ids),
            created_by_id=actor_id,
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        logger.info("generation job queued", job_id=str(job.id), total_images=job.total_images)

        ActivityService(self.db).record(
            actor_id,
            "CREATE_BULK_JOB",
            "GenerationJob",
            job.id,
            {"total_images": job.total_images, "priority": priority},
        )
        return job

    def enqueue_by_variant(
        self,
        product_ids: Sequence[UUID],
        variant: str,
        asset_type_id: UUID,
        actor_id: UUID,
        priority: int = 0,
        custom_prompt: Optional[str] = None,
        template_id: Optional[UUID] = None,
    ) -> GenerationJob:
        """
        Queue one generation per product from its best source image of ``variant``.

        Products without that variant are skipped and listed in the job
        params; the highest resolution image of the variant is chosen.
        """
        product_ids = _unique(product_ids)
        logger.info(
            "enqueue_by_variant called",
            product_count=len(product_ids),
            variant=variant,
            asset_type_id=str(asset_type_id),
            actor_id=str(actor_id),
        )
        if not product_ids:
            raise ValidationError("A job needs at least one product")
        self._check_priority(priority)
        asset_type = self.db.get(AssetType, asset_type_id)
        if not asset_type:
            raise NotFoundError(f"Asset type {asset_type_id} not found")
        if template_id:
            TemplateService(self.db).get_template(template_id)

        products = self.db.query(Product).filter(Product.id.in_(product_ids)).all()
        found = {p.id for p in products}
        missing = [str(pid) for pid in product_ids if pid not in found]
        if missing:
            raise NotFoundError("Some products were not found", details={"missingProductIds": missing})

        chosen = {}
        for product in sorted(products, key=lambda p: product_ids.index(p.id)):
            candidates = [image for image in product.source_images if image.variant == variant]
            if candidates:
                best = max(candidates, key=lambda image: (image.width or 0) * (image.height or 0))
                chosen[str(product.id)] = str(best.id)
        if not chosen:
            raise ValidationError(f"No selected products have the variant: {variant}", details={"variant": variant})
        skipped = [str(pid) for pid in product_ids if str(pid) not in chosen]

        params = {"variant": variant, "sourceImageIds": chosen, "skippedProductIds": skipped}
        if custom_prompt and custom_prompt.strip():
            params["customPrompt"] = custom_prompt.strip()
        if template_id:
            params["templateId"] = str(template_id)
        job = GenerationJob(
            product_ids=list(chosen),
            asset_type_ids=[str(asset_type_id)],
            status=JobStatus.QUEUED.value,
            priority=priority,
            total_images=len(chosen),
            created_by_id=actor_id,
            params=params,
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        logger.info("variant job queued", job_id=str(job.id), total_images=job.total_images, skipped=len(skipped))

        ActivityService(self.db).record(
            actor_id,
            "CREATE_BULK_JOB",
            "GenerationJob",
            job.id,
            {
                "variant": variant,
                "product_count": len(chosen),
                "asset_type": asset_type.name,
                "priority": priority,
            },
        )
        return job

    def get_job(self, job_id: UUID) -> GenerationJob:
        job = self.db.get(GenerationJob, job_id)
        if not job:
            raise NotFoundError(f"Job {job_id} not found")
        return job

    def list_jobs(self, status: Optional[JobStatus] = None, limit: int = 50) -> List[GenerationJob]:
        query = self.db.query(GenerationJob)
        if status:
            query = query.filter(GenerationJob.status == JobStatus(status).value)
        return query.order_by(desc(GenerationJob.priority), desc(GenerationJob.created_at)).limit(limit).all()

    @staticmethod
    def _check_priority(priority: int) -> None:
        if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
            raise ValidationError(
                f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}",
                details={"priority": priority},
            )
