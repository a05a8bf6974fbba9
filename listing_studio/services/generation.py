"""
Generation service: turns a (product, asset type) request into a versioned asset record
"""
import asyncio
import re
from typing import Any, Dict, Optional
from uuid import UUID

import aiohttp
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
from listing_studio.models.asset_type import AssetType
from listing_studio.models.enums import AssetKind, AssetStatus, ProductStatus
from listing_studio.models.product import Product, SourceImage
from listing_studio.services.activity import ActivityService
from listing_studio.services.ai_providers import (
    AssetGenerator,
    GeneratorError,
    GeneratorFactory,
    GeneratorTimeout,
    VideoParams,
)
from listing_studio.services.analytics import AnalyticsService
from listing_studio.services.product import mapped_source_image_id
from listing_studio.services.prompt import PromptService
from listing_studio.services.storage import Storage, get_storage, is_url
from listing_studio.services.versioning import VersionAllocator

logger = structlog.get_logger()

VIDEO_ASPECT_RATIOS = ("16:9", "9:16", "1:1")
VIDEO_RESOLUTIONS = ("720p", "1080p")
VIDEO_MIN_SECONDS = 4
VIDEO_MAX_SECONDS = 8

EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


def build_file_name(product: Product, asset_type: AssetType, version: int, mime_type: str = "image/png") -> str:
    prefix = product.asin or str(product.id)[:8]
    type_name = re.sub(r"[^A-Za-z0-9]+", "_", asset_type.name).strip("_").lower() or "asset"
    return f"{prefix}_{type_name}_v{version}.{EXTENSIONS.get(mime_type, 'png')}"


def validate_video_params(params: VideoParams) -> None:
    if params.aspect_ratio not in VIDEO_ASPECT_RATIOS:
        raise ValidationError(
            f"Unsupported aspect ratio: {params.aspect_ratio}",
            details={"allowed": list(VIDEO_ASPECT_RATIOS)},
        )
    if not VIDEO_MIN_SECONDS <= params.duration_seconds <= VIDEO_MAX_SECONDS:
        raise ValidationError(
            f"Duration must be between {VIDEO_MIN_SECONDS} and {VIDEO_MAX_SECONDS} seconds",
            details={"durationSeconds": params.duration_seconds},
        )
    if params.resolution not in VIDEO_RESOLUTIONS:
        raise ValidationError(
            f"Unsupported resolution: {params.resolution}",
            details={"allowed": list(VIDEO_RESOLUTIONS)},
        )


class GenerationService:
    def __init__(
        self,
        db: Session,
        generator: Optional[AssetGenerator] = None,
        storage: Optional[Storage] = None,
        timeout: Optional[float] = None,
    ):
        self.db = db
        self._generator = generator
        self._storage = storage
        self.timeout = timeout or settings.GENERATOR_TIMEOUT_SECONDS

    @property
    def generator(self) -> AssetGenerator:
        if self._generator is None:
            self._generator = GeneratorFactory.get_provider()
        return self._generator

    @property
    def storage(self) -> Storage:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    async def generate_image(
        self,
        product_id: UUID,
        asset_type_id: UUID,
        actor_id: UUID,
        source_image_id: Optional[UUID] = None,
        parent_image_id: Optional[UUID] = None,
        additional_instructions: Optional[str] = None,
        template_id: Optional[UUID] = None,
        template_variables: Optional[Dict[str, str]] = None,
    ) -> GeneratedAsset:
        """
        Generate one product image and persist it as the next version.

        The record is created PENDING before the generator is called and
        ends COMPLETED or FAILED. A consumed version number is never
        reused, even when the generation fails.
        """
        logger.info(
            "generate_image called",
            product_id=str(product_id),
            asset_type_id=str(asset_type_id),
            actor_id=str(actor_id),
        )
        product, asset_type = self._load(product_id, asset_type_id, AssetKind.IMAGE)
        generator = self.generator

        prompt = PromptService(self.db).resolve(
            product_id, asset_type_id, additional_instructions, template_id, template_variables
        )

        parent = None
        if parent_image_id:
            parent = self.db.get(GeneratedAsset, parent_image_id)
            if not parent:
                raise NotFoundError(f"Parent image {parent_image_id} not found")
            if parent.product_id != product.id:
                raise ValidationError("Parent image belongs to a different product")

        source_image = self._pick_source_image(product, asset_type, source_image_id, parent)
        source_bytes = await self._load_reference_bytes(parent, source_image)

        version = VersionAllocator(self.db).next_version(product.id, asset_type.id)
        self._mark_product_started(product)

        asset = GeneratedAsset(
            product_id=product.id,
            asset_type_id=asset_type.id,
            kind=AssetKind.IMAGE.value,
            status=AssetStatus.PENDING.value,
            version=version,
            prompt_used=prompt,
            ai_model=generator.provider_name,
            parent_image_id=parent.id if parent else None,
            source_image_id=source_image.id if source_image else None,
            generated_by_id=actor_id,
            generation_params=self._params(additional_instructions, template_id, template_variables),
        )
        self.db.add(asset)
        self.db.commit()
        self.db.refresh(asset)
        logger.info("image record created", asset_id=str(asset.id), version=version)

        try:
            result = await asyncio.wait_for(
                generator.generate_image(prompt, source_bytes),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, GeneratorTimeout):
            self._fail(asset, actor_id, f"Generator timed out after {self.timeout}s")
            raise ExternalServiceTimeout(
                "Image generation timed out",
                service="generator",
                details={"assetId": str(asset.id), "timeoutSeconds": self.timeout},
            )
        except GeneratorError as e:
            self._fail(asset, actor_id, str(e))
            raise ExternalServiceError(
                f"Image generation failed: {e}",
                service="generator",
                details={"assetId": str(asset.id)},
            )
        except Exception as e:
            logger.exception("Generator raised unexpectedly", asset_id=str(asset.id))
            self._fail(asset, actor_id, f"Unexpected generator error: {e}")
            raise ExternalServiceError(
                f"Image generation failed: {e}",
                service="generator",
                details={"assetId": str(asset.id)},
            )

        if not result.success or not result.data:
            error = result.error or "Generator returned no image"
            self._fail(asset, actor_id, error)
            raise ExternalServiceError(error, service="generator", details={"assetId": str(asset.id)})

        file_name = build_file_name(product, asset_type, version, result.mime_type)
        try:
            locator = self.storage.store(
                result.data,
                f"generated-images/{product.id}/{file_name}",
                content_type=result.mime_type,
            )
        except (OSError, ExternalServiceError) as e:
            self._fail(asset, actor_id, f"Storing image failed: {e}")
            raise ExternalServiceError(
                f"Storing generated image failed: {e}",
                service="storage",
                details={"assetId": str(asset.id)},
            )

        asset.status = AssetStatus.COMPLETED.value
        asset.storage_path = locator
        asset.file_name = file_name
        asset.width = result.width
        asset.height = result.height
        asset.file_size_bytes = result.file_size_bytes or len(result.data)
        self.db.commit()
        self.db.refresh(asset)
        logger.info("image generated", asset_id=str(asset.id), version=version, storage_path=locator)

        self._record(actor_id, "GENERATE_IMAGE", asset, product, asset_type)
        try:
            AnalyticsService(self.db).record_generated()
        except Exception as e:
            self.db.rollback()
            logger.error("Failed to update generation analytics", asset_id=str(asset.id), error=str(e))
        return asset

    async def generate_video(
        self,
        product_id: UUID,
        asset_type_id: UUID,
        actor_id: UUID,
        params: Optional[VideoParams] = None,
        additional_instructions: Optional[str] = None,
        template_id: Optional[UUID] = None,
        template_variables: Optional[Dict[str, str]] = None,
    ) -> GeneratedAsset:
        """Start a video generation; the record is left GENERATING with its operation handle"""
        params = params or VideoParams()
        logger.info(
            "generate_video called",
            product_id=str(product_id),
            asset_type_id=str(asset_type_id),
            actor_id=str(actor_id),
            aspect_ratio=params.aspect_ratio,
            duration_seconds=params.duration_seconds,
        )
        validate_video_params(params)
        product, asset_type = self._load(product_id, asset_type_id, AssetKind.VIDEO)
        generator = self.generator

        prompt = PromptService(self.db).resolve(
            product_id, asset_type_id, additional_instructions, template_id, template_variables
        )
        version = VersionAllocator(self.db).next_version(product.id, asset_type.id)
        self._mark_product_started(product)

        asset = GeneratedAsset(
            product_id=product.id,
            asset_type_id=asset_type.id,
            kind=AssetKind.VIDEO.value,
            status=AssetStatus.PENDING.value,
            version=version,
            prompt_used=prompt,
            generated_by_id=actor_id,
            aspect_ratio=params.aspect_ratio,
            duration_seconds=params.duration_seconds,
            resolution=params.resolution,
            generation_params=self._params(additional_instructions, template_id, template_variables),
        )
        self.db.add(asset)
        self.db.commit()
        self.db.refresh(asset)
        logger.info("video record created", asset_id=str(asset.id), version=version)

        try:
            operation = await asyncio.wait_for(generator.start_video(prompt, params), timeout=self.timeout)
        except (asyncio.TimeoutError, GeneratorTimeout):
            self._fail(asset, actor_id, f"Generator timed out after {self.timeout}s")
            raise ExternalServiceTimeout(
                "Video generation request timed out",
                service="generator",
                details={"assetId": str(asset.id), "timeoutSeconds": self.timeout},
            )
        except GeneratorError as e:
            self._fail(asset, actor_id, str(e))
            raise ExternalServiceError(
                f"Video generation failed: {e}",
                service="generator",
                details={"assetId": str(asset.id)},
            )
        except Exception as e:
            logger.exception("Generator raised unexpectedly", asset_id=str(asset.id))
            self._fail(asset, actor_id, f"Unexpected generator error: {e}")
            raise ExternalServiceError(
                f"Video generation failed: {e}",
                service="generator",
                details={"assetId": str(asset.id)},
            )

        asset.status = AssetStatus.GENERATING.value
        asset.operation_name = operation.operation_name
        asset.ai_model = operation.model
        self.db.commit()
        self.db.refresh(asset)
        logger.info("video generation started", asset_id=str(asset.id), operation_name=operation.operation_name)

        self._record(actor_id, "GENERATE_VIDEO", asset, product, asset_type)
        return asset

    def _load(self, product_id: UUID, asset_type_id: UUID, kind: AssetKind):
        product = self.db.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        asset_type = self.db.get(AssetType, asset_type_id)
        if not asset_type:
            raise NotFoundError(f"Asset type {asset_type_id} not found")
        if asset_type.kind != kind.value:
            raise ValidationError(
                f"Asset type '{asset_type.name}' is not a {kind.value.lower()} type",
                details={"assetTypeId": str(asset_type_id), "kind": asset_type.kind},
            )
        return product, asset_type

    @staticmethod
    def _params(additional_instructions, template_id, template_variables) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if additional_instructions:
            params["additionalInstructions"] = additional_instructions
        if template_id:
            params["templateId"] = str(template_id)
            params["templateVariables"] = dict(template_variables or {})
        return params

    def _pick_source_image(
        self,
        product: Product,
        asset_type: AssetType,
        source_image_id: Optional[UUID],
        parent: Optional[GeneratedAsset],
    ) -> Optional[SourceImage]:
        """Explicit choice, then the parent's source, then the type mapping, then the first image"""
        if source_image_id:
            source_image = self.db.get(SourceImage, source_image_id)
            if not source_image or source_image.product_id != product.id:
                raise NotFoundError(f"Source image {source_image_id} not found for product {product.id}")
            return source_image
        if parent and parent.source_image_id:
            return self.db.get(SourceImage, parent.source_image_id)
        mapped_id = mapped_source_image_id(product, asset_type.id)
        for image in product.source_images:
            if str(image.id) == mapped_id:
                return image
        # source_images is ordered by image_order
        return product.source_images[0] if product.source_images else None

    async def _load_reference_bytes(
        self, parent: Optional[GeneratedAsset], source_image: Optional[SourceImage]
    ) -> Optional[bytes]:
        """Bytes handed to the generator; a missing reference only degrades the prompt"""
        if parent and parent.storage_path:
            try:
                return self.storage.read(parent.storage_path)
            except (OSError, ExternalServiceError) as e:
                logger.warning("Could not read parent image", asset_id=str(parent.id), error=str(e))
        if not source_image:
            return None
        if source_image.local_file_path and not is_url(source_image.local_file_path):
            try:
                return self.storage.read(source_image.local_file_path)
            except (OSError, ExternalServiceError) as e:
                logger.warning("Could not read source image", source_image_id=str(source_image.id), error=str(e))
        url = source_image.amazon_image_url or source_image.local_file_path
        if url and is_url(url):
            return await self._download(url)
        return None

    async def _download(self, url: str) -> Optional[bytes]:
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=30)) as session:
                async with session.get(url) as response:
                    response.raise_for_status()
                    return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Could not download source image", url=url, error=str(e))
            return None

    def _mark_product_started(self, product: Product) -> None:
        if product.status == ProductStatus.NOT_STARTED.value:
            product.status = ProductStatus.IN_PROGRESS.value
            self.db.commit()
            logger.info("product started", product_id=str(product.id))

    def _fail(self, asset: GeneratedAsset, actor_id: UUID, error: str) -> None:
        asset.status = AssetStatus.FAILED.value
        asset.generation_params = {**(asset.generation_params or {}), "error": error}
        self.db.commit()
        logger.error("generation failed", asset_id=str(asset.id), kind=asset.kind, error=error)
        action = "GENERATE_VIDEO_FAILED" if asset.kind == AssetKind.VIDEO.value else "GENERATE_IMAGE_FAILED"
        self._record(actor_id, action, asset, asset.product, asset.asset_type, error=error)

    def _record(self, actor_id: UUID, action: str, asset: GeneratedAsset, product, asset_type, **extra: Any) -> None:
        metadata: Dict[str, Any] = {
            "product_id": str(asset.product_id),
            "product_title": product.title if product else None,
            "asset_type": asset_type.name if asset_type else None,
            "version": asset.version,
            "status": asset.status,
            **extra,
        }
        try:
            ActivityService(self.db).record(actor_id, action, "GeneratedAsset", asset.id, metadata)
        except Exception as e:
            self.db.rollback()
            logger.error("Failed to record generation activity", asset_id=str(asset.id), error=str(e))
