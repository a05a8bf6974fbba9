"""
Download service for single images and per-product zip exports
"""
import asyncio
import io
import mimetypes
import os
import zipfile
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

import aiohttp
import structlog
from sqlalchemy.orm import Session

from listing_studio.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from listing_studio.models.asset import GeneratedAsset
from listing_studio.models.product import Product
from listing_studio.services.storage import Storage, get_storage, is_url

logger = structlog.get_logger()

ZIP_SCOPES = ("source", "generated", "all")
DOWNLOAD_TIMEOUT_SECONDS = 30


@dataclass
class DownloadFile:
    data: bytes
    file_name: str
    content_type: str


class DownloadService:
    def __init__(self, db: Session, storage: Optional[Storage] = None):
        self.db = db
        self.storage = storage or get_storage()

    def asset_file(self, asset_id: UUID) -> DownloadFile:
        """Stored bytes of one generated asset"""
        asset = self.db.get(GeneratedAsset, asset_id)
        if not asset:
            raise NotFoundError(f"Asset {asset_id} not found")
        if not asset.storage_path:
            raise NotFoundError(f"Asset {asset_id} has no stored file", details={"status": asset.status})
        try:
            data = self.storage.read(asset.storage_path)
        except (OSError, ExternalServiceError) as e:
            logger.error("Stored file unreadable", asset_id=str(asset_id), error=str(e))
            raise NotFoundError(f"File for asset {asset_id} could not be read")
        file_name = asset.file_name or os.path.basename(asset.storage_path)
        return DownloadFile(data=data, file_name=file_name, content_type=_content_type(file_name))

    async def build_zip(self, product_ids: Sequence[UUID], scope: str = "all") -> DownloadFile:
        """
        Zip the images of several products, one folder per product.

        Folders are named by ASIN, or by product id when there is none.
        Entries that cannot be fetched are skipped; an archive with no
        entries at all is a NotFoundError.
        """
        if scope not in ZIP_SCOPES:
            raise ValidationError(f"Unknown download scope: {scope}", details={"allowed": list(ZIP_SCOPES)})
        if not product_ids:
            raise ValidationError("At least one product is required")

        products = self.db.query(Product).filter(Product.id.in_(list(product_ids))).all()
        found = {p.id for p in products}
        missing = [str(pid) for pid in product_ids if pid not in found]
        if missing:
            raise NotFoundError("Some products were not found", details={"missingProductIds": missing})

        buffer = io.BytesIO()
        written = 0
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zip_file:
            for product in products:
                prefix = product.asin or str(product.id)
                used = set()
                for name, locator in self._entries(product, scope):
                    data = await self._fetch(locator)
                    if data is None:
                        continue
                    zip_file.writestr(f"{prefix}/{_unique_name(name, used)}", data)
                    written += 1

        if not written:
            raise NotFoundError("No downloadable images for the selected products")
        logger.info("zip export built", product_count=len(products), scope=scope, entries=written)
        file_name = f"{products[0].asin or products[0].id}-images.zip" if len(products) == 1 else "products-images.zip"
        return DownloadFile(data=buffer.getvalue(), file_name=file_name, content_type="application/zip")

    def _entries(self, product: Product, scope: str) -> List[Tuple[str, str]]:
        entries = []
        if scope in ("source", "all"):
            for image in product.source_images:
                locator = image.local_file_path or image.amazon_image_url
                if locator:
                    entries.append((f"source-{image.variant}.jpg", locator))
        if scope in ("generated", "all"):
            for asset in product.assets:
                if asset.storage_path:
                    entries.append((asset.file_name or os.path.basename(asset.storage_path), asset.storage_path))
        return entries

    async def _fetch(self, locator: str) -> Optional[bytes]:
        if not is_url(locator):
            try:
                return self.storage.read(locator)
            except (OSError, ExternalServiceError) as e:
                logger.warning("Skipping unreadable file", locator=locator, error=str(e))
                return None
        try:
            timeout = aiohttp.ClientTimeout(total=DOWNLOAD_TIMEOUT_SECONDS)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(locator) as response:
                    response.raise_for_status()
                    return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Skipping image that failed to download", url=locator, error=str(e))
            return None


def _content_type(file_name: str) -> str:
    return mimetypes.guess_type(file_name)[0] or "application/octet-stream"


def _unique_name(name: str, used: set) -> str:
    candidate, counter = name, 2
    stem, ext = os.path.splitext(name)
    while candidate in used:
        candidate = f"{stem}-{counter}{ext}"
        counter += 1
    used.add(candidate)
    return candidate
