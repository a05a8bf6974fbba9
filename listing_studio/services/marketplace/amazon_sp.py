"""
Amazon Selling Partner API client (Listings Items, Catalog Items, FBA Inventory)
"""
import asyncio
import time
from typing import Any, Dict, List, Optional

import aiohttp
import structlog

from listing_studio.core.config import settings
from listing_studio.core.exceptions import ConfigurationError
from listing_studio.models.enums import AmazonSlot
from .base import (
    CatalogImage,
    CatalogProduct,
    ImageSlotMapping,
    InventoryItem,
    ListingUpdateResult,
    MarketplaceClient,
    MarketplaceError,
    MarketplaceTimeout,
)

logger = structlog.get_logger()

LISTINGS_API_VERSION = "2021-08-01"
CATALOG_API_VERSION = "2022-04-01"


class AmazonSPClient(MarketplaceClient):
    """Thin async client over the SP-API REST endpoints used by this service"""

    def __init__(
        self,
        refresh_token: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        seller_id: Optional[str] = None,
        marketplace_id: Optional[str] = None,
        endpoint: Optional[str] = None,
        token_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.refresh_token = refresh_token or settings.AMAZON_REFRESH_TOKEN
        self.client_id = client_id or settings.AMAZON_CLIENT_ID
        self.client_secret = client_secret or settings.AMAZON_CLIENT_SECRET
        self.seller_id = seller_id or settings.AMAZON_SELLER_ID
        self.marketplace_id = marketplace_id or settings.AMAZON_MARKETPLACE_ID
        self.endpoint = (endpoint or settings.AMAZON_ENDPOINT).rstrip("/")
        self.token_url = token_url or settings.AMAZON_TOKEN_URL
        self.timeout = timeout or settings.MARKETPLACE_TIMEOUT_SECONDS
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    def ensure_configured(self) -> None:
        missing = [
            name for name, value in (
                ("AMAZON_REFRESH_TOKEN", self.refresh_token),
                ("AMAZON_CLIENT_ID", self.client_id),
                ("AMAZON_CLIENT_SECRET", self.client_secret),
                ("AMAZON_SELLER_ID", self.seller_id),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Marketplace credentials not configured: {', '.join(missing)}",
                details={"missing": missing},
            )

    async def update_listing_images(
        self, sku: str, images: List[ImageSlotMapping], product_type: str
    ) -> ListingUpdateResult:
        """
        Update product images on a listing using a single PATCH

        Images must be hosted at a publicly reachable URL. The marketplace
        accepts or rejects the whole patch set; there is no per-slot outcome.
        """
        self.ensure_configured()
        patches = [
            {
                "op": "replace",
                "path": f"/attributes/{AmazonSlot(mapping.slot).attribute_name}",
                "value": [{"media_location": mapping.image_url, "marketplace_id": self.marketplace_id}],
            }
            for mapping in images
        ]
        logger.info(
            "Updating listing images",
            sku=sku,
            seller_id=self.seller_id,
            slots=[m.slot for m in images],
        )

        status_code, body = await self._request(
            "PATCH",
            f"/listings/{LISTINGS_API_VERSION}/items/{self.seller_id}/{sku}",
            params={"marketplaceIds": self.marketplace_id},
            json={"productType": product_type, "patches": patches},
        )

        status = body.get("status") if isinstance(body, dict) else None
        issues = body.get("issues", []) if isinstance(body, dict) else []
        if status_code < 300 and status == "ACCEPTED":
            logger.info("Listing image update accepted", sku=sku, submission_id=body.get("submissionId"))
            return ListingUpdateResult(
                success=True,
                status="ACCEPTED",
                submission_id=body.get("submissionId"),
                issues=issues,
            )

        error = self._error_message(body) or f"Listing update returned status: {status or 'UNKNOWN'}"
        logger.warning("Listing image update not accepted", sku=sku, http_status=status_code, status=status, error=error)
        return ListingUpdateResult(
            success=False,
            status=status or ("ERROR" if status_code >= 300 else "UNKNOWN"),
            submission_id=body.get("submissionId") if isinstance(body, dict) else None,
            issues=issues,
            error=error,
        )

    async def get_listing_item(self, sku: str) -> Dict[str, Any]:
        self.ensure_configured()
        status_code, body = await self._request(
            "GET",
            f"/listings/{LISTINGS_API_VERSION}/items/{self.seller_id}/{sku}",
            params={"marketplaceIds": self.marketplace_id, "includedData": "summaries,attributes,issues"},
        )
        if status_code >= 300:
            raise MarketplaceError(f"Listing lookup failed ({status_code}): {self._error_message(body)}")
        return body

    async def get_product_by_asin(self, asin: str) -> Optional[CatalogProduct]:
        """Fetch product details and images from the Catalog Items API"""
        self.ensure_configured()
        status_code, body = await self._request(
            "GET",
            f"/catalog/{CATALOG_API_VERSION}/items/{asin}",
            params={
                "marketplaceIds": self.marketplace_id,
                "includedData": "images,attributes,productTypes,summaries",
            },
        )
        if status_code == 404:
            return None
        if status_code >= 300:
            raise MarketplaceError(f"Catalog lookup failed ({status_code}): {self._error_message(body)}")
        return self._parse_catalog_item(body)

    async def list_inventory(self, only_in_stock: bool = False) -> List[InventoryItem]:
        """Page through FBA inventory summaries"""
        self.ensure_configured()
        items: List[InventoryItem] = []
        next_token = None
        while True:
            params = {
                "details": "true",
                "granularityType": "Marketplace",
                "granularityId": self.marketplace_id,
                "marketplaceIds": self.marketplace_id,
            }
            if next_token:
                params["nextToken"] = next_token
            status_code, body = await self._request("GET", "/fba/inventory/v1/summaries", params=params)
            if status_code >= 300:
                raise MarketplaceError(f"Inventory lookup failed ({status_code}): {self._error_message(body)}")

            payload = body.get("payload", body)
            for summary in payload.get("inventorySummaries", []):
                if not summary.get("asin"):
                    continue
                quantity = summary.get("totalQuantity") or 0
                if only_in_stock and quantity <= 0:
                    continue
                items.append(InventoryItem(
                    asin=summary["asin"],
                    quantity=quantity,
                    product_name=summary.get("productName"),
                    sku=summary.get("sellerSku"),
                ))

            next_token = (body.get("pagination") or {}).get("nextToken") or body.get("nextToken")
            if not next_token:
                break

        logger.info("Inventory fetched", item_count=len(items), only_in_stock=only_in_stock)
        return items

    async def _access_token_value(self, session: aiohttp.ClientSession) -> str:
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token
        data = {
            "grant_type": "refresh_token",
            "refresh_token": self.refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        async with session.post(self.token_url, data=data) as response:
            body = await response.json(content_type=None) or {}
            if response.status >= 300 or "access_token" not in body:
                raise MarketplaceError(f"Token exchange failed ({response.status}): {body.get('error_description', body)}")
        self._access_token = body["access_token"]
        # Refresh a minute before the advertised expiry
        self._token_expires_at = time.monotonic() + int(body.get("expires_in", 3600)) - 60
        return self._access_token

    async def _request(self, method: str, path: str, params=None, json=None):
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                token = await self._access_token_value(session)
                headers = {"x-amz-access-token": token, "Content-Type": "application/json"}
                async with session.request(
                    method, f"{self.endpoint}{path}", params=params, json=json, headers=headers
                ) as response:
                    body = await response.json(content_type=None)
                    return response.status, body or {}
        except asyncio.TimeoutError:
            logger.error("Marketplace request timed out", method=method, path=path, timeout=self.timeout)
            raise MarketplaceTimeout(f"Marketplace did not answer within {self.timeout}s")
        except (aiohttp.ClientError, ValueError) as e:
            logger.error("Marketplace request failed", method=method, path=path, error=str(e))
            raise MarketplaceError(f"Marketplace request failed: {e}")

    @staticmethod
    def _error_message(body: Any) -> Optional[str]:
        if not isinstance(body, dict):
            return None
        errors = body.get("errors") or []
        if errors:
            return "; ".join(e.get("message", str(e)) for e in errors)
        return None

    @staticmethod
    def _parse_catalog_item(body: Dict[str, Any]) -> CatalogProduct:
        images = []
        for group in body.get("images", []):
            for img in group.get("images", []):
                images.append(CatalogImage(
                    variant=img.get("variant", "MAIN"),
                    link=img["link"],
                    width=img.get("width", 0),
                    height=img.get("height", 0),
                ))

        summaries = body.get("summaries") or []
        title = summaries[0].get("itemName") if summaries else None
        attributes = body.get("attributes") or {}
        product_types = body.get("productTypes") or []

        return CatalogProduct(
            asin=body["asin"],
            title=title or body["asin"],
            images=images,
            brand=(attributes.get("brand") or [{}])[0].get("value"),
            manufacturer=(attributes.get("manufacturer") or [{}])[0].get("value"),
            product_type=product_types[0].get("productType") if product_types else None,
        )


_client: Optional[AmazonSPClient] = None


def get_marketplace_client() -> MarketplaceClient:
    """Process-wide client; the access token is cached on it"""
    global _client
    if _client is None:
        _client = AmazonSPClient()
    return _client
