"""
Marketplace integration (Amazon Selling Partner API)
"""
from .base import (
    MarketplaceClient,
    MarketplaceError,
    MarketplaceTimeout,
    ImageSlotMapping,
    ListingUpdateResult,
    CatalogImage,
    CatalogProduct,
    InventoryItem,
)
from .amazon_sp import AmazonSPClient, get_marketplace_client

__all__ = [
    "MarketplaceClient",
    "MarketplaceError",
    "MarketplaceTimeout",
    "ImageSlotMapping",
    "ListingUpdateResult",
    "CatalogImage",
    "CatalogProduct",
    "InventoryItem",
    "AmazonSPClient",
    "get_marketplace_client",
]
