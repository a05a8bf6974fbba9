"""
Marketplace listing/inventory interface and data models
"""
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class MarketplaceError(Exception):
    """Raised when the marketplace could not be reached or answered garbage"""
    pass


class MarketplaceTimeout(MarketplaceError):
    """Raised when a marketplace call exceeds its time budget"""
    pass


@dataclass
class ImageSlotMapping:
    slot: str  # MAIN, PT01 ... PT08
    image_url: str


@dataclass
class ListingUpdateResult:
    """Outcome of one batched listing image update; all-or-nothing"""
    success: bool
    status: str
    submission_id: Optional[str] = None
    issues: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CatalogImage:
    variant: str
    link: str
    width: int = 0
    height: int = 0


@dataclass
class CatalogProduct:
    asin: str
    title: str
    images: List[CatalogImage] = field(default_factory=list)
    brand: Optional[str] = None
    manufacturer: Optional[str] = None
    product_type: Optional[str] = None


@dataclass
class InventoryItem:
    asin: str
    quantity: int
    product_name: Optional[str] = None
    sku: Optional[str] = None


class MarketplaceClient(ABC):
    """Listing and inventory operations the publishing pipeline depends on"""

    def ensure_configured(self) -> None:
        """Raise ConfigurationError when credentials are missing"""

    @abstractmethod
    async def update_listing_images(
        self, sku: str, images: List[ImageSlotMapping], product_type: str
    ) -> ListingUpdateResult:
        """Replace the given image slots on a listing in one call"""
        pass

    @abstractmethod
    async def get_listing_item(self, sku: str) -> Dict[str, Any]:
        """Return the live listing including its attributes"""
        pass

    @abstractmethod
    async def get_product_by_asin(self, asin: str) -> Optional[CatalogProduct]:
        pass

    @abstractmethod
    async def list_inventory(self, only_in_stock: bool = False) -> List[InventoryItem]:
        pass
