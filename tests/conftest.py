"""
Shared fixtures: per-test SQLite database, seeded rows and in-memory collaborators
"""
import asyncio
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy.orm import sessionmaker

import listing_studio.models  # noqa: F401
from listing_studio.db.base import Base, build_engine
from listing_studio.models import AssetKind, AssetStatus, GeneratedAsset, Product, User, UserRole
from listing_studio.services.ai_providers import (
    AssetGenerator,
    GeneratorError,
    GeneratorTimeout,
    ImageGenerationResult,
    VideoOperation,
    VideoParams,
)
from listing_studio.services.marketplace import (
    CatalogProduct,
    ImageSlotMapping,
    InventoryItem,
    ListingUpdateResult,
    MarketplaceClient,
    MarketplaceError,
)
from listing_studio.services.prompt import PromptService
from listing_studio.services.storage import Storage, is_url

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeGenerator(AssetGenerator):
    """Generator double; ``mode`` selects success, failure, error, crash or timeout"""

    def __init__(self, mode: str = "success", delay: float = 0):
        super().__init__(api_key="test-key")
        self.mode = mode
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    async def generate_image(self, prompt: str, source_image: Optional[bytes] = None) -> ImageGenerationResult:
        self.calls.append({"prompt": prompt, "source_image": source_image})
        await asyncio.sleep(self.delay)
        if self.mode == "timeout":
            raise GeneratorTimeout("generator timed out")
        if self.mode == "error":
            raise GeneratorError("generator unreachable")
        if self.mode == "crash":
            raise ValueError("Incorrect padding")
        if self.mode == "failure":
            return ImageGenerationResult(success=False, error="blocked by safety filter")
        return ImageGenerationResult(
            success=True,
            data=PNG_BYTES,
            width=1024,
            height=1024,
            file_size_bytes=len(PNG_BYTES),
        )

    async def start_video(self, prompt: str, params: VideoParams) -> VideoOperation:
        self.calls.append({"prompt": prompt, "params": params})
        await asyncio.sleep(self.delay)
        if self.mode == "error":
            raise GeneratorError("video model unavailable")
        if self.mode == "crash":
            raise KeyError("name")
        if self.mode == "timeout":
            raise GeneratorTimeout("generator timed out")
        return VideoOperation(operation_name="models/veo/operations/op-123", model="veo-fake")


class FakeStorage(Storage):
    def __init__(self):
        self.objects: Dict[str, bytes] = {}

    def store(self, data: bytes, key: str, content_type: str = "image/png") -> str:
        self.objects[key] = data
        return key

    def read(self, locator: str) -> bytes:
        if locator not in self.objects:
            raise OSError(f"missing object {locator}")
        return self.objects[locator]

    def public_url(self, locator: str) -> str:
        return locator if is_url(locator) else f"https://cdn.test/{locator}"

    def delete(self, locator: str) -> None:
        self.objects.pop(locator, None)


class FakeMarketplace(MarketplaceClient):
    """Marketplace double recording every listing update"""

    def __init__(self):
        self.result = ListingUpdateResult(success=True, status="ACCEPTED", submission_id="sub-1")
        self.raise_error: Optional[Exception] = None
        self.delay = 0.0
        self.lookup_delay = 0.0
        self.lookup_error: Optional[Exception] = None
        self.updates: List[Dict[str, Any]] = []
        self.listings: Dict[str, Dict[str, Any]] = {}
        self.catalog: Dict[str, CatalogProduct] = {}
        self.inventory: List[InventoryItem] = []

    async def update_listing_images(
        self, sku: str, images: List[ImageSlotMapping], product_type: str
    ) -> ListingUpdateResult:
        self.updates.append({"sku": sku, "images": list(images), "product_type": product_type})
        await asyncio.sleep(self.delay)
        if self.raise_error:
            raise self.raise_error
        return self.result

    async def get_listing_item(self, sku: str) -> Dict[str, Any]:
        if sku not in self.listings:
            raise MarketplaceError(f"listing {sku} not found")
        return self.listings[sku]

    async def get_product_by_asin(self, asin: str) -> Optional[CatalogProduct]:
        await asyncio.sleep(self.lookup_delay)
        if self.lookup_error:
            raise self.lookup_error
        return self.catalog.get(asin)

    async def list_inventory(self, only_in_stock: bool = False) -> List[InventoryItem]:
        if self.lookup_error:
            raise self.lookup_error
        return [item for item in self.inventory if item.quantity > 0 or not only_in_stock]


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def user(db):
    user = User(email="reviewer@example.com", name="Reviewer", role=UserRole.REVIEWER.value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def product(db):
    product = Product(
        asin="B0TEST0001",
        title="Steel Water Bottle",
        category="Kitchen",
        metadata_={"sku": "SKU-001", "productType": "BOTTLE", "quantity": 12},
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture
def image_type(db):
    return PromptService(db).create_asset_type(
        name="Main Image",
        default_prompt="Photo of {product_name} in {category}",
        kind=AssetKind.IMAGE,
    )


@pytest.fixture
def video_type(db):
    return PromptService(db).create_asset_type(
        name="Product Spin",
        default_prompt="Rotating shot of {product_title}",
        kind=AssetKind.VIDEO,
    )


@pytest.fixture
def make_asset(db):
    counter = {"version": 0}

    def _make(product, asset_type, status=AssetStatus.COMPLETED, storage_path="generated-images/x.png"):
        counter["version"] += 1
        asset = GeneratedAsset(
            product_id=product.id,
            asset_type_id=asset_type.id,
            kind=asset_type.kind,
            status=AssetStatus(status).value,
            version=counter["version"],
            storage_path=storage_path and f"{storage_path}.{counter['version']}",
        )
        db.add(asset)
        db.commit()
        db.refresh(asset)
        return asset

    return _make


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def marketplace():
    return FakeMarketplace()


@pytest.fixture
def client(session_factory, generator, storage, marketplace):
    from fastapi.testclient import TestClient

    from listing_studio.core.deps import get_db, get_generator, get_marketplace, get_storage_backend
    from listing_studio.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generator] = lambda: generator
    app.dependency_overrides[get_storage_backend] = lambda: storage
    app.dependency_overrides[get_marketplace] = lambda: marketplace
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
