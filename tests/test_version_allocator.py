import asyncio
from concurrent.futures import ThreadPoolExecutor

from listing_studio.models import Product
from listing_studio.services.generation import GenerationService
from listing_studio.services.versioning import VersionAllocator


def test_first_version_is_one(db, product, image_type):
    assert VersionAllocator(db).next_version(product.id, image_type.id) == 1
    assert VersionAllocator(db).next_version(product.id, image_type.id) == 2


def test_counter_seeds_from_existing_assets(db, product, image_type, make_asset):
    make_asset(product, image_type)
    make_asset(product, image_type)

    assert VersionAllocator(db).next_version(product.id, image_type.id) == 3


def test_pairs_are_independent(db, product, image_type, video_type):
    other = Product(title="Other")
    db.add(other)
    db.commit()
    allocator = VersionAllocator(db)

    assert allocator.next_version(product.id, image_type.id) == 1
    assert allocator.next_version(product.id, video_type.id) == 1
    assert allocator.next_version(other.id, image_type.id) == 1
    assert allocator.next_version(product.id, image_type.id) == 2


def test_concurrent_allocations_have_no_gaps_or_duplicates(session_factory, product, image_type):
    product_id, asset_type_id = product.id, image_type.id

    def allocate(_):
        session = session_factory()
        try:
            return VersionAllocator(session).next_version(product_id, asset_type_id)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=8) as pool:
        versions = list(pool.map(allocate, range(16)))

    assert sorted(versions) == list(range(1, 17))


async def test_concurrent_generations_get_distinct_versions(db, product, image_type, generator, storage, user):
    generator.delay = 0.01
    service = GenerationService(db, generator=generator, storage=storage)

    assets = await asyncio.gather(*[
        service.generate_image(product.id, image_type.id, user.id) for _ in range(5)
    ])

    assert sorted(asset.version for asset in assets) == [1, 2, 3, 4, 5]
