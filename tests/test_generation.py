import uuid

import pytest

from listing_studio.core.exceptions import (
    ExternalServiceError,
    ExternalServiceTimeout,
    MissingPromptError,
    NotFoundError,
    ValidationError,
)
from listing_studio.models import ActivityLog, AssetStatus, GeneratedAsset, ProductStatus, SourceImage
from listing_studio.services.ai_providers import VideoParams
from listing_studio.services.analytics import AnalyticsService, utc_today
from listing_studio.services.generation import GenerationService
from listing_studio.services.product import ProductService
from listing_studio.services.template import TemplateService


@pytest.fixture
def service(db, generator, storage):
    return GenerationService(db, generator=generator, storage=storage)


async def test_generate_image_success(db, service, generator, storage, user, product, image_type):
    asset = await service.generate_image(product.id, image_type.id, user.id)

    assert asset.status == AssetStatus.COMPLETED.value
    assert asset.version == 1
    assert asset.file_name == "B0TEST0001_main_image_v1.png"
    assert asset.storage_path == f"generated-images/{product.id}/B0TEST0001_main_image_v1.png"
    assert storage.objects[asset.storage_path].startswith(b"\x89PNG")
    assert (asset.width, asset.height) == (1024, 1024)
    assert asset.prompt_used == "Photo of Steel Water Bottle in Kitchen"
    assert asset.generated_by_id == user.id
    assert generator.calls[0]["source_image"] is None

    db.refresh(product)
    assert product.status == ProductStatus.IN_PROGRESS.value
    assert db.query(ActivityLog).filter(ActivityLog.action == "GENERATE_IMAGE").count() == 1
    assert AnalyticsService(db).get_day(utc_today()).images_generated == 1


async def test_first_source_image_is_sent(db, service, generator, storage, user, product, image_type):
    storage.store(b"second", "sources/2.jpg")
    storage.store(b"first", "sources/1.jpg")
    db.add_all([
        SourceImage(product_id=product.id, variant="PT01", image_order=1, local_file_path="sources/2.jpg"),
        SourceImage(product_id=product.id, variant="MAIN", image_order=0, local_file_path="sources/1.jpg"),
    ])
    db.commit()
    db.refresh(product)

    asset = await service.generate_image(product.id, image_type.id, user.id)

    assert generator.calls[0]["source_image"] == b"first"
    assert asset.source_image.variant == "MAIN"


async def test_regeneration_uses_parent_bytes(db, service, generator, user, product, image_type):
    parent = await service.generate_image(product.id, image_type.id, user.id)
    child = await service.generate_image(
        product.id, image_type.id, user.id, parent_image_id=parent.id, additional_instructions="Brighter"
    )

    assert child.version == 2
    assert child.parent_image_id == parent.id
    assert generator.calls[1]["source_image"].startswith(b"\x89PNG")
    assert child.prompt_used.endswith("\n\nBrighter")


async def test_parent_from_other_product_rejected(db, service, user, product, image_type, make_asset):
    from listing_studio.models import Product

    other = Product(title="Other")
    db.add(other)
    db.commit()
    parent = make_asset(other, image_type)

    with pytest.raises(ValidationError):
        await service.generate_image(product.id, image_type.id, user.id, parent_image_id=parent.id)


async def test_generator_failure_marks_failed(db, service, generator, user, product, image_type):
    generator.mode = "failure"

    with pytest.raises(ExternalServiceError) as excinfo:
        await service.generate_image(product.id, image_type.id, user.id)

    asset = db.query(GeneratedAsset).one()
    assert asset.status == AssetStatus.FAILED.value
    assert asset.generation_params["error"] == "blocked by safety filter"
    assert excinfo.value.details["assetId"] == str(asset.id)
    assert db.query(ActivityLog).filter(ActivityLog.action == "GENERATE_IMAGE_FAILED").count() == 1
    assert AnalyticsService(db).get_day(utc_today()) is None


async def test_generator_error_is_external_error(db, service, generator, user, product, image_type):
    generator.mode = "error"
    with pytest.raises(ExternalServiceError) as excinfo:
        await service.generate_image(product.id, image_type.id, user.id)
    assert not isinstance(excinfo.value, ExternalServiceTimeout)
    assert excinfo.value.details["service"] == "generator"


async def test_timeout_is_distinct_failure(db, generator, storage, user, product, image_type):
    generator.delay = 1
    service = GenerationService(db, generator=generator, storage=storage, timeout=0.05)

    with pytest.raises(ExternalServiceTimeout):
        await service.generate_image(product.id, image_type.id, user.id)

    assert db.query(GeneratedAsset).one().status == AssetStatus.FAILED.value


async def test_failed_generation_consumes_version(db, service, generator, user, product, image_type):
    generator.mode = "error"
    with pytest.raises(ExternalServiceError):
        await service.generate_image(product.id, image_type.id, user.id)

    generator.mode = "success"
    asset = await service.generate_image(product.id, image_type.id, user.id)
    assert asset.version == 2


async def test_missing_prompt_creates_nothing(db, service, user, product, image_type):
    image_type.default_prompt = ""
    db.commit()

    with pytest.raises(MissingPromptError):
        await service.generate_image(product.id, image_type.id, user.id)

    assert db.query(GeneratedAsset).count() == 0
    db.refresh(product)
    assert product.status == ProductStatus.NOT_STARTED.value


async def test_unknown_product(service, user, image_type):
    with pytest.raises(NotFoundError):
        await service.generate_image(uuid.uuid4(), image_type.id, user.id)


async def test_video_type_rejected_for_images(service, user, product, video_type):
    with pytest.raises(ValidationError):
        await service.generate_image(product.id, video_type.id, user.id)


async def test_generate_video_records_operation(db, service, user, product, video_type):
    asset = await service.generate_video(
        product.id, video_type.id, user.id, VideoParams(aspect_ratio="9:16", duration_seconds=6)
    )

    assert asset.status == AssetStatus.GENERATING.value
    assert asset.kind == "VIDEO"
    assert asset.operation_name == "models/veo/operations/op-123"
    assert asset.ai_model == "veo-fake"
    assert (asset.aspect_ratio, asset.duration_seconds, asset.resolution) == ("9:16", 6, "720p")
    assert asset.prompt_used == "Rotating shot of Steel Water Bottle"
    assert db.query(ActivityLog).filter(ActivityLog.action == "GENERATE_VIDEO").count() == 1


async def test_video_start_failure(db, service, generator, user, product, video_type):
    generator.mode = "error"
    with pytest.raises(ExternalServiceError):
        await service.generate_video(product.id, video_type.id, user.id)
    assert db.query(GeneratedAsset).one().status == AssetStatus.FAILED.value


@pytest.mark.parametrize("params", [
    VideoParams(aspect_ratio="4:3"),
    VideoParams(duration_seconds=3),
    VideoParams(duration_seconds=9),
    VideoParams(resolution="4k"),
])
async def test_invalid_video_params(db, service, user, product, video_type, params):
    with pytest.raises(ValidationError):
        await service.generate_video(product.id, video_type.id, user.id, params)
    assert db.query(GeneratedAsset).count() == 0


async def test_unexpected_generator_exception_marks_failed(db, service, generator, user, product, image_type):
    generator.mode = "crash"

    with pytest.raises(ExternalServiceError) as excinfo:
        await service.generate_image(product.id, image_type.id, user.id)

    asset = db.query(GeneratedAsset).one()
    assert asset.status == AssetStatus.FAILED.value
    assert "Incorrect padding" in asset.generation_params["error"]
    assert excinfo.value.details["assetId"] == str(asset.id)
    assert db.query(ActivityLog).filter(ActivityLog.action == "GENERATE_IMAGE_FAILED").count() == 1


async def test_unexpected_video_exception_marks_failed(db, service, generator, user, product, video_type):
    generator.mode = "crash"

    with pytest.raises(ExternalServiceError):
        await service.generate_video(product.id, video_type.id, user.id)

    assert db.query(GeneratedAsset).one().status == AssetStatus.FAILED.value
    assert db.query(ActivityLog).filter(ActivityLog.action == "GENERATE_VIDEO_FAILED").count() == 1


async def test_mapped_source_image_is_sent(db, service, generator, storage, user, product, image_type):
    storage.store(b"main", "sources/main.jpg")
    storage.store(b"pt02", "sources/pt02.jpg")
    main = SourceImage(product_id=product.id, variant="MAIN", image_order=0, local_file_path="sources/main.jpg")
    side = SourceImage(product_id=product.id, variant="PT02", image_order=2, local_file_path="sources/pt02.jpg")
    db.add_all([main, side])
    db.commit()
    ProductService(db).set_source_image_mapping(product.id, image_type.id, side.id, actor_id=user.id)

    asset = await service.generate_image(product.id, image_type.id, user.id)

    assert generator.calls[0]["source_image"] == b"pt02"
    assert asset.source_image_id == side.id


async def test_generate_image_from_template(db, service, generator, user, product, image_type):
    template = TemplateService(db).create_template(
        name="Studio",
        prompt_text="{{item_name}} under {{light}}",
        variables=[{"name": "item_name", "type": "AUTO", "auto_fill_source": "product.title"}, {"name": "light"}],
    )

    asset = await service.generate_image(
        product.id,
        image_type.id,
        user.id,
        template_id=template.id,
        template_variables={"light": "soft boxes"},
    )

    assert generator.calls[0]["prompt"] == "Steel Water Bottle under soft boxes"
    assert asset.generation_params["templateId"] == str(template.id)
    assert asset.generation_params["templateVariables"] == {"light": "soft boxes"}
