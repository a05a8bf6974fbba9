"""
Asset type and prompt version endpoints
"""
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from listing_studio.core.deps import get_current_actor, get_db
from listing_studio.models.asset_type import PromptVersion as PromptVersionModel
from listing_studio.models.enums import AssetKind
from listing_studio.models.user import User
from listing_studio.schemas.asset_type import (
    AssetType,
    AssetTypeCreate,
    AssetTypeDetail,
    PromptVersion,
    PromptVersionCreate,
    SourceImageMapping,
    SourceImageMappingUpdate,
)
from listing_studio.schemas.product import SourceImage
from listing_studio.services.product import ProductService
from listing_studio.services.prompt import PromptService

router = APIRouter()


@router.post("/asset-types", response_model=AssetType, status_code=status.HTTP_201_CREATED)
async def create_asset_type(
    request: AssetTypeCreate,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return PromptService(db).create_asset_type(
        name=request.name,
        default_prompt=request.defaultPrompt,
        kind=request.kind,
        order=request.order,
        description=request.description,
    )


@router.get("/asset-types", response_model=List[AssetType])
async def list_asset_types(kind: Optional[AssetKind] = None, db: Session = Depends(get_db)):
    return PromptService(db).list_asset_types(kind)


@router.get("/asset-types/{asset_type_id}", response_model=AssetTypeDetail)
async def get_asset_type(asset_type_id: UUID, db: Session = Depends(get_db)):
    service = PromptService(db)
    asset_type = service.get_asset_type(asset_type_id)
    active = service.get_active_version(asset_type_id)
    return AssetTypeDetail(
        **AssetType.model_validate(asset_type).model_dump(),
        active_version=PromptVersion.model_validate(active) if active else None,
    )


@router.get("/asset-types/{asset_type_id}/prompt-versions", response_model=List[PromptVersion])
async def list_prompt_versions(asset_type_id: UUID, db: Session = Depends(get_db)):
    PromptService(db).get_asset_type(asset_type_id)
    return (
        db.query(PromptVersionModel)
        .filter(PromptVersionModel.asset_type_id == asset_type_id)
        .order_by(PromptVersionModel.version.desc())
        .all()
    )


@router.post(
    "/asset-types/{asset_type_id}/prompt-versions",
    response_model=PromptVersion,
    status_code=status.HTTP_201_CREATED,
)
async def create_prompt_version(
    asset_type_id: UUID,
    request: PromptVersionCreate,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return PromptService(db).create_prompt_version(asset_type_id, request.promptText, request.changeNote)


@router.post("/asset-types/{asset_type_id}/prompt-versions/{version}/activate", response_model=PromptVersion)
async def activate_prompt_version(
    asset_type_id: UUID,
    version: int,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return PromptService(db).activate_prompt_version(asset_type_id, version)


@router.post("/asset-types/{asset_type_id}/source-image-mapping", response_model=SourceImageMapping)
async def set_source_image_mapping(
    asset_type_id: UUID,
    request: SourceImageMappingUpdate,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    Pin the source image that generations of this asset type start from
    """
    service = ProductService(db)
    service.set_source_image_mapping(request.productId, asset_type_id, request.sourceImageId, actor_id=current_user.id)
    return _mapping_response(service, request.productId, asset_type_id)


@router.get("/asset-types/{asset_type_id}/source-image-mapping", response_model=SourceImageMapping)
async def get_source_image_mapping(asset_type_id: UUID, productId: UUID, db: Session = Depends(get_db)):
    PromptService(db).get_asset_type(asset_type_id)
    return _mapping_response(ProductService(db), productId, asset_type_id)


def _mapping_response(service: ProductService, product_id: UUID, asset_type_id: UUID) -> SourceImageMapping:
    image = service.get_source_image_mapping(product_id, asset_type_id)
    return SourceImageMapping(
        productId=product_id,
        assetTypeId=asset_type_id,
        sourceImage=SourceImage.model_validate(image) if image else None,
    )
