"""
Image generation and review endpoints
"""
from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from listing_studio.core.deps import get_current_actor, get_db, get_generator, get_storage_backend
from listing_studio.models.user import User
from listing_studio.schemas.asset import (
    ActivityEntry,
    Comment,
    CommentCreate,
    GeneratedAsset,
    GeneratedAssetDetail,
    ImageGenerateRequest,
    StatusUpdate,
)
from listing_studio.services.activity import ActivityService
from listing_studio.services.ai_providers import AssetGenerator
from listing_studio.services.download import DownloadService
from listing_studio.services.generation import GenerationService
from listing_studio.services.review import ReviewService
from listing_studio.services.storage import Storage

router = APIRouter()


@router.post("/images/generate", response_model=GeneratedAsset, status_code=status.HTTP_201_CREATED)
async def generate_image(
    request: ImageGenerateRequest,
    current_user: User = Depends(get_current_actor),
    generator: AssetGenerator = Depends(get_generator),
    storage: Storage = Depends(get_storage_backend),
    db: Session = Depends(get_db),
):
    """
    Generate the next version of an image for a product and asset type
    """
    service = GenerationService(db, generator=generator, storage=storage)
    return await service.generate_image(
        product_id=request.productId,
        asset_type_id=request.assetTypeId,
        actor_id=current_user.id,
        source_image_id=request.sourceImageId,
        parent_image_id=request.parentImageId,
        additional_instructions=request.additionalInstructions,
        template_id=request.templateId,
        template_variables=request.templateVariables,
    )


@router.get("/images/{image_id}", response_model=GeneratedAssetDetail)
async def get_image(image_id: UUID, db: Session = Depends(get_db)):
    return ReviewService(db).get_asset(image_id)


@router.patch("/images/{image_id}/status", response_model=GeneratedAsset)
async def update_image_status(
    image_id: UUID,
    request: StatusUpdate,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    Record a review decision (APPROVED, REJECTED or NEEDS_REWORK)
    """
    return ReviewService(db).update_status(
        image_id,
        request.status,
        actor_id=current_user.id,
        comment=request.comment,
        issue_tag=request.issueTag,
    )


@router.post("/images/{image_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED)
async def add_comment(
    image_id: UUID,
    request: CommentCreate,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return ReviewService(db).add_comment(image_id, current_user.id, request.content, request.issueTag)


@router.get("/images/{image_id}/comments", response_model=List[Comment])
async def list_comments(image_id: UUID, db: Session = Depends(get_db)):
    return ReviewService(db).list_comments(image_id)


@router.get("/images/{image_id}/activity", response_model=List[ActivityEntry])
async def list_image_activity(image_id: UUID, db: Session = Depends(get_db)):
    """Audit trail for one image, oldest first"""
    asset = ReviewService(db).get_asset(image_id)
    return ActivityService(db).list_for_entity("GeneratedAsset", asset.id)


@router.get("/images/{image_id}/download")
async def download_image(
    image_id: UUID,
    storage: Storage = Depends(get_storage_backend),
    db: Session = Depends(get_db),
):
    download = DownloadService(db, storage=storage).asset_file(image_id)
    return Response(
        content=download.data,
        media_type=download.content_type,
        headers={"Content-Disposition": f'attachment; filename="{download.file_name}"'},
    )
