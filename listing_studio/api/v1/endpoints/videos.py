"""
Video generation endpoints
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from listing_studio.core.deps import get_current_actor, get_db, get_generator
from listing_studio.models.user import User
from listing_studio.schemas.asset import GeneratedAsset, VideoGenerateRequest
from listing_studio.services.ai_providers import AssetGenerator, VideoParams
from listing_studio.services.generation import GenerationService

router = APIRouter()


@router.post("/videos/generate", response_model=GeneratedAsset, status_code=status.HTTP_202_ACCEPTED)
async def generate_video(
    request: VideoGenerateRequest,
    current_user: User = Depends(get_current_actor),
    generator: AssetGenerator = Depends(get_generator),
    db: Session = Depends(get_db),
):
    """
    Start a video generation; the returned record is GENERATING
    """
    params = VideoParams(
        aspect_ratio=request.aspectRatio,
        duration_seconds=request.durationSeconds,
        resolution=request.resolution,
    )
    return await GenerationService(db, generator=generator).generate_video(
        product_id=request.productId,
        asset_type_id=request.assetTypeId,
        actor_id=current_user.id,
        params=params,
        additional_instructions=request.additionalInstructions,
        template_id=request.templateId,
        template_variables=request.templateVariables,
    )
