"""
Marketplace publishing endpoints
"""
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from listing_studio.core.deps import get_current_actor, get_db, get_marketplace, get_storage_backend
from listing_studio.models.user import User
from listing_studio.schemas.push import PushHistory, PushRequest, PushResult
from listing_studio.services.marketplace import MarketplaceClient
from listing_studio.services.publish import PublishService, PushItem
from listing_studio.services.storage import Storage

router = APIRouter()


@router.post("/amazon/push-images", response_model=PushResult)
async def push_images(
    request: PushRequest,
    current_user: User = Depends(get_current_actor),
    marketplace: MarketplaceClient = Depends(get_marketplace),
    storage: Storage = Depends(get_storage_backend),
    db: Session = Depends(get_db),
):
    """
    Push approved images into listing slots; all items share one outcome
    """
    items = [PushItem(asset_id=image.imageId, slot=image.slot.value) for image in request.images]
    result = await PublishService(db, marketplace=marketplace, storage=storage).push(
        request.productId, items, actor_id=current_user.id
    )
    return PushResult(
        batchId=result.batch_id,
        success=result.success,
        status=result.status,
        submissionId=result.submission_id,
        issues=result.issues,
        error=result.error,
        pushes=result.pushes,
    )


@router.get("/amazon/push-history", response_model=PushHistory)
async def push_history(productId: UUID, limit: int = 100, db: Session = Depends(get_db)):
    return PublishService(db).push_history(productId, limit=limit)
