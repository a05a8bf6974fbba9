"""
Bulk generation job endpoints
"""
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from listing_studio.core.deps import get_current_actor, get_db
from listing_studio.models.enums import JobStatus
from listing_studio.models.user import User
from listing_studio.schemas.generation import GenerationJob, JobCreate, VariantJobCreate
from listing_studio.services.jobs import JobService

router = APIRouter()


@router.post("/jobs", response_model=GenerationJob, status_code=status.HTTP_201_CREATED)
async def create_job(
    request: JobCreate,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return JobService(db).enqueue(
        request.productIds,
        request.assetTypeIds,
        actor_id=current_user.id,
        priority=request.priority,
    )


@router.post("/jobs/by-variant", response_model=GenerationJob, status_code=status.HTTP_201_CREATED)
async def create_variant_job(
    request: VariantJobCreate,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Queue one asset type for many products, each from its best image of one variant"""
    return JobService(db).enqueue_by_variant(
        request.productIds,
        request.variant,
        request.assetTypeId,
        actor_id=current_user.id,
        priority=request.priority,
        custom_prompt=request.customPrompt,
        template_id=request.templateId,
    )


@router.get("/jobs", response_model=List[GenerationJob])
async def list_jobs(status: Optional[JobStatus] = None, limit: int = 50, db: Session = Depends(get_db)):
    return JobService(db).list_jobs(status=status, limit=limit)


@router.get("/jobs/{job_id}", response_model=GenerationJob)
async def get_job(job_id: UUID, db: Session = Depends(get_db)):
    return JobService(db).get_job(job_id)
