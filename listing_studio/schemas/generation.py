"""
Bulk generation job schemas
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime


class JobCreate(BaseModel):
    """Request schema for queuing a bulk generation job"""
    productIds: List[UUID] = Field(..., min_length=1)
    assetTypeIds: List[UUID] = Field(..., min_length=1)
    priority: int = Field(default=0, ge=0, le=10)


class VariantJobCreate(BaseModel):
    """Request schema for a job that generates one asset type from one source image variant"""
    productIds: List[UUID] = Field(..., min_length=1)
    variant: str = Field(..., min_length=1)
    assetTypeId: UUID
    priority: int = Field(default=0, ge=0, le=10)
    customPrompt: Optional[str] = None
    templateId: Optional[UUID] = None


class GenerationJob(BaseModel):
    id: UUID
    product_ids: List[str]
    asset_type_ids: List[str]
    status: str
    priority: int
    total_images: int
    completed_images: int
    failed_images: int
    params: Dict[str, Any] = Field(default_factory=dict)
    created_by_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
