"""
Marketplace publishing schemas
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime

from listing_studio.models.enums import AmazonSlot


class PushImage(BaseModel):
    imageId: UUID
    slot: AmazonSlot


class PushRequest(BaseModel):
    """Push approved images of one product into listing slots"""
    productId: UUID
    images: List[PushImage] = Field(..., min_length=1)


class ImagePush(BaseModel):
    id: UUID
    batch_id: UUID
    generated_asset_id: UUID
    product_id: UUID
    asin: str
    sku: Optional[str] = None
    amazon_slot: str
    image_url: str
    status: str
    amazon_response: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PushResult(BaseModel):
    batchId: UUID
    success: bool
    status: str
    submissionId: Optional[str] = None
    issues: List[Dict[str, Any]] = []
    error: Optional[str] = None
    pushes: List[ImagePush]


class PushHistory(BaseModel):
    pushes: List[ImagePush]
    total: int
    successful: int
    failed: int
    pending: int
