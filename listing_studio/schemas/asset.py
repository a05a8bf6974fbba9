"""
Generated asset, review and comment schemas
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime

from listing_studio.models.enums import AssetStatus


class ImageGenerateRequest(BaseModel):
    """Request schema for generating one product image"""
    productId: UUID
    assetTypeId: UUID
    sourceImageId: Optional[UUID] = None
    parentImageId: Optional[UUID] = Field(default=None, description="Regenerate from an earlier image")
    additionalInstructions: Optional[str] = Field(default=None, max_length=2000)
    templateId: Optional[UUID] = None
    templateVariables: Dict[str, str] = Field(default_factory=dict)


class VideoGenerateRequest(BaseModel):
    productId: UUID
    assetTypeId: UUID
    aspectRatio: str = "16:9"
    durationSeconds: int = 4
    resolution: str = "720p"
    additionalInstructions: Optional[str] = Field(default=None, max_length=2000)
    templateId: Optional[UUID] = None
    templateVariables: Dict[str, str] = Field(default_factory=dict)


class StatusUpdate(BaseModel):
    """Review decision for a generated asset"""
    status: AssetStatus
    comment: Optional[str] = None
    issueTag: Optional[str] = Field(default=None, max_length=50)


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1)
    issueTag: Optional[str] = Field(default=None, max_length=50)


class Comment(BaseModel):
    id: UUID
    asset_id: UUID
    user_id: UUID
    content: str
    issue_tag: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActivityEntry(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    action: str
    entity_type: str
    entity_id: str
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GeneratedAsset(BaseModel):
    id: UUID
    product_id: UUID
    asset_type_id: UUID
    kind: str
    status: str
    version: int
    storage_path: Optional[str] = None
    file_name: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    file_size_bytes: Optional[int] = None
    prompt_used: Optional[str] = None
    ai_model: Optional[str] = None
    generation_params: Dict[str, Any] = Field(default_factory=dict)
    parent_image_id: Optional[UUID] = None
    source_image_id: Optional[UUID] = None
    operation_name: Optional[str] = None
    aspect_ratio: Optional[str] = None
    duration_seconds: Optional[int] = None
    resolution: Optional[str] = None
    amazon_slot: Optional[str] = None
    amazon_push_status: Optional[str] = None
    amazon_pushed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GeneratedAssetDetail(GeneratedAsset):
    comments: List[Comment] = []
