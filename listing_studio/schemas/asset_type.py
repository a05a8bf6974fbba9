"""
Asset type and prompt schemas
"""
from typing import Optional
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime

from listing_studio.models.enums import AssetKind
from listing_studio.schemas.product import SourceImage


class AssetTypeCreate(BaseModel):
    kind: AssetKind = AssetKind.IMAGE
    name: str = Field(..., min_length=1, max_length=100)
    defaultPrompt: str = Field(..., min_length=1)
    order: int = 0
    description: Optional[str] = None


class AssetType(BaseModel):
    id: UUID
    kind: str
    name: str
    description: Optional[str] = None
    order: int
    default_prompt: Optional[str] = None

    class Config:
        from_attributes = True


class PromptVersionCreate(BaseModel):
    promptText: str = Field(..., min_length=1)
    changeNote: Optional[str] = None


class PromptVersion(BaseModel):
    id: UUID
    asset_type_id: UUID
    version: int
    prompt_text: str
    is_active: bool
    change_note: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssetTypeDetail(AssetType):
    active_version: Optional[PromptVersion] = None


class PromptOverrideUpdate(BaseModel):
    customPrompt: str = Field(..., min_length=1)


class PromptOverride(BaseModel):
    id: UUID
    product_id: UUID
    asset_type_id: UUID
    custom_prompt: str

    class Config:
        from_attributes = True


class ResolvedPrompt(BaseModel):
    productId: UUID
    assetTypeId: UUID
    prompt: str


class SourceImageMappingUpdate(BaseModel):
    productId: UUID
    sourceImageId: UUID


class SourceImageMapping(BaseModel):
    productId: UUID
    assetTypeId: UUID
    sourceImage: Optional[SourceImage] = None
