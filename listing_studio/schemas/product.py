"""
Product-related Pydantic schemas
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime


class ProductCreate(BaseModel):
    """Request schema for registering a product"""
    title: str = Field(..., min_length=1, max_length=500)
    category: Optional[str] = None
    asin: Optional[str] = Field(default=None, max_length=20)
    metadata: Dict[str, Any] = Field(default_factory=dict, description="sku, productType, quantity ...")


class SourceImage(BaseModel):
    id: UUID
    variant: str
    image_order: int
    amazon_image_url: Optional[str] = None
    local_file_path: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None

    class Config:
        from_attributes = True


class Product(BaseModel):
    id: UUID
    asin: Optional[str] = None
    title: str
    category: Optional[str] = None
    status: str
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductDetail(Product):
    source_images: List[SourceImage] = []


class ImportRequest(BaseModel):
    onlyInStock: bool = Field(default=True, description="Skip inventory rows with zero quantity")


class ImportResult(BaseModel):
    created: int
    skipped: int
    failed: List[Dict[str, Any]] = []
    productIds: List[str] = []
