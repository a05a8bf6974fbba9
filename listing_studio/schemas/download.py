"""
Download request schemas
"""
from typing import List, Literal
from pydantic import BaseModel, Field
from uuid import UUID


class ZipDownloadRequest(BaseModel):
    """Request schema for a zip of product images"""
    productIds: List[UUID] = Field(..., min_length=1)
    scope: Literal["source", "generated", "all"] = "all"
