"""
Prompt template schemas
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime

from listing_studio.models.enums import TemplateCategory, VariableType


class TemplateVariableIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    displayName: Optional[str] = None
    type: VariableType = VariableType.TEXT
    isRequired: bool = True
    defaultValue: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    autoFillSource: Optional[str] = None
    order: Optional[int] = None

    def to_fields(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.displayName,
            "type": self.type.value,
            "is_required": self.isRequired,
            "default_value": self.defaultValue,
            "options": self.options,
            "auto_fill_source": self.autoFillSource,
            "order": self.order,
        }


class TemplateCreate(BaseModel):
    """Request schema for a reusable prompt template"""
    name: str = Field(..., min_length=1, max_length=255)
    promptText: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: TemplateCategory = TemplateCategory.BOTH
    order: int = 0
    variables: List[TemplateVariableIn] = Field(default_factory=list)


class TemplateUpdate(BaseModel):
    """Only the given fields change; variables, when given, replace the whole set"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    promptText: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[TemplateCategory] = None
    order: Optional[int] = None
    isActive: Optional[bool] = None
    variables: Optional[List[TemplateVariableIn]] = None


class TemplateVariable(BaseModel):
    id: UUID
    name: str
    display_name: str
    type: str
    is_required: bool
    default_value: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    auto_fill_source: Optional[str] = None
    order: int

    class Config:
        from_attributes = True


class PromptTemplate(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    prompt_text: str
    category: str
    order: int
    is_active: bool
    variables: List[TemplateVariable] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TemplatePreviewRequest(BaseModel):
    variables: Dict[str, str] = Field(default_factory=dict)
    productId: Optional[UUID] = None


class TemplatePreview(BaseModel):
    renderedPrompt: str
    missingVariables: List[str]
    variables: Dict[str, str]
