"""
Prompt template endpoints
"""
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from listing_studio.core.deps import get_current_actor, get_db
from listing_studio.models.enums import TemplateCategory
from listing_studio.models.user import User
from listing_studio.schemas.template import (
    PromptTemplate,
    TemplateCreate,
    TemplatePreview,
    TemplatePreviewRequest,
    TemplateUpdate,
)
from listing_studio.services.template import TemplateService

router = APIRouter()

# Request field -> model column
UPDATE_FIELDS = {
    "name": "name",
    "promptText": "prompt_text",
    "description": "description",
    "category": "category",
    "order": "order",
    "isActive": "is_active",
}


@router.post("/templates", response_model=PromptTemplate, status_code=status.HTTP_201_CREATED)
async def create_template(
    request: TemplateCreate,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return TemplateService(db).create_template(
        name=request.name,
        prompt_text=request.promptText,
        description=request.description,
        category=request.category,
        order=request.order,
        variables=[v.to_fields() for v in request.variables],
    )


@router.get("/templates", response_model=List[PromptTemplate])
async def list_templates(
    category: Optional[TemplateCategory] = None,
    includeInactive: bool = False,
    db: Session = Depends(get_db),
):
    return TemplateService(db).list_templates(category=category, include_inactive=includeInactive)


@router.get("/templates/{template_id}", response_model=PromptTemplate)
async def get_template(template_id: UUID, db: Session = Depends(get_db)):
    return TemplateService(db).get_template(template_id)


@router.put("/templates/{template_id}", response_model=PromptTemplate)
async def update_template(
    template_id: UUID,
    request: TemplateUpdate,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    given = request.model_dump(exclude_unset=True, exclude={"variables"})
    fields = {UPDATE_FIELDS[key]: value for key, value in given.items() if value is not None}
    variables = [v.to_fields() for v in request.variables] if request.variables is not None else None
    return TemplateService(db).update_template(template_id, variables=variables, **fields)


@router.delete("/templates/{template_id}", response_model=PromptTemplate)
async def delete_template(
    template_id: UUID,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Soft delete; the template is deactivated"""
    return TemplateService(db).deactivate_template(template_id)


@router.post("/templates/{template_id}/duplicate", response_model=PromptTemplate, status_code=status.HTTP_201_CREATED)
async def duplicate_template(
    template_id: UUID,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return TemplateService(db).duplicate_template(template_id)


@router.post("/templates/{template_id}/preview", response_model=TemplatePreview)
async def preview_template(template_id: UUID, request: TemplatePreviewRequest, db: Session = Depends(get_db)):
    rendered = TemplateService(db).render(template_id, request.variables, product_id=request.productId)
    return TemplatePreview(
        renderedPrompt=rendered.prompt,
        missingVariables=rendered.missing_variables,
        variables=rendered.variables,
    )
