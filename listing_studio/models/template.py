"""
Reusable prompt template models
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Boolean, Text, JSON, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid

from listing_studio.db.base import Base
from listing_studio.models.enums import TemplateCategory, VariableType


class PromptTemplate(Base):
    __tablename__ = "prompt_templates"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text)
    prompt_text = Column(Text, nullable=False)  # {{variable}} placeholders
    category = Column(String(10), default=TemplateCategory.BOTH.value, nullable=False)
    order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    variables = relationship(
        "TemplateVariable",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateVariable.order",
    )


class TemplateVariable(Base):
    __tablename__ = "template_variables"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    template_id = Column(Uuid, ForeignKey("prompt_templates.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    display_name = Column(String(255), nullable=False)
    type = Column(String(10), default=VariableType.TEXT.value, nullable=False)
    is_required = Column(Boolean, default=True, nullable=False)
    default_value = Column(Text)
    options = Column(JSON, default=list)  # DROPDOWN choices
    auto_fill_source = Column(String(100))  # product.title, product.category, product.asin
    order = Column(Integer, default=0, nullable=False)

    # Relationships
    template = relationship("PromptTemplate", back_populates="variables")
