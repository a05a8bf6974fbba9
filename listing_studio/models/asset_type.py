"""
Asset type, prompt version and prompt override models
"""
from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Integer, Boolean, Text, Uuid,
    UniqueConstraint, Index,
)
from sqlalchemy.sql import func, text
from sqlalchemy.orm import relationship
import uuid

from listing_studio.db.base import Base
from listing_studio.models.enums import AssetKind


class AssetType(Base):
    __tablename__ = "asset_types"
    __table_args__ = (UniqueConstraint("kind", "name", name="uq_asset_types_kind_name"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    kind = Column(String(10), default=AssetKind.IMAGE.value, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    order = Column(Integer, default=0, nullable=False)
    default_prompt = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    prompt_versions = relationship(
        "PromptVersion",
        back_populates="asset_type",
        cascade="all, delete-orphan",
        order_by="PromptVersion.version",
    )
    assets = relationship("GeneratedAsset", back_populates="asset_type")


class PromptVersion(Base):
    __tablename__ = "prompt_versions"
    __table_args__ = (
        UniqueConstraint("asset_type_id", "version", name="uq_prompt_versions_type_version"),
        # At most one active version per asset type
        Index(
            "uq_prompt_versions_active",
            "asset_type_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    asset_type_id = Column(Uuid, ForeignKey("asset_types.id"), nullable=False)
    version = Column(Integer, nullable=False)
    prompt_text = Column(Text, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    change_note = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    asset_type = relationship("AssetType", back_populates="prompt_versions")


class PromptOverride(Base):
    __tablename__ = "prompt_overrides"
    __table_args__ = (
        UniqueConstraint("product_id", "asset_type_id", name="uq_prompt_overrides_product_type"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)
    asset_type_id = Column(Uuid, ForeignKey("asset_types.id"), nullable=False)
    custom_prompt = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    product = relationship("Product", back_populates="prompt_overrides")
    asset_type = relationship("AssetType")
