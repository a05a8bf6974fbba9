"""
Generated asset models
"""
from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Integer, BigInteger, Text, JSON, Uuid,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid

from listing_studio.db.base import Base
from listing_studio.models.enums import AssetKind, AssetStatus


class GeneratedAsset(Base):
    __tablename__ = "generated_assets"
    __table_args__ = (
        UniqueConstraint("product_id", "asset_type_id", "version", name="uq_generated_assets_version"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False, index=True)
    asset_type_id = Column(Uuid, ForeignKey("asset_types.id"), nullable=False)
    kind = Column(String(10), default=AssetKind.IMAGE.value, nullable=False)
    status = Column(String(20), default=AssetStatus.PENDING.value, nullable=False)
    version = Column(Integer, nullable=False)
    storage_path = Column(Text)  # storage locator, set once bytes exist
    file_name = Column(String(255))
    width = Column(Integer)
    height = Column(Integer)
    file_size_bytes = Column(BigInteger)
    prompt_used = Column(Text)
    ai_model = Column(String(100))
    generation_params = Column(JSON, default=dict)
    parent_image_id = Column(Uuid, ForeignKey("generated_assets.id"), nullable=True)
    source_image_id = Column(Uuid, ForeignKey("source_images.id", ondelete="SET NULL"), nullable=True)
    generated_by_id = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Video only
    operation_name = Column(String(500))
    aspect_ratio = Column(String(10))
    duration_seconds = Column(Integer)
    resolution = Column(String(10))

    # Image only
    amazon_slot = Column(String(10))
    amazon_push_status = Column(String(20))
    amazon_pushed_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    product = relationship("Product", back_populates="assets")
    asset_type = relationship("AssetType", back_populates="assets")
    parent_image = relationship("GeneratedAsset", remote_side=[id])
    source_image = relationship("SourceImage")
    comments = relationship(
        "Comment",
        back_populates="asset",
        cascade="all, delete-orphan",
        order_by="desc(Comment.created_at)",
    )
    pushes = relationship("AmazonImagePush", back_populates="asset", cascade="all, delete-orphan")


class VersionCounter(Base):
    """Last version handed out for a (product, asset type) pair"""
    __tablename__ = "version_counters"
    __table_args__ = (
        UniqueConstraint("product_id", "asset_type_id", name="uq_version_counters_pair"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)
    asset_type_id = Column(Uuid, ForeignKey("asset_types.id"), nullable=False)
    last_version = Column(Integer, nullable=False, default=0)
