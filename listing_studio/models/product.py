"""
Product and source image models
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text, JSON, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid

from listing_studio.db.base import Base
from listing_studio.models.enums import ProductStatus


class Product(Base):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    asin = Column(String(20), unique=True, index=True, nullable=True)
    title = Column(String(500), nullable=False)
    category = Column(String(255))
    status = Column(String(20), default=ProductStatus.NOT_STARTED.value, nullable=False)
    metadata_ = Column("metadata", JSON, default=dict)  # {"sku": ..., "productType": ..., "quantity": ...}
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    source_images = relationship(
        "SourceImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="SourceImage.image_order",
    )
    assets = relationship("GeneratedAsset", back_populates="product", cascade="all, delete-orphan")
    prompt_overrides = relationship("PromptOverride", back_populates="product", cascade="all, delete-orphan")


class SourceImage(Base):
    __tablename__ = "source_images"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False, index=True)
    variant = Column(String(20), nullable=False, default="MAIN")  # MAIN, PT01 ...
    image_order = Column(Integer, nullable=False, default=0)
    amazon_image_url = Column(Text)
    local_file_path = Column(Text)  # storage locator
    width = Column(Integer)
    height = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    product = relationship("Product", back_populates="source_images")
