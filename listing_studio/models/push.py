"""
Marketplace image push models
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, JSON, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid

from listing_studio.db.base import Base
from listing_studio.models.enums import PushStatus


class AmazonImagePush(Base):
    """One row per (asset, slot) push attempt"""
    __tablename__ = "amazon_image_pushes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    batch_id = Column(Uuid, nullable=False, index=True)
    generated_asset_id = Column(Uuid, ForeignKey("generated_assets.id"), nullable=False)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False, index=True)
    asin = Column(String(20), nullable=False)
    sku = Column(String(100))
    amazon_slot = Column(String(10), nullable=False)
    image_url = Column(Text, nullable=False)
    status = Column(String(20), default=PushStatus.PENDING.value, nullable=False, index=True)
    amazon_response = Column(JSON)
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True))

    # Relationships
    asset = relationship("GeneratedAsset", back_populates="pushes")
