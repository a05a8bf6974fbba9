"""
Generation job models
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, JSON, Uuid
from sqlalchemy.sql import func
import uuid

from listing_studio.db.base import Base
from listing_studio.models.enums import JobStatus


class GenerationJob(Base):
    __tablename__ = "generation_jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_ids = Column(JSON, nullable=False)  # ["<uuid>", ...]
    asset_type_ids = Column(JSON, nullable=False)
    status = Column(String(20), default=JobStatus.QUEUED.value, nullable=False, index=True)
    priority = Column(Integer, default=0, nullable=False)
    total_images = Column(Integer, nullable=False)
    completed_images = Column(Integer, default=0, nullable=False)
    failed_images = Column(Integer, default=0, nullable=False)
    params = Column(JSON, default=dict)  # variant jobs: variant, sourceImageIds, templateId, customPrompt
    created_by_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
