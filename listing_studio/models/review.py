"""
Review trail models: comments, activity log and daily analytics
"""
from sqlalchemy import Column, String, DateTime, Date, ForeignKey, Integer, Text, JSON, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid

from listing_studio.db.base import Base


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    asset_id = Column(Uuid, ForeignKey("generated_assets.id"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    issue_tag = Column(String(50))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    asset = relationship("GeneratedAsset", back_populates="comments")
    user = relationship("User", back_populates="comments")


class ActivityLog(Base):
    """Append-only audit record"""
    __tablename__ = "activity_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(64), nullable=False, index=True)
    metadata_ = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Analytics(Base):
    __tablename__ = "analytics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, unique=True, nullable=False)
    images_generated = Column(Integer, default=0, nullable=False)
    images_approved = Column(Integer, default=0, nullable=False)
    images_rejected = Column(Integer, default=0, nullable=False)
