"""
Append-only activity log
"""
from typing import Any, Dict, Optional, Union
from uuid import UUID
from sqlalchemy.orm import Session
import structlog

from listing_studio.models.review import ActivityLog

logger = structlog.get_logger()


class ActivityService:
    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        actor_id: Optional[UUID],
        action: str,
        entity_type: str,
        entity_id: Union[str, UUID],
        metadata: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> ActivityLog:
        """Append one audit entry; ``metadata`` is stored as a snapshot"""
        entry = ActivityLog(
            user_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            metadata_=dict(metadata or {}),
        )
        self.db.add(entry)
        if commit:
            self.db.commit()
        logger.info(
            "activity recorded",
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_id=str(actor_id) if actor_id else None,
        )
        return entry

    def list_for_entity(self, entity_type: str, entity_id: Union[str, UUID]):
        return (
            self.db.query(ActivityLog)
            .filter(ActivityLog.entity_type == entity_type, ActivityLog.entity_id == str(entity_id))
            .order_by(ActivityLog.created_at)
            .all()
        )
