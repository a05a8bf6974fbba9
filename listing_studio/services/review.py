"""
Review state machine for generated assets
"""
from typing import List, Optional
from uuid import UUID
from sqlalchemy.orm import Session
import structlog

from listing_studio.core.exceptions import NotFoundError, ValidationError
from listing_studio.models.asset import GeneratedAsset
from listing_studio.models.enums import AssetKind, AssetStatus, REVIEW_STATUSES, REVIEWABLE_STATUSES
from listing_studio.models.review import Comment
from listing_studio.services.activity import ActivityService
from listing_studio.services.analytics import AnalyticsService
from listing_studio.services.rollup import RollupEngine

logger = structlog.get_logger()

REWORK_ISSUE_TAG = "REWORK_REQUESTED"


class ReviewService:
    def __init__(self, db: Session):
        self.db = db

    def get_asset(self, asset_id: UUID) -> GeneratedAsset:
        asset = self.db.get(GeneratedAsset, asset_id)
        if not asset:
            raise NotFoundError(f"Asset {asset_id} not found")
        return asset

    def update_status(
        self,
        asset_id: UUID,
        new_status: AssetStatus,
        actor_id: UUID,
        comment: Optional[str] = None,
        issue_tag: Optional[str] = None,
    ) -> GeneratedAsset:
        """
        Record a review decision on a generated asset.

        Allowed once generation has completed, and again after any earlier
        decision; the latest decision wins. The status change and optional
        comment commit together. The activity entry, the analytics counter
        and the product rollup follow as separate steps: a failure in any of
        them is logged and does not undo the decision.
        """
        try:
            new_status = AssetStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown status: {new_status}")
        if new_status not in REVIEW_STATUSES:
            raise ValidationError(
                f"Status {new_status.value} cannot be set by review",
                details={"allowed": sorted(s.value for s in REVIEW_STATUSES)},
            )

        asset = self.get_asset(asset_id)
        previous_status = asset.status
        if AssetStatus(previous_status) not in REVIEWABLE_STATUSES:
            raise ValidationError(
                f"Asset in status {previous_status} cannot be reviewed",
                details={"assetId": str(asset_id), "status": previous_status},
            )

        logger.info(
            "update_status called",
            asset_id=str(asset_id),
            previous_status=previous_status,
            new_status=new_status.value,
            actor_id=str(actor_id),
        )

        asset.status = new_status.value
        if comment and comment.strip():
            if new_status == AssetStatus.NEEDS_REWORK and not issue_tag:
                issue_tag = REWORK_ISSUE_TAG
            self.db.add(Comment(
                asset_id=asset.id,
                user_id=actor_id,
                content=comment.strip(),
                issue_tag=issue_tag,
            ))
        self.db.commit()
        self.db.refresh(asset)

        product_id = asset.product_id
        self._log_activity(asset, actor_id, new_status, previous_status)
        self._count(new_status)
        self._rollup(product_id)

        logger.info("asset status updated", asset_id=str(asset_id), status=new_status.value)
        return asset

    def _log_activity(self, asset: GeneratedAsset, actor_id: UUID, new_status: AssetStatus, previous_status: str):
        prefix = "VIDEO" if asset.kind == AssetKind.VIDEO.value else "IMAGE"
        try:
            ActivityService(self.db).record(
                actor_id=actor_id,
                action=f"{prefix}_{new_status.value}",
                entity_type="GeneratedAsset",
                entity_id=asset.id,
                metadata={
                    "product_id": str(asset.product_id),
                    "product_title": asset.product.title if asset.product else None,
                    "asset_type": asset.asset_type.name if asset.asset_type else None,
                    "status": new_status.value,
                    "previous_status": previous_status,
                    "version": asset.version,
                },
            )
        except Exception as e:
            self.db.rollback()
            logger.error("Failed to record review activity", asset_id=str(asset.id), error=str(e))

    def _count(self, new_status: AssetStatus):
        analytics = AnalyticsService(self.db)
        try:
            if new_status == AssetStatus.APPROVED:
                analytics.record_approved()
            elif new_status == AssetStatus.REJECTED:
                analytics.record_rejected()
        except Exception as e:
            self.db.rollback()
            logger.error("Failed to update review analytics", status=new_status.value, error=str(e))

    def _rollup(self, product_id: UUID):
        try:
            RollupEngine(self.db).recompute(product_id)
        except Exception as e:
            self.db.rollback()
            logger.error("Failed to recompute product status", product_id=str(product_id), error=str(e))

    # Comments

    def add_comment(
        self, asset_id: UUID, actor_id: UUID, content: str, issue_tag: Optional[str] = None
    ) -> Comment:
        if not content or not content.strip():
            raise ValidationError("Comment content must not be empty")
        asset = self.get_asset(asset_id)
        comment = Comment(asset_id=asset.id, user_id=actor_id, content=content.strip(), issue_tag=issue_tag)
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        logger.info("comment added", asset_id=str(asset_id), comment_id=str(comment.id))
        return comment

    def list_comments(self, asset_id: UUID) -> List[Comment]:
        self.get_asset(asset_id)
        return (
            self.db.query(Comment)
            .filter(Comment.asset_id == asset_id)
            .order_by(Comment.created_at.desc())
            .all()
        )
