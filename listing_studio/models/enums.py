"""
Enums for the Listing Studio platform
"""
import enum


class UserRole(str, enum.Enum):
    USER = "USER"
    REVIEWER = "REVIEWER"
    ADMIN = "ADMIN"


class ProductStatus(str, enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class AssetKind(str, enum.Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class AssetStatus(str, enum.Enum):
    PENDING = "PENDING"
    GENERATING = "GENERATING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEEDS_REWORK = "NEEDS_REWORK"


# Statuses a reviewer may set
REVIEW_STATUSES = frozenset({AssetStatus.APPROVED, AssetStatus.REJECTED, AssetStatus.NEEDS_REWORK})

# Statuses from which a review decision may be recorded
REVIEWABLE_STATUSES = frozenset({AssetStatus.COMPLETED}) | REVIEW_STATUSES


class PushStatus(str, enum.Enum):
    PENDING = "PENDING"
    PUSHING = "PUSHING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class JobStatus(str, enum.Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class TemplateCategory(str, enum.Enum):
    IMAGE = "image"
    VIDEO = "video"
    BOTH = "both"


class VariableType(str, enum.Enum):
    TEXT = "TEXT"
    DROPDOWN = "DROPDOWN"
    AUTO = "AUTO"


class AmazonSlot(str, enum.Enum):
    MAIN = "MAIN"
    PT01 = "PT01"
    PT02 = "PT02"
    PT03 = "PT03"
    PT04 = "PT04"
    PT05 = "PT05"
    PT06 = "PT06"
    PT07 = "PT07"
    PT08 = "PT08"

    @property
    def attribute_name(self) -> str:
        """Listing attribute that holds the image locator for this slot"""
        if self is AmazonSlot.MAIN:
            return "main_product_image_locator"
        return f"other_product_image_locator_{int(self.value[2:])}"
