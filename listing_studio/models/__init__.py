# Database models
from listing_studio.models.user import User
from listing_studio.models.product import Product, SourceImage
from listing_studio.models.asset_type import AssetType, PromptVersion, PromptOverride
from listing_studio.models.asset import GeneratedAsset, VersionCounter
from listing_studio.models.review import Comment, ActivityLog, Analytics
from listing_studio.models.generation import GenerationJob
from listing_studio.models.push import AmazonImagePush
from listing_studio.models.template import PromptTemplate, TemplateVariable
from listing_studio.models.enums import (
    UserRole, ProductStatus, AssetKind, AssetStatus, PushStatus, JobStatus, AmazonSlot,
    TemplateCategory, VariableType,
)

__all__ = [
    "User",
    "Product",
    "SourceImage",
    "AssetType",
    "PromptVersion",
    "PromptOverride",
    "GeneratedAsset",
    "VersionCounter",
    "Comment",
    "ActivityLog",
    "Analytics",
    "GenerationJob",
    "AmazonImagePush",
    "PromptTemplate",
    "TemplateVariable",
    "UserRole",
    "ProductStatus",
    "AssetKind",
    "AssetStatus",
    "PushStatus",
    "JobStatus",
    "AmazonSlot",
    "TemplateCategory",
    "VariableType",
]
