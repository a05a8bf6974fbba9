"""
Dependency injection for FastAPI
"""
from typing import Optional
from uuid import UUID
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from listing_studio.core.exceptions import AuthenticationError
from listing_studio.db.session import get_db
from listing_studio.models.user import User
from listing_studio.services.ai_providers import AssetGenerator, GeneratorFactory
from listing_studio.services.marketplace import MarketplaceClient, get_marketplace_client
from listing_studio.services.storage import Storage, get_storage

__all__ = ["get_db", "get_current_actor", "get_generator", "get_storage_backend", "get_marketplace"]


def get_current_actor(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> User:
    """Acting user for audit attribution; authentication happens upstream"""
    if not x_user_id:
        raise AuthenticationError("X-User-Id header is required")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise AuthenticationError("X-User-Id header is not a valid id")
    user = db.get(User, user_id)
    if user is None:
        raise AuthenticationError("Unknown user")
    return user


def get_generator() -> AssetGenerator:
    return GeneratorFactory.get_provider()


def get_storage_backend() -> Storage:
    return get_storage()


def get_marketplace() -> MarketplaceClient:
    return get_marketplace_client()
