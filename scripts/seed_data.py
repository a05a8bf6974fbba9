#!/usr/bin/env python3
"""
Seeding script for the Listing Studio backend

Creates the schema, demo users and the default image/video asset types.
"""
import sys
from pathlib import Path

# Add the project root directory to the Python path
sys.path.append(str(Path(__file__).parent.parent))

from listing_studio.db.base import SessionLocal
from listing_studio.db.session import create_db_and_tables
from listing_studio.models import AssetKind, AssetType, User, UserRole
from listing_studio.services.prompt import PromptService
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

USERS = [
    {"email": "admin@example.com", "name": "Admin", "role": UserRole.ADMIN},
    {"email": "reviewer@example.com", "name": "Reviewer", "role": UserRole.REVIEWER},
]

ASSET_TYPES = [
    (AssetKind.IMAGE, "Main Image", 0,
     "Professional e-commerce main image of {product_name} on a pure white background, "
     "product centered and filling most of the frame."),
    (AssetKind.IMAGE, "Lifestyle", 1,
     "Lifestyle photo of {product_name} ({category}) being used in a natural home setting."),
    (AssetKind.IMAGE, "Infographic", 2,
     "Clean infographic highlighting the key features of {product_name}."),
    (AssetKind.IMAGE, "Detail Close-up", 3,
     "Macro close-up of {product_name} showing materials and build quality."),
    (AssetKind.VIDEO, "Product Spin", 0,
     "Smooth 360 degree rotation of {product_name} on a white turntable, studio lighting."),
]


def create_users(db):
    logger.info("Creating users...")
    for data in USERS:
        if db.query(User).filter(User.email == data["email"]).first():
            continue
        db.add(User(email=data["email"], name=data["name"], role=data["role"].value))
    db.commit()


def create_asset_types(db):
    logger.info("Creating asset types...")
    service = PromptService(db)
    for kind, name, order, prompt in ASSET_TYPES:
        if db.query(AssetType).filter(AssetType.kind == kind.value, AssetType.name == name).first():
            continue
        service.create_asset_type(name=name, default_prompt=prompt, kind=kind, order=order)


def main():
    create_db_and_tables()
    db = SessionLocal()
    try:
        create_users(db)
        create_asset_types(db)
    finally:
        db.close()
    logger.info("Seeding complete")


if __name__ == "__main__":
    main()
