"""
Product endpoints
"""
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from listing_studio.core.deps import get_current_actor, get_db, get_marketplace
from listing_studio.models.enums import ProductStatus
from listing_studio.models.user import User
from listing_studio.schemas.asset import GeneratedAsset
from listing_studio.schemas.asset_type import PromptOverride, PromptOverrideUpdate, ResolvedPrompt
from listing_studio.schemas.product import ImportRequest, ImportResult, Product, ProductCreate, ProductDetail
from listing_studio.services.marketplace import MarketplaceClient
from listing_studio.services.product import ProductService
from listing_studio.services.prompt import PromptService

router = APIRouter()


@router.post("/products", response_model=ProductDetail, status_code=status.HTTP_201_CREATED)
async def create_product(
    request: ProductCreate,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return ProductService(db).create_product(
        title=request.title,
        category=request.category,
        asin=request.asin,
        metadata=request.metadata,
        actor_id=current_user.id,
    )


@router.get("/products", response_model=List[Product])
async def list_products(
    status: Optional[ProductStatus] = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return ProductService(db).list_products(status=status, limit=limit, offset=offset)


@router.get("/products/summary")
async def product_summary(db: Session = Depends(get_db)):
    """Product counts by status"""
    return ProductService(db).status_counts()


@router.post("/products/import", response_model=ImportResult)
async def import_products(
    request: ImportRequest,
    current_user: User = Depends(get_current_actor),
    marketplace: MarketplaceClient = Depends(get_marketplace),
    db: Session = Depends(get_db),
):
    """Create products for inventory ASINs not registered yet"""
    return await ProductService(db, marketplace).import_from_inventory(
        only_in_stock=request.onlyInStock, actor_id=current_user.id
    )


@router.get("/products/{product_id}", response_model=ProductDetail)
async def get_product(product_id: UUID, db: Session = Depends(get_db)):
    return ProductService(db).get_product(product_id)


@router.get("/products/{product_id}/assets", response_model=List[GeneratedAsset])
async def list_product_assets(product_id: UUID, db: Session = Depends(get_db)):
    return ProductService(db).list_assets(product_id)


@router.post("/products/{product_id}/refresh-images", response_model=ProductDetail)
async def refresh_images(
    product_id: UUID,
    current_user: User = Depends(get_current_actor),
    marketplace: MarketplaceClient = Depends(get_marketplace),
    db: Session = Depends(get_db),
):
    """Replace source images with the current marketplace catalog images"""
    return await ProductService(db, marketplace).refresh_source_images(product_id, actor_id=current_user.id)


@router.put("/products/{product_id}/prompt-overrides/{asset_type_id}", response_model=PromptOverride)
async def set_prompt_override(
    product_id: UUID,
    asset_type_id: UUID,
    request: PromptOverrideUpdate,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return PromptService(db).set_override(product_id, asset_type_id, request.customPrompt)


@router.delete("/products/{product_id}/prompt-overrides/{asset_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_prompt_override(
    product_id: UUID,
    asset_type_id: UUID,
    current_user: User = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    PromptService(db).clear_override(product_id, asset_type_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/products/{product_id}/prompts/{asset_type_id}", response_model=ResolvedPrompt)
async def preview_prompt(
    product_id: UUID,
    asset_type_id: UUID,
    additionalInstructions: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Prompt that a generation would use right now"""
    prompt = PromptService(db).resolve(product_id, asset_type_id, additionalInstructions)
    return ResolvedPrompt(productId=product_id, assetTypeId=asset_type_id, prompt=prompt)
