"""
Main API router for v1 endpoints
"""
from fastapi import APIRouter
from listing_studio.api.v1.endpoints import (
    amazon,
    analytics,
    asset_types,
    download,
    images,
    jobs,
    products,
    templates,
    videos,
)

api_router = APIRouter()

api_router.include_router(products.router, tags=["Products"])
api_router.include_router(asset_types.router, tags=["Asset Types & Prompts"])
api_router.include_router(templates.router, tags=["Templates"])
api_router.include_router(images.router, tags=["Images"])
api_router.include_router(videos.router, tags=["Videos"])
api_router.include_router(jobs.router, tags=["Bulk Jobs"])
api_router.include_router(download.router, tags=["Downloads"])
api_router.include_router(amazon.router, tags=["Publishing"])
api_router.include_router(analytics.router, tags=["Analytics"])


@api_router.get("/")
async def api_info():
    return {"message": "Listing Studio API v1", "status": "active"}
