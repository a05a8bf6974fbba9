"""
Analytics endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from listing_studio.core.deps import get_db
from listing_studio.schemas.analytics import AnalyticsSummary
from listing_studio.services.analytics import AnalyticsService

router = APIRouter()


@router.get("/analytics", response_model=AnalyticsSummary)
async def get_analytics(days: int = Query(default=30, ge=1, le=365), db: Session = Depends(get_db)):
    return AnalyticsService(db).summary(days)
