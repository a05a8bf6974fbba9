"""
Analytics dashboard schemas
"""
from typing import Dict, List
from pydantic import BaseModel
import datetime


class DailyAnalytics(BaseModel):
    date: datetime.date
    images_generated: int
    images_approved: int
    images_rejected: int

    class Config:
        from_attributes = True


class AnalyticsSummary(BaseModel):
    totals: Dict[str, int]
    daily: List[DailyAnalytics]
    product_stats: Dict[str, int]
    asset_stats: Dict[str, int]
