# app/models/domain/analytics.py
from typing import List
from pydantic import BaseModel

from app.models.domain.garment import GarmentResponse


class WardrobeStats(BaseModel):
    """Headline closet numbers."""
    total_garments: int
    total_outfits: int
    utilization_percent: int


class WardrobeAnalytics(BaseModel):
    """Analytics data for the home page."""
    stats: WardrobeStats
    most_worn: List[GarmentResponse]
    least_worn: List[GarmentResponse]
    donation_suggestions: List[GarmentResponse]
