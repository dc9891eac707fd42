# app/models/domain/donation.py
from typing import Optional
from datetime import datetime
from pydantic import BaseModel

from app.models.domain.garment import GarmentResponse


class SavedDonationRequest(BaseModel):
    garment_id: Optional[str] = None


class SavedDonationResponse(BaseModel):
    id: str
    garment_id: str
    user_id: str
    saved_at: datetime
    donated_at: Optional[datetime] = None
    garment: Optional[GarmentResponse] = None

    class Config:
        from_attributes = True
