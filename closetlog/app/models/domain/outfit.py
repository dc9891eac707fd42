# app/models/domain/outfit.py
from typing import List, Literal, Optional
from datetime import date, datetime
from pydantic import BaseModel, Field

from app.models.domain.analysis import DetectedGarmentDescription
from app.models.domain.common import FailureNote
from app.models.domain.garment import GarmentResponse
from app.models.database.garment import Category, Season


class OutfitCreate(BaseModel):
    """Schema for creating an outfit from already-known garments."""
    photo_url: Optional[str] = None
    worn_date: Optional[date] = None
    garment_ids: List[str] = Field(default_factory=list)


class OutfitResponse(BaseModel):
    """Schema for outfit response."""
    id: str
    photo_url: str
    worn_date: date
    created_at: datetime
    user_id: str

    class Config:
        from_attributes = True


class OutfitWithGarments(OutfitResponse):
    """Schema for outfit with its caller-owned garments."""
    garments: List[GarmentResponse]


class OutfitCreatedResponse(OutfitResponse):
    """Outfit plus the link bookkeeping outcome."""
    garment_ids: List[str]
    requested_count: int
    linked_count: int
    failures: List[FailureNote] = Field(default_factory=list)


class NewGarmentOverrides(BaseModel):
    """User edits applied to a detection before it becomes a garment."""
    name: Optional[str] = Field(None, min_length=1, max_length=500)
    category: Optional[Category] = None
    season: Optional[Season] = None


class SelectionRequest(BaseModel):
    """The user's choice for one detected garment."""
    index: int = Field(..., ge=0)
    choice: Literal["existing", "new", "deselect"]
    detection: DetectedGarmentDescription
    garment_id: Optional[str] = None
    overrides: Optional[NewGarmentOverrides] = None
    crop_base64: Optional[str] = None


class ReconcileRequest(BaseModel):
    """Schema for saving an analyzed outfit."""
    photo_base64: Optional[str] = None
    worn_date: Optional[date] = None
    selections: List[SelectionRequest] = Field(default_factory=list)
    manual_garment_ids: List[str] = Field(default_factory=list)
