# app/models/domain/analysis.py
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from app.models.domain.garment import GarmentResponse


class DetectedGarmentDescription(BaseModel):
    """One garment the vision model found in a photo.

    Values are untrusted model output; missing fields become empty strings and
    category/season are coerced by the matcher, never rejected here.
    """
    name: str = ""
    category: str = ""
    season: str = ""
    description: str = ""

    @field_validator('name', 'category', 'season', 'description', mode='before')
    @classmethod
    def coerce_text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)


class AnalyzeRequest(BaseModel):
    """Schema for the outfit analysis call."""
    image_base64: Optional[str] = None
    image_url: Optional[str] = None


class DetectedGarmentResponse(BaseModel):
    """A detection with its closet match and default selection state."""
    index: int
    name: str
    category: str
    season: str
    description: str
    matched_garment: Optional[GarmentResponse] = None
    confidence: int = Field(0, ge=0, le=100)
    selected: bool = False


class AnalyzeResponse(BaseModel):
    detected_garments: List[DetectedGarmentResponse]
    total_detected: int
    matched_count: int
    manual_selection: bool
