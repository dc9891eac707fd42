# app/models/domain/garment.py
from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from app.models.database.garment import Category, Season
from app.models.domain.common import SortOrder


class GarmentBase(BaseModel):
    """Base model for garment data."""
    name: str = Field(..., min_length=1, max_length=500)
    photo_url: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)
    category: Category
    season: Season

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()


class GarmentCreate(GarmentBase):
    """Schema for creating a garment from the manual form."""


class GarmentUpdate(BaseModel):
    """Schema for updating a garment. Ownership cannot be changed."""
    name: Optional[str] = Field(None, min_length=1, max_length=500)
    photo_url: Optional[str] = Field(None, min_length=1)
    quantity: Optional[int] = Field(None, ge=1)
    category: Optional[Category] = None
    season: Optional[Season] = None
    use_count: Optional[int] = Field(None, ge=0)

    model_config = {"extra": "ignore"}


class GarmentResponse(BaseModel):
    """Schema for garment response."""
    id: str
    name: str
    photo_url: str
    quantity: int
    use_count: int
    category: str
    season: str
    origin: str
    created_at: datetime
    user_id: str

    class Config:
        from_attributes = True


class GarmentQueryParams(BaseModel):
    """Closet listing filters."""
    category: Optional[Category] = None
    season: Optional[Season] = None
    sort_by: Literal["created_at", "name", "use_count", "quantity"] = "created_at"
    order: SortOrder = SortOrder.DESC

