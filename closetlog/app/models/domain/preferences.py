# app/models/domain/preferences.py
from typing import Any, Optional
from pydantic import BaseModel


class PreferencesResponse(BaseModel):
    id: Optional[str] = None
    donation_threshold_months: int
    user_id: str

    class Config:
        from_attributes = True


class PreferencesUpdate(BaseModel):
    """Raw payload; the threshold is checked by the endpoint so bad values map to 400."""
    donation_threshold_months: Any = None
