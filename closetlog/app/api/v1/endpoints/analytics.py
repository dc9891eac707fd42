"""FastAPI endpoint for wardrobe analytics."""

from typing import Optional
from fastapi import APIRouter, Depends, Query

# Internal imports
from app.api.dependencies import get_analytics_service, get_current_user, get_preferences_repository
from app.core.config import Settings, get_settings
from app.core.logging import get_logger, monitor_performance
from app.database.repositories.preferences import PreferencesRepository
from app.services.analytics import AnalyticsService
from app.models.domain.analytics import WardrobeAnalytics

# Initialize router and logger
router = APIRouter(prefix="/analytics", tags=["analytics"])
logger = get_logger(__name__)

@router.get("", response_model=WardrobeAnalytics)
@monitor_performance("get_analytics")
async def get_analytics(
    threshold_months: Optional[int] = Query(None, ge=1),
    user_id: str = Depends(get_current_user),
    analytics: AnalyticsService = Depends(get_analytics_service),
    preferences: PreferencesRepository = Depends(get_preferences_repository),
    settings: Settings = Depends(get_settings)
):
    """Stats, most/least worn garments and donation suggestions."""
    if threshold_months is None:
        stored = await preferences.get_for_user(user_id)
        threshold_months = (
            stored.donation_threshold_months if stored is not None
            else settings.DEFAULT_DONATION_THRESHOLD_MONTHS
        )
    return await analytics.summarize(user_id, threshold_months)
