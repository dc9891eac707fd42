"""FastAPI endpoints for user preferences."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

# Internal imports
from app.api.dependencies import get_current_user, get_db, get_preferences_repository
from app.core.config import Settings, get_settings
from app.core.exceptions import AppException, ValidationError
from app.core.logging import get_logger, monitor_performance
from app.database.repositories.preferences import PreferencesRepository
from app.models.domain.preferences import PreferencesResponse, PreferencesUpdate

# Initialize router and logger
router = APIRouter(prefix="/preferences", tags=["preferences"])
logger = get_logger(__name__)


def parse_threshold(value) -> int:
    """Accept a whole number of months, at least one."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(
            "donation_threshold_months must be a positive number",
            field="donation_threshold_months"
        )
    if value < 1 or int(value) != value:
        raise ValidationError(
            "donation_threshold_months must be a positive number",
            field="donation_threshold_months"
        )
    return int(value)


@router.get("", response_model=PreferencesResponse)
@monitor_performance("get_preferences")
async def get_preferences(
    user_id: str = Depends(get_current_user),
    preferences: PreferencesRepository = Depends(get_preferences_repository),
    settings: Settings = Depends(get_settings)
):
    """Return the caller's preferences, or the defaults when none are stored."""
    stored = await preferences.get_for_user(user_id)
    if stored is None:
        return PreferencesResponse(
            id="default",
            donation_threshold_months=settings.DEFAULT_DONATION_THRESHOLD_MONTHS,
            user_id=user_id
        )
    return PreferencesResponse.model_validate(stored)


@router.patch("", response_model=PreferencesResponse)
@monitor_performance("update_preferences")
async def update_preferences(
    update_data: PreferencesUpdate,
    response: Response,
    user_id: str = Depends(get_current_user),
    preferences: PreferencesRepository = Depends(get_preferences_repository),
    db: AsyncSession = Depends(get_db)
):
    """Update the donation threshold, creating the row on first use."""
    threshold = parse_threshold(update_data.donation_threshold_months)
    try:
        stored, created = await preferences.upsert(user_id, threshold)
        result = PreferencesResponse.model_validate(stored)
        await db.commit()

        if created:
            response.status_code = status.HTTP_201_CREATED
        logger.info("Preferences saved", user_id=user_id, created=created)
        return result

    except AppException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error("Failed to update preferences", error=e)
        await db.rollback()
        raise AppException("Failed to update preferences")
