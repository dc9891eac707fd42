"""FastAPI endpoints for garments saved for donation."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

# Internal imports
from app.api.dependencies import (
    get_current_user,
    get_db,
    get_donation_repository,
    get_garment_repository
)
from app.core.exceptions import AppException, ValidationError
from app.core.logging import get_logger, monitor_performance
from app.database.repositories.garments import GarmentRepository
from app.database.repositories.preferences import SavedDonationRepository
from app.models.domain.common import MessageResponse
from app.models.domain.donation import SavedDonationRequest, SavedDonationResponse
from app.models.domain.garment import GarmentResponse

# Initialize router and logger
router = APIRouter(prefix="/saved-donations", tags=["donations"])
logger = get_logger(__name__)


def require_garment_id(garment_id: Optional[str]) -> str:
    if not garment_id:
        raise ValidationError("garment_id is required", field="garment_id")
    return garment_id


@router.get("", response_model=List[SavedDonationResponse])
@monitor_performance("list_saved_donations")
async def list_saved_donations(
    user_id: str = Depends(get_current_user),
    donations: SavedDonationRepository = Depends(get_donation_repository)
):
    """Garments set aside and not yet donated, newest first."""
    items = await donations.list_pending(user_id)
    return [SavedDonationResponse.model_validate(d) for d in items]


@router.post("", response_model=SavedDonationResponse)
@monitor_performance("save_donation")
async def save_donation(
    request_data: SavedDonationRequest,
    user_id: str = Depends(get_current_user),
    donations: SavedDonationRepository = Depends(get_donation_repository),
    garments: GarmentRepository = Depends(get_garment_repository),
    db: AsyncSession = Depends(get_db)
):
    garment_id = require_garment_id(request_data.garment_id)
    try:
        garment = await garments.require_for_user(garment_id, user_id)
        donation = await donations.save(user_id, garment_id)
        result = SavedDonationResponse(
            id=donation.id,
            garment_id=donation.garment_id,
            user_id=donation.user_id,
            saved_at=donation.saved_at,
            donated_at=donation.donated_at,
            garment=GarmentResponse.model_validate(garment)
        )
        await db.commit()

        logger.info("Garment saved for donation", garment_id=garment_id, user_id=user_id)
        return result

    except AppException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error("Failed to save donation", error=e)
        await db.rollback()
        raise AppException("Failed to save donation")


@router.delete("", response_model=MessageResponse)
@monitor_performance("remove_saved_donation")
async def remove_saved_donation(
    garment_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user),
    donations: SavedDonationRepository = Depends(get_donation_repository),
    db: AsyncSession = Depends(get_db)
):
    garment_id = require_garment_id(garment_id)
    try:
        await donations.remove(user_id, garment_id)
        await db.commit()
        return MessageResponse()

    except Exception as e:
        logger.error("Failed to remove saved donation", error=e)
        await db.rollback()
        raise AppException("Failed to remove saved donation")


@router.patch("", response_model=SavedDonationResponse)
@monitor_performance("mark_donated")
async def mark_donated(
    request_data: SavedDonationRequest,
    user_id: str = Depends(get_current_user),
    donations: SavedDonationRepository = Depends(get_donation_repository),
    db: AsyncSession = Depends(get_db)
):
    """Record that a saved garment has been donated."""
    garment_id = require_garment_id(request_data.garment_id)
    try:
        donation = await donations.mark_donated(user_id, garment_id)
        result = SavedDonationResponse.model_validate(donation)
        await db.commit()
        return result

    except AppException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error("Failed to mark as donated", error=e)
        await db.rollback()
        raise AppException("Failed to mark as donated")
