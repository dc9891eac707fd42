"""FastAPI endpoints for closet garments.

Manual garment CRUD. Use counts are normally maintained by outfit
create/delete; PATCH may overwrite one directly through ``set_use_count``.
"""

from typing import List
from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

# Internal imports
from app.api.dependencies import get_current_user, get_db, get_garment_repository
from app.core.exceptions import AppException, NotFoundError
from app.core.logging import get_logger, monitor_performance
from app.database.repositories.garments import GarmentRepository
from app.models.database.garment import GarmentOrigin
from app.models.domain.common import MessageResponse
from app.models.domain.garment import (
    GarmentCreate,
    GarmentQueryParams,
    GarmentResponse,
    GarmentUpdate
)

# Initialize router and logger
router = APIRouter(prefix="/garments", tags=["garments"])
logger = get_logger(__name__)

@router.get("", response_model=List[GarmentResponse])
@monitor_performance("list_garments")
async def list_garments(
    params: GarmentQueryParams = Depends(),
    user_id: str = Depends(get_current_user),
    garments: GarmentRepository = Depends(get_garment_repository)
):
    """List the caller's closet with optional category/season filters."""
    items = await garments.find_by_user(
        user_id,
        category=params.category.value if params.category else None,
        season=params.season.value if params.season else None,
        sort_by=params.sort_by,
        order=params.order.value
    )
    return [GarmentResponse.model_validate(g) for g in items]

@router.post("", response_model=GarmentResponse, status_code=status.HTTP_201_CREATED)
@monitor_performance("create_garment")
async def create_garment(
    garment_data: GarmentCreate,
    user_id: str = Depends(get_current_user),
    garments: GarmentRepository = Depends(get_garment_repository),
    db: AsyncSession = Depends(get_db)
):
    """Add a garment from the manual form."""
    try:
        garment = await garments.insert(
            user_id,
            name=garment_data.name,
            photo_url=garment_data.photo_url,
            quantity=garment_data.quantity,
            category=garment_data.category.value,
            season=garment_data.season.value,
            origin=GarmentOrigin.MANUAL.value
        )
        response = GarmentResponse.model_validate(garment)
        await db.commit()

        logger.info("Garment created", garment_id=garment.id, user_id=user_id)
        return response

    except AppException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error("Failed to create garment", error=e)
        await db.rollback()
        raise AppException("Failed to create garment")

@router.get("/{garment_id}", response_model=GarmentResponse)
@monitor_performance("get_garment")
async def get_garment(
    garment_id: str = Path(..., description="The ID of the garment to retrieve"),
    user_id: str = Depends(get_current_user),
    garments: GarmentRepository = Depends(get_garment_repository)
):
    garment = await garments.require_for_user(garment_id, user_id)
    return GarmentResponse.model_validate(garment)

@router.patch("/{garment_id}", response_model=GarmentResponse)
@monitor_performance("update_garment")
async def update_garment(
    garment_data: GarmentUpdate,
    garment_id: str = Path(..., description="The ID of the garment to update"),
    user_id: str = Depends(get_current_user),
    garments: GarmentRepository = Depends(get_garment_repository),
    db: AsyncSession = Depends(get_db)
):
    """Update editable fields; ownership is never transferable."""
    try:
        fields = garment_data.model_dump(exclude_unset=True, exclude_none=True, mode="json")
        garment = await garments.update_for_user(garment_id, user_id, **fields)
        response = GarmentResponse.model_validate(garment)
        await db.commit()
        return response

    except AppException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error("Failed to update garment", error=e, garment_id=garment_id)
        await db.rollback()
        raise AppException("Failed to update garment")

@router.delete("/{garment_id}", response_model=MessageResponse)
@monitor_performance("delete_garment")
async def delete_garment(
    garment_id: str = Path(..., description="The ID of the garment to delete"),
    user_id: str = Depends(get_current_user),
    garments: GarmentRepository = Depends(get_garment_repository),
    db: AsyncSession = Depends(get_db)
):
    """Delete a garment; its outfit links go with it."""
    try:
        if not await garments.delete_for_user(garment_id, user_id):
            raise NotFoundError("Garment not found")
        await db.commit()

        logger.info("Garment deleted", garment_id=garment_id)
        return MessageResponse()

    except AppException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error("Failed to delete garment", error=e, garment_id=garment_id)
        await db.rollback()
        raise AppException("Failed to delete garment")
