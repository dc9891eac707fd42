"""FastAPI endpoints for outfit management.

This module implements endpoints for managing outfit-related operations including:
- Listing outfits by day or month for the calendar
- Creating outfits from known garments
- Saving an analyzed outfit photo (reconciliation of detections)
- Deleting outfits with use-count bookkeeping
"""

import calendar
from datetime import date, datetime
from typing import List, Optional, Sequence
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

# Internal imports
from app.api.dependencies import (
    get_current_user,
    get_db,
    get_garment_repository,
    get_image_service,
    get_lifecycle_manager,
    get_outfit_repository,
    get_reconciler
)
from app.core.exceptions import AppException, NotFoundError, PartialPersistenceError, ValidationError
from app.core.logging import get_logger, monitor_performance
from app.database.repositories.garments import GarmentRepository
from app.database.repositories.outfits import OutfitRepository
from app.services.image_processing import ImageStorageService
from app.services.outfit_lifecycle import OutfitCreation, OutfitLifecycleManager, dedupe
from app.services.reconciler import MaterializeResult, OutfitReconciler
from app.utils.image_helpers import decode_base64_image
from app.models.domain.common import FailureNote, MessageResponse
from app.models.domain.garment import GarmentResponse
from app.models.domain.outfit import (
    OutfitCreate,
    OutfitCreatedResponse,
    OutfitResponse,
    OutfitWithGarments,
    ReconcileRequest
)

# Initialize router and logger
router = APIRouter(prefix="/outfits", tags=["outfits"])
logger = get_logger(__name__)


def parse_day(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("date must be YYYY-MM-DD", field="date")


def month_bounds(value: str) -> tuple:
    """First and last calendar day of a ``YYYY-MM`` month."""
    try:
        first = datetime.strptime(value, "%Y-%m").date()
    except ValueError:
        raise ValidationError("month must be YYYY-MM", field="month")
    last_day = calendar.monthrange(first.year, first.month)[1]
    return first, first.replace(day=last_day)


def created_response(
    creation: OutfitCreation,
    requested_count: int,
    failures: Sequence[PartialPersistenceError]
) -> OutfitCreatedResponse:
    outfit = OutfitResponse.model_validate(creation.outfit)
    return OutfitCreatedResponse(
        **outfit.model_dump(),
        garment_ids=creation.linked_ids,
        requested_count=requested_count,
        linked_count=len(creation.linked_ids),
        failures=[FailureNote.from_error(f) for f in failures]
    )


async def discard_uploads(
    images: ImageStorageService,
    photo_key: Optional[str],
    materialized: Optional[MaterializeResult]
) -> None:
    """Remove the blobs a failed reconcile request stored."""
    await images.delete(photo_key)
    if materialized is not None:
        for key in materialized.uploaded_keys:
            await images.delete(key)


@router.get("", response_model=List[OutfitResponse])
@monitor_performance("list_outfits")
async def list_outfits(
    day: Optional[str] = Query(None, alias="date", description="YYYY-MM-DD"),
    month: Optional[str] = Query(None, description="YYYY-MM"),
    user_id: str = Depends(get_current_user),
    outfits: OutfitRepository = Depends(get_outfit_repository)
):
    """List outfits, newest worn date first, optionally for one day or month."""
    if day:
        items = await outfits.list_for_user(user_id, worn_on=parse_day(day))
    elif month:
        start, end = month_bounds(month)
        items = await outfits.list_for_user(user_id, start=start, end=end)
    else:
        items = await outfits.list_for_user(user_id)
    return [OutfitResponse.model_validate(o) for o in items]


@router.post("", response_model=OutfitCreatedResponse, status_code=status.HTTP_201_CREATED)
@monitor_performance("create_outfit")
async def create_outfit(
    outfit_data: OutfitCreate,
    user_id: str = Depends(get_current_user),
    garments: GarmentRepository = Depends(get_garment_repository),
    lifecycle: OutfitLifecycleManager = Depends(get_lifecycle_manager),
    db: AsyncSession = Depends(get_db)
):
    """Create an outfit from garments already in the caller's closet."""
    try:
        requested = dedupe(outfit_data.garment_ids)
        owned = await garments.owned_ids(user_id, requested)
        failures = [
            PartialPersistenceError("resolve_existing", garment_id=garment_id, reason="garment not found")
            for garment_id in requested if garment_id not in owned
        ]
        for failure in failures:
            logger.warning("Outfit garment not in closet", **failure.to_dict())

        creation = await lifecycle.create_outfit(
            user_id,
            outfit_data.photo_url,
            outfit_data.worn_date,
            [garment_id for garment_id in requested if garment_id in owned]
        )
        response = created_response(creation, len(requested), failures + creation.failures)
        await db.commit()
        return response

    except AppException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error("Failed to create outfit", error=e)
        await db.rollback()
        raise AppException("Failed to create outfit")


@router.post("/reconcile", response_model=OutfitCreatedResponse, status_code=status.HTTP_201_CREATED)
@monitor_performance("reconcile_outfit")
async def reconcile_outfit(
    request_data: ReconcileRequest,
    user_id: str = Depends(get_current_user),
    garments: GarmentRepository = Depends(get_garment_repository),
    images: ImageStorageService = Depends(get_image_service),
    reconciler: OutfitReconciler = Depends(get_reconciler),
    lifecycle: OutfitLifecycleManager = Depends(get_lifecycle_manager),
    db: AsyncSession = Depends(get_db)
):
    """Save an analyzed outfit photo.

    Each selection reuses a closet garment, creates a new one from the
    detection, or is dropped. Manual picks are added, duplicates collapse,
    and the outfit is created with the resulting garment list.
    """
    if not request_data.photo_base64:
        raise ValidationError("Outfit photo is required", field="photo_base64")
    if request_data.worn_date is None:
        raise ValidationError("Worn date is required", field="worn_date")

    photo_key = None
    materialized = None
    try:
        photo = decode_base64_image(request_data.photo_base64)
        photo_key = await images.upload(photo, "outfits")

        closet = None
        resolutions = []
        for selection in request_data.selections:
            match = None
            if selection.choice == "existing" and not selection.garment_id:
                if closet is None:
                    closet = await garments.find_closet(user_id)
                match = reconciler.matcher.match(selection.detection, closet)

            # new garments default to the whole outfit photo
            photo_source = photo_key
            if selection.choice == "new" and selection.crop_base64:
                photo_source = decode_base64_image(selection.crop_base64)

            resolution = reconciler.resolve_selection(
                selection.index,
                selection.choice,
                selection.detection,
                match=match,
                garment_id=selection.garment_id,
                overrides=selection.overrides.model_dump(mode="json") if selection.overrides else None,
                photo_source=photo_source
            )
            if resolution is not None:
                resolutions.append(resolution)

        manual = dedupe(request_data.manual_garment_ids)
        manual_owned = await garments.owned_ids(user_id, manual)
        materialized = await reconciler.materialize(
            user_id,
            resolutions,
            [garment_id for garment_id in manual if garment_id in manual_owned]
        )
        reported = {f.garment_id for f in materialized.failures}
        manual_failures = [
            PartialPersistenceError("resolve_existing", garment_id=garment_id, reason="garment not found")
            for garment_id in manual
            if garment_id not in manual_owned and garment_id not in reported
        ]
        for failure in manual_failures:
            logger.warning("Manually picked garment not in closet", **failure.to_dict())

        creation = await lifecycle.create_outfit(
            user_id,
            photo_key,
            request_data.worn_date,
            materialized.garment_ids
        )

        failures = materialized.failures + manual_failures + creation.failures
        response = created_response(
            creation,
            materialized.requested_count + len(manual_failures),
            failures
        )
        await db.commit()

        logger.info(
            "Outfit reconciled",
            outfit_id=creation.outfit.id,
            requested=response.requested_count,
            linked=response.linked_count,
            created=len(materialized.created_ids)
        )
        return response

    except AppException:
        await db.rollback()
        await discard_uploads(images, photo_key, materialized)
        raise
    except Exception as e:
        logger.error("Failed to reconcile outfit", error=e)
        await db.rollback()
        await discard_uploads(images, photo_key, materialized)
        raise AppException("Failed to save outfit")


@router.get("/{outfit_id}", response_model=OutfitWithGarments)
@monitor_performance("get_outfit")
async def get_outfit(
    outfit_id: str = Path(..., description="The ID of the outfit to retrieve"),
    user_id: str = Depends(get_current_user),
    outfits: OutfitRepository = Depends(get_outfit_repository)
):
    """Retrieve an outfit with the caller's garments linked to it."""
    outfit = await outfits.get_for_user(outfit_id, user_id)
    if outfit is None:
        raise NotFoundError("Outfit not found")

    linked = await outfits.garments_for_outfit(outfit_id, user_id)
    return OutfitWithGarments(
        **OutfitResponse.model_validate(outfit).model_dump(),
        garments=[GarmentResponse.model_validate(g) for g in linked]
    )


@router.delete("/{outfit_id}", response_model=MessageResponse)
@monitor_performance("delete_outfit")
async def delete_outfit(
    outfit_id: str = Path(..., description="The ID of the outfit to delete"),
    user_id: str = Depends(get_current_user),
    lifecycle: OutfitLifecycleManager = Depends(get_lifecycle_manager),
    db: AsyncSession = Depends(get_db)
):
    """Delete an outfit and give back one wear to each linked garment."""
    try:
        await lifecycle.delete_outfit(user_id, outfit_id)
        await db.commit()
        return MessageResponse()

    except AppException:
        await db.rollback()
        raise
    except Exception as e:
        logger.error("Failed to delete outfit", error=e, outfit_id=outfit_id)
        await db.rollback()
        raise AppException("Failed to delete outfit")
