"""Dependencies for FastAPI application.

This module defines dependencies used across API endpoints including:
- Database session management
- Service instances built at startup
- Repositories and domain services bound to the request session
- Authentication checks
"""

from typing import AsyncGenerator
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

# Internal imports
from app.core.config import Settings, get_settings
from app.core.security import get_current_user_id
from app.database.session import get_session
from app.database.repositories.garments import GarmentRepository
from app.database.repositories.outfits import OutfitRepository
from app.database.repositories.preferences import PreferencesRepository, SavedDonationRepository
from app.services.ai_processing import VisionService
from app.services.analytics import AnalyticsService
from app.services.image_processing import ImageStorageService
from app.services.matcher import GarmentMatcher
from app.services.outfit_lifecycle import OutfitLifecycleManager
from app.services.reconciler import OutfitReconciler

# Database Dependencies
async def get_db(
    session: AsyncSession = Depends(get_session)
) -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; endpoints commit, errors roll back."""
    try:
        yield session
    except Exception:
        await session.rollback()
        raise

# Service Dependencies
def get_vision_service(request: Request) -> VisionService:
    return request.app.state.vision_service

def get_image_service(request: Request) -> ImageStorageService:
    return request.app.state.image_service

# Repository Dependencies
def get_garment_repository(db: AsyncSession = Depends(get_db)) -> GarmentRepository:
    return GarmentRepository(db)

def get_outfit_repository(db: AsyncSession = Depends(get_db)) -> OutfitRepository:
    return OutfitRepository(db)

def get_preferences_repository(db: AsyncSession = Depends(get_db)) -> PreferencesRepository:
    return PreferencesRepository(db)

def get_donation_repository(db: AsyncSession = Depends(get_db)) -> SavedDonationRepository:
    return SavedDonationRepository(db)

# Domain services
def get_lifecycle_manager(
    garments: GarmentRepository = Depends(get_garment_repository),
    outfits: OutfitRepository = Depends(get_outfit_repository)
) -> OutfitLifecycleManager:
    return OutfitLifecycleManager(garments, outfits)

def get_reconciler(
    garments: GarmentRepository = Depends(get_garment_repository),
    images: ImageStorageService = Depends(get_image_service),
    settings: Settings = Depends(get_settings)
) -> OutfitReconciler:
    return OutfitReconciler(
        garments=garments,
        images=images,
        matcher=GarmentMatcher(threshold=settings.MATCH_THRESHOLD)
    )

def get_analytics_service(
    garments: GarmentRepository = Depends(get_garment_repository),
    outfits: OutfitRepository = Depends(get_outfit_repository),
    settings: Settings = Depends(get_settings)
) -> AnalyticsService:
    return AnalyticsService(garments, outfits, top_n=settings.ANALYTICS_TOP_N)

# User Dependencies
async def get_current_user(user_id: str = Depends(get_current_user_id)) -> str:
    """Owner identifier of the authenticated caller."""
    return user_id
