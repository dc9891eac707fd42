"""Router configuration for the Closetlog application.

This module organizes and configures all API routes, combining endpoints from
different modules into a unified API structure.
"""

from fastapi import APIRouter

# Import endpoint routers
from app.api.v1.endpoints import (
    analysis,
    analytics,
    donations,
    garments,
    outfits,
    preferences
)

# Create main router
api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(garments.router)
api_router.include_router(outfits.router)
api_router.include_router(analysis.router)
api_router.include_router(analytics.router)
api_router.include_router(preferences.router)
api_router.include_router(donations.router)
