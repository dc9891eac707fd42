# app/models/database/__init__.py
"""Database models initialization."""

from .base import Base
from .garment import Garment, Category, Season, GarmentOrigin
from .outfit import Outfit, OutfitGarment
from .preferences import Preferences, SavedDonation

# This makes imports cleaner elsewhere in the application
__all__ = [
    'Base',
    'Garment',
    'Category',
    'Season',
    'GarmentOrigin',
    'Outfit',
    'OutfitGarment',
    'Preferences',
    'SavedDonation'
]
