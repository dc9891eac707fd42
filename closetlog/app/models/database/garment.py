# app/models/database/garment.py
"""Garment model: a physical clothing item owned by a user."""

from enum import Enum
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text
from .base import Base, OwnedMixin, TimestampMixin

if TYPE_CHECKING:
    from .outfit import OutfitGarment


class Category(str, Enum):
    TOPS = "tops"
    BOTTOMS = "bottoms"
    DRESSES = "dresses"
    OUTERWEAR = "outerwear"
    SHOES = "shoes"
    ACCESSORIES = "accessories"
    PIJAMA = "pijama"


class Season(str, Enum):
    MID_SEASON = "mid-season"
    SUMMER = "summer"
    WINTER = "winter"
    ALL_SEASON = "all-season"


class GarmentOrigin(str, Enum):
    """How the garment entered the closet."""
    MANUAL = "manual"
    DETECTED = "detected"


class Garment(OwnedMixin, TimestampMixin, Base):
    """Closet item with wear accounting."""
    __tablename__ = 'garments'

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    photo_url: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    use_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    season: Mapped[str] = mapped_column(String(20), nullable=False)
    origin: Mapped[str] = mapped_column(
        String(20),
        default=GarmentOrigin.MANUAL.value,
        nullable=False
    )
    # set once, when the first outfit link is written
    first_linked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    outfit_links: Mapped[List["OutfitGarment"]] = relationship(
        back_populates="garment",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint('use_count >= 0', name='ck_garment_use_count_non_negative'),
        CheckConstraint('quantity >= 1', name='ck_garment_quantity_positive'),
        Index('idx_garment_user_use_count', 'user_id', 'use_count'),
    )
