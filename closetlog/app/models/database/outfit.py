# app/models/database/outfit.py
"""Outfit model and the outfit/garment link table."""

from datetime import date
from typing import List
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Date, ForeignKey, Index, String, Text, UniqueConstraint
from .base import Base, OwnedMixin, TimestampMixin
from .garment import Garment


class Outfit(OwnedMixin, TimestampMixin, Base):
    """A combination of garments worn on a calendar date."""
    __tablename__ = 'outfits'

    photo_url: Mapped[str] = mapped_column(Text, nullable=False)
    # Calendar date only; never derived from a UTC timestamp
    worn_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Relationships
    garment_links: Mapped[List["OutfitGarment"]] = relationship(
        back_populates="outfit",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    __table_args__ = (
        Index('idx_outfit_user_worn_date', 'user_id', 'worn_date'),
    )


class OutfitGarment(OwnedMixin, Base):
    """Join row associating one outfit with one garment."""
    __tablename__ = 'outfit_garments'

    outfit_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey('outfits.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    garment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey('garments.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )

    # Relationships
    outfit: Mapped["Outfit"] = relationship(back_populates="garment_links")
    garment: Mapped["Garment"] = relationship(back_populates="outfit_links")

    __table_args__ = (
        UniqueConstraint('outfit_id', 'garment_id', name='uq_outfit_garment'),
    )
