# app/models/database/preferences.py
"""Per-user preferences and garments saved for donation."""

from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from .base import Base, OwnedMixin
from .garment import Garment


class Preferences(OwnedMixin, Base):
    """User preference settings."""
    __tablename__ = 'preferences'

    donation_threshold_months: Mapped[int] = mapped_column(
        Integer,
        default=6,
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint('user_id', name='uq_preferences_user'),
    )


class SavedDonation(OwnedMixin, Base):
    """A garment the user has set aside to donate."""
    __tablename__ = 'saved_donations'

    garment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey('garments.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    saved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    donated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    garment: Mapped["Garment"] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint('user_id', 'garment_id', name='uq_saved_donation_user_garment'),
    )
