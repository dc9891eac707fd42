# app/database/repositories/preferences.py
"""Repositories for preferences and saved donations."""

from datetime import datetime, timezone
from typing import List, Optional, Tuple
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ConflictError, NotFoundError
from app.models.database.preferences import Preferences, SavedDonation
from .base import BaseRepository


class PreferencesRepository(BaseRepository[Preferences]):
    """Repository for the single preferences row per user."""

    model = Preferences

    async def get_for_user(self, user_id: str) -> Optional[Preferences]:
        result = await self.session.execute(
            select(Preferences).where(Preferences.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def upsert(self, user_id: str, donation_threshold_months: int) -> Tuple[Preferences, bool]:
        """Update or create the row; the flag is True when it was created."""
        existing = await self.get_for_user(user_id)
        if existing is not None:
            existing.donation_threshold_months = donation_threshold_months
            await self.session.flush()
            return existing, False
        created = await self.create(
            user_id=user_id,
            donation_threshold_months=donation_threshold_months
        )
        return created, True


class SavedDonationRepository(BaseRepository[SavedDonation]):
    """Repository for garments set aside for donation."""

    model = SavedDonation

    async def list_pending(self, user_id: str) -> List[SavedDonation]:
        query = (
            select(SavedDonation)
            .where(
                SavedDonation.user_id == user_id,
                SavedDonation.donated_at.is_(None)
            )
            .order_by(SavedDonation.saved_at.desc())
        )
        result = await self.session.execute(query)
        return list(result.unique().scalars().all())

    async def save(self, user_id: str, garment_id: str) -> SavedDonation:
        try:
            async with self.savepoint():
                return await self.create(user_id=user_id, garment_id=garment_id)
        except IntegrityError:
            raise ConflictError("Already saved for donation")

    async def remove(self, user_id: str, garment_id: str) -> bool:
        result = await self.session.execute(
            delete(SavedDonation).where(
                SavedDonation.user_id == user_id,
                SavedDonation.garment_id == garment_id
            )
        )
        return result.rowcount > 0

    async def mark_donated(self, user_id: str, garment_id: str) -> SavedDonation:
        result = await self.session.execute(
            update(SavedDonation)
            .where(
                SavedDonation.user_id == user_id,
                SavedDonation.garment_id == garment_id
            )
            .values(donated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise NotFoundError("Saved donation not found")
        result = await self.session.execute(
            select(SavedDonation)
            .where(
                SavedDonation.user_id == user_id,
                SavedDonation.garment_id == garment_id
            )
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one()
