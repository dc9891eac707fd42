# app/database/repositories/outfits.py
"""Repository for outfit and outfit/garment link operations."""

from datetime import date
from typing import Iterable, List, Optional
from sqlalchemy import delete, func, select, update

from app.models.database.garment import Garment
from app.models.database.outfit import Outfit, OutfitGarment
from .base import BaseRepository


class OutfitRepository(BaseRepository[Outfit]):
    """Repository for managing outfit data."""

    model = Outfit

    async def insert(self, user_id: str, photo_url: str, worn_date: date) -> Outfit:
        return await self.create(user_id=user_id, photo_url=photo_url, worn_date=worn_date)

    async def _mark_linked(self, garment_ids: List[str], user_id: str) -> None:
        """Stamp ``first_linked_at`` on owned garments that were never linked before."""
        await self.session.execute(
            update(Garment)
            .where(
                Garment.id.in_(garment_ids),
                Garment.user_id == user_id,
                Garment.first_linked_at.is_(None)
            )
            .values(first_linked_at=func.now())
            .execution_options(synchronize_session="fetch")
        )

    async def insert_link(self, outfit_id: str, garment_id: str, user_id: str) -> OutfitGarment:
        """Insert one link row; the FK rejects garments that no longer exist."""
        link = OutfitGarment(outfit_id=outfit_id, garment_id=garment_id, user_id=user_id)
        self.session.add(link)
        await self.session.flush()
        await self._mark_linked([garment_id], user_id)
        return link

    async def insert_links(self, outfit_id: str, garment_ids: Iterable[str], user_id: str) -> None:
        """Batch form of ``insert_link``: all rows in one flush, duplicate ids collapse.

        The outfit lifecycle links garments one at a time so a single bad id
        cannot fail the others; this is for callers that want all-or-nothing.
        """
        unique = []
        for garment_id in garment_ids:
            if garment_id not in unique:
                unique.append(garment_id)
                self.session.add(OutfitGarment(outfit_id=outfit_id, garment_id=garment_id, user_id=user_id))
        await self.session.flush()
        if unique:
            await self._mark_linked(unique, user_id)

    async def find_link_garment_ids(self, outfit_id: str) -> List[str]:
        query = (
            select(OutfitGarment.garment_id)
            .where(OutfitGarment.outfit_id == outfit_id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_for_user(self, outfit_id: str, user_id: str) -> Optional[Outfit]:
        query = select(Outfit).where(
            Outfit.id == outfit_id,
            Outfit.user_id == user_id
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def garments_for_outfit(self, outfit_id: str, user_id: str) -> List[Garment]:
        """Linked garments that belong to the caller."""
        query = (
            select(Garment)
            .join(OutfitGarment, OutfitGarment.garment_id == Garment.id)
            .where(
                OutfitGarment.outfit_id == outfit_id,
                Garment.user_id == user_id
            )
            .order_by(Garment.name)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_user(
        self,
        user_id: str,
        *,
        worn_on: Optional[date] = None,
        start: Optional[date] = None,
        end: Optional[date] = None
    ) -> List[Outfit]:
        """A user's outfits, newest worn date first, optionally within a date window."""
        query = select(Outfit).where(Outfit.user_id == user_id)
        if worn_on is not None:
            query = query.where(Outfit.worn_date == worn_on)
        else:
            if start is not None:
                query = query.where(Outfit.worn_date >= start)
            if end is not None:
                query = query.where(Outfit.worn_date <= end)
        query = query.order_by(Outfit.worn_date.desc(), Outfit.created_at.desc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete_links(self, outfit_id: str) -> int:
        result = await self.session.execute(
            delete(OutfitGarment).where(OutfitGarment.outfit_id == outfit_id)
        )
        return result.rowcount

    async def delete_for_user(self, outfit_id: str, user_id: str) -> bool:
        """Delete links then the outfit row; correct with or without FK cascade."""
        if await self.get_for_user(outfit_id, user_id) is None:
            return False
        await self.delete_links(outfit_id)
        result = await self.session.execute(
            delete(Outfit).where(Outfit.id == outfit_id, Outfit.user_id == user_id)
        )
        return result.rowcount > 0

    async def count_for_user(self, user_id: str) -> int:
        query = select(func.count(Outfit.id)).where(Outfit.user_id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one()
