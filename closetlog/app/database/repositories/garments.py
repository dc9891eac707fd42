# app/database/repositories/garments.py
"""Repository for garment-related database operations.

Every query is scoped by owner: a garment id that exists but belongs to
another user behaves exactly like a missing one.
"""

from typing import Iterable, List, Optional, Set
from sqlalchemy import case, delete, select, update

from app.core.exceptions import NotFoundError, ValidationError
from app.models.database.garment import Garment
from .base import BaseRepository


class GarmentRepository(BaseRepository[Garment]):
    """Repository for managing closet garments."""

    model = Garment

    async def find_by_user(
        self,
        user_id: str,
        *,
        category: Optional[str] = None,
        season: Optional[str] = None,
        sort_by: str = "created_at",
        order: str = "desc"
    ) -> List[Garment]:
        """List a user's garments with optional filters and ordering."""
        query = select(Garment).where(Garment.user_id == user_id)
        query = self.filter(query, {"category": category, "season": season})

        column = getattr(Garment, sort_by)
        query = query.order_by(column.asc() if order == "asc" else column.desc(), Garment.id)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_closet(self, user_id: str) -> List[Garment]:
        """A user's garments, most worn first; the matcher's candidate order."""
        return await self.find_by_user(user_id, sort_by="use_count", order="desc")

    async def insert(self, user_id: str, **attrs) -> Garment:
        """Create a garment with a zero use count."""
        attrs.setdefault("quantity", 1)
        attrs["use_count"] = 0
        return await self.create(user_id=user_id, **attrs)

    async def get_for_user(self, garment_id: str, user_id: str) -> Optional[Garment]:
        query = select(Garment).where(
            Garment.id == garment_id,
            Garment.user_id == user_id
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def require_for_user(self, garment_id: str, user_id: str) -> Garment:
        garment = await self.get_for_user(garment_id, user_id)
        if garment is None:
            raise NotFoundError("Garment not found")
        return garment

    async def get_use_count(self, garment_id: str, user_id: str) -> int:
        """Read one garment's use count, NotFoundError if not owned."""
        query = select(Garment.use_count).where(
            Garment.id == garment_id,
            Garment.user_id == user_id
        )
        result = await self.session.execute(query)
        value = result.scalar_one_or_none()
        if value is None:
            raise NotFoundError("Garment not found")
        return value

    async def set_use_count(self, garment_id: str, user_id: str, new_value: int) -> None:
        """Overwrite one garment's use count; never touches another user's row."""
        if new_value < 0:
            raise ValidationError("use_count cannot be negative", field="use_count")
        query = (
            update(Garment)
            .where(Garment.id == garment_id, Garment.user_id == user_id)
            .values(use_count=new_value)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(query)
        if result.rowcount == 0:
            raise NotFoundError("Garment not found")

    async def adjust_use_count(self, garment_id: str, user_id: str, delta: int) -> bool:
        """Apply ``delta`` in a single UPDATE, floored at zero.

        Returns False when no owned garment matched. The read-modify-write
        happens inside the store, so concurrent outfit operations touching
        the same garment cannot lose an adjustment.
        """
        adjusted = Garment.use_count + delta
        query = (
            update(Garment)
            .where(Garment.id == garment_id, Garment.user_id == user_id)
            .values(use_count=case((adjusted < 0, 0), else_=adjusted))
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(query)
        return result.rowcount > 0

    async def update_for_user(self, garment_id: str, user_id: str, **fields) -> Garment:
        """Update editable attributes of an owned garment."""
        fields.pop("user_id", None)
        fields.pop("id", None)
        use_count = fields.pop("use_count", None)

        if fields:
            query = (
                update(Garment)
                .where(Garment.id == garment_id, Garment.user_id == user_id)
                .values(**fields)
                .execution_options(synchronize_session="fetch")
            )
            result = await self.session.execute(query)
            if result.rowcount == 0:
                raise NotFoundError("Garment not found")
        if use_count is not None:
            await self.set_use_count(garment_id, user_id, use_count)

        garment = await self.require_for_user(garment_id, user_id)
        await self.session.refresh(garment)
        return garment

    async def delete_for_user(self, garment_id: str, user_id: str) -> bool:
        query = delete(Garment).where(
            Garment.id == garment_id,
            Garment.user_id == user_id
        )
        result = await self.session.execute(query)
        return result.rowcount > 0

    async def owned_ids(self, user_id: str, garment_ids: Iterable[str]) -> Set[str]:
        """Subset of ``garment_ids`` that belong to ``user_id``."""
        ids = list(set(garment_ids))
        if not ids:
            return set()
        query = select(Garment.id).where(
            Garment.user_id == user_id,
            Garment.id.in_(ids)
        )
        result = await self.session.execute(query)
        return set(result.scalars().all())

    async def count_for_user(self, user_id: str) -> int:
        return await self.count({"user_id": user_id})
