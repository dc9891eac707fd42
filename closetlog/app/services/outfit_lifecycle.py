"""Outfit creation and deletion with use-count bookkeeping.

An outfit's link set and its garments' use counts move together: creating an
outfit links each garment and adds one wear, deleting it takes the wear back
(never below zero) and removes the links. Bookkeeping is best-effort per
garment. Each garment's link insert and count adjustment runs in its own
SAVEPOINT inside the caller's transaction, so a failing garment is rolled
back, logged and reported while the rest of the outfit goes through.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from app.core.exceptions import NotFoundError, PartialPersistenceError, ValidationError
from app.core.logging import get_logger
from app.database.repositories.garments import GarmentRepository
from app.database.repositories.outfits import OutfitRepository
from app.database.session import with_tracing
from app.models.database.outfit import Outfit

logger = get_logger(__name__)


@dataclass
class OutfitCreation:
    """What ``create_outfit`` managed to record."""
    outfit: Outfit
    requested_ids: List[str] = field(default_factory=list)
    linked_ids: List[str] = field(default_factory=list)
    counted_ids: List[str] = field(default_factory=list)
    failures: List[PartialPersistenceError] = field(default_factory=list)

    @property
    def mismatch(self) -> bool:
        return len(self.linked_ids) != len(self.requested_ids)


@dataclass
class OutfitDeletion:
    outfit_id: str
    decremented_ids: List[str] = field(default_factory=list)
    failures: List[PartialPersistenceError] = field(default_factory=list)


def dedupe(ids: Sequence[str]) -> List[str]:
    """Drop repeated ids, keeping first-seen order."""
    seen = set()
    unique = []
    for garment_id in ids:
        if garment_id and garment_id not in seen:
            seen.add(garment_id)
            unique.append(garment_id)
    return unique


class OutfitLifecycleManager:
    """Keeps outfit links and garment use counts consistent."""

    def __init__(self, garments: GarmentRepository, outfits: OutfitRepository):
        self.garments = garments
        self.outfits = outfits

    def _record(self, failures: List[PartialPersistenceError], failure: PartialPersistenceError):
        logger.warning("Outfit bookkeeping step failed", **failure.to_dict())
        failures.append(failure)

    @with_tracing
    async def create_outfit(
        self,
        user_id: str,
        photo_ref: Optional[str],
        worn_date: Optional[date],
        garment_ids: Sequence[str]
    ) -> OutfitCreation:
        """Insert the outfit, then link and count each garment.

        A garment whose link insert fails is not counted. A garment that is
        linked but not owned by ``user_id`` keeps its link and is not counted.
        """
        if not photo_ref:
            raise ValidationError("Outfit photo is required", field="photo_url")
        if worn_date is None:
            raise ValidationError("Worn date is required", field="worn_date")

        outfit = await self.outfits.insert(user_id, photo_ref, worn_date)
        creation = OutfitCreation(outfit=outfit, requested_ids=dedupe(garment_ids))

        for garment_id in creation.requested_ids:
            try:
                async with self.outfits.savepoint():
                    await self.outfits.insert_link(outfit.id, garment_id, user_id)
            except Exception as e:
                self._record(creation.failures, PartialPersistenceError(
                    "link", garment_id=garment_id, outfit_id=outfit.id, reason=str(e)
                ))
                continue
            creation.linked_ids.append(garment_id)

            try:
                async with self.garments.savepoint():
                    counted = await self.garments.adjust_use_count(garment_id, user_id, 1)
            except Exception as e:
                self._record(creation.failures, PartialPersistenceError(
                    "increment", garment_id=garment_id, outfit_id=outfit.id, reason=str(e)
                ))
                continue
            if counted:
                creation.counted_ids.append(garment_id)
            else:
                self._record(creation.failures, PartialPersistenceError(
                    "increment", garment_id=garment_id, outfit_id=outfit.id,
                    reason="garment not found for owner"
                ))

        logger.info(
            "Outfit created",
            outfit_id=outfit.id,
            requested=len(creation.requested_ids),
            linked=len(creation.linked_ids),
            counted=len(creation.counted_ids)
        )
        return creation

    @with_tracing
    async def delete_outfit(self, user_id: str, outfit_id: str) -> OutfitDeletion:
        """Take back one wear per owned linked garment, then delete the outfit.

        The outfit is removed even when some decrements fail.
        """
        outfit = await self.outfits.get_for_user(outfit_id, user_id)
        if outfit is None:
            raise NotFoundError("Outfit not found")

        deletion = OutfitDeletion(outfit_id=outfit_id)
        linked = dedupe(await self.outfits.find_link_garment_ids(outfit_id))
        owned = await self.garments.owned_ids(user_id, linked)

        for garment_id in linked:
            if garment_id not in owned:
                logger.debug("Skipping garment of another owner", outfit_id=outfit_id, garment_id=garment_id)
                continue
            try:
                async with self.garments.savepoint():
                    await self.garments.adjust_use_count(garment_id, user_id, -1)
            except Exception as e:
                self._record(deletion.failures, PartialPersistenceError(
                    "decrement", garment_id=garment_id, outfit_id=outfit_id, reason=str(e)
                ))
                continue
            deletion.decremented_ids.append(garment_id)

        await self.outfits.delete_for_user(outfit_id, user_id)
        logger.info(
            "Outfit deleted",
            outfit_id=outfit_id,
            decremented=len(deletion.decremented_ids),
            failures=len(deletion.failures)
        )
        return deletion
