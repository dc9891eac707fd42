"""Outfit reconciliation: from detections and user choices to garment ids.

The flow for one saved outfit photo:

1. ``auto_select`` runs the matcher over every detection. Detections with a
   match start selected; the rest wait for the user.
2. ``resolve_selection`` turns one user toggle into a ``Resolution``: reuse an
   existing garment, create a new one, or nothing.
3. ``materialize`` creates the new garments, keeps only garments the caller
   owns, appends manual picks and returns a de-duplicated id list for the
   outfit. A failed creation is recorded and the rest continue.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Union

from app.core.exceptions import PartialPersistenceError, ValidationError
from app.core.logging import get_logger
from app.database.repositories.garments import GarmentRepository
from app.models.database.garment import GarmentOrigin
from app.models.domain.analysis import DetectedGarmentDescription
from app.services.image_processing import ImageStorageService
from app.services.matcher import (
    GarmentMatcher,
    MatchResult,
    normalize_category,
    normalize_season
)

logger = get_logger(__name__)

# Raw bytes are uploaded; a string is an existing storage key reused as-is
PhotoSource = Union[bytes, str]


class SelectionChoice(str, Enum):
    EXISTING = "existing"
    NEW = "new"
    DESELECT = "deselect"


@dataclass(frozen=True)
class ExistingGarment:
    index: int
    garment_id: str
    kind: str = SelectionChoice.EXISTING.value


@dataclass(frozen=True)
class NewGarment:
    index: int
    name: str
    category: str
    season: str
    photo_source: PhotoSource
    kind: str = SelectionChoice.NEW.value


Resolution = Union[ExistingGarment, NewGarment]


@dataclass
class MaterializeResult:
    """Garment ids ready for linking plus what could not be resolved."""
    garment_ids: List[str] = field(default_factory=list)
    created_ids: List[str] = field(default_factory=list)
    uploaded_keys: List[str] = field(default_factory=list)
    failures: List[PartialPersistenceError] = field(default_factory=list)

    @property
    def requested_count(self) -> int:
        return len(self.garment_ids) + len(self.failures)

    @property
    def achieved_count(self) -> int:
        return len(self.garment_ids)


def selected_indices(results: Dict[int, MatchResult]) -> Set[int]:
    """Default selection: every detection that found a match."""
    return {index for index, result in results.items() if result.matched}


class OutfitReconciler:
    """Resolves detections into closet garments for one outfit."""

    def __init__(
        self,
        garments: Optional[GarmentRepository] = None,
        images: Optional[ImageStorageService] = None,
        matcher: Optional[GarmentMatcher] = None
    ):
        self.garments = garments
        self.images = images
        self.matcher = matcher or GarmentMatcher()

    def auto_select(
        self,
        detections: Sequence[DetectedGarmentDescription],
        closet: Sequence
    ) -> Dict[int, MatchResult]:
        """Match every detection against the closet, keyed by detection index."""
        return {
            index: self.matcher.match(detection, closet)
            for index, detection in enumerate(detections)
        }

    def resolve_selection(
        self,
        index: int,
        choice: Union[SelectionChoice, str],
        detection: DetectedGarmentDescription,
        *,
        match: Optional[MatchResult] = None,
        garment_id: Optional[str] = None,
        overrides: Optional[dict] = None,
        photo_source: Optional[PhotoSource] = None
    ) -> Optional[Resolution]:
        """Turn one user toggle into a resolution; ``deselect`` yields None."""
        choice = SelectionChoice(choice)

        if choice is SelectionChoice.DESELECT:
            return None

        if choice is SelectionChoice.EXISTING:
            chosen = garment_id or (match.garment_id if match is not None else None)
            if not chosen:
                raise ValidationError(
                    f"Selection {index} uses an existing garment but names none",
                    field="garment_id"
                )
            return ExistingGarment(index=index, garment_id=chosen)

        overrides = {k: v for k, v in (overrides or {}).items() if v}
        if photo_source is None:
            raise ValidationError(f"Selection {index} has no photo for the new garment", field="photo")
        name = (overrides.get("name") or detection.name or "").strip()
        if not name:
            raise ValidationError(f"Selection {index} needs a garment name", field="name")
        return NewGarment(
            index=index,
            name=name,
            category=normalize_category(overrides.get("category") or detection.category),
            season=normalize_season(overrides.get("season") or detection.season),
            photo_source=photo_source
        )

    async def _create_garment(self, user_id: str, resolution: NewGarment, uploaded: List[str]) -> str:
        """Insert a detected garment; a crop uploaded here is removed if the insert fails."""
        photo = resolution.photo_source
        fresh_upload = isinstance(photo, bytes)
        if fresh_upload:
            photo = await self.images.upload(photo, "garments")
        try:
            async with self.garments.savepoint():
                garment = await self.garments.insert(
                    user_id,
                    name=resolution.name,
                    photo_url=photo,
                    category=resolution.category,
                    season=resolution.season,
                    origin=GarmentOrigin.DETECTED.value
                )
        except Exception:
            if fresh_upload:
                await self.images.delete(photo)
            raise
        if fresh_upload:
            uploaded.append(photo)
        return garment.id

    async def materialize(
        self,
        user_id: str,
        resolutions: Sequence[Resolution],
        manually_picked: Sequence = ()
    ) -> MaterializeResult:
        """Create new garments and assemble the outfit's garment id list.

        Existing resolutions pointing at garments the caller does not own are
        reported as failures, never linked. Manual picks are appended after
        the resolutions; any id already present is skipped.
        """
        result = MaterializeResult()
        seen: Set[str] = set()
        unresolved: Set[str] = set()

        def add(garment_id: str):
            if garment_id not in seen:
                seen.add(garment_id)
                result.garment_ids.append(garment_id)

        existing_ids = [r.garment_id for r in resolutions if isinstance(r, ExistingGarment)]
        owned = await self.garments.owned_ids(user_id, existing_ids) if existing_ids else set()

        for resolution in resolutions:
            if isinstance(resolution, ExistingGarment):
                if resolution.garment_id in owned:
                    add(resolution.garment_id)
                elif resolution.garment_id not in unresolved:
                    unresolved.add(resolution.garment_id)
                    failure = PartialPersistenceError(
                        "resolve_existing",
                        garment_id=resolution.garment_id,
                        reason="garment not found"
                    )
                    logger.warning("Selected garment not in closet", **failure.to_dict())
                    result.failures.append(failure)
                continue

            try:
                garment_id = await self._create_garment(user_id, resolution, result.uploaded_keys)
            except Exception as e:
                failure = PartialPersistenceError(
                    "create_garment",
                    reason=f"selection {resolution.index}: {e}"
                )
                logger.warning("New garment creation failed", **failure.to_dict())
                result.failures.append(failure)
                continue
            result.created_ids.append(garment_id)
            add(garment_id)

        for garment in manually_picked:
            add(getattr(garment, "id", garment))

        logger.info(
            "Reconciliation materialized",
            requested=result.requested_count,
            achieved=result.achieved_count,
            created=len(result.created_ids)
        )
        return result
