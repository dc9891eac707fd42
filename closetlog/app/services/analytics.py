"""Wardrobe analytics for the home page."""

import calendar
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from app.core.logging import get_logger
from app.database.repositories.garments import GarmentRepository
from app.database.repositories.outfits import OutfitRepository
from app.models.database.garment import Garment
from app.models.domain.analytics import WardrobeAnalytics, WardrobeStats
from app.models.domain.garment import GarmentResponse

logger = get_logger(__name__)

# Garments worn at most this often are donation candidates
DONATION_MAX_USES = 1


def subtract_months(moment: datetime, months: int) -> datetime:
    """Same day-of-month ``months`` earlier, clamped to the target month's length."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive timestamps that were written as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utilization_percent(garments: Sequence[Garment]) -> int:
    """Share of garments worn at least once, as a whole percent rounded half up."""
    if not garments:
        return 0
    worn = sum(1 for g in garments if g.use_count > 0)
    return int(math.floor(worn * 100 / len(garments) + 0.5))


def donation_suggestions(
    garments: Sequence[Garment],
    threshold_months: int,
    now: Optional[datetime] = None
) -> List[Garment]:
    """Rarely worn garments that have been in the closet longer than the threshold."""
    cutoff = subtract_months(now or datetime.now(timezone.utc), threshold_months)
    return [
        g for g in garments
        if g.use_count <= DONATION_MAX_USES and as_utc(g.created_at) < as_utc(cutoff)
    ]


class AnalyticsService:
    """Builds the analytics summary for one user."""

    def __init__(self, garments: GarmentRepository, outfits: OutfitRepository, top_n: int = 5):
        self.garments = garments
        self.outfits = outfits
        self.top_n = top_n

    async def summarize(
        self,
        user_id: str,
        threshold_months: int,
        now: Optional[datetime] = None
    ) -> WardrobeAnalytics:
        closet = await self.garments.find_closet(user_id)
        total_outfits = await self.outfits.count_for_user(user_id)

        most_worn = closet[:self.top_n]
        least_worn = sorted(closet, key=lambda g: g.use_count)[:self.top_n]
        suggestions = donation_suggestions(closet, threshold_months, now)

        logger.debug(
            "Analytics computed",
            user_id=user_id,
            garments=len(closet),
            suggestions=len(suggestions)
        )

        def to_response(items):
            return [GarmentResponse.model_validate(g) for g in items]

        return WardrobeAnalytics(
            stats=WardrobeStats(
                total_garments=len(closet),
                total_outfits=total_outfits,
                utilization_percent=utilization_percent(closet)
            ),
            most_worn=to_response(most_worn),
            least_worn=to_response(least_worn),
            donation_suggestions=to_response(suggestions)
        )
