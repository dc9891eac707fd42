from datetime import datetime, timezone
from types import SimpleNamespace

from app.database.repositories.outfits import OutfitRepository
from app.services.analytics import (
    AnalyticsService,
    donation_suggestions,
    subtract_months,
    utilization_percent
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def garment(use_count, created_at=NOW):
    return SimpleNamespace(use_count=use_count, created_at=created_at)


def test_subtract_months_clamps_day():
    assert subtract_months(datetime(2026, 3, 31), 1) == datetime(2026, 2, 28)
    assert subtract_months(datetime(2026, 1, 15), 13) == datetime(2024, 12, 15)
    assert subtract_months(datetime(2024, 5, 31), 3) == datetime(2024, 2, 29)


def test_utilization_rounds_half_up():
    assert utilization_percent([]) == 0
    assert utilization_percent([garment(1), garment(0)]) == 50
    assert utilization_percent([garment(1), garment(0), garment(0)]) == 33
    assert utilization_percent([garment(1)] * 5 + [garment(0)] * 3) == 63


def test_donation_suggestions_need_age_and_low_use():
    old = datetime(2025, 1, 1, tzinfo=timezone.utc)
    naive_old = datetime(2025, 1, 1)
    candidates = [
        garment(0, old),
        garment(1, naive_old),
        garment(2, old),
        garment(0, NOW),
    ]
    assert donation_suggestions(candidates, 6, now=NOW) == candidates[:2]


async def test_summary_for_user(db_session, garment_repo, closet, user_id):
    outfits = OutfitRepository(db_session)
    await outfits.insert(user_id, "outfits/1.png", NOW.date())

    service = AnalyticsService(garment_repo, outfits, top_n=2)
    summary = await service.summarize(user_id, threshold_months=6)

    assert summary.stats.total_garments == 4
    assert summary.stats.total_outfits == 1
    assert summary.stats.utilization_percent == 50
    assert [g.id for g in summary.most_worn] == [closet["shirt"].id, closet["jeans"].id]
    assert summary.least_worn[0].use_count == 0
    assert [g.id for g in summary.donation_suggestions] == [closet["old_scarf"].id]
