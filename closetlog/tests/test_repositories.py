from datetime import date

import pytest

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.database.repositories.outfits import OutfitRepository
from app.database.repositories.preferences import PreferencesRepository, SavedDonationRepository


async def test_set_use_count_on_foreign_garment_is_not_found(garment_repo, closet, user_id, other_user_id):
    foreign = closet["foreign"]
    with pytest.raises(NotFoundError):
        await garment_repo.set_use_count(foreign.id, user_id, 9)
    assert await garment_repo.get_use_count(foreign.id, other_user_id) == 0


async def test_set_use_count_rejects_negative(garment_repo, closet, user_id):
    with pytest.raises(ValidationError):
        await garment_repo.set_use_count(closet["shirt"].id, user_id, -1)


async def test_get_use_count_scoped_by_owner(garment_repo, closet, user_id):
    assert await garment_repo.get_use_count(closet["shirt"].id, user_id) == 3
    with pytest.raises(NotFoundError):
        await garment_repo.get_use_count(closet["foreign"].id, user_id)


async def test_adjust_use_count_floors_at_zero(garment_repo, closet, user_id):
    boots = closet["boots"]
    assert await garment_repo.adjust_use_count(boots.id, user_id, -1)
    assert await garment_repo.get_use_count(boots.id, user_id) == 0
    assert await garment_repo.adjust_use_count(boots.id, user_id, 2)
    assert await garment_repo.get_use_count(boots.id, user_id) == 2


async def test_adjust_use_count_ignores_foreign_garment(garment_repo, closet, user_id, other_user_id):
    foreign = closet["foreign"]
    assert not await garment_repo.adjust_use_count(foreign.id, user_id, 1)
    assert await garment_repo.get_use_count(foreign.id, other_user_id) == 0


async def test_find_by_user_filters_and_sorts(garment_repo, closet, user_id):
    tops = await garment_repo.find_by_user(user_id, category="tops")
    assert [g.id for g in tops] == [closet["shirt"].id]

    by_use = await garment_repo.find_by_user(user_id, sort_by="use_count", order="desc")
    assert by_use[0].id == closet["shirt"].id
    assert all(g.user_id == user_id for g in by_use)
    assert len(by_use) == 4


async def test_owned_ids_returns_subset(garment_repo, closet, user_id):
    ids = [closet["shirt"].id, closet["foreign"].id, "missing"]
    assert await garment_repo.owned_ids(user_id, ids) == {closet["shirt"].id}
    assert await garment_repo.owned_ids(user_id, []) == set()


async def test_update_for_user_routes_use_count(garment_repo, closet, user_id):
    garment = await garment_repo.update_for_user(
        closet["boots"].id, user_id, name="brown leather boots", use_count=5
    )
    assert garment.name == "brown leather boots"
    assert garment.use_count == 5
    assert garment.user_id == user_id


async def test_outfit_listing_and_link_deletion(db_session, closet, user_id):
    outfits = OutfitRepository(db_session)
    october = await outfits.insert(user_id, "outfits/1.png", date(2026, 10, 31))
    september = await outfits.insert(user_id, "outfits/2.png", date(2026, 9, 30))
    await outfits.insert_links(october.id, [closet["shirt"].id, closet["shirt"].id, closet["jeans"].id], user_id)

    assert [o.id for o in await outfits.list_for_user(user_id)] == [october.id, september.id]
    in_month = await outfits.list_for_user(user_id, start=date(2026, 10, 1), end=date(2026, 10, 31))
    assert [o.id for o in in_month] == [october.id]
    assert [o.id for o in await outfits.list_for_user(user_id, worn_on=date(2026, 9, 30))] == [september.id]

    assert len(await outfits.find_link_garment_ids(october.id)) == 2
    assert await outfits.delete_for_user(october.id, user_id)
    assert await outfits.find_link_garment_ids(october.id) == []
    assert not await outfits.delete_for_user(september.id, "someone-else")


async def test_garments_for_outfit_hides_foreign_garments(db_session, closet, user_id):
    outfits = OutfitRepository(db_session)
    outfit = await outfits.insert(user_id, "outfits/1.png", date(2026, 10, 1))
    await outfits.insert_links(outfit.id, [closet["shirt"].id, closet["foreign"].id], user_id)

    garments = await outfits.garments_for_outfit(outfit.id, user_id)
    assert [g.id for g in garments] == [closet["shirt"].id]


async def test_preferences_upsert(db_session, user_id):
    preferences = PreferencesRepository(db_session)
    assert await preferences.get_for_user(user_id) is None

    created, was_created = await preferences.upsert(user_id, 3)
    assert was_created and created.donation_threshold_months == 3

    updated, was_created = await preferences.upsert(user_id, 12)
    assert not was_created
    assert updated.id == created.id
    assert updated.donation_threshold_months == 12


async def test_saved_donation_lifecycle(db_session, closet, user_id):
    donations = SavedDonationRepository(db_session)
    scarf = closet["old_scarf"]

    saved = await donations.save(user_id, scarf.id)
    assert saved.donated_at is None
    with pytest.raises(ConflictError):
        await donations.save(user_id, scarf.id)

    pending = await donations.list_pending(user_id)
    assert [d.garment_id for d in pending] == [scarf.id]
    assert pending[0].garment.name == "wool scarf"

    donated = await donations.mark_donated(user_id, scarf.id)
    assert donated.donated_at is not None
    assert await donations.list_pending(user_id) == []

    with pytest.raises(NotFoundError):
        await donations.mark_donated(user_id, closet["boots"].id)
    assert await donations.remove(user_id, scarf.id)
