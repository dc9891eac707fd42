"""HTTP-level tests running the FastAPI app against SQLite and fake services."""

import pytest

from app.core.exceptions import UpstreamServiceError
from app.models.domain.analysis import DetectedGarmentDescription

API = "/api/v1"


def detection(name, category, season="all-season", description=""):
    return DetectedGarmentDescription(name=name, category=category, season=season, description=description)


# Authentication

async def test_requests_without_token_are_rejected(async_client):
    response = await async_client.get(f"{API}/garments")
    assert response.status_code == 401

    response = await async_client.get(f"{API}/garments", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401


# Garments

async def test_garment_crud(async_client, auth_headers):
    response = await async_client.post(f"{API}/garments", headers=auth_headers, json={
        "name": "  Green parka ",
        "photo_url": "garments/parka.png",
        "category": "outerwear",
        "season": "winter"
    })
    assert response.status_code == 201
    created = response.json()
    assert created["name"] == "Green parka"
    assert created["use_count"] == 0
    assert created["quantity"] == 1
    assert created["origin"] == "manual"

    response = await async_client.patch(
        f"{API}/garments/{created['id']}", headers=auth_headers,
        json={"quantity": 2, "use_count": 5, "user_id": "someone-else"}
    )
    assert response.status_code == 200
    assert response.json()["use_count"] == 5
    assert response.json()["quantity"] == 2
    assert response.json()["user_id"] == created["user_id"]

    response = await async_client.delete(f"{API}/garments/{created['id']}", headers=auth_headers)
    assert response.json() == {"success": True}

    response = await async_client.get(f"{API}/garments/{created['id']}", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"error": "Garment not found"}


async def test_garment_create_validation(async_client, auth_headers):
    response = await async_client.post(f"{API}/garments", headers=auth_headers, json={
        "name": "Parka", "photo_url": "garments/p.png", "category": "hats", "season": "winter"
    })
    assert response.status_code == 422


async def test_garment_listing_is_scoped_and_filtered(async_client, auth_headers, closet):
    response = await async_client.get(f"{API}/garments", headers=auth_headers, params={"sort_by": "use_count", "order": "desc"})
    ids = [g["id"] for g in response.json()]
    assert ids[0] == closet["shirt"].id
    assert closet["foreign"].id not in ids

    response = await async_client.get(f"{API}/garments", headers=auth_headers, params={"category": "shoes"})
    assert [g["id"] for g in response.json()] == [closet["boots"].id]

    response = await async_client.get(f"{API}/garments", headers=auth_headers, params={"sort_by": "photo_url"})
    assert response.status_code == 422


async def test_foreign_garment_is_invisible(async_client, auth_headers, closet):
    foreign = closet["foreign"].id
    assert (await async_client.get(f"{API}/garments/{foreign}", headers=auth_headers)).status_code == 404
    response = await async_client.patch(f"{API}/garments/{foreign}", headers=auth_headers, json={"use_count": 7})
    assert response.status_code == 404
    assert (await async_client.delete(f"{API}/garments/{foreign}", headers=auth_headers)).status_code == 404


# Analysis

async def test_analyze_outfit_matches_closet(async_client, auth_headers, closet, fake_vision, test_image):
    fake_vision.detections = [
        detection("Blue shirt", "Tops", "summer", "cotton"),
        detection("Red pleated skirt", "bottoms", "Mid Season"),
    ]

    response = await async_client.post(f"{API}/analyze-outfit", headers=auth_headers, json={"image_base64": test_image})

    assert response.status_code == 200
    body = response.json()
    assert body["total_detected"] == 2
    assert body["matched_count"] == 1
    assert body["manual_selection"] is False

    first, second = body["detected_garments"]
    assert first["matched_garment"]["id"] == closet["shirt"].id
    assert first["selected"] is True
    assert first["confidence"] == 100
    assert first["category"] == "tops"
    assert second["matched_garment"] is None
    assert second["selected"] is False
    assert second["season"] == "mid-season"


async def test_analyze_outfit_without_detections_falls_back_to_manual(async_client, auth_headers, test_image):
    response = await async_client.post(f"{API}/analyze-outfit", headers=auth_headers, json={"image_base64": test_image})
    assert response.json() == {
        "detected_garments": [],
        "total_detected": 0,
        "matched_count": 0,
        "manual_selection": True
    }


async def test_analyze_outfit_upstream_failure(async_client, auth_headers, fake_vision):
    fake_vision.error = UpstreamServiceError("model timed out")
    response = await async_client.post(
        f"{API}/analyze-outfit", headers=auth_headers, json={"image_url": "https://example.com/o.jpg"}
    )
    assert response.status_code == 502
    assert response.json() == {"error": "Could not analyze outfit photo; retry or pick garments manually"}


async def test_analyze_outfit_requires_an_image(async_client, auth_headers, fake_vision):
    response = await async_client.post(f"{API}/analyze-outfit", headers=auth_headers, json={})
    assert response.status_code == 400
    assert fake_vision.calls == 0


# Reconciliation

async def test_reconcile_creates_links_and_counts(async_client, auth_headers, closet, fake_images, garment_repo, user_id, test_image):
    shirt, boots, foreign = closet["shirt"], closet["boots"], closet["foreign"]
    skirt = {"name": "Red pleated skirt", "category": "Bottoms", "season": "summer", "description": ""}

    response = await async_client.post(f"{API}/outfits/reconcile", headers=auth_headers, json={
        "photo_base64": test_image,
        "worn_date": "2026-10-12",
        "selections": [
            {"index": 0, "choice": "existing", "garment_id": shirt.id,
             "detection": {"name": "Blue shirt", "category": "tops", "season": "summer"}},
            {"index": 1, "choice": "new", "detection": skirt},
            {"index": 2, "choice": "deselect", "detection": {"name": "Sunglasses", "category": "accessories"}},
        ],
        "manual_garment_ids": [shirt.id, boots.id, foreign.id]
    })

    assert response.status_code == 201
    body = response.json()
    assert body["worn_date"] == "2026-10-12"
    assert body["linked_count"] == 3
    assert body["requested_count"] == 4
    assert body["garment_ids"][0] == shirt.id
    assert body["garment_ids"][2] == boots.id
    assert [(f["step"], f["garment_id"]) for f in body["failures"]] == [("resolve_existing", foreign.id)]

    assert [folder for folder, _, _ in fake_images.uploads] == ["outfits"]
    new_garment = await garment_repo.require_for_user(body["garment_ids"][1], user_id)
    assert new_garment.category == "bottoms"
    assert new_garment.origin == "detected"
    assert new_garment.photo_url == body["photo_url"]
    assert new_garment.use_count == 1

    assert await garment_repo.get_use_count(shirt.id, user_id) == 4
    assert await garment_repo.get_use_count(boots.id, user_id) == 1


async def test_reconcile_uses_crop_for_new_garment(async_client, auth_headers, fake_images, test_image):
    response = await async_client.post(f"{API}/outfits/reconcile", headers=auth_headers, json={
        "photo_base64": test_image,
        "worn_date": "2026-10-12",
        "selections": [{
            "index": 0, "choice": "new", "crop_base64": test_image,
            "detection": {"name": "Straw hat", "category": "accessories", "season": "summer"},
            "overrides": {"name": "Panama hat"}
        }]
    })
    assert response.status_code == 201
    assert [folder for folder, _, _ in fake_images.uploads] == ["outfits", "garments"]


async def test_reconcile_existing_without_id_uses_matcher(async_client, auth_headers, closet, test_image):
    response = await async_client.post(f"{API}/outfits/reconcile", headers=auth_headers, json={
        "photo_base64": test_image,
        "worn_date": "2026-10-12",
        "selections": [{
            "index": 0, "choice": "existing",
            "detection": {"name": "Blue shirt", "category": "tops", "description": "cotton"}
        }]
    })
    assert response.status_code == 201
    assert response.json()["garment_ids"] == [closet["shirt"].id]


async def test_reconcile_reports_failed_garment_creation(async_client, auth_headers, closet, fake_images, test_image):
    fake_images.fail_folders.add("garments")
    response = await async_client.post(f"{API}/outfits/reconcile", headers=auth_headers, json={
        "photo_base64": test_image,
        "worn_date": "2026-10-12",
        "selections": [{
            "index": 0, "choice": "new", "crop_base64": test_image,
            "detection": {"name": "Straw hat", "category": "accessories"}
        }],
        "manual_garment_ids": [closet["boots"].id]
    })
    assert response.status_code == 201
    body = response.json()
    assert body["garment_ids"] == [closet["boots"].id]
    assert body["requested_count"] == 2
    assert body["linked_count"] == 1
    assert body["failures"][0]["step"] == "create_garment"


@pytest.mark.parametrize("payload", [
    {"worn_date": "2026-10-12"},
    {"photo_base64": "aGVsbG8=", "selections": []},
])
async def test_reconcile_requires_photo_and_date(async_client, auth_headers, fake_images, payload):
    response = await async_client.post(f"{API}/outfits/reconcile", headers=auth_headers, json=payload)
    assert response.status_code == 400
    assert fake_images.uploads == []


async def test_reconcile_bad_selection_removes_uploaded_photo(async_client, auth_headers, fake_images, test_image):
    response = await async_client.post(f"{API}/outfits/reconcile", headers=auth_headers, json={
        "photo_base64": test_image,
        "worn_date": "2026-10-12",
        "selections": [{"index": 0, "choice": "existing", "garment_id": None,
                        "detection": {"name": "Mystery", "category": "tops"}}]
    })
    assert response.status_code == 400
    assert fake_images.deleted == [fake_images.uploads[0][2]]


async def test_reconcile_failure_removes_crop_uploads(async_client, auth_headers, fake_images, test_image, mocker):
    mocker.patch(
        "app.services.outfit_lifecycle.OutfitLifecycleManager.create_outfit",
        new_callable=mocker.AsyncMock,
        side_effect=RuntimeError("database went away")
    )
    response = await async_client.post(f"{API}/outfits/reconcile", headers=auth_headers, json={
        "photo_base64": test_image,
        "worn_date": "2026-10-12",
        "selections": [{
            "index": 0, "choice": "new", "crop_base64": test_image,
            "detection": {"name": "Straw hat", "category": "accessories"}
        }]
    })
    assert response.status_code == 500
    assert sorted(fake_images.deleted) == sorted(key for _, _, key in fake_images.uploads)
    assert [folder for folder, _, _ in fake_images.uploads] == ["outfits", "garments"]


async def test_reconcile_counts_a_foreign_garment_once(async_client, auth_headers, closet, test_image):
    foreign = closet["foreign"]
    response = await async_client.post(f"{API}/outfits/reconcile", headers=auth_headers, json={
        "photo_base64": test_image,
        "worn_date": "2026-10-12",
        "selections": [
            {"index": 0, "choice": "existing", "garment_id": foreign.id,
             "detection": {"name": "Blue shirt", "category": "tops"}},
            {"index": 1, "choice": "existing", "garment_id": foreign.id,
             "detection": {"name": "Blue shirt", "category": "tops"}},
        ],
        "manual_garment_ids": [foreign.id, closet["jeans"].id]
    })
    assert response.status_code == 201
    body = response.json()
    assert body["requested_count"] == 2
    assert body["linked_count"] == 1
    assert [f["garment_id"] for f in body["failures"]] == [foreign.id]


# Outfits

async def test_outfit_create_list_get_delete(async_client, auth_headers, closet, garment_repo, user_id):
    shirt, jeans = closet["shirt"], closet["jeans"]
    response = await async_client.post(f"{API}/outfits", headers=auth_headers, json={
        "photo_url": "outfits/manual.png",
        "worn_date": "2026-10-31",
        "garment_ids": [shirt.id, jeans.id, shirt.id]
    })
    assert response.status_code == 201
    outfit = response.json()
    assert outfit["requested_count"] == 2
    assert outfit["linked_count"] == 2
    assert await garment_repo.get_use_count(shirt.id, user_id) == 4

    response = await async_client.get(f"{API}/outfits", headers=auth_headers, params={"month": "2026-10"})
    assert [o["id"] for o in response.json()] == [outfit["id"]]
    response = await async_client.get(f"{API}/outfits", headers=auth_headers, params={"month": "2026-11"})
    assert response.json() == []
    response = await async_client.get(f"{API}/outfits", headers=auth_headers, params={"date": "2026-10-31"})
    assert len(response.json()) == 1

    response = await async_client.get(f"{API}/outfits/{outfit['id']}", headers=auth_headers)
    assert sorted(g["id"] for g in response.json()["garments"]) == sorted([shirt.id, jeans.id])

    response = await async_client.delete(f"{API}/outfits/{outfit['id']}", headers=auth_headers)
    assert response.json() == {"success": True}
    assert await garment_repo.get_use_count(shirt.id, user_id) == 3
    assert await garment_repo.get_use_count(jeans.id, user_id) == 1

    response = await async_client.delete(f"{API}/outfits/{outfit['id']}", headers=auth_headers)
    assert response.status_code == 404


async def test_outfit_create_requires_photo(async_client, auth_headers):
    response = await async_client.post(f"{API}/outfits", headers=auth_headers, json={"worn_date": "2026-10-31"})
    assert response.status_code == 400
    assert response.json() == {"error": "Outfit photo is required"}


async def test_outfit_filters_reject_bad_values(async_client, auth_headers):
    response = await async_client.get(f"{API}/outfits", headers=auth_headers, params={"month": "October"})
    assert response.status_code == 400


async def test_other_users_outfit_cannot_be_deleted(async_client, auth_headers, other_auth_headers):
    response = await async_client.post(f"{API}/outfits", headers=other_auth_headers, json={
        "photo_url": "outfits/bob.png", "worn_date": "2026-10-01"
    })
    outfit_id = response.json()["id"]
    response = await async_client.delete(f"{API}/outfits/{outfit_id}", headers=auth_headers)
    assert response.status_code == 404


# Preferences and analytics

async def test_preferences_default_and_upsert(async_client, auth_headers, user_id):
    response = await async_client.get(f"{API}/preferences", headers=auth_headers)
    assert response.json() == {"id": "default", "donation_threshold_months": 6, "user_id": user_id}

    response = await async_client.patch(f"{API}/preferences", headers=auth_headers, json={"donation_threshold_months": 3})
    assert response.status_code == 201
    response = await async_client.patch(f"{API}/preferences", headers=auth_headers, json={"donation_threshold_months": 4})
    assert response.status_code == 200
    assert response.json()["donation_threshold_months"] == 4


@pytest.mark.parametrize("value", ["six", 0, -2, 1.5, None, True])
async def test_preferences_reject_bad_threshold(async_client, auth_headers, value):
    response = await async_client.patch(f"{API}/preferences", headers=auth_headers, json={"donation_threshold_months": value})
    assert response.status_code == 400


async def test_analytics_summary(async_client, auth_headers, closet):
    response = await async_client.get(f"{API}/analytics", headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["stats"] == {"total_garments": 4, "total_outfits": 0, "utilization_percent": 50}
    assert body["most_worn"][0]["id"] == closet["shirt"].id
    assert [g["id"] for g in body["donation_suggestions"]] == [closet["old_scarf"].id]

    response = await async_client.get(f"{API}/analytics", headers=auth_headers, params={"threshold_months": 24})
    assert response.json()["donation_suggestions"] == []


# Saved donations

async def test_saved_donation_flow(async_client, auth_headers, closet):
    scarf = closet["old_scarf"].id

    response = await async_client.post(f"{API}/saved-donations", headers=auth_headers, json={"garment_id": scarf})
    assert response.status_code == 200
    assert response.json()["garment"]["id"] == scarf

    response = await async_client.post(f"{API}/saved-donations", headers=auth_headers, json={"garment_id": scarf})
    assert response.status_code == 409

    response = await async_client.get(f"{API}/saved-donations", headers=auth_headers)
    assert [d["garment_id"] for d in response.json()] == [scarf]

    response = await async_client.patch(f"{API}/saved-donations", headers=auth_headers, json={"garment_id": scarf})
    assert response.json()["donated_at"] is not None
    assert (await async_client.get(f"{API}/saved-donations", headers=auth_headers)).json() == []

    response = await async_client.delete(f"{API}/saved-donations", headers=auth_headers, params={"garment_id": scarf})
    assert response.json() == {"success": True}


async def test_saved_donation_validation(async_client, auth_headers, closet):
    response = await async_client.post(f"{API}/saved-donations", headers=auth_headers, json={})
    assert response.status_code == 400
    response = await async_client.post(
        f"{API}/saved-donations", headers=auth_headers, json={"garment_id": closet["foreign"].id}
    )
    assert response.status_code == 404
    response = await async_client.delete(f"{API}/saved-donations", headers=auth_headers)
    assert response.status_code == 400


# Health

async def test_health_reports_database(async_client, session_manager, monkeypatch):
    monkeypatch.setattr("app.main.get_session_manager", lambda: session_manager)
    response = await async_client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["services"]["database"] == "connected"
    assert "query_count" in body["database_metrics"]
    assert response.headers["X-Correlation-ID"]
