from types import SimpleNamespace

import pytest

from app.models.domain.analysis import DetectedGarmentDescription
from app.services.matcher import (
    GarmentMatcher,
    confidence_from_similarity,
    match,
    normalize_category,
    normalize_season,
    token_overlap_similarity,
    tokenize
)


def garment(id, name, category="tops"):
    return SimpleNamespace(id=id, name=name, category=category)


def detected(name, category="tops", description="", season="summer"):
    return DetectedGarmentDescription(name=name, category=category, season=season, description=description)


def test_example_detection_matches_closet_shirt():
    result = match(
        detected("blue shirt", description="cotton"),
        [garment("g1", "blue cotton shirt")]
    )
    assert result.matched
    assert result.garment_id == "g1"
    assert result.confidence == 100


def test_match_is_deterministic():
    closet = [garment("g1", "blue cotton shirt"), garment("g2", "blue linen shirt")]
    detection = detected("blue shirt", description="linen")
    first = match(detection, closet)
    assert first.garment_id == "g2"
    for _ in range(5):
        assert match(detection, closet) == first


@pytest.mark.parametrize("score,matched", [(0.30, False), (0.31, True)])
def test_threshold_is_strict(score, matched):
    matcher = GarmentMatcher(similarity=lambda a, b: score)
    result = matcher.match(detected("anything"), [garment("g1", "whatever")])
    assert result.matched is matched
    if matched:
        assert result.confidence == 31


def test_category_gate_blocks_identical_names():
    result = match(
        detected("black leather boots", category="shoes"),
        [garment("g1", "black leather boots", category="tops")]
    )
    assert not result.matched
    assert result.confidence == 0


def test_category_comparison_ignores_case():
    result = match(
        detected("black leather boots", category="Shoes"),
        [garment("g1", "black leather boots", category="shoes")]
    )
    assert result.matched


def test_empty_closet_is_no_match():
    result = match(detected("blue shirt"), [])
    assert not result.matched
    assert result.garment is None


def test_missing_description_is_tolerated():
    detection = DetectedGarmentDescription.model_validate(
        {"name": "blue shirt", "category": "tops", "season": None}
    )
    assert detection.description == ""
    assert match(detection, [garment("g1", "blue shirt")]).matched


def test_ties_keep_first_candidate():
    closet = [garment("first", "red wool sweater"), garment("second", "red wool sweater")]
    assert match(detected("red wool sweater"), closet).garment_id == "first"


def test_short_tokens_are_ignored():
    assert tokenize("a red t-shirt on me") == ["red", "t-shirt"]


def test_similarity_uses_longer_token_list():
    # 2 of 2 detected tokens match but the candidate has 4 tokens
    assert token_overlap_similarity("navy blazer", "navy wool double blazer") == 0.5


def test_substring_tokens_match_both_ways():
    assert token_overlap_similarity("sneakers", "sneaker") == 1.0


def test_confidence_rounds_half_up():
    assert confidence_from_similarity(0.125) == 13
    assert confidence_from_similarity(2 / 3) == 67


@pytest.mark.parametrize("raw,expected", [
    ("Shoes", "shoes"),
    (" outerwear ", "outerwear"),
    ("hat", "tops"),
    (None, "tops"),
])
def test_normalize_category(raw, expected):
    assert normalize_category(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    ("All Season", "all-season"),
    ("Mid Season", "mid-season"),
    ("WINTER", "winter"),
    ("spring", "all-season"),
    ("", "all-season"),
])
def test_normalize_season(raw, expected):
    assert normalize_season(raw) == expected
