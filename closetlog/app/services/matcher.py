"""Garment matching between vision detections and a user's closet.

Pure functions, no I/O. A detection is compared only against closet garments
of the same category; each candidate gets a token-overlap similarity and the
best one above the threshold becomes the match:

    similarity = matches / max(len(detected_tokens), len(candidate_tokens), 1)

where a detected token matches when some candidate token contains it or is
contained by it, and tokens of two characters or fewer are ignored. The
similarity function is injectable so a stronger measure can replace it without
touching the reconciler.
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from app.models.database.garment import Category, Season
from app.models.domain.analysis import DetectedGarmentDescription

Similarity = Callable[[str, str], float]

DEFAULT_THRESHOLD = 0.3
DEFAULT_CATEGORY = Category.TOPS.value
DEFAULT_SEASON = Season.ALL_SEASON.value
MIN_TOKEN_LENGTH = 3

_CATEGORIES = {c.value for c in Category}
_SEASONS = {s.value for s in Season}


def normalize_category(value: Optional[str]) -> str:
    """Lower-case a category, falling back to tops for anything unknown."""
    normalized = (value or "").strip().lower()
    return normalized if normalized in _CATEGORIES else DEFAULT_CATEGORY


def normalize_season(value: Optional[str]) -> str:
    """Lower-case a season with spaces as hyphens, falling back to all-season."""
    normalized = (value or "").strip().lower().replace(" ", "-")
    return normalized if normalized in _SEASONS else DEFAULT_SEASON


def tokenize(text: str) -> List[str]:
    return [token for token in text.lower().split() if len(token) >= MIN_TOKEN_LENGTH]


def token_overlap_similarity(detected_text: str, candidate_text: str) -> float:
    """Share of detected tokens with a substring partner on the candidate side."""
    detected_tokens = tokenize(detected_text)
    candidate_tokens = tokenize(candidate_text)

    matches = 0
    for token in detected_tokens:
        for other in candidate_tokens:
            if token in other or other in token:
                matches += 1
                break

    return matches / max(len(detected_tokens), len(candidate_tokens), 1)


def detection_text(detected: DetectedGarmentDescription) -> str:
    return f"{detected.name or ''} {detected.description or ''}".lower()


def confidence_from_similarity(similarity: float) -> int:
    """Percent score rounded half up."""
    return int(math.floor(similarity * 100 + 0.5))


@dataclass(frozen=True)
class MatchResult:
    """A detection paired with its closet match, or with nothing."""
    detection: DetectedGarmentDescription
    garment: Optional[object] = None
    similarity: float = 0.0
    confidence: int = 0

    @property
    def matched(self) -> bool:
        return self.garment is not None

    @property
    def garment_id(self) -> Optional[str]:
        return getattr(self.garment, "id", None) if self.garment is not None else None


class GarmentMatcher:
    """Selects the closet garment a detection most likely refers to."""

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        similarity: Similarity = token_overlap_similarity
    ):
        self.threshold = threshold
        self.similarity = similarity

    def candidates(self, detected: DetectedGarmentDescription, closet: Sequence) -> List:
        category = (detected.category or "").strip().lower()
        return [g for g in closet if (g.category or "").lower() == category]

    def match(self, detected: DetectedGarmentDescription, closet: Sequence) -> MatchResult:
        """Best same-category garment whose similarity is strictly above the threshold.

        Ties keep the first candidate in closet order.
        """
        candidates = self.candidates(detected, closet)
        if not candidates:
            return MatchResult(detection=detected)

        text = detection_text(detected)
        best = None
        best_score = 0.0
        for garment in candidates:
            score = self.similarity(text, (garment.name or "").lower())
            if score > best_score and score > self.threshold:
                best = garment
                best_score = score

        if best is None:
            return MatchResult(detection=detected)
        return MatchResult(
            detection=detected,
            garment=best,
            similarity=best_score,
            confidence=confidence_from_similarity(best_score)
        )


def match(detected: DetectedGarmentDescription, closet: Sequence) -> MatchResult:
    """Match with the default threshold and similarity."""
    return GarmentMatcher().match(detected, closet)
