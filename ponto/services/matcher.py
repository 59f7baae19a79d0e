from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Sequence

import numpy as np

from ponto.core.config import get_settings
from ponto.core.exceptions import DimensionMismatchError

from .embedding import deserialize_embedding

DEFAULT_MATCH_THRESHOLD = 0.35

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    score: float
    distance: float | None = None


NO_MATCH = MatchResult(matched=False, score=0.0)


def l2_distance(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    left = np.asarray(a, dtype=np.float64).ravel()
    right = np.asarray(b, dtype=np.float64).ravel()
    if left.size != right.size:
        raise DimensionMismatchError(
            f"Embeddings must have the same dimension ({left.size} != {right.size})."
        )
    return float(np.linalg.norm(left - right))


class FaceMatcher:
    def __init__(self, threshold: float = DEFAULT_MATCH_THRESHOLD) -> None:
        self.threshold = threshold

    def score(self, distance: float) -> float:
        return max(0.0, 1.0 - distance)

    def match(self, captured: Sequence[float] | np.ndarray, stored_serialized: str | None) -> MatchResult:
        """Compare a fresh embedding against a stored one; fails closed."""
        if not stored_serialized:
            return NO_MATCH

        try:
            stored = deserialize_embedding(stored_serialized)
        except ValueError as exc:
            logger.warning("Ignoring unusable stored embedding: %s", exc)
            return NO_MATCH

        try:
            distance = l2_distance(captured, stored)
        except DimensionMismatchError:
            logger.exception("Embedding dimension mismatch during face match")
            return NO_MATCH

        return MatchResult(
            matched=distance <= self.threshold,
            score=self.score(distance),
            distance=distance,
        )


@lru_cache(maxsize=1)
def get_matcher() -> FaceMatcher:
    settings = get_settings()
    return FaceMatcher(threshold=settings.face_match_threshold)
