"""
Cohort-based collaborative scoring.

Users who rated any reference item highly form an "enthusiast cohort"; a
candidate is scored by how that cohort rated it, damped when only a few
cohort members rated it at all.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable

from .config import (
    COLLAB_FULL_CONFIDENCE_RATINGS,
    ENTHUSIAST_MIN_RATING,
    RATING_SCALE_MAX,
)
from .index import DatasetIndex

logger = logging.getLogger(__name__)


def enthusiast_cohort(
    index: DatasetIndex,
    item_ids: Iterable[str],
    min_rating: float = ENTHUSIAST_MIN_RATING,
) -> frozenset[str]:
    """Distinct users who rated any of ``item_ids`` at or above ``min_rating``."""
    cohort = set()
    for item_id in item_ids:
        for rating in index.ratings_for(item_id):
            # nan compares False, so unparseable ratings never qualify
            if rating.value >= min_rating:
                cohort.add(rating.user_id)
    return frozenset(cohort)


def _confidence(n_ratings: int, full_confidence_at: int = COLLAB_FULL_CONFIDENCE_RATINGS) -> float:
    """Linear ramp reaching 1.0 at ``full_confidence_at`` ratings."""
    return min(n_ratings / full_confidence_at, 1.0)


def collaborative_score(
    index: DatasetIndex,
    cohort: frozenset[str],
    candidate_id: str,
    full_confidence_at: int = COLLAB_FULL_CONFIDENCE_RATINGS,
) -> float:
    """
    Score a candidate by the cohort's ratings of it.

    score = (mean cohort rating / 5.0) * min(n / 10, 1). Returns 0.0 for an
    empty cohort or when no cohort member rated the candidate.
    """
    if not cohort:
        return 0.0

    values = [
        r.value for r in index.ratings_for(candidate_id)
        if r.user_id in cohort and math.isfinite(r.value)
    ]
    if not values:
        return 0.0

    mean_rating = sum(values) / len(values)
    return (mean_rating / RATING_SCALE_MAX) * _confidence(len(values), full_confidence_at)


class CollaborativeFilter:
    """
    Collaborative scorer bound to one set of reference items.

    The cohort is derived once at construction and reused for every
    candidate scored against the same references.
    """

    def __init__(
        self,
        index: DatasetIndex,
        reference_ids: Iterable[str],
        min_rating: float = ENTHUSIAST_MIN_RATING,
        full_confidence_at: int = COLLAB_FULL_CONFIDENCE_RATINGS,
    ):
        self.index = index
        self.reference_ids = tuple(reference_ids)
        self.full_confidence_at = full_confidence_at
        self.cohort = enthusiast_cohort(index, self.reference_ids, min_rating)
        logger.debug(
            f"Enthusiast cohort of {len(self.cohort)} users for {len(self.reference_ids)} reference items"
        )

    def score(self, candidate_id: str) -> float:
        return collaborative_score(self.index, self.cohort, candidate_id, self.full_confidence_at)
