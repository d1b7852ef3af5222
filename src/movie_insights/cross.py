"""
Pairwise cross-recommendation analysis.

Answers "would fans of A enjoy B?" for exactly two items, using the same
Jaccard primitive and 40/40/20 weighting as the hybrid recommender, with the
overlap of the two items' enthusiasts standing in for the collaborative
signal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

from .collaborative import enthusiast_cohort
from .config import (
    CROSS_MODERATE_THRESHOLD,
    CROSS_STRONG_THRESHOLD,
    CROSS_WEIGHTS,
    HIGHLY_RATED_THRESHOLD,
    POPULAR_RATING_COUNT,
    REASON_THRESHOLD_GENRE,
    REASON_THRESHOLD_TAG,
    REASON_THRESHOLD_USER_OVERLAP,
)
from .index import DatasetIndex
from .similarity import jaccard
from .stats import ItemSummary
from .utils import round_percent

logger = logging.getLogger(__name__)


@dataclass
class CrossRecommendation:
    first: ItemSummary
    second: ItemSummary
    confidence: int        # 0-100
    user_overlap: int      # 0-100, Jaccard of the two enthusiast sets
    shared_users: int      # raw size of the enthusiast intersection
    genre_match: int       # 0-100
    tag_similarity: int    # 0-100
    common_appeal: list[str] = field(default_factory=list)

    @property
    def verdict(self) -> str:
        if self.confidence >= CROSS_STRONG_THRESHOLD:
            return "strong"
        if self.confidence >= CROSS_MODERATE_THRESHOLD:
            return "moderate"
        return "weak"

    @property
    def verdict_label(self) -> str:
        return {
            "strong": "Strong match - excellent cross-recommendation",
            "moderate": "Moderate match - could work as a recommendation",
            "weak": "Weak match - not ideal for recommendations",
        }[self.verdict]


def _common_appeal(
    first: ItemSummary,
    second: ItemSummary,
    genre_match: float,
    user_overlap: float,
    shared_users: int,
    tag_similarity: float,
) -> list[str]:
    appeal: list[str] = []
    if genre_match > REASON_THRESHOLD_GENRE:
        shared = [g for g in first.item.genres if g in set(second.item.genres)]
        appeal.append(f"Shared genres: {', '.join(shared)}")
    if user_overlap > REASON_THRESHOLD_USER_OVERLAP:
        plural = 's' if shared_users != 1 else ''
        appeal.append(f"Loved by the same audience ({shared_users} shared fan{plural})")
    if tag_similarity > REASON_THRESHOLD_TAG:
        appeal.append("Similar themes and topics")
    if first.average >= HIGHLY_RATED_THRESHOLD and second.average >= HIGHLY_RATED_THRESHOLD:
        appeal.append("Both highly rated")
    if first.count >= POPULAR_RATING_COUNT and second.count >= POPULAR_RATING_COUNT:
        appeal.append("Both popular choices")
    return appeal


def analyze_pair(
    first: ItemSummary,
    second: ItemSummary,
    index: DatasetIndex,
    weights: dict[str, float] | None = None,
) -> CrossRecommendation:
    """
    Compare two items.

    Sub-scores are Jaccard similarities of (a) the users who rated each item
    4.0 or higher, (b) genre sets and (c) normalized tag sets. Confidence is
    their weighted blend expressed as a percentage.
    """
    weights = weights or CROSS_WEIGHTS

    fans_first = enthusiast_cohort(index, [first.item.id])
    fans_second = enthusiast_cohort(index, [second.item.id])
    user_overlap = jaccard(fans_first, fans_second)
    shared_users = len(fans_first & fans_second)

    genre_match = jaccard(set(first.item.genres), set(second.item.genres))
    tag_similarity = jaccard(index.tags_for(first.item.id), index.tags_for(second.item.id))

    blended = (
        weights['genre'] * genre_match
        + weights['user_overlap'] * user_overlap
        + weights['tag'] * tag_similarity
    )
    result = CrossRecommendation(
        first=first,
        second=second,
        confidence=round_percent(blended),
        user_overlap=round_percent(user_overlap),
        shared_users=shared_users,
        genre_match=round_percent(genre_match),
        tag_similarity=round_percent(tag_similarity),
        common_appeal=_common_appeal(first, second, genre_match, user_overlap, shared_users, tag_similarity),
    )
    logger.debug(
        f"Cross analysis {first.item.id} vs {second.item.id}: confidence {result.confidence}%"
    )
    return result


def cross_recommendation(
    summaries: Mapping[str, ItemSummary],
    index: DatasetIndex,
    first_id: str,
    second_id: str,
) -> CrossRecommendation | None:
    """Look both items up and analyze them; None unless both exist and differ."""
    first = summaries.get(str(first_id))
    second = summaries.get(str(second_id))
    if first is None or second is None or first.item.id == second.item.id:
        return None
    return analyze_pair(first, second, index)
