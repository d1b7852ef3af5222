"""
Hybrid "more like these" recommendations.

Candidates are scored against a set of liked reference items by genre
overlap, tag overlap and the enthusiast cohort's ratings, blended with fixed
weights. Every recommendation carries the sub-scores and
human-readable reasons produced by a small set of independent rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping

from .collaborative import CollaborativeFilter
from .config import (
    DEFAULT_RECOMMEND_LIMIT,
    HIGHLY_RATED_THRESHOLD,
    MIN_COMPOSITE_SCORE,
    POPULAR_RATING_COUNT,
    REASON_THRESHOLD_COLLAB,
    REASON_THRESHOLD_GENRE,
    REASON_THRESHOLD_TAG,
    RECOMMEND_WEIGHTS,
)
from .dataset import Item
from .index import DatasetIndex
from .similarity import jaccard
from .stats import ItemSummary
from .utils import round_percent

logger = logging.getLogger(__name__)

FALLBACK_REASON = "Recommended based on your selections"


@dataclass
class ScoreBreakdown:
    """Sub-scores for one candidate, each in [0, 1]."""
    genre_match: float
    collaborative_score: float
    tag_match: float
    composite: float


@dataclass
class Recommendation:
    summary: ItemSummary
    score: float
    match_percentage: int
    genre_match: float
    collaborative_score: float
    tag_match: float
    reasons: list[str] = field(default_factory=list)
    rank: int = 0

    @property
    def item(self) -> Item:
        return self.summary.item


ReasonRule = Callable[[ItemSummary, list[Item], ScoreBreakdown], list[str]]


def _genre_reason_rule(candidate: ItemSummary, references: list[Item], scores: ScoreBreakdown) -> list[str]:
    """Cite the first reference item sharing a genre, naming the shared genres."""
    if scores.genre_match <= REASON_THRESHOLD_GENRE:
        return []
    for reference in references:
        shared = [g for g in candidate.item.genres if g in set(reference.genres)]
        if shared:
            return [f'Similar genres to "{reference.display_title}" ({", ".join(shared)})']
    return []


def _collaborative_reason_rule(candidate: ItemSummary, references: list[Item], scores: ScoreBreakdown) -> list[str]:
    if scores.collaborative_score > REASON_THRESHOLD_COLLAB:
        return ["Highly rated by users with similar taste"]
    return []


def _tag_reason_rule(candidate: ItemSummary, references: list[Item], scores: ScoreBreakdown) -> list[str]:
    if scores.tag_match > REASON_THRESHOLD_TAG:
        return ["Similar themes and topics"]
    return []


def highly_rated_reason(summary: ItemSummary) -> list[str]:
    if summary.average >= HIGHLY_RATED_THRESHOLD:
        return [f"Highly rated ({summary.average}/5.0)"]
    return []


def popular_reason(summary: ItemSummary) -> list[str]:
    if summary.count >= POPULAR_RATING_COUNT:
        return ["Popular choice"]
    return []


def _highly_rated_rule(candidate: ItemSummary, references: list[Item], scores: ScoreBreakdown) -> list[str]:
    return highly_rated_reason(candidate)


def _popular_rule(candidate: ItemSummary, references: list[Item], scores: ScoreBreakdown) -> list[str]:
    return popular_reason(candidate)


DEFAULT_REASON_RULES: list[ReasonRule] = [
    _genre_reason_rule,
    _collaborative_reason_rule,
    _tag_reason_rule,
    _highly_rated_rule,
    _popular_rule,
]


class HybridRecommender:
    """
    Rank candidates by similarity to a set of reference items.

    composite = 0.4 * genre + 0.4 * collaborative + 0.2 * tag, where genre is
    the mean Jaccard similarity to each reference's genres, tag is the Jaccard
    similarity to the union of the references' tags, and collaborative is the
    enthusiast-cohort score. Candidates at or below the minimum composite are
    dropped.
    """

    def __init__(
        self,
        summaries: Mapping[str, ItemSummary],
        index: DatasetIndex,
        weights: dict[str, float] | None = None,
        min_score: float = MIN_COMPOSITE_SCORE,
        rules: list[ReasonRule] | None = None,
    ):
        self.summaries = summaries
        self.index = index
        self.weights = weights or RECOMMEND_WEIGHTS
        self.min_score = min_score
        self.rules = rules or DEFAULT_REASON_RULES

    def _resolve_references(self, reference_ids: Iterable[str]) -> list[Item]:
        references = []
        for item_id in dict.fromkeys(str(i) for i in reference_ids):
            summary = self.summaries.get(item_id)
            if summary is None:
                logger.debug(f"Ignoring unknown reference item {item_id}")
                continue
            references.append(summary.item)
        return references

    def score_candidate(
        self,
        candidate: Item,
        references: list[Item],
        collaborative: CollaborativeFilter,
        reference_tags: frozenset[str],
    ) -> ScoreBreakdown:
        candidate_genres = set(candidate.genres)
        genre_match = sum(
            jaccard(candidate_genres, set(ref.genres)) for ref in references
        ) / len(references)
        collab = collaborative.score(candidate.id)
        tag_match = jaccard(self.index.tags_for(candidate.id), reference_tags)

        composite = (
            self.weights['genre'] * genre_match
            + self.weights['collaborative'] * collab
            + self.weights['tag'] * tag_match
        )
        return ScoreBreakdown(
            genre_match=genre_match,
            collaborative_score=collab,
            tag_match=tag_match,
            composite=composite,
        )

    def explain(self, candidate: ItemSummary, references: list[Item], scores: ScoreBreakdown) -> list[str]:
        reasons: list[str] = []
        for rule in self.rules:
            reasons.extend(rule(candidate, references, scores))
        return reasons or [FALLBACK_REASON]

    def recommend(
        self,
        reference_ids: Iterable[str],
        limit: int = DEFAULT_RECOMMEND_LIMIT,
    ) -> list[Recommendation]:
        """
        Recommend items similar to the given reference items.

        Args:
            reference_ids: Ids of the liked items; unknown ids are ignored
            limit: Maximum number of recommendations

        Returns:
            Recommendations ordered by composite score (ties keep corpus order)
        """
        references = self._resolve_references(reference_ids)
        if not references:
            return []

        reference_ids = {ref.id for ref in references}
        reference_tags = frozenset().union(*(self.index.tags_for(ref.id) for ref in references))
        collaborative = CollaborativeFilter(self.index, [ref.id for ref in references])

        scored: list[Recommendation] = []
        for item_id, summary in self.summaries.items():
            if item_id in reference_ids:
                continue
            scores = self.score_candidate(summary.item, references, collaborative, reference_tags)
            if scores.composite <= self.min_score:
                continue
            scored.append(Recommendation(
                summary=summary,
                score=scores.composite,
                match_percentage=round_percent(scores.composite),
                genre_match=scores.genre_match,
                collaborative_score=scores.collaborative_score,
                tag_match=scores.tag_match,
                reasons=self.explain(summary, references, scores),
            ))

        scored.sort(key=lambda r: -r.score)
        top = scored[:limit]
        for rank, rec in enumerate(top, start=1):
            rec.rank = rank

        logger.debug(
            f"{len(scored)} candidates above {self.min_score} for {len(references)} references; returning {len(top)}"
        )
        return top
