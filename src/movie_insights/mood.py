"""
Mood-based classification.

Each mood is a declarative profile: preferred genres, tag keywords, an
acceptable average-rating band and a tolerance for rating disagreement
(variance). Adding a mood means adding a row to ``MOOD_PROFILES``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from .config import (
    DEFAULT_MOOD_LIMIT,
    MIN_MOOD_SCORE,
    MOOD_SCORE_WEIGHTS,
    REASON_THRESHOLD_GENRE,
    REASON_THRESHOLD_TAG,
    VARIANCE_LOW_MAX,
    VARIANCE_MEDIUM_MAX,
)
from .dataset import Item
from .index import DatasetIndex
from .recommender import highly_rated_reason, popular_reason
from .similarity import coverage, keyword_coverage
from .stats import ItemSummary
from .utils import round_half_up

logger = logging.getLogger(__name__)

FALLBACK_REASON = "Matches mood criteria"


class VariancePreference(Enum):
    """How much rater disagreement a mood tolerates."""

    LOW = "low"  # Consensus picks only
    MEDIUM = "medium"
    ANY = "any"

    def accepts(self, variance: float) -> bool:
        if self is VariancePreference.LOW:
            return variance < VARIANCE_LOW_MAX
        if self is VariancePreference.MEDIUM:
            return variance < VARIANCE_MEDIUM_MAX
        return True


@dataclass(frozen=True)
class MoodProfile:
    id: str
    name: str
    emoji: str
    description: str
    genres: frozenset[str]
    keywords: tuple[str, ...]
    rating_min: float
    rating_max: float
    variance_preference: VariancePreference


def _mood(id, name, emoji, description, genres, keywords, rating_range, variance) -> tuple[str, MoodProfile]:
    return id, MoodProfile(
        id=id,
        name=name,
        emoji=emoji,
        description=description,
        genres=frozenset(genres),
        keywords=tuple(keywords),
        rating_min=rating_range[0],
        rating_max=rating_range[1],
        variance_preference=VariancePreference(variance),
    )


MOOD_PROFILES: Mapping[str, MoodProfile] = dict([
    _mood(
        'feel-good', 'Feel-Good', '😊', 'Uplifting stories with happy endings',
        ['Comedy', 'Family', 'Animation', 'Romance'],
        ['feel-good', 'heartwarming', 'fun', 'uplifting', 'charming', 'delightful'],
        (3.8, 5.0), 'low',
    ),
    _mood(
        'emotional', 'Emotional Journey', '😢', 'Touching dramas that move you',
        ['Drama', 'Romance'],
        ['emotional', 'touching', 'tearjerker', 'moving', 'powerful', 'dramatic'],
        (3.5, 5.0), 'medium',
    ),
    _mood(
        'thrilling', 'Thrilling & Intense', '😱', 'Edge-of-your-seat excitement',
        ['Action', 'Thriller', 'Horror', 'Mystery'],
        ['suspense', 'intense', 'thrilling', 'action', 'exciting', 'gripping'],
        (3.0, 5.0), 'any',
    ),
    _mood(
        'thought-provoking', 'Thought-Provoking', '🤔', 'Complex stories that make you think',
        ['Sci-Fi', 'Mystery', 'Drama', 'Documentary'],
        ['mind-bending', 'philosophical', 'complex', 'thought-provoking', 'cerebral', 'intelligent'],
        (3.5, 5.0), 'any',
    ),
    _mood(
        'dark', 'Dark & Gritty', '🌑', 'Noir and dark thematic elements',
        ['Film-Noir', 'Crime', 'Thriller', 'Horror'],
        ['dark', 'noir', 'gritty', 'bleak', 'disturbing', 'atmospheric'],
        (3.3, 4.7), 'medium',
    ),
    _mood(
        'epic', 'Epic & Grand', '🎭', 'Large-scale adventures and epics',
        ['Adventure', 'Fantasy', 'War', 'Action'],
        ['epic', 'visually stunning', 'grand', 'spectacular', 'masterpiece', 'adventure'],
        (3.7, 5.0), 'low',
    ),
    _mood(
        'lighthearted', 'Lighthearted Fun', '😂', 'Easy, fun entertainment',
        ['Comedy', 'Romance', 'Animation'],
        ['funny', 'lighthearted', 'comedy', 'amusing', 'entertaining', 'witty'],
        (3.3, 5.0), 'low',
    ),
    _mood(
        'inspiring', 'Uplifting & Inspiring', '💪', 'Stories that motivate and inspire',
        ['Drama', 'Documentary', 'Adventure'],
        ['inspiring', 'uplifting', 'motivational', 'triumph', 'hopeful', 'courage'],
        (3.8, 5.0), 'low',
    ),
])


def get_mood(mood_id: str) -> MoodProfile | None:
    return MOOD_PROFILES.get((mood_id or "").strip().lower())


@dataclass
class MoodMatch:
    summary: ItemSummary
    mood_score: int
    genre_match: float
    tag_match: float
    rating_fit: float
    reasons: list[str] = field(default_factory=list)
    rank: int = 0

    @property
    def item(self) -> Item:
        return self.summary.item


def rating_fit(summary: ItemSummary, mood: MoodProfile) -> float:
    """0.5 for an average inside the mood's band plus 0.5 for acceptable variance."""
    fit = 0.0
    if mood.rating_min <= summary.average <= mood.rating_max:
        fit += 0.5
    if mood.variance_preference.accepts(summary.variance):
        fit += 0.5
    return fit


class MoodClassifier:
    """Score every item in the corpus against a mood profile."""

    def __init__(
        self,
        summaries: Mapping[str, ItemSummary],
        index: DatasetIndex,
        weights: dict[str, float] | None = None,
        min_score: int = MIN_MOOD_SCORE,
    ):
        self.summaries = summaries
        self.index = index
        self.weights = weights or MOOD_SCORE_WEIGHTS
        self.min_score = min_score

    def score(self, summary: ItemSummary, mood: MoodProfile) -> MoodMatch:
        genre_match = coverage(set(summary.item.genres), mood.genres)
        tag_match = keyword_coverage(self.index.tags_for(summary.item.id), mood.keywords)
        fit = rating_fit(summary, mood)
        mood_score = int(round_half_up(
            genre_match * self.weights['genre']
            + tag_match * self.weights['tag']
            + fit * self.weights['rating_fit']
        ))
        return MoodMatch(
            summary=summary,
            mood_score=mood_score,
            genre_match=genre_match,
            tag_match=tag_match,
            rating_fit=fit,
            reasons=self.explain(summary, mood, genre_match, tag_match),
        )

    def explain(self, summary: ItemSummary, mood: MoodProfile, genre_match: float, tag_match: float) -> list[str]:
        reasons: list[str] = []
        if genre_match > REASON_THRESHOLD_GENRE:
            matching = [g for g in summary.item.genres if g in mood.genres]
            reasons.append(f"{', '.join(matching)} genres")
        if tag_match > REASON_THRESHOLD_TAG:
            reasons.append("Matching themes and tags")
        reasons.extend(highly_rated_reason(summary))
        reasons.extend(popular_reason(summary))
        return reasons or [FALLBACK_REASON]

    def classify(self, mood_id: str, limit: int = DEFAULT_MOOD_LIMIT) -> list[MoodMatch]:
        """
        Rank items by how well they fit a mood.

        Args:
            mood_id: Key into MOOD_PROFILES (e.g. "feel-good")
            limit: Maximum number of matches

        Returns:
            Matches scoring at least the minimum, best first (ties keep corpus
            order). Unknown moods yield an empty list.
        """
        mood = get_mood(mood_id)
        if mood is None:
            logger.warning(f"Unknown mood '{mood_id}'; expected one of {', '.join(MOOD_PROFILES)}")
            return []

        matches = [
            match for match in (self.score(s, mood) for s in self.summaries.values())
            if match.mood_score >= self.min_score
        ]
        matches.sort(key=lambda m: -m.mood_score)
        top = matches[:limit]
        for rank, match in enumerate(top, start=1):
            match.rank = rank
        logger.debug(f"Mood '{mood.id}': {len(matches)} items scored >= {self.min_score}")
        return top
