"""
Tag cloud aggregation over a filtered slice of the corpus.

Note on ``average_rating``: every tag occurrence adds its item's average to
the running total, but the total is divided by the number of *distinct*
items. An item tagged twice contributes its average twice to the numerator
and once to the denominator. Downstream consumers rely on these numbers, so
the formula is kept as is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .config import (
    DEFAULT_TAG_CLOUD_LIMIT,
    TAG_CLOUD_MIN_ITEMS,
    TAG_CLOUD_RATING_RANGE,
    TAG_CLOUD_YEAR_RANGE,
)
from .dataset import Tag, normalize_tag
from .stats import ItemSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TagCloudFilters:
    genres: frozenset[str] = frozenset()  # OR-match; empty means no restriction
    year_range: tuple[int, int] = TAG_CLOUD_YEAR_RANGE
    rating_range: tuple[float, float] = TAG_CLOUD_RATING_RANGE
    min_items: int = TAG_CLOUD_MIN_ITEMS

    def __post_init__(self) -> None:
        object.__setattr__(self, "genres", frozenset(g.strip() for g in self.genres if g and g.strip()))

    def accepts(self, summary: ItemSummary) -> bool:
        item = summary.item
        if self.genres and not self.genres.intersection(item.genres):
            return False
        # Titles without a year parse as year 0 and fall outside any real range
        if not self.year_range[0] <= item.year <= self.year_range[1]:
            return False
        return self.rating_range[0] <= summary.average <= self.rating_range[1]


@dataclass
class TagCloudEntry:
    tag: str
    count: int
    average_rating: float
    item_ids: list[str] = field(default_factory=list)


@dataclass
class TagCloudStats:
    total_tags: int = 0
    total_occurrences: int = 0
    top_tag: TagCloudEntry | None = None
    average_rating: float = 0.0


def build_tag_cloud(
    tags: Iterable[Tag],
    summaries: Mapping[str, ItemSummary],
    filters: TagCloudFilters | None = None,
    limit: int = DEFAULT_TAG_CLOUD_LIMIT,
) -> list[TagCloudEntry]:
    """
    Aggregate tag usage over the items that pass ``filters``.

    Args:
        tags: Raw tag records (every occurrence counts)
        summaries: Item summaries keyed by item id
        filters: Genre / year / rating filters and the per-tag item threshold
        limit: Maximum number of tags returned

    Returns:
        Tags with at least ``filters.min_items`` distinct items, most used first
    """
    filters = filters or TagCloudFilters()
    kept = {item_id: s for item_id, s in summaries.items() if filters.accepts(s)}
    if not kept:
        return []

    counts: dict[str, int] = {}
    item_sets: dict[str, dict[str, None]] = {}
    rating_totals: dict[str, float] = {}

    for tag in tags:
        summary = kept.get(tag.item_id)
        if summary is None:
            continue
        text = normalize_tag(tag.text)
        if not text:
            continue
        counts[text] = counts.get(text, 0) + 1
        # dict keeps first-seen order for the member ids
        item_sets.setdefault(text, {})[tag.item_id] = None
        rating_totals[text] = rating_totals.get(text, 0.0) + summary.average

    entries = []
    for text, count in counts.items():
        members = list(item_sets[text])
        if len(members) < filters.min_items:
            continue
        entries.append(TagCloudEntry(
            tag=text,
            count=count,
            average_rating=rating_totals[text] / len(members) if members else 0.0,
            item_ids=members,
        ))

    entries.sort(key=lambda e: -e.count)
    logger.debug(f"Tag cloud: {len(kept)} items kept, {len(entries)} tags above threshold")
    return entries[:limit]


def tag_cloud_stats(entries: list[TagCloudEntry]) -> TagCloudStats:
    """Summary over a tag cloud; the overall average is weighted by tag count."""
    if not entries:
        return TagCloudStats()

    total_occurrences = sum(e.count for e in entries)
    weighted = sum(e.average_rating * e.count for e in entries)
    return TagCloudStats(
        total_tags=len(entries),
        total_occurrences=total_occurrences,
        top_tag=max(entries, key=lambda e: e.count),
        average_rating=weighted / total_occurrences if total_occurrences else 0.0,
    )
