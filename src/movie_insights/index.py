"""
Per-item lookup structures built from the raw rating and tag records.

The index is rebuilt wholesale for every dataset snapshot; it is never
patched in place, so a single instance can be shared by any number of
readers.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from .dataset import Rating, Tag, normalize_tag

logger = logging.getLogger(__name__)

_EMPTY_RATINGS: tuple[Rating, ...] = ()
_EMPTY_TAGS: frozenset[str] = frozenset()
_EMPTY_COUNTS: tuple[tuple[str, int], ...] = ()


@dataclass(frozen=True, eq=False)
class DatasetIndex:
    """Read-only item id -> ratings / normalized tags lookups."""

    ratings_by_item: Mapping[str, tuple[Rating, ...]] = field(default_factory=dict)
    tags_by_item: Mapping[str, frozenset[str]] = field(default_factory=dict)
    tag_counts_by_item: Mapping[str, tuple[tuple[str, int], ...]] = field(default_factory=dict)
    version: int = 0

    def ratings_for(self, item_id: str) -> tuple[Rating, ...]:
        return self.ratings_by_item.get(item_id, _EMPTY_RATINGS)

    def tags_for(self, item_id: str) -> frozenset[str]:
        return self.tags_by_item.get(item_id, _EMPTY_TAGS)

    def tag_counts_for(self, item_id: str) -> tuple[tuple[str, int], ...]:
        return self.tag_counts_by_item.get(item_id, _EMPTY_COUNTS)


def build_index(
    ratings: Iterable[Rating],
    tags: Iterable[Tag],
    version: int = 0,
) -> DatasetIndex:
    """
    Group ratings and tags by item in a single pass over each list.

    Items with no ratings (or no tags) get no entry; lookups for them return
    empty results through the ``*_for`` accessors.

    Args:
        ratings: All rating records
        tags: All tag records
        version: Version of the dataset snapshot the records came from

    Returns:
        Immutable DatasetIndex
    """
    ratings_by_item: dict[str, list[Rating]] = defaultdict(list)
    for rating in ratings:
        ratings_by_item[rating.item_id].append(rating)

    tag_counts: dict[str, Counter] = defaultdict(Counter)
    for tag in tags:
        normalized = normalize_tag(tag.text)
        if not normalized:
            continue
        tag_counts[tag.item_id][normalized] += 1

    index = DatasetIndex(
        ratings_by_item=MappingProxyType({k: tuple(v) for k, v in ratings_by_item.items()}),
        tags_by_item=MappingProxyType({k: frozenset(c) for k, c in tag_counts.items()}),
        tag_counts_by_item=MappingProxyType({
            k: tuple(sorted(c.items(), key=lambda x: (-x[1], x[0])))
            for k, c in tag_counts.items()
        }),
        version=version,
    )
    logger.debug(
        f"Built index v{version}: {len(index.ratings_by_item)} rated items, {len(index.tags_by_item)} tagged items"
    )
    return index


@dataclass
class TagCount:
    tag: str
    count: int


@dataclass
class ItemTags:
    """User-applied tags for one item, most frequent first."""

    tags: list[TagCount]
    total_tags: int


def item_tag_summary(index: DatasetIndex, item_id: str) -> ItemTags:
    counts = index.tag_counts_for(item_id)
    return ItemTags(
        tags=[TagCount(tag=tag, count=count) for tag, count in counts],
        total_tags=sum(count for _, count in counts),
    )
