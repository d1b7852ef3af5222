"""
In-process facade over the analytics components.

``InsightsEngine`` holds the current dataset snapshot and memoizes the
derived index and item summaries per snapshot version. Until a snapshot is
loaded every operation returns an empty result (or None for single-item
lookups) instead of raising.

Each operation reads the current snapshot once and derives everything it
needs from that one snapshot, so a concurrent ``load`` never mixes two
generations within a call.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Mapping

from .config import DEFAULT_MOOD_LIMIT, DEFAULT_RECOMMEND_LIMIT, DEFAULT_SEARCH_LIMIT, DEFAULT_TAG_CLOUD_LIMIT
from .cross import CrossRecommendation, cross_recommendation
from .dataset import Dataset, Item, Link, search_items
from .index import DatasetIndex, ItemTags, build_index, item_tag_summary
from .mood import MoodClassifier, MoodMatch
from .recommender import HybridRecommender, Recommendation
from .stats import ItemStats, ItemSummary, TimelinePoint, compute_item_stats, rating_timeline, summarize_items
from .tag_cloud import TagCloudEntry, TagCloudFilters, build_tag_cloud
from .utils import VersionedCache

logger = logging.getLogger(__name__)

_NO_SUMMARIES: Mapping[str, ItemSummary] = MappingProxyType({})


class InsightsEngine:
    """Entry point used by the surrounding application."""

    def __init__(self, dataset: Dataset | None = None):
        self._dataset: Dataset | None = None
        self._index_cache: VersionedCache[DatasetIndex] = VersionedCache(build_index)
        self._summary_cache: VersionedCache[Mapping[str, ItemSummary]] = VersionedCache(summarize_items)
        if dataset is not None:
            self.load(dataset)

    @property
    def dataset(self) -> Dataset | None:
        return self._dataset

    @property
    def is_loaded(self) -> bool:
        return self._dataset is not None

    def load(self, dataset: Dataset) -> None:
        """Swap in a new snapshot; derived structures are rebuilt lazily."""
        self._dataset = dataset
        logger.debug(f"Engine now serving dataset v{dataset.version}")

    def _index_of(self, ds: Dataset) -> DatasetIndex:
        return self._index_cache.get(ds.version, ds.ratings, ds.tags, version=ds.version)

    def _derived(self, ds: Dataset) -> tuple[DatasetIndex, Mapping[str, ItemSummary]]:
        """Index and item summaries of one snapshot."""
        index = self._index_of(ds)
        return index, self._summary_cache.get(ds.version, ds.items, index)

    def index(self) -> DatasetIndex | None:
        ds = self._dataset
        if ds is None:
            return None
        return self._index_of(ds)

    def summaries(self) -> Mapping[str, ItemSummary]:
        ds = self._dataset
        if ds is None:
            return _NO_SUMMARIES
        return self._derived(ds)[1]

    def search(
        self,
        query: str = "",
        genres: Iterable[str] = (),
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[Item]:
        ds = self._dataset
        if ds is None:
            return []
        return search_items(ds.items, query=query, genres=genres, limit=limit)

    def item_stats(self, item_id: str) -> ItemStats | None:
        ds = self._dataset
        if ds is None or ds.item(item_id) is None:
            return None
        return compute_item_stats(self._index_of(ds).ratings_for(str(item_id)))

    def timeline(self, item_id: str) -> list[TimelinePoint]:
        ds = self._dataset
        if ds is None:
            return []
        return rating_timeline(self._index_of(ds).ratings_for(str(item_id)))

    def item_tags(self, item_id: str) -> ItemTags | None:
        ds = self._dataset
        if ds is None or ds.item(item_id) is None:
            return None
        return item_tag_summary(self._index_of(ds), str(item_id))

    def link(self, item_id: str) -> Link | None:
        ds = self._dataset
        if ds is None:
            return None
        return ds.link(item_id)

    def recommend(self, reference_ids: Iterable[str], limit: int = DEFAULT_RECOMMEND_LIMIT) -> list[Recommendation]:
        ds = self._dataset
        if ds is None:
            return []
        index, summaries = self._derived(ds)
        return HybridRecommender(summaries, index).recommend(reference_ids, limit=limit)

    def mood_matches(self, mood_id: str, limit: int = DEFAULT_MOOD_LIMIT) -> list[MoodMatch]:
        ds = self._dataset
        if ds is None:
            return []
        index, summaries = self._derived(ds)
        return MoodClassifier(summaries, index).classify(mood_id, limit=limit)

    def cross_recommendation(self, first_id: str, second_id: str) -> CrossRecommendation | None:
        ds = self._dataset
        if ds is None:
            return None
        index, summaries = self._derived(ds)
        return cross_recommendation(summaries, index, first_id, second_id)

    def tag_cloud(
        self,
        filters: TagCloudFilters | None = None,
        limit: int = DEFAULT_TAG_CLOUD_LIMIT,
    ) -> list[TagCloudEntry]:
        ds = self._dataset
        if ds is None:
            return []
        _, summaries = self._derived(ds)
        return build_tag_cloud(ds.tags, summaries, filters, limit=limit)
