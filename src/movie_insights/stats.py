"""
Per-item rating statistics and monthly rating timelines.

All figures are recomputed from the raw ratings on demand. Ratings whose
value did not parse (nan) are left out of every aggregate.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from types import MappingProxyType
from typing import Iterable, Mapping

import numpy as np

from .config import RECENT_RATINGS_LIMIT, TIMELINE_WINDOW
from .dataset import Item, Rating
from .index import DatasetIndex
from .utils import round_half_up

logger = logging.getLogger(__name__)


@dataclass
class RatingBucket:
    value: float
    count: int


@dataclass
class RecentRating:
    user_id: str
    value: float
    timestamp: int
    date: str  # ISO calendar date (UTC)


@dataclass
class TimelinePoint:
    """One calendar month of ratings."""
    month: str             # "YYYY-MM"
    date: date             # first day of the month
    rating: float          # mean rating within the month
    count: int
    moving_average: float  # count-weighted mean over the centered window


@dataclass
class ItemStats:
    average: float = 0.0
    median: float = 0.0
    count: int = 0
    variance: float = 0.0
    distribution: list[RatingBucket] = field(default_factory=list)
    recent: list[RecentRating] = field(default_factory=list)
    timeline: list[TimelinePoint] = field(default_factory=list)


@dataclass(frozen=True)
class ItemSummary:
    """An item together with the headline statistics the scorers need."""
    item: Item
    average: float = 0.0
    median: float = 0.0
    count: int = 0
    variance: float = 0.0


def _utc_datetime(timestamp: int | None) -> datetime | None:
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _finite_values(ratings: Iterable[Rating]) -> np.ndarray:
    values = np.array([r.value for r in ratings], dtype=float)
    return values[np.isfinite(values)]


def describe(values: np.ndarray) -> tuple[float, float, float, int]:
    """
    Headline statistics for a vector of finite rating values.

    Returns:
        (average, median, population variance, count); average and median
        are rounded to one decimal, everything is 0 for an empty vector and
        variance is 0 for a single value.
    """
    n = int(values.size)
    if n == 0:
        return 0.0, 0.0, 0.0, 0
    average = round_half_up(float(np.mean(values)), 1)
    median = round_half_up(float(np.median(values)), 1)
    variance = float(np.var(values)) if n > 1 else 0.0
    return average, median, variance, n


def rating_distribution(values: np.ndarray) -> list[RatingBucket]:
    """Count of each distinct rating value, ascending by value."""
    if values.size == 0:
        return []
    distinct, counts = np.unique(values, return_counts=True)
    return [RatingBucket(value=float(v), count=int(c)) for v, c in zip(distinct, counts)]


def recent_ratings(ratings: Iterable[Rating], limit: int = RECENT_RATINGS_LIMIT) -> list[RecentRating]:
    """
    The most recent ratings, newest first.

    Equal timestamps keep their original order. Ratings without a usable
    timestamp or value are skipped.
    """
    dated = []
    for rating in ratings:
        moment = _utc_datetime(rating.timestamp)
        if moment is None or not np.isfinite(rating.value):
            continue
        dated.append((rating, moment))

    dated.sort(key=lambda pair: pair[0].timestamp, reverse=True)
    return [
        RecentRating(
            user_id=rating.user_id,
            value=rating.value,
            timestamp=rating.timestamp,
            date=moment.date().isoformat(),
        )
        for rating, moment in dated[:limit]
    ]


def rating_timeline(ratings: Iterable[Rating], window: int = TIMELINE_WINDOW) -> list[TimelinePoint]:
    """
    Monthly mean ratings with a centered, count-weighted moving average.

    Months are UTC calendar months. For point i the window spans
    [i - window//2, i + (window+1)//2) clipped to the series, so with the
    default window of 3 the edge points average over two months. The moving
    average is sum(rating * count) / sum(count) over the window, not the mean
    of the monthly means.
    """
    if window < 1:
        raise ValueError(f"window must be positive, got {window}")

    monthly: dict[str, list[float]] = {}
    for rating in ratings:
        moment = _utc_datetime(rating.timestamp)
        if moment is None or not np.isfinite(rating.value):
            continue
        bucket = monthly.setdefault(f"{moment.year:04d}-{moment.month:02d}", [0.0, 0])
        bucket[0] += rating.value
        bucket[1] += 1

    if not monthly:
        return []

    ordered = OrderedDict(sorted(monthly.items()))
    sums = np.array([v[0] for v in ordered.values()], dtype=float)
    counts = np.array([v[1] for v in ordered.values()], dtype=float)

    n = len(sums)
    positions = np.arange(n)
    starts = np.maximum(positions - window // 2, 0)
    ends = np.minimum(positions + (window + 1) // 2, n)
    cum_sums = np.concatenate(([0.0], np.cumsum(sums)))
    cum_counts = np.concatenate(([0.0], np.cumsum(counts)))
    moving = (cum_sums[ends] - cum_sums[starts]) / (cum_counts[ends] - cum_counts[starts])

    points = []
    for i, month in enumerate(ordered):
        year, mon = month.split("-")
        points.append(TimelinePoint(
            month=month,
            date=date(int(year), int(mon), 1),
            rating=float(sums[i] / counts[i]),
            count=int(counts[i]),
            moving_average=float(moving[i]),
        ))
    return points


def compute_item_stats(ratings: Iterable[Rating], include_timeline: bool = True) -> ItemStats:
    """Full descriptive statistics for one item's ratings."""
    ratings = tuple(ratings)
    values = _finite_values(ratings)
    average, median, variance, count = describe(values)
    return ItemStats(
        average=average,
        median=median,
        count=count,
        variance=variance,
        distribution=rating_distribution(values),
        recent=recent_ratings(ratings),
        timeline=rating_timeline(ratings) if include_timeline else [],
    )


def summarize_items(items: Iterable[Item], index: DatasetIndex) -> Mapping[str, ItemSummary]:
    """Headline statistics for every item, keyed by item id (corpus order), as a read-only mapping."""
    summaries: dict[str, ItemSummary] = {}
    for item in items:
        average, median, variance, count = describe(_finite_values(index.ratings_for(item.id)))
        summaries[item.id] = ItemSummary(
            item=item, average=average, median=median, count=count, variance=variance,
        )
    logger.debug(f"Summarized {len(summaries)} items")
    return MappingProxyType(summaries)
