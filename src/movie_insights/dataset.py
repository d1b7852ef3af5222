"""
Record types and CSV loading for the movie datasets.

A loaded ``Dataset`` is an immutable snapshot. Every snapshot gets a fresh
``version`` so downstream caches can tell snapshots apart without hashing
millions of rows.
"""

from __future__ import annotations

import csv
import itertools
import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from tqdm import tqdm

from .config import (
    DATA_DIR,
    DEFAULT_SEARCH_LIMIT,
    GENRE_DELIMITER,
    LINKS_FILE,
    MOVIES_FILE,
    RATINGS_FILE,
    TAGS_FILE,
)

logger = logging.getLogger(__name__)

_YEAR_PATTERN = re.compile(r"\((\d{4})\)")
_TRAILING_YEAR_PATTERN = re.compile(r"\s*\(\d{4}\)$")

_versions = itertools.count(1)


def parse_genres(raw: str | None) -> tuple[str, ...]:
    """Split a pipe-delimited genre string, dropping blanks."""
    if not raw:
        return ()
    return tuple(g.strip() for g in raw.split(GENRE_DELIMITER) if g.strip())


def parse_rating_value(raw) -> float:
    """Parse a rating as a float; unparseable values become nan."""
    try:
        return float(raw)
    except (TypeError, ValueError):
        return math.nan


def parse_timestamp(raw) -> int | None:
    """Parse epoch seconds; returns None when the field is not an integer."""
    try:
        return int(raw)
    except (TypeError, ValueError):
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return None
        return int(value) if math.isfinite(value) else None


def normalize_tag(text: str | None) -> str:
    """Case and whitespace variants of a tag are the same logical tag."""
    return (text or "").strip().lower()


def extract_year(title: str | None) -> int:
    """Release year from a "Title (YYYY)" string, 0 when absent."""
    match = _YEAR_PATTERN.search(title or "")
    return int(match.group(1)) if match else 0


def strip_year_suffix(title: str | None) -> str:
    return _TRAILING_YEAR_PATTERN.sub("", title or "")


@dataclass(frozen=True)
class Item:
    id: str
    title: str
    genres: tuple[str, ...] = ()

    @property
    def year(self) -> int:
        return extract_year(self.title)

    @property
    def display_title(self) -> str:
        return strip_year_suffix(self.title)


@dataclass(frozen=True)
class Rating:
    user_id: str
    item_id: str
    value: float
    timestamp: int | None = None


@dataclass(frozen=True)
class Tag:
    user_id: str
    item_id: str
    text: str
    timestamp: int | None = None

    @property
    def normalized(self) -> str:
        return normalize_tag(self.text)


@dataclass(frozen=True)
class Link:
    item_id: str
    imdb_id: str | None = None
    tmdb_id: str | None = None

    @property
    def imdb_url(self) -> str | None:
        if not self.imdb_id:
            return None
        return f"https://www.imdb.com/title/tt{self.imdb_id}/"


@dataclass(frozen=True, eq=False)
class Dataset:
    """Immutable snapshot of items, ratings, tags and external links."""

    items: tuple[Item, ...]
    ratings: tuple[Rating, ...] = ()
    tags: tuple[Tag, ...] = ()
    links: Mapping[str, Link] = field(default_factory=dict)
    version: int = field(default_factory=lambda: next(_versions))

    def __post_init__(self) -> None:
        # Coerce to immutable containers so callers can pass lists
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "ratings", tuple(self.ratings))
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "links", MappingProxyType(dict(self.links)))
        object.__setattr__(self, "_items_by_id", MappingProxyType({i.id: i for i in self.items}))

    def item(self, item_id: str) -> Item | None:
        return self._items_by_id.get(str(item_id))

    def link(self, item_id: str) -> Link | None:
        return self.links.get(str(item_id))

    @classmethod
    def from_records(
        cls,
        items: Iterable[Item],
        ratings: Iterable[Rating] = (),
        tags: Iterable[Tag] = (),
        links: Iterable[Link] = (),
    ) -> "Dataset":
        return cls(
            items=tuple(items),
            ratings=tuple(ratings),
            tags=tuple(tags),
            links={link.item_id: link for link in links},
        )


def search_items(
    items: Iterable[Item],
    query: str = "",
    genres: Iterable[str] = (),
    limit: int = DEFAULT_SEARCH_LIMIT,
) -> list[Item]:
    """
    Find items by title and genre.

    Args:
        items: Items to search, in corpus order
        query: Case-insensitive substring of the title; blank matches everything
        genres: Keep items having any of these genres; empty means no restriction
        limit: Maximum number of items returned

    Returns:
        Matching items in corpus order
    """
    if limit <= 0:
        return []
    needle = (query or "").strip().lower()
    wanted = {g.strip() for g in genres if g and g.strip()}
    matches = []
    for item in items:
        if needle and needle not in item.title.lower():
            continue
        if wanted and wanted.isdisjoint(item.genres):
            continue
        matches.append(item)
        if len(matches) >= limit:
            break
    return matches


def _read_rows(path: Path, desc: str, progress: bool) -> Iterator[dict]:
    with open(path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        rows = tqdm(reader, desc=desc, unit=" rows", disable=not progress)
        yield from rows


def load_items(path: Path, progress: bool = False) -> list[Item]:
    items = []
    for row in _read_rows(path, "Movies", progress):
        item_id = (row.get("movieId") or "").strip()
        if not item_id:
            logger.warning(f"Skipping movie row without movieId: {row}")
            continue
        items.append(Item(id=item_id, title=row.get("title") or "", genres=parse_genres(row.get("genres"))))
    return items


def load_ratings(path: Path, progress: bool = False) -> list[Rating]:
    ratings = []
    for row in _read_rows(path, "Ratings", progress):
        ratings.append(Rating(
            user_id=(row.get("userId") or "").strip(),
            item_id=(row.get("movieId") or "").strip(),
            value=parse_rating_value(row.get("rating")),
            timestamp=parse_timestamp(row.get("timestamp")),
        ))
    return ratings


def load_tags(path: Path, progress: bool = False) -> list[Tag]:
    tags = []
    for row in _read_rows(path, "Tags", progress):
        text = row.get("tag")
        if text is None:
            logger.warning(f"Skipping tag row without tag text: {row}")
            continue
        tags.append(Tag(
            user_id=(row.get("userId") or "").strip(),
            item_id=(row.get("movieId") or "").strip(),
            text=text,
            timestamp=parse_timestamp(row.get("timestamp")),
        ))
    return tags


def load_links(path: Path, progress: bool = False) -> list[Link]:
    links = []
    for row in _read_rows(path, "Links", progress):
        item_id = (row.get("movieId") or "").strip()
        if not item_id:
            continue
        links.append(Link(
            item_id=item_id,
            imdb_id=(row.get("imdbId") or "").strip() or None,
            tmdb_id=(row.get("tmdbId") or "").strip() or None,
        ))
    return links


def load_dataset(data_dir: str | Path | None = None, progress: bool = False) -> Dataset:
    """
    Load a MovieLens-style dataset directory into an immutable snapshot.

    ``movies.csv`` is required; ratings, tags and links are optional and
    load as empty (with a warning) when missing.

    Args:
        data_dir: Directory holding the CSV files (default: config.DATA_DIR)
        progress: Show tqdm progress bars while reading

    Returns:
        Dataset snapshot with a fresh version
    """
    base = Path(data_dir) if data_dir else DATA_DIR
    movies_path = base / MOVIES_FILE
    if not movies_path.exists():
        raise FileNotFoundError(f"Movies file not found: {movies_path}")

    items = load_items(movies_path, progress)

    def _optional(filename: str, loader):
        path = base / filename
        if not path.exists():
            logger.warning(f"{path} not found; continuing without it")
            return []
        return loader(path, progress)

    ratings = _optional(RATINGS_FILE, load_ratings)
    tags = _optional(TAGS_FILE, load_tags)
    links = _optional(LINKS_FILE, load_links)

    dataset = Dataset.from_records(items, ratings, tags, links)
    logger.info(
        f"Loaded dataset v{dataset.version}: {len(dataset.items)} items, {len(dataset.ratings)} ratings, "
        f"{len(dataset.tags)} tags, {len(dataset.links)} links"
    )
    return dataset
