import csv
import importlib
import sys
from pathlib import Path

import pytest

# Ensure the package under test is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from movie_insights.dataset import Dataset, Item, Link, Rating, Tag  # noqa: E402
from movie_insights.index import build_index  # noqa: E402
from movie_insights.stats import summarize_items  # noqa: E402


def small_corpus() -> Dataset:
    """
    Three films, two users:
      1: Comedy|Romance rated 5 (u1) and 4 (u2), tagged "funny" (u1) and "romantic" (u2)
      2: Comedy rated 4.5 (u1) and 5 (u2), tagged "funny" (u1)
      3: Action rated 2 (u1) and 3 (u2), untagged
    """
    items = [
        Item("1", "Movie One (1999)", ("Comedy", "Romance")),
        Item("2", "Movie Two (2001)", ("Comedy",)),
        Item("3", "Movie Three (2005)", ("Action",)),
    ]
    ratings = [
        Rating("u1", "1", 5.0, 1579046400),
        Rating("u2", "1", 4.0, 1581724800),
        Rating("u1", "2", 4.5, 1579046400),
        Rating("u2", "2", 5.0, 1584230400),
        Rating("u1", "3", 2.0, 1579046400),
        Rating("u2", "3", 3.0, 1581724800),
    ]
    tags = [
        Tag("u1", "1", "funny", 1579046400),
        Tag("u2", "1", "romantic", 1581724800),
        Tag("u1", "2", "Funny ", 1579046400),
    ]
    links = [
        Link("1", "0114709", "862"),
        Link("2", "0113497", None),
    ]
    return Dataset.from_records(items, ratings, tags, links)


@pytest.fixture
def corpus():
    return small_corpus()


@pytest.fixture
def index(corpus):
    return build_index(corpus.ratings, corpus.tags, version=corpus.version)


@pytest.fixture
def summaries(corpus, index):
    return summarize_items(corpus.items, index)


def _write_csv(path: Path, header: list[str], rows: list[list]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(header)
        writer.writerows(rows)


@pytest.fixture
def data_dir(tmp_path):
    """The small corpus written out as MovieLens-style CSV files."""
    ds = small_corpus()
    _write_csv(
        tmp_path / "movies.csv",
        ["movieId", "title", "genres"],
        [[i.id, i.title, "|".join(i.genres)] for i in ds.items],
    )
    _write_csv(
        tmp_path / "ratings.csv",
        ["userId", "movieId", "rating", "timestamp"],
        [[r.user_id, r.item_id, r.value, r.timestamp] for r in ds.ratings],
    )
    _write_csv(
        tmp_path / "tags.csv",
        ["userId", "movieId", "tag", "timestamp"],
        [[t.user_id, t.item_id, t.text, t.timestamp] for t in ds.tags],
    )
    _write_csv(
        tmp_path / "links.csv",
        ["movieId", "imdbId", "tmdbId"],
        [[link.item_id, link.imdb_id or "", link.tmdb_id or ""] for link in ds.links.values()],
    )
    return tmp_path


@pytest.fixture
def fresh_config(monkeypatch):
    """
    Reload config after the test has set environment overrides, and reload it
    again with the original environment on teardown.
    """
    import movie_insights.config as config

    def _reload():
        return importlib.reload(config)

    yield _reload

    monkeypatch.undo()
    importlib.reload(config)
