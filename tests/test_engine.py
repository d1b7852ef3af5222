import threading

import pytest

from movie_insights.dataset import Dataset, Item, Rating
from movie_insights.engine import InsightsEngine
from movie_insights.tag_cloud import TagCloudFilters


def test_engine_without_snapshot_returns_empty_results():
    engine = InsightsEngine()

    assert not engine.is_loaded
    assert engine.index() is None
    assert engine.summaries() == {}
    assert engine.item_stats("1") is None
    assert engine.item_tags("1") is None
    assert engine.timeline("1") == []
    assert engine.link("1") is None
    assert engine.recommend(["1"]) == []
    assert engine.mood_matches("feel-good") == []
    assert engine.cross_recommendation("1", "2") is None
    assert engine.tag_cloud() == []


def test_engine_delegates_to_components(corpus):
    engine = InsightsEngine(corpus)

    stats = engine.item_stats("1")
    assert (stats.average, stats.median, stats.count) == (4.5, 4.5, 2)
    assert [p.month for p in engine.timeline("1")] == ["2020-01", "2020-02"]
    assert [t.tag for t in engine.item_tags("1").tags] == ["funny", "romantic"]
    assert engine.item_stats("404") is None
    assert [r.item.id for r in engine.recommend(["1"])] == ["2"]
    assert [m.item.id for m in engine.mood_matches("feel-good", limit=1)] == ["1"]
    assert engine.cross_recommendation("1", "2").confidence == 70
    assert [e.tag for e in engine.tag_cloud(TagCloudFilters(min_items=2))] == ["funny"]
    assert engine.link("1").imdb_url.endswith("tt0114709/")


def test_derived_structures_are_memoized_per_snapshot(corpus):
    engine = InsightsEngine(corpus)

    first_index = engine.index()
    first_summaries = engine.summaries()
    assert engine.index() is first_index
    assert engine.summaries() is first_summaries
    assert first_index.version == corpus.version

    engine.load(Dataset.from_records([Item("9", "Other (2011)", ("Drama",))]))

    assert engine.index() is not first_index
    assert list(engine.summaries()) == ["9"]


def test_concurrent_readers_share_one_snapshot(corpus):
    engine = InsightsEngine(corpus)
    results = []

    def worker():
        results.append([r.item.id for r in engine.recommend(["1"])])

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == [["2"]] * 8


def test_load_during_an_operation_does_not_mix_snapshots(corpus, monkeypatch):
    engine = InsightsEngine(corpus)
    other = Dataset.from_records(
        [Item("1", "Swapped (2010)", ("Drama",))],
        [Rating("u9", "1", 1.0)],
    )
    build_index_of = engine._index_of
    swapped = []

    def index_then_swap(ds):
        index = build_index_of(ds)
        if not swapped:
            swapped.append(True)
            engine.load(other)
        return index

    monkeypatch.setattr(engine, "_index_of", index_then_swap)

    assert [r.item.id for r in engine.recommend(["1"])] == ["2"]
    assert engine.summaries()["1"].average == 1.0

    engine.load(corpus)
    assert engine.summaries()["1"].average == 4.5


def test_cached_summaries_are_read_only(corpus):
    engine = InsightsEngine(corpus)
    summaries = engine.summaries()

    with pytest.raises(AttributeError):
        summaries["1"].average = 0.0
    with pytest.raises(TypeError):
        summaries["2"] = summaries["1"]
    with pytest.raises(AttributeError):
        summaries.pop("2")

    assert engine.summaries()["1"].average == 4.5
    assert list(engine.summaries()) == ["1", "2", "3"]


def test_search_by_title_and_genre(corpus):
    engine = InsightsEngine(corpus)

    assert [i.id for i in engine.search("movie t")] == ["2", "3"]
    assert [i.id for i in engine.search(genres=["Action", "Romance"])] == ["1", "3"]
    assert [i.id for i in engine.search("", limit=2)] == ["1", "2"]
    assert InsightsEngine().search("movie") == []
