from dataclasses import replace

import pytest

from movie_insights.dataset import Item, Rating, Tag
from movie_insights.index import build_index
from movie_insights.stats import summarize_items
from movie_insights.tag_cloud import TagCloudFilters, build_tag_cloud, tag_cloud_stats

EVERY_TAG = TagCloudFilters(min_items=1)


def test_default_filters():
    defaults = TagCloudFilters()

    assert defaults.year_range == (1990, 2020)
    assert defaults.rating_range == (0.0, 5.0)
    assert defaults.min_items == 2
    assert defaults.genres == frozenset()


def test_default_threshold_keeps_tags_on_two_items(corpus, summaries):
    entries = build_tag_cloud(corpus.tags, summaries)

    assert [(e.tag, e.count, e.item_ids) for e in entries] == [("funny", 2, ["1", "2"])]


def test_tag_cloud_over_whole_corpus(corpus, summaries):
    entries = build_tag_cloud(corpus.tags, summaries, EVERY_TAG)

    assert [(e.tag, e.count) for e in entries] == [("funny", 2), ("romantic", 1)]
    assert entries[0].item_ids == ["1", "2"]
    assert entries[0].average_rating == pytest.approx((4.5 + 4.8) / 2)


def test_same_item_tagged_twice_counts_its_average_twice():
    items = [Item("x", "Twisty (2010)", ("Thriller",))]
    ratings = [Rating("u1", "x", 4.0), Rating("u2", "x", 5.0)]
    tags = [Tag("u1", "x", "plot twist"), Tag("u2", "x", "Plot Twist")]
    summaries = summarize_items(items, build_index(ratings, tags))

    [entry] = build_tag_cloud(tags, summaries, EVERY_TAG)

    assert entry.count == 2
    assert entry.item_ids == ["x"]
    assert entry.average_rating == pytest.approx(2 * 4.5)


def test_filters_by_genre_year_and_rating(corpus, summaries):
    romance = build_tag_cloud(corpus.tags, summaries, replace(EVERY_TAG, genres=frozenset({"Romance"})))
    assert [e.tag for e in romance] == ["funny", "romantic"]
    assert romance[0].item_ids == ["1"]

    recent = build_tag_cloud(corpus.tags, summaries, replace(EVERY_TAG, year_range=(2000, 2010)))
    assert [(e.tag, e.item_ids) for e in recent] == [("funny", ["2"])]

    top_rated = build_tag_cloud(corpus.tags, summaries, replace(EVERY_TAG, rating_range=(4.6, 5.0)))
    assert [e.tag for e in top_rated] == ["funny"]

    nothing = build_tag_cloud(corpus.tags, summaries, replace(EVERY_TAG, genres=frozenset({"Western"})))
    assert nothing == []


def test_min_items_threshold_and_limit(corpus, summaries):
    assert [e.tag for e in build_tag_cloud(corpus.tags, summaries, TagCloudFilters(min_items=3))] == []
    assert len(build_tag_cloud(corpus.tags, summaries, EVERY_TAG, limit=1)) == 1


def test_undated_titles_fall_outside_year_range():
    items = [Item("x", "No Year", ("Drama",))]
    tags = [Tag("u1", "x", "slow")]
    summaries = summarize_items(items, build_index([], tags))

    assert build_tag_cloud(tags, summaries, EVERY_TAG) == []


def test_tag_cloud_stats(corpus, summaries):
    stats = tag_cloud_stats(build_tag_cloud(corpus.tags, summaries, EVERY_TAG))

    assert stats.total_tags == 2
    assert stats.total_occurrences == 3
    assert stats.top_tag.tag == "funny"
    assert stats.average_rating == pytest.approx((4.65 * 2 + 4.5) / 3)

    empty = tag_cloud_stats([])
    assert empty.total_tags == 0 and empty.top_tag is None
