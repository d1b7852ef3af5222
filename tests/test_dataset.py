import math

import pytest

from movie_insights import dataset
from movie_insights.dataset import Dataset, Item, Link, load_dataset, search_items


def test_parsing_helpers():
    assert dataset.parse_genres("Comedy|Romance") == ("Comedy", "Romance")
    assert dataset.parse_genres("") == ()
    assert dataset.parse_genres("Drama||") == ("Drama",)

    assert dataset.parse_rating_value("4.5") == 4.5
    assert math.isnan(dataset.parse_rating_value("n/a"))
    assert math.isnan(dataset.parse_rating_value(None))

    assert dataset.parse_timestamp("1579046400") == 1579046400
    assert dataset.parse_timestamp("1579046400.0") == 1579046400
    assert dataset.parse_timestamp("") is None
    assert dataset.parse_timestamp("nan") is None

    assert dataset.normalize_tag("  Dark Comedy ") == "dark comedy"
    assert dataset.normalize_tag(None) == ""


def test_item_year_and_display_title():
    item = Item("1", "Toy Story (1995)", ("Animation",))
    assert item.year == 1995
    assert item.display_title == "Toy Story"

    undated = Item("2", "Untitled Project", ())
    assert undated.year == 0
    assert undated.display_title == "Untitled Project"


def test_link_imdb_url():
    assert Link("1", "0114709", "862").imdb_url == "https://www.imdb.com/title/tt0114709/"
    assert Link("1", None, "862").imdb_url is None


def test_snapshots_are_immutable_and_versioned():
    first = Dataset.from_records([Item("1", "A (2000)")])
    second = Dataset.from_records([Item("1", "A (2000)")])

    assert first.version != second.version
    assert isinstance(first.items, tuple)
    with pytest.raises(AttributeError):
        first.items = ()
    with pytest.raises(TypeError):
        first.links["1"] = Link("1")


def test_load_dataset_reads_all_files(data_dir):
    ds = load_dataset(data_dir)

    assert [i.id for i in ds.items] == ["1", "2", "3"]
    assert ds.item("1").genres == ("Comedy", "Romance")
    assert ds.item("missing") is None
    assert len(ds.ratings) == 6
    assert ds.ratings[0].value == 5.0
    assert ds.ratings[0].timestamp == 1579046400
    assert [t.normalized for t in ds.tags] == ["funny", "romantic", "funny"]
    assert ds.link("1").tmdb_id == "862"
    assert ds.link("2").tmdb_id is None


def test_load_dataset_requires_movies_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_dataset(tmp_path)


def test_load_dataset_optional_files_missing(data_dir, caplog):
    (data_dir / "tags.csv").unlink()
    (data_dir / "links.csv").unlink()

    ds = load_dataset(data_dir)

    assert ds.tags == ()
    assert len(ds.links) == 0
    assert "tags.csv not found" in caplog.text


def test_load_dataset_keeps_unparseable_ratings_as_nan(tmp_path):
    (tmp_path / "movies.csv").write_text(
        'movieId,title,genres\n1,"Heat, The (1995)",Crime|Thriller\n', encoding="utf-8"
    )
    (tmp_path / "ratings.csv").write_text(
        "userId,movieId,rating,timestamp\nu1,1,oops,\nu2,1,3.5,100\n", encoding="utf-8"
    )

    ds = load_dataset(tmp_path)

    assert ds.item("1").title == "Heat, The (1995)"
    assert math.isnan(ds.ratings[0].value)
    assert ds.ratings[0].timestamp is None
    assert ds.ratings[1].value == 3.5


def test_search_items_matches_title_substring_case_insensitively(corpus):
    assert [i.id for i in search_items(corpus.items, "MOVIE T")] == ["2", "3"]
    assert [i.id for i in search_items(corpus.items, "  two ")] == ["2"]
    assert search_items(corpus.items, "zombie") == []


def test_search_items_genre_filter_matches_any_genre(corpus):
    assert [i.id for i in search_items(corpus.items, genres=["Romance", "Action"])] == ["1", "3"]
    assert [i.id for i in search_items(corpus.items, "movie", genres=["Comedy"])] == ["1", "2"]
    assert search_items(corpus.items, genres=["Western"]) == []


def test_search_items_caps_results_in_corpus_order():
    items = [Item(str(n), f"Sequel {n} (2000)", ("Action",)) for n in range(150)]

    assert len(search_items(items)) == 100
    assert [i.id for i in search_items(items, "sequel", limit=3)] == ["0", "1", "2"]
    assert search_items(items, limit=0) == []
