import math

import pytest

from movie_insights.collaborative import CollaborativeFilter, collaborative_score, enthusiast_cohort
from movie_insights.dataset import Rating
from movie_insights.index import build_index


def test_cohort_contains_users_rating_four_or_more(index):
    assert enthusiast_cohort(index, ["1"]) == frozenset({"u1", "u2"})
    assert enthusiast_cohort(index, ["3"]) == frozenset()
    assert enthusiast_cohort(index, ["404"]) == frozenset()


def test_score_is_damped_by_cohort_size(index):
    cohort = enthusiast_cohort(index, ["1"])

    # mean 4.75 / 5 = 0.95, two ratings -> confidence 0.2
    assert collaborative_score(index, cohort, "2") == pytest.approx(0.19)
    assert collaborative_score(index, cohort, "3") == pytest.approx(0.1)


def test_score_reaches_full_confidence():
    ratings = [Rating(f"u{i}", "ref", 5.0) for i in range(12)]
    ratings += [Rating(f"u{i}", "cand", 4.0) for i in range(12)]
    idx = build_index(ratings, [])

    assert CollaborativeFilter(idx, ["ref"]).score("cand") == pytest.approx(0.8)


def test_empty_cohort_or_no_overlap_scores_zero(index):
    assert collaborative_score(index, frozenset(), "2") == 0.0
    assert collaborative_score(index, frozenset({"stranger"}), "2") == 0.0


def test_nan_ratings_are_ignored():
    idx = build_index([
        Rating("u1", "ref", math.nan),
        Rating("u2", "ref", 4.5),
        Rating("u2", "cand", math.nan),
    ], [])

    flt = CollaborativeFilter(idx, ["ref"])

    assert flt.cohort == frozenset({"u2"})
    assert flt.score("cand") == 0.0
