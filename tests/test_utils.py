import math

import pytest

from movie_insights.utils import VersionedCache, async_retry_with_backoff, round_half_up, round_percent


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(37.5) == 38
    assert round_half_up(4.75, 1) == 4.8
    assert round_half_up(4.45, 1) == 4.5
    assert round_half_up(4.44, 1) == 4.4
    assert round_half_up(math.nan) == 0.0


def test_round_percent():
    assert round_percent(0.376) == 38
    assert round_percent(0.7) == 70
    assert round_percent(0.0) == 0


def test_versioned_cache_rebuilds_on_new_version():
    calls = []

    def build(value):
        calls.append(value)
        return [value]

    cache = VersionedCache(build)

    first = cache.get(1, "a")
    assert cache.get(1, "ignored") is first
    assert cache.get(2, "b") == ["b"]
    cache.clear()
    assert cache.get(2, "c") == ["c"]
    assert calls == ["a", "b", "c"]


def test_versioned_cache_passes_version_keyword_to_factory():
    def build(ratings, version=0):
        return (tuple(ratings), version)

    cache = VersionedCache(build)

    assert cache.get(7, ["r"], version=7) == (("r",), 7)
    assert cache.get(7, ["ignored"], version=7) == (("r",), 7)
    assert cache.get(8, [], version=8) == ((), 8)


@pytest.mark.asyncio
async def test_async_retry_with_backoff_retries_then_succeeds():
    attempts = []

    @async_retry_with_backoff(max_retries=3, initial_delay=0, exceptions=(ValueError,))
    async def flaky():
        attempts.append(1)
        if len(attempts) < 2:
            raise ValueError("boom")
        return "ok"

    assert await flaky() == "ok"
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_async_retry_with_backoff_reraises_last_error():
    @async_retry_with_backoff(max_retries=2, initial_delay=0, exceptions=(ValueError,))
    async def broken():
        raise ValueError("still broken")

    with pytest.raises(ValueError, match="still broken"):
        await broken()
