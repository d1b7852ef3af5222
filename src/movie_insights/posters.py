"""
Poster lookup against the TMDB API.

This is a best-effort side channel for presentation: every failure resolves
to ``None`` and nothing propagates into the scoring layer.
"""

from __future__ import annotations

import logging

import httpx

from .config import (
    HTTP_RETRY_DELAY,
    HTTP_TIMEOUT,
    MAX_HTTP_RETRIES,
    TMDB_API_BASE,
    TMDB_API_KEY,
    TMDB_IMAGE_BASE,
    TMDB_POSTER_SIZE,
)
from .utils import async_retry_with_backoff

logger = logging.getLogger(__name__)


class PosterClient:
    """
    Fetch poster URLs by TMDB id.

    The API key is injected; when it is missing (no argument and no
    ``TMDB_API_KEY`` in the environment) lookups return None without any
    request being made.
    """

    def __init__(
        self,
        api_key: str | None = TMDB_API_KEY,
        client: httpx.AsyncClient | None = None,
        timeout: float = HTTP_TIMEOUT,
        max_retries: int = MAX_HTTP_RETRIES,
        retry_delay: float = HTTP_RETRY_DELAY,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": "movie-insights/0.1"},
                follow_redirects=True,
                timeout=self.timeout,
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        return False

    @staticmethod
    def poster_url(poster_path: str | None) -> str | None:
        if not poster_path:
            return None
        return f"{TMDB_IMAGE_BASE}/{TMDB_POSTER_SIZE}{poster_path}"

    async def _request_details(self, tmdb_id: str) -> dict:
        resp = await self._client.get(
            f"{TMDB_API_BASE}/movie/{tmdb_id}",
            params={"api_key": self.api_key},
        )
        if resp.status_code == 404:
            return {}
        resp.raise_for_status()
        return resp.json()

    async def fetch_poster_url(self, tmdb_id: str | None) -> str | None:
        """Poster URL for ``tmdb_id``, or None when unavailable for any reason."""
        if not tmdb_id or not self.api_key:
            if not self.api_key:
                logger.debug("No TMDB API key configured; skipping poster lookup")
            return None
        if self._client is None:
            raise RuntimeError("PosterClient must be used as an async context manager")

        fetch = async_retry_with_backoff(
            max_retries=self.max_retries,
            initial_delay=self.retry_delay,
            exceptions=(httpx.TimeoutException, httpx.TransportError),
        )(self._request_details)

        try:
            details = await fetch(str(tmdb_id))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"Poster lookup failed for TMDB id {tmdb_id}: {exc}")
            return None

        return self.poster_url(details.get("poster_path") if isinstance(details, dict) else None)


class PosterResolver:
    """
    Track the poster for the currently selected item.

    When the selection changes while a lookup is in flight, the late
    response is dropped instead of overwriting the poster of the new
    selection.
    """

    def __init__(self, client: PosterClient):
        self.client = client
        self.current_key: str | None = None
        self.poster_url: str | None = None
        self.loading = False

    async def resolve(self, tmdb_id: str | None) -> str | None:
        key = str(tmdb_id) if tmdb_id else None
        self.current_key = key
        self.poster_url = None
        if key is None:
            self.loading = False
            return None

        self.loading = True
        url = await self.client.fetch_poster_url(key)
        if self.current_key != key:
            logger.debug(f"Discarding stale poster response for {key} (current: {self.current_key})")
            return None

        self.poster_url = url
        self.loading = False
        return url
