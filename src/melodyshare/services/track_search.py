"""Spotify track search used to pick the song to share.

The bearer token comes from a client-credentials exchange. It lives in an
explicit ``TokenCache`` owned by the search client, is refreshed shortly
before it expires, and is dropped and re-fetched once when the API answers 401.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

from melodyshare.core.errors import TrackSearchError
from melodyshare.core.settings import settings
from melodyshare.schemas.track import TrackResult

logger = logging.getLogger(__name__)

HTTP_OK = 200
HTTP_UNAUTHORIZED = 401
MAX_SEARCH_RESULTS = 10


class TrackSearchDisabledError(TrackSearchError):
    """Raised when no client credentials are configured."""


@dataclass(frozen=True)
class AccessToken:
    """Bearer token and the monotonic time after which it must not be used."""

    value: str
    expires_at: float


class TokenCache:
    """Holds the current access token and refreshes it on demand."""

    def __init__(
        self,
        fetch: Callable[[], Awaitable[tuple[str, int]]],
        *,
        refresh_margin_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._margin = refresh_margin_seconds
        self._clock = clock
        self._token: AccessToken | None = None
        self._lock = asyncio.Lock()

    @property
    def token(self) -> AccessToken | None:
        return self._token

    def _is_fresh(self, token: AccessToken | None) -> bool:
        return token is not None and self._clock() < token.expires_at - self._margin

    async def get_valid_token(self) -> str:
        """Return a usable token, exchanging credentials if needed."""
        async with self._lock:
            current = self._token
            if current is not None and self._is_fresh(current):
                return current.value
            value, expires_in = await self._fetch()
            self._token = AccessToken(value=value, expires_at=self._clock() + expires_in)
            logger.debug("Acquired track search token valid for %ss", expires_in)
            return value

    def invalidate(self) -> None:
        """Forget the current token so the next call fetches a new one."""
        self._token = None


class SpotifyTrackSearch:
    """HTTP client wrapper for the Spotify search API."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        *,
        token_url: str | None = None,
        api_base_url: str | None = None,
        limit: int | None = None,
        timeout_seconds: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client_id = client_id if client_id is not None else settings.spotify_client_id
        self._client_secret = (
            client_secret if client_secret is not None else settings.spotify_client_secret
        )
        self._token_url = token_url or settings.spotify_token_url
        self._api_base_url = (api_base_url or settings.spotify_api_base_url).rstrip("/")
        self.limit = max(1, min(limit or settings.track_search_limit, MAX_SEARCH_RESULTS))
        self._timeout = timeout_seconds or settings.track_search_timeout_seconds
        self._client = http_client
        self._client_lock = asyncio.Lock()
        self.tokens = TokenCache(self._exchange_credentials)

    @property
    def enabled(self) -> bool:
        return bool(self._client_id and self._client_secret)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise TrackSearchDisabledError("Track search is not configured")
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def _exchange_credentials(self) -> tuple[str, int]:
        client = await self._ensure_client()
        try:
            response = await client.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
            )
        except httpx.HTTPError as exc:
            raise TrackSearchError(f"Token exchange failed: {exc}") from exc
        if response.status_code != HTTP_OK:
            raise TrackSearchError(f"Token exchange responded with {response.status_code}")
        payload = response.json()
        token = payload.get("access_token")
        if not token:
            raise TrackSearchError("Token exchange returned no access token")
        return str(token), int(payload.get("expires_in", 3600))

    async def _get(self, path: str, params: dict[str, str | int]) -> httpx.Response:
        client = await self._ensure_client()
        token = await self.tokens.get_valid_token()
        try:
            return await client.get(
                f"{self._api_base_url}{path}",
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise TrackSearchError(f"Track search request failed: {exc}") from exc

    async def search(self, query: str) -> list[TrackResult]:
        """Return up to ``limit`` tracks matching ``query``.

        A blank query or a search without matches yields an empty list.
        """
        query = query.strip()
        if not query:
            return []

        params: dict[str, str | int] = {"q": query, "type": "track", "limit": self.limit}
        response = await self._get("/search", params)
        if response.status_code == HTTP_UNAUTHORIZED:
            logger.info("Track search token rejected, refreshing")
            self.tokens.invalidate()
            response = await self._get("/search", params)
        if response.status_code != HTTP_OK:
            raise TrackSearchError(f"Track search responded with {response.status_code}")

        items = (response.json().get("tracks") or {}).get("items") or []
        results: list[TrackResult] = []
        for item in items[: self.limit]:
            try:
                results.append(TrackResult.from_spotify(item))
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping malformed track search item: %s", exc)
        return results

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _TrackSearchSingleton:
    """Singleton wrapper for SpotifyTrackSearch."""

    _instance: SpotifyTrackSearch | None = None

    @classmethod
    def get_instance(cls) -> SpotifyTrackSearch:
        if cls._instance is None:
            cls._instance = SpotifyTrackSearch()
        return cls._instance


def get_track_search() -> SpotifyTrackSearch:
    """Return a singleton track search client."""
    return _TrackSearchSingleton.get_instance()
