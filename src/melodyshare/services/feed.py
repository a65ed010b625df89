"""Live projections: per-community song feeds and the community directory."""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from melodyshare.core.settings import settings
from melodyshare.db.session import SessionLocal
from melodyshare.repositories.community_repo import CommunityRegistry
from melodyshare.repositories.song_repo import SongRepository
from melodyshare.schemas.community import CommunityResponse
from melodyshare.schemas.song import SongResponse
from melodyshare.services.realtime import LiveQuery, Unsubscribe

FeedCallback = Callable[[list[SongResponse]], None]
DirectoryCallback = Callable[[list[CommunityResponse]], None]

_DIRECTORY_KEY = "all"


class FeedProjection:
    """Ordered, live view of the songs shared in each community.

    Songs are ordered newest first by ``added_at`` with the insertion
    sequence breaking ties, so repeated reads always agree. A subscription
    covers exactly one community code; switching communities means
    unsubscribing and subscribing again.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        limit: int | None = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self._limit = limit or settings.feed_limit
        self._query: LiveQuery[SongResponse] = LiveQuery(self._load, name="feed")

    async def _load(self, community_code: str) -> list[SongResponse]:
        async with self._session_factory() as session:
            songs = await SongRepository(session).list_feed(community_code, self._limit)
            return [SongResponse.model_validate(song) for song in songs]

    async def snapshot(self, community_code: str) -> list[SongResponse]:
        """Return the current ordered feed for ``community_code``."""
        return await self._query.load(community_code)

    async def subscribe(self, community_code: str, callback: FeedCallback) -> Unsubscribe:
        """Deliver the feed now and after every new song in that community."""
        return await self._query.subscribe(community_code, callback)

    async def notify(self, community_code: str) -> None:
        """Push the refreshed feed of ``community_code`` to its subscribers."""
        await self._query.notify(community_code)

    def has_subscribers(self, community_code: str) -> bool:
        return self._query.has_subscribers(community_code)


class CommunityDirectory:
    """Live list of all communities, refreshed whenever one is created or updated."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal
        self._query: LiveQuery[CommunityResponse] = LiveQuery(self._load, name="communities")

    async def _load(self, _key: str) -> list[CommunityResponse]:
        async with self._session_factory() as session:
            communities = await CommunityRegistry(session, directory=self).list_all()
            return [CommunityResponse.model_validate(c) for c in communities]

    async def snapshot(self) -> list[CommunityResponse]:
        return await self._query.load(_DIRECTORY_KEY)

    async def subscribe(self, callback: DirectoryCallback) -> Unsubscribe:
        return await self._query.subscribe(_DIRECTORY_KEY, callback)

    async def notify(self) -> None:
        await self._query.notify(_DIRECTORY_KEY)

    def has_subscribers(self) -> bool:
        return self._query.has_subscribers(_DIRECTORY_KEY)


class _RealtimeSingleton:
    """Process-wide projections shared by request handlers and the watcher."""

    feed: FeedProjection | None = None
    directory: CommunityDirectory | None = None


def get_feed_projection() -> FeedProjection:
    """Return the singleton feed projection."""
    if _RealtimeSingleton.feed is None:
        _RealtimeSingleton.feed = FeedProjection()
    return _RealtimeSingleton.feed


def get_community_directory() -> CommunityDirectory:
    """Return the singleton community directory."""
    if _RealtimeSingleton.directory is None:
        _RealtimeSingleton.directory = CommunityDirectory()
    return _RealtimeSingleton.directory
