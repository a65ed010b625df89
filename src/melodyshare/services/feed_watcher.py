"""Background detection of writes committed by other processes.

Request handlers notify the live projections of their own writes directly.
Other workers share the same database, so this watcher polls cheap change
markers and re-notifies the affected projections.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from melodyshare.core.errors import StoreUnavailable
from melodyshare.core.settings import settings
from melodyshare.db.session import SessionLocal
from melodyshare.repositories.community_repo import CommunityRegistry
from melodyshare.repositories.song_repo import SongRepository
from melodyshare.services.feed import (
    CommunityDirectory,
    FeedProjection,
    get_community_directory,
    get_feed_projection,
)

logger = logging.getLogger(__name__)


class ChangeWatcher:
    """Periodically polls the store and refreshes live subscribers."""

    def __init__(
        self,
        feed: FeedProjection | None = None,
        directory: CommunityDirectory | None = None,
        *,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        self.feed = feed or get_feed_projection()
        self.directory = directory or get_community_directory()
        self._session_factory = session_factory or SessionLocal
        interval = settings.realtime_poll_interval_seconds if interval_seconds is None else interval_seconds
        self.interval = max(0.1, float(interval))
        self._song_mark: int | None = None
        self._directory_mark: tuple[int, int] | None = None
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background polling loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background polling loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            delay = self.interval
            try:
                await self.poll_once()
            except StoreUnavailable as exc:
                logger.warning("ChangeWatcher could not reach the store: %s", exc)
                delay = min(self.interval * 4, 30.0)
            except (OSError, ConnectionError, TimeoutError) as exc:
                logger.warning("ChangeWatcher encountered network error: %s", exc)
                delay = min(self.interval * 4, 30.0)
            except (ValueError, TypeError, KeyError, AttributeError) as exc:
                logger.error(
                    "ChangeWatcher encountered data processing error: %s", exc, exc_info=True
                )
                delay = min(self.interval * 4, 30.0)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)

    async def poll_once(self) -> None:
        """Compare change markers with the previous poll and notify on differences.

        The first poll only records the markers.
        """
        async with self._session_factory() as session:
            songs = SongRepository(session)
            if self._song_mark is None:
                self._song_mark = await songs.max_seq()
                changed_codes: set[str] = set()
            else:
                changed_codes, self._song_mark = await songs.communities_since(self._song_mark)
            directory_mark = await CommunityRegistry(session, directory=self.directory).fingerprint()

        for code in sorted(changed_codes):
            if self.feed.has_subscribers(code):
                logger.debug("Refreshing feed %s after external write", code)
                await self.feed.notify(code)

        if self._directory_mark is not None and directory_mark != self._directory_mark:
            await self.directory.notify()
        self._directory_mark = directory_mark
