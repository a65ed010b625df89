"""Data access helpers for the append-only song log."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from melodyshare.db.session import store_guard
from melodyshare.db.time import as_utc
from melodyshare.models.song import Song

__all__ = ["SongRepository"]


class SongRepository:
    """Thin wrapper around database access for song entities."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with an async SQLAlchemy session."""
        self.session = session

    async def list_feed(self, community_code: str, limit: int) -> list[Song]:
        """Return a community's songs, newest first, insertion order breaking ties."""
        async with store_guard("song.list_feed"):
            result = await self.session.execute(
                select(Song)
                .where(Song.community_code == community_code)
                .order_by(Song.added_at.desc(), Song.seq.desc())
                .limit(limit)
            )
        return list(result.scalars())

    async def latest_for_user(self, user_id: str) -> datetime | None:
        """Timestamp of the user's newest song across all communities."""
        async with store_guard("song.latest_for_user"):
            result = await self.session.execute(
                select(func.max(Song.added_at)).where(Song.added_by_id == user_id)
            )
        return as_utc(result.scalar())

    async def latest_in_community(self, community_code: str) -> datetime | None:
        """Timestamp of the newest song in a community."""
        async with store_guard("song.latest_in_community"):
            result = await self.session.execute(
                select(func.max(Song.added_at)).where(Song.community_code == community_code)
            )
        return as_utc(result.scalar())

    async def max_seq(self) -> int:
        """Highest insertion sequence stored so far (0 when empty)."""
        async with store_guard("song.max_seq"):
            result = await self.session.execute(select(func.coalesce(func.max(Song.seq), 0)))
        return int(result.scalar_one())

    async def communities_since(self, seq: int) -> tuple[set[str], int]:
        """Return the communities that received songs after ``seq`` and the new high mark."""
        async with store_guard("song.communities_since"):
            result = await self.session.execute(
                select(Song.community_code, func.max(Song.seq))
                .where(Song.seq > seq)
                .group_by(Song.community_code)
            )
        rows = result.all()
        codes = {code for code, _ in rows}
        high = max((int(top) for _, top in rows), default=seq)
        return codes, high

    async def create(
        self,
        *,
        community_code: str,
        title: str,
        artist: str,
        album_art: str,
        spotify_uri: str,
        spotify_id: str,
        added_by: str,
        added_by_id: str,
        added_at: datetime,
        mood: str | None,
        youtube_url: str | None,
    ) -> Song:
        """Insert a new song and return the persisted ORM instance."""
        song = Song(
            community_code=community_code,
            title=title,
            artist=artist,
            album_art=album_art,
            spotify_uri=spotify_uri,
            spotify_id=spotify_id,
            added_by=added_by,
            added_by_id=added_by_id,
            added_at=added_at,
            mood=mood,
            youtube_url=youtube_url,
        )
        self.session.add(song)
        async with store_guard("song.insert"):
            await self.session.flush()
        return song
