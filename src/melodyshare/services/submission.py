"""Rate-limited song submission.

Each member may share one song per sliding 24 hour window. Eligibility is
never stored; it is recomputed from the time of the member's last submission,
which is the later of ``User.last_song_added`` and the newest song they have
in the song log.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from melodyshare.core.errors import MoodRequired, NotInCommunity, RateLimited, ValidationError
from melodyshare.core.settings import settings
from melodyshare.db.session import rollback_and_reload, store_guard
from melodyshare.db.time import as_utc, utcnow
from melodyshare.models import Song, User
from melodyshare.repositories.community_repo import CommunityRegistry
from melodyshare.repositories.song_repo import SongRepository
from melodyshare.repositories.user_repo import IdentityStore
from melodyshare.schemas.track import TrackResult
from melodyshare.services.feed import FeedProjection, get_feed_projection
from melodyshare.services.sharing import youtube_search_url

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = timedelta(hours=24)


def is_eligible(
    last_song_added: datetime | None,
    now: datetime,
    cooldown: timedelta = DEFAULT_COOLDOWN,
) -> bool:
    """Return True if a member whose last song was at ``last_song_added`` may submit at ``now``."""
    if last_song_added is None:
        return True
    return now - last_song_added >= cooldown


def cooldown_remaining(
    last_song_added: datetime | None,
    now: datetime,
    cooldown: timedelta = DEFAULT_COOLDOWN,
) -> timedelta:
    """Time left before the member becomes eligible again (zero when eligible)."""
    if last_song_added is None:
        return timedelta(0)
    return max(last_song_added + cooldown - now, timedelta(0))


class SubmissionService:
    """Decides whether a member may share a song and records the submission."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        feed: FeedProjection | None = None,
        clock: Callable[[], datetime] = utcnow,
        cooldown: timedelta | None = None,
        mood_required: bool | None = None,
        mood_options: Sequence[str] | None = None,
    ) -> None:
        self.session = session
        self.identity = IdentityStore(session)
        self.registry = CommunityRegistry(session)
        self.songs = SongRepository(session)
        self._feed = feed or get_feed_projection()
        self._clock = clock
        self.cooldown = cooldown or timedelta(hours=settings.submission_cooldown_hours)
        self.mood_required = settings.mood_required if mood_required is None else mood_required
        self.mood_options = tuple(settings.mood_options if mood_options is None else mood_options)

    async def last_submission_at(self, user: User) -> datetime | None:
        """Reconcile the user's stamp with the song log and return the later one."""
        logged = await self.songs.latest_for_user(user.id)
        stamps = [stamp for stamp in (as_utc(user.last_song_added), logged) if stamp is not None]
        return max(stamps, default=None)

    async def can_submit(self, user: User, now: datetime | None = None) -> bool:
        """Return True if ``user`` may share a song at ``now``."""
        last = await self.last_submission_at(user)
        return is_eligible(last, now or self._clock(), self.cooldown)

    async def retry_after(self, user: User, now: datetime | None = None) -> timedelta:
        """Return how long ``user`` still has to wait."""
        last = await self.last_submission_at(user)
        return cooldown_remaining(last, now or self._clock(), self.cooldown)

    def _check_mood(self, mood: str | None) -> str | None:
        chosen = (mood or "").strip() or None
        options = {option.lower(): option for option in self.mood_options}
        if chosen is None:
            if self.mood_required:
                raise MoodRequired()
            return None
        canonical = options.get(chosen.lower())
        if canonical is None:
            if self.mood_required:
                raise MoodRequired(f"Pick one of: {', '.join(self.mood_options)}")
            raise ValidationError("mood", f"Unknown mood {chosen!r}")
        return canonical

    async def submit(self, user: User, track: TrackResult, mood: str | None = None) -> Song:
        """Share ``track`` with the user's community.

        The song row and the user's ``last_song_added`` stamp are written in
        one transaction; if either write fails, neither is kept.

        Raises:
            NotInCommunity: The user has no (existing) community.
            RateLimited: The cooldown since the last submission has not elapsed.
            MoodRequired: Mood selection is enforced and missing or unknown.
        """
        community_code = user.community_code
        if not community_code:
            raise NotInCommunity()
        community = await self.registry.find_by_code(community_code)
        if community is None:
            raise NotInCommunity("Your community no longer exists; join another one")

        now = self._clock()
        last = await self.last_submission_at(user)
        if not is_eligible(last, now, self.cooldown):
            raise RateLimited(cooldown_remaining(last, now, self.cooldown), self.cooldown)

        mood = self._check_mood(mood)

        try:
            latest = await self.songs.latest_in_community(community.code)
            added_at = max(now, latest) if latest is not None else now
            claimed = await self.identity.mark_song_added(
                user.id, added_at, cutoff=now - self.cooldown
            )
            if not claimed:
                await rollback_and_reload(self.session, "submission")
                raise RateLimited(
                    cooldown_remaining(as_utc(user.last_song_added), now, self.cooldown),
                    self.cooldown,
                )
            song = await self.songs.create(
                community_code=community.code,
                title=track.title,
                artist=track.artist_line,
                album_art=track.album_art_url,
                spotify_uri=track.external_uri,
                spotify_id=track.id,
                added_by=user.username,
                added_by_id=user.id,
                added_at=added_at,
                mood=mood,
                youtube_url=youtube_search_url(track.title, track.artist_line),
            )
            async with store_guard("submission.commit"):
                await self.session.commit()
        except RateLimited:
            raise
        except Exception:
            await rollback_and_reload(self.session, "submission")
            raise

        await self.identity.refresh(user)
        logger.info("User %s shared %s in %s", user.id, song.spotify_id, community.code)
        await self._feed.notify(community.code)
        return song
