"""Identity store: member records keyed by a unique username."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from melodyshare.core.errors import DuplicateUsername
from melodyshare.db.session import store_guard
from melodyshare.models.user import User

__all__ = ["IdentityStore"]

# Fields callers may merge through ``save``. ``community_code`` and
# ``last_song_added`` have dedicated compare-and-set writers below.
_MERGEABLE_FIELDS = frozenset({"is_guest"})


class IdentityStore:
    """Thin wrapper around database access for user identities.

    Usernames are matched exactly (case-sensitive) for both existence checks
    and storage.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the store with an async SQLAlchemy session."""
        self.session = session

    async def exists(self, username: str) -> bool:
        """Return True if a user with exactly this username is stored."""
        async with store_guard("users.exists"):
            result = await self.session.execute(select(User.id).where(User.username == username))
        return result.first() is not None

    async def get_by_username(self, username: str) -> User | None:
        """Return the user record for ``username``."""
        async with store_guard("users.get_by_username"):
            result = await self.session.execute(select(User).where(User.username == username))
        return result.scalars().first()

    async def get_by_id(self, user_id: str) -> User | None:
        """Return a user by identifier."""
        async with store_guard("users.get_by_id"):
            return await self.session.get(User, user_id)

    async def save(self, username: str, **fields: Any) -> User:
        """Upsert a user keyed by ``username``.

        Existing rows only receive the supplied fields; nothing else on the
        record is rewritten. New rows are inserted with the supplied fields
        (``community_code`` may be given for a brand-new user).

        Raises:
            DuplicateUsername: If a concurrent writer inserted the same username.
        """
        existing = await self.get_by_username(username)
        if existing is None:
            user = User(username=username, **fields)
            self.session.add(user)
            try:
                async with store_guard("users.insert"):
                    await self.session.flush()
            except IntegrityError as exc:
                raise DuplicateUsername(username) from exc
            return user

        changes = {key: value for key, value in fields.items() if key in _MERGEABLE_FIELDS}
        if changes:
            async with store_guard("users.merge"):
                await self.session.execute(
                    update(User)
                    .where(User.id == existing.id)
                    .values(**changes)
                    .execution_options(synchronize_session=False)
                )
                await self.session.refresh(existing)
        return existing

    async def move_to_community(self, user_id: str, community_code: str) -> bool:
        """Associate the user with ``community_code``.

        Returns:
            True if the association changed, False if the user already
            belonged to that community.
        """
        async with store_guard("users.move_to_community"):
            result = await self.session.execute(
                update(User)
                .where(
                    User.id == user_id,
                    or_(User.community_code.is_(None), User.community_code != community_code),
                )
                .values(community_code=community_code)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    async def clear_community(self, user_id: str, community_code: str) -> bool:
        """Drop the association with ``community_code`` if it is still current."""
        async with store_guard("users.clear_community"):
            result = await self.session.execute(
                update(User)
                .where(User.id == user_id, User.community_code == community_code)
                .values(community_code=None)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    async def mark_song_added(self, user_id: str, added_at: datetime, *, cutoff: datetime) -> bool:
        """Stamp ``last_song_added`` unless a submission newer than ``cutoff`` exists.

        The check and the write happen in one conditional UPDATE so two
        concurrent submissions cannot both claim the same cooldown window.
        """
        async with store_guard("users.mark_song_added"):
            result = await self.session.execute(
                update(User)
                .where(
                    User.id == user_id,
                    or_(User.last_song_added.is_(None), User.last_song_added <= cutoff),
                )
                .values(last_song_added=added_at)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    async def refresh(self, user: User) -> User:
        """Reload ``user`` from the store."""
        async with store_guard("users.refresh"):
            await self.session.refresh(user)
        return user
