"""Create/join/leave flows tying identities to communities."""
from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from melodyshare.core.errors import (
    ConflictRetry,
    NotFoundError,
    NotInCommunity,
    StoreUnavailable,
    ValidationError,
)
from melodyshare.core.settings import settings
from melodyshare.db.session import rollback_and_reload, store_guard
from melodyshare.models import Community, User
from melodyshare.repositories.community_repo import CommunityRegistry
from melodyshare.repositories.user_repo import IdentityStore
from melodyshare.services.feed import CommunityDirectory, get_community_directory

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_COMMUNITY_NAME_LENGTH = 3
MAX_COMMUNITY_NAME_LENGTH = 80
MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 32
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def validate_username(username: str | None) -> str:
    """Return ``username`` unchanged if it is acceptable.

    Usernames are case-sensitive; surrounding whitespace is rejected rather
    than silently trimmed so the stored key is exactly what the member typed.
    """
    if not username or not username.strip():
        raise ValidationError("username", "Username is required")
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError(
            "username", f"Username must be at least {MIN_USERNAME_LENGTH} characters"
        )
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(
            "username", f"Username must be at most {MAX_USERNAME_LENGTH} characters"
        )
    if not USERNAME_PATTERN.match(username):
        raise ValidationError(
            "username", "Username can only contain letters, numbers, and underscores"
        )
    return username


def validate_community_name(name: str | None) -> str:
    """Return the stripped community name if it is acceptable."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("name", "Community name is required")
    if len(cleaned) < MIN_COMMUNITY_NAME_LENGTH:
        raise ValidationError(
            "name", f"Community name must be at least {MIN_COMMUNITY_NAME_LENGTH} characters"
        )
    if len(cleaned) > MAX_COMMUNITY_NAME_LENGTH:
        raise ValidationError(
            "name", f"Community name must be at most {MAX_COMMUNITY_NAME_LENGTH} characters"
        )
    return cleaned


class MembershipService:
    """Orchestrates community creation, joining and leaving.

    A returning username always maps to the same user record. Joining the
    community a user already belongs to succeeds without touching the member
    count; moving to another community counts once for the new one and leaves
    the previous community's count as it was.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        registry: CommunityRegistry | None = None,
        identity: IdentityStore | None = None,
        directory: CommunityDirectory | None = None,
    ) -> None:
        self.session = session
        self._directory = directory or get_community_directory()
        self.registry = registry or CommunityRegistry(session, directory=self._directory)
        self.identity = identity or IdentityStore(session)

    async def create_community(
        self,
        name: str,
        username: str,
        *,
        is_guest: bool | None = None,
    ) -> tuple[Community, User]:
        """Create a community and place ``username`` in it as its first member."""
        name = validate_community_name(name)
        username = validate_username(username)

        async def attempt() -> tuple[Community, User]:
            community = await self.registry.create(name)
            user, _moved = await self._resolve_identity(username, community.code, is_guest)
            await self._commit()
            return community, user

        community, user = await self._with_conflict_retry("create_community", attempt)
        logger.info("Community %s (%s) created by %s", community.code, community.id, user.id)
        await self._directory.notify()
        return community, user

    async def join_community(
        self,
        community_id_or_code: str,
        username: str,
        *,
        is_guest: bool | None = None,
    ) -> tuple[Community, User]:
        """Associate ``username`` with a community looked up by id or code."""
        username = validate_username(username)
        reference = (community_id_or_code or "").strip()
        if not reference:
            raise ValidationError("community", "Community code is required")

        async def attempt() -> tuple[Community, User, bool]:
            community = await self.registry.find(reference)
            if community is None:
                raise NotFoundError("Invalid community code")
            user, moved = await self._resolve_identity(username, community.code, is_guest)
            if moved:
                await self.registry.increment_members(community.id)
                await self.registry.refresh(community)
            await self._commit()
            return community, user, moved

        community, user, moved = await self._with_conflict_retry("join_community", attempt)
        if moved:
            logger.info("User %s joined community %s", user.id, community.code)
            await self._directory.notify()
        return community, user

    async def leave_community(self, user: User) -> Community | None:
        """Drop the user's current association and release their seat.

        Raises:
            NotInCommunity: If the user is not associated with any community.
        """
        code = user.community_code
        if not code:
            raise NotInCommunity("You are not a member of any community")

        async def attempt() -> tuple[Community | None, bool]:
            community = await self.registry.find_by_code(code)
            cleared = await self.identity.clear_community(user.id, code)
            if cleared and community is not None:
                await self.registry.decrement_members(community.id)
                await self.registry.refresh(community)
            await self._commit()
            await self.identity.refresh(user)
            return community, cleared

        community, cleared = await self._with_conflict_retry("leave_community", attempt)
        if cleared:
            logger.info("User %s left community %s", user.id, code)
            await self._directory.notify()
        return community

    async def _resolve_identity(
        self,
        username: str,
        community_code: str,
        is_guest: bool | None,
    ) -> tuple[User, bool]:
        """Reuse or create the user for ``username`` and point it at ``community_code``.

        Returns:
            The user and whether its community association changed.
        """
        existing = await self.identity.get_by_username(username)
        if existing is None:
            user = await self.identity.save(
                username,
                community_code=community_code,
                is_guest=bool(is_guest),
            )
            return user, True

        if is_guest is not None:
            await self.identity.save(username, is_guest=is_guest)
        moved = await self.identity.move_to_community(existing.id, community_code)
        await self.identity.refresh(existing)
        return existing, moved

    async def _commit(self) -> None:
        async with store_guard("membership.commit"):
            await self.session.commit()

    async def _with_conflict_retry(
        self,
        operation: str,
        attempt: Callable[[], Awaitable[T]],
    ) -> T:
        """Run ``attempt`` in a fresh transaction, re-running it after lost races."""
        retries = max(0, settings.store_conflict_retries)
        for attempt_number in range(retries + 1):
            try:
                return await attempt()
            except ConflictRetry as exc:
                await rollback_and_reload(self.session, operation)
                logger.info(
                    "%s lost a uniqueness race (%s), retry %d/%d",
                    operation,
                    exc,
                    attempt_number + 1,
                    retries,
                )
            except Exception:
                await rollback_and_reload(self.session, operation)
                raise
        raise StoreUnavailable(f"Could not complete {operation.replace('_', ' ')}, please try again")
