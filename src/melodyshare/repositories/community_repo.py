"""Community registry: creation, join-code allocation and member counts."""
from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Callable
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from melodyshare.core.errors import DuplicateCodeCollision, StoreUnavailable
from melodyshare.core.settings import settings
from melodyshare.db.session import store_guard
from melodyshare.db.time import utcnow
from melodyshare.models.community import Community

if TYPE_CHECKING:
    from melodyshare.services.realtime import Unsubscribe
    from melodyshare.services.feed import CommunityDirectory, DirectoryCallback

__all__ = ["CommunityRegistry", "generate_join_code", "normalize_code"]

logger = logging.getLogger(__name__)

CODE_PREFIX_LENGTH = 4
FALLBACK_CODE_PREFIX = "MUSI"
_NON_ALNUM = re.compile(r"[^0-9A-Za-z]+")


def random_suffix() -> int:
    """Return a random four digit number in ``1000..9999``."""
    return 1000 + secrets.randbelow(9000)


def code_prefix(name: str) -> str:
    """Upper-cased first four alphanumeric characters of ``name``."""
    prefix = _NON_ALNUM.sub("", name)[:CODE_PREFIX_LENGTH].upper()
    return prefix or FALLBACK_CODE_PREFIX


def generate_join_code(name: str, suffix: int | None = None) -> str:
    """Build a join code such as ``JAZZ1234`` for a community called ``name``."""
    return f"{code_prefix(name)}{suffix if suffix is not None else random_suffix()}"


def normalize_code(code: str) -> str:
    """Fold a hand-typed code to its stored form."""
    return code.strip().upper()


class CommunityRegistry:
    """Owns community records; every member-count change is a relative UPDATE."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        directory: CommunityDirectory | None = None,
        suffix_source: Callable[[], int] = random_suffix,
    ) -> None:
        self.session = session
        self._directory = directory
        self._suffix_source = suffix_source

    async def create(self, name: str) -> Community:
        """Insert a community with a freshly allocated join code.

        Codes already present in the store are regenerated. If another writer
        inserts the same code between the check and the insert, the unique
        index rejects the row and ``DuplicateCodeCollision`` is raised so the
        caller can roll back and retry.
        """
        for _attempt in range(max(1, settings.join_code_max_attempts)):
            code = generate_join_code(name, self._suffix_source())
            if await self.find_by_code(code) is None:
                break
            logger.debug("Join code %s already taken, regenerating", code)
        else:
            raise StoreUnavailable("Could not allocate a unique community code, please try again")

        community = Community(name=name, code=code, members=1, creation_date=utcnow())
        self.session.add(community)
        try:
            async with store_guard("community.insert"):
                await self.session.flush()
        except IntegrityError as exc:
            raise DuplicateCodeCollision(code) from exc
        return community

    async def find_by_id(self, community_id: str) -> Community | None:
        """Return a community by identifier."""
        async with store_guard("community.find_by_id"):
            return await self.session.get(Community, community_id)

    async def find_by_code(self, code: str) -> Community | None:
        """Return the community owning ``code``; comparison ignores case."""
        async with store_guard("community.find_by_code"):
            result = await self.session.execute(
                select(Community).where(Community.code == normalize_code(code))
            )
        return result.scalars().first()

    async def find(self, id_or_code: str) -> Community | None:
        """Resolve a community by identifier first, then by join code."""
        ref = id_or_code.strip()
        if not ref:
            return None
        return await self.find_by_id(ref) or await self.find_by_code(ref)

    async def list_all(self) -> list[Community]:
        """Return every community, oldest first."""
        async with store_guard("community.list_all"):
            result = await self.session.execute(
                select(Community).order_by(Community.creation_date, Community.id)
            )
        return list(result.scalars())

    async def increment_members(self, community_id: str) -> None:
        """Add one member without reading the current count first."""
        async with store_guard("community.increment_members"):
            await self.session.execute(
                update(Community)
                .where(Community.id == community_id)
                .values(members=Community.members + 1)
                .execution_options(synchronize_session=False)
            )

    async def decrement_members(self, community_id: str, floor: int = 1) -> None:
        """Remove one member, never dropping below ``floor``."""
        floor = max(1, floor)
        async with store_guard("community.decrement_members"):
            await self.session.execute(
                update(Community)
                .where(Community.id == community_id, Community.members > floor)
                .values(members=Community.members - 1)
                .execution_options(synchronize_session=False)
            )

    async def refresh(self, community: Community) -> Community:
        """Reload ``community`` so relative updates become visible."""
        async with store_guard("community.refresh"):
            await self.session.refresh(community)
        return community

    async def fingerprint(self) -> tuple[int, int]:
        """Cheap change marker: community count and summed member counts."""
        async with store_guard("community.fingerprint"):
            result = await self.session.execute(
                select(func.count(Community.id), func.coalesce(func.sum(Community.members), 0))
            )
        count, members = result.one()
        return int(count), int(members)

    async def subscribe(self, callback: DirectoryCallback) -> Unsubscribe:
        """Push the full community list to ``callback`` now and on every change."""
        if self._directory is None:
            from melodyshare.services.feed import get_community_directory

            self._directory = get_community_directory()
        return await self._directory.subscribe(callback)
