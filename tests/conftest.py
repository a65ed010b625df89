# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable, Iterator
from datetime import datetime, timedelta
from itertools import count
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

os.environ.setdefault("REALTIME_POLL_INTERVAL_SECONDS", "0")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

from melodyshare.core.security import create_session_token
from melodyshare.db.session import build_engine, create_tables, drop_tables
from melodyshare.db.session import get_session as app_get_session
from melodyshare.db.time import utcnow
from melodyshare.main import app as fastapi_app
from melodyshare.models import Community, User
from melodyshare.schemas.track import TrackResult
from melodyshare.services.feed import CommunityDirectory, FeedProjection, _RealtimeSingleton
from melodyshare.services.membership import MembershipService
from melodyshare.services.submission import SubmissionService

_TRACK_COUNTER = count(1)


class FakeClock:
    """Controllable UTC clock injected into the submission service."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or utcnow().replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_track(title: str | None = None, artists: list[str] | None = None) -> TrackResult:
    """Return a plausible track search result."""
    number = next(_TRACK_COUNTER)
    track_id = f"track{number:05d}"
    return TrackResult(
        id=track_id,
        title=title or f"Song {number}",
        artists=artists or ["Some Artist"],
        album_art_url=f"https://i.scdn.co/image/{track_id}",
        external_uri=f"spotify:track:{track_id}",
    )


@pytest_asyncio.fixture()
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_tables(engine)
    try:
        yield engine
    finally:
        await drop_tables(engine)
        await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, autoflush=False, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def feed(session_factory: async_sessionmaker[AsyncSession]) -> FeedProjection:
    return FeedProjection(session_factory)


@pytest.fixture()
def directory(session_factory: async_sessionmaker[AsyncSession]) -> CommunityDirectory:
    return CommunityDirectory(session_factory)


@pytest.fixture(autouse=True)
def realtime_singletons(
    monkeypatch: pytest.MonkeyPatch,
    feed: FeedProjection,
    directory: CommunityDirectory,
) -> None:
    """Point the process-wide projections at the per-test database."""
    monkeypatch.setattr(_RealtimeSingleton, "feed", feed)
    monkeypatch.setattr(_RealtimeSingleton, "directory", directory)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def membership(db_session: AsyncSession, directory: CommunityDirectory) -> MembershipService:
    return MembershipService(db_session, directory=directory)


@pytest.fixture()
def submissions(
    db_session: AsyncSession,
    feed: FeedProjection,
    clock: FakeClock,
) -> SubmissionService:
    return SubmissionService(db_session, feed=feed, clock=clock, mood_required=False)


@pytest.fixture()
def track_factory() -> Callable[..., TrackResult]:
    return make_track


@pytest.fixture()
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(
    app: FastAPI,
    session_factory: async_sessionmaker[AsyncSession],
) -> Iterator[None]:
    async def _get_session_override() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest_asyncio.fixture()
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def sync_client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest_asyncio.fixture()
async def member(membership: MembershipService) -> tuple[Community, User]:
    """A community named "Jazz Lovers" created by ``alice``."""
    return await membership.create_community("Jazz Lovers", "alice")


def auth_headers(user: User) -> dict[str, Any]:
    return {"Authorization": f"Bearer {create_session_token(user.id, user.community_code)}"}
