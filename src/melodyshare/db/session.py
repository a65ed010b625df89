"""Database session configuration."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import IntegrityError, InterfaceError, InvalidRequestError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from melodyshare.core.errors import StoreUnavailable
from melodyshare.core.settings import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import melodyshare.models  # noqa: E402,F401


def build_engine(url: str | None = None, **kwargs: Any) -> AsyncEngine:
    """Create an async engine honouring the store timeout settings."""
    url = url or settings.database_url
    options: dict[str, Any] = {"echo": settings.sql_debug}
    if url.startswith("sqlite"):
        options["connect_args"] = {"timeout": settings.store_timeout_seconds}
    else:
        options["pool_pre_ping"] = True
        options["pool_timeout"] = settings.store_timeout_seconds
    options.update(kwargs)
    return create_async_engine(url, **options)


@asynccontextmanager
async def store_guard(operation: str) -> AsyncIterator[None]:
    """Translate driver-level faults into ``StoreUnavailable``.

    Integrity violations pass through untouched so callers can tell a lost
    uniqueness race apart from an unreachable store.
    """
    try:
        yield
    except IntegrityError:
        raise
    except (OperationalError, InterfaceError, PoolTimeoutError, TimeoutError, OSError) as exc:
        logger.warning("Store operation %s failed: %s", operation, exc)
        raise StoreUnavailable() from exc


async def rollback_and_reload(session: AsyncSession, operation: str) -> None:
    """Roll back the open transaction and reload the instances it expired.

    A rollback expires everything in the session, so objects a caller still
    holds (the current ``User``, a ``Community`` from an earlier call) would
    otherwise need lazy IO on their next attribute read.
    """
    held = list(session.identity_map.values())
    await session.rollback()
    for instance in held:
        if instance not in session:
            continue
        try:
            async with store_guard(f"{operation}.reload"):
                await session.refresh(instance)
        except InvalidRequestError:
            session.expunge(instance)
        except StoreUnavailable:
            logger.warning("Could not reload session state after %s rolled back", operation)
            return


engine = build_engine()

SessionLocal = async_sessionmaker(engine, autoflush=False, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for dependency injection."""
    async with SessionLocal() as session:
        yield session


async def create_tables(bind: AsyncEngine | None = None) -> None:
    """Create all database tables."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(bind: AsyncEngine | None = None) -> None:
    """Drop all database tables."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
