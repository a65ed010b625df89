# tests/test_security.py
"""Tests for session tokens, settings helpers and share links."""

from datetime import UTC, datetime, timedelta

from jose import jwt

from melodyshare.core.security import create_session_token, decode_session_token
from melodyshare.core.settings import Settings, settings
from melodyshare.services.sharing import shareable_link, youtube_search_url


def test_session_token_round_trip_carries_community() -> None:
    token = create_session_token("user-1", "JAZZ1234")

    claims = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])

    assert decode_session_token(token) == "user-1"
    assert claims["community"] == "JAZZ1234"


def test_expired_or_forged_tokens_are_rejected() -> None:
    expired = jwt.encode(
        {"sub": "user-1", "exp": datetime.now(UTC) - timedelta(minutes=1)},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    forged = jwt.encode({"sub": "user-1"}, "some-other-key", algorithm=settings.jwt_algorithm)

    assert decode_session_token(expired) is None
    assert decode_session_token(forged) is None
    assert decode_session_token("garbage") is None


def test_database_url_sync_swaps_async_drivers() -> None:
    sqlite = Settings(DATABASE_URL="sqlite+aiosqlite:///./x.db")
    postgres = Settings(DATABASE_URL="postgresql+asyncpg://u:p@db/melody")

    assert sqlite.database_url_sync == "sqlite:///./x.db"
    assert postgres.database_url_sync == "postgresql+psycopg://u:p@db/melody"


def test_shareable_link_points_at_onboarding() -> None:
    assert (
        shareable_link("JAZZ1234", base_url="https://melody.example/")
        == "https://melody.example/onboarding?join=JAZZ1234"
    )


def test_youtube_search_url_encodes_query() -> None:
    assert (
        youtube_search_url("So What", "Miles Davis")
        == "https://www.youtube.com/results?search_query=So+What+Miles+Davis"
    )
