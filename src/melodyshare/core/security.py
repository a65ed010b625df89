"""Signed session tokens cached by clients between visits."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from melodyshare.core.settings import settings


def create_session_token(user_id: str, community_code: str | None = None) -> str:
    """Create a JWT identifying the user and the community they joined.

    The community claim is advisory only; the authoritative association is
    always re-read from the identity store.
    """
    to_encode: dict[str, object] = {"sub": user_id}
    if community_code:
        to_encode["community"] = community_code
    expire = datetime.now(UTC) + timedelta(minutes=settings.session_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_session_token(token: str) -> str | None:
    """Return the user id carried by ``token`` or None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) else None
