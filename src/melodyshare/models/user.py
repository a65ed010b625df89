# src/melodyshare/models/user.py
"""SQLAlchemy model for member identities."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from melodyshare.db.session import Base
from melodyshare.db.time import UTCDateTime, utcnow


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex


class User(Base):
    """Member identity.

    ``username`` is the natural key clients use, enforced through a unique
    index; the storage key is the synthetic ``id``.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    username: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    # Written only by the membership service.
    community_code: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    # Written only by the submission service.
    last_song_added: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_guest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
