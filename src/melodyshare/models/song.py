"""SQLAlchemy model for songs shared to a community feed."""
from datetime import datetime

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from melodyshare.db.session import Base
from melodyshare.db.time import UTCDateTime
from melodyshare.models.user import new_id


class Song(Base):
    """Immutable snapshot of a track a member shared.

    Rows are only inserted by the submission service and never updated.
    """

    __tablename__ = "song"
    __table_args__ = (
        Index("ix_song_community_feed", "community_code", "added_at", "seq"),
        Index("ix_song_added_by_id", "added_by_id", "added_at"),
    )

    # Insertion sequence; breaks ties between equal timestamps.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, default=new_id)
    community_code: Mapped[str] = mapped_column(String(16), nullable=False)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    artist: Mapped[str] = mapped_column(Text, nullable=False)
    album_art: Mapped[str] = mapped_column(Text, nullable=False, default="")
    spotify_uri: Mapped[str] = mapped_column(Text, nullable=False)
    spotify_id: Mapped[str] = mapped_column(Text, nullable=False)
    youtube_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    added_by: Mapped[str] = mapped_column(Text, nullable=False)
    added_by_id: Mapped[str] = mapped_column(String(32), nullable=False)
    added_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    mood: Mapped[str | None] = mapped_column(Text, nullable=True)
