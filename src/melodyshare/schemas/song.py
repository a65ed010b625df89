# src/melodyshare/schemas/song.py
"""Song-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .track import TrackResult


class SongSubmit(BaseModel):
    """Schema for sharing a song with the caller's community."""

    track: TrackResult
    mood: str | None = Field(None, description="Mood chosen by the submitter")


class SongResponse(BaseModel):
    """Schema for song information returned by the API and live feeds."""

    id: str
    seq: int
    community_code: str
    title: str
    artist: str
    album_art: str
    spotify_uri: str
    spotify_id: str
    youtube_url: str | None
    added_by: str
    added_by_id: str
    added_at: datetime
    mood: str | None

    model_config = ConfigDict(from_attributes=True, frozen=True)
