"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserResponse(BaseModel):
    """Schema for user information returned by the API."""

    id: str
    username: str
    community_code: str | None
    last_song_added: datetime | None
    is_guest: bool

    model_config = ConfigDict(from_attributes=True)


class EligibilityResponse(BaseModel):
    """Whether the caller may share a song right now."""

    can_submit: bool
    retry_after_seconds: int = Field(0, ge=0)
    last_song_added: datetime | None = None
