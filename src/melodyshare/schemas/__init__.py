"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .community import (
    CommunityCreate,
    CommunityJoin,
    CommunityResponse,
    MembershipResponse,
    ShareResponse,
)
from .song import SongResponse, SongSubmit
from .track import TrackResult
from .user import EligibilityResponse, UserResponse

__all__ = [
    "CommunityCreate", "CommunityJoin", "CommunityResponse", "MembershipResponse", "ShareResponse",
    "EligibilityResponse", "UserResponse",
    "SongResponse", "SongSubmit",
    "TrackResult",
]
