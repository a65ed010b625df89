# src/melodyshare/schemas/community.py
"""Community-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .user import UserResponse


class CommunityCreate(BaseModel):
    """Schema for creating a new community."""

    name: str
    username: str
    is_guest: bool | None = None


class CommunityJoin(BaseModel):
    """Schema for joining a community by identifier or join code."""

    community: str = Field(..., description="Community id or join code")
    username: str
    is_guest: bool | None = None


class CommunityResponse(BaseModel):
    """Schema for community information returned by the API."""

    id: str
    name: str
    code: str
    creation_date: datetime
    members: int

    model_config = ConfigDict(from_attributes=True, frozen=True)


class MembershipResponse(BaseModel):
    """Result of a create or join: the pair plus a cacheable session token."""

    community: CommunityResponse
    user: UserResponse
    session_token: str
    token_type: str = "bearer"


class ShareResponse(BaseModel):
    """Details a member can hand out to invite others."""

    code: str
    link: str
