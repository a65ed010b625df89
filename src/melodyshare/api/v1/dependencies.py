"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from melodyshare.core.security import decode_session_token
from melodyshare.db.session import get_session
from melodyshare.models import User
from melodyshare.repositories.user_repo import IdentityStore
from melodyshare.services.feed import (
    CommunityDirectory,
    FeedProjection,
    get_community_directory,
    get_feed_projection,
)
from melodyshare.services.membership import MembershipService
from melodyshare.services.submission import SubmissionService
from melodyshare.services.track_search import SpotifyTrackSearch, get_track_search

# HTTP Bearer scheme for the session tokens issued on create/join
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]
FeedDep = Annotated[FeedProjection, Depends(get_feed_projection)]
DirectoryDep = Annotated[CommunityDirectory, Depends(get_community_directory)]


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    session: SessionDep,
) -> User:
    """Resolve the member identified by the bearer session token.

    Raises:
        HTTPException: If the token is invalid, expired or names no user.
    """
    user_id = decode_session_token(credentials.credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    user = await IdentityStore(session).get_by_id(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_membership_service(session: SessionDep, directory: DirectoryDep) -> MembershipService:
    return MembershipService(session, directory=directory)


def get_submission_service(session: SessionDep, feed: FeedDep) -> SubmissionService:
    return SubmissionService(session, feed=feed)


MembershipDep = Annotated[MembershipService, Depends(get_membership_service)]
SubmissionDep = Annotated[SubmissionService, Depends(get_submission_service)]
TrackSearchDep = Annotated[SpotifyTrackSearch, Depends(get_track_search)]
