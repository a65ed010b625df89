"""User endpoints."""

from fastapi import APIRouter, HTTPException, status

from melodyshare.models import User
from melodyshare.repositories.user_repo import IdentityStore
from melodyshare.schemas.user import EligibilityResponse, UserResponse

from ..dependencies import CurrentUserDep, SessionDep, SubmissionDep

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: CurrentUserDep) -> User:
    """Return the member behind the session token."""
    return current_user


@router.get("/me/eligibility", response_model=EligibilityResponse)
async def read_eligibility(
    current_user: CurrentUserDep,
    submissions: SubmissionDep,
) -> EligibilityResponse:
    """Report whether the caller may share a song now and how long to wait otherwise."""
    remaining = await submissions.retry_after(current_user)
    seconds = remaining.total_seconds()
    return EligibilityResponse(
        can_submit=seconds <= 0,
        retry_after_seconds=int(seconds) + (0 if seconds.is_integer() else 1),
        last_song_added=await submissions.last_submission_at(current_user),
    )


@router.get("/{username}", response_model=UserResponse)
async def read_user(username: str, session: SessionDep) -> User:
    """Look up a member by username (case-sensitive)."""
    user = await IdentityStore(session).get_by_username(username)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user
