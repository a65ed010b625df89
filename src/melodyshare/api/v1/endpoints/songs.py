"""Song submission endpoint."""

from fastapi import APIRouter, status

from melodyshare.models import Song
from melodyshare.schemas.song import SongResponse, SongSubmit

from ..dependencies import CurrentUserDep, SubmissionDep

router = APIRouter(prefix="/songs", tags=["songs"])


@router.post("/", response_model=SongResponse, status_code=status.HTTP_201_CREATED)
async def submit_song(
    payload: SongSubmit,
    current_user: CurrentUserDep,
    submissions: SubmissionDep,
) -> Song:
    """Share a track with the caller's community.

    Members may share one song per cooldown window; an early attempt answers 429
    with a ``Retry-After`` header.
    """
    return await submissions.submit(current_user, payload.track, payload.mood)
