"""Track search endpoint."""

from typing import Annotated

from fastapi import APIRouter, Query

from melodyshare.schemas.track import TrackResult

from ..dependencies import TrackSearchDep

router = APIRouter(prefix="/tracks", tags=["tracks"])


@router.get("/search", response_model=list[TrackResult])
async def search_tracks(
    track_search: TrackSearchDep,
    q: Annotated[str, Query(max_length=200, description="Free-text track query")] = "",
) -> list[TrackResult]:
    """Search the music catalogue for tracks to share."""
    return await track_search.search(q)
