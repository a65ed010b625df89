"""Community endpoints: create, join, leave, share and live feeds."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel

from melodyshare.core.errors import StoreUnavailable
from melodyshare.core.security import create_session_token
from melodyshare.models import Community, User
from melodyshare.repositories.community_repo import CommunityRegistry, normalize_code
from melodyshare.schemas.community import (
    CommunityCreate,
    CommunityJoin,
    CommunityResponse,
    MembershipResponse,
    ShareResponse,
)
from melodyshare.schemas.song import SongResponse
from melodyshare.schemas.user import UserResponse
from melodyshare.services.realtime import Unsubscribe
from melodyshare.services.sharing import shareable_link

from ..dependencies import CurrentUserDep, DirectoryDep, FeedDep, MembershipDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/communities", tags=["communities"])


def _membership_response(community: Community, user: User) -> MembershipResponse:
    return MembershipResponse(
        community=CommunityResponse.model_validate(community),
        user=UserResponse.model_validate(user),
        session_token=create_session_token(user.id, community.code),
    )


async def _find_or_404(session: SessionDep, community_id_or_code: str) -> Community:
    community = await CommunityRegistry(session).find(community_id_or_code)
    if community is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Community not found",
        )
    return community


@router.get("/", response_model=list[CommunityResponse])
async def list_communities(directory: DirectoryDep) -> list[CommunityResponse]:
    """List all communities."""
    return await directory.snapshot()


@router.post("/", response_model=MembershipResponse, status_code=status.HTTP_201_CREATED)
async def create_community(
    payload: CommunityCreate,
    membership: MembershipDep,
) -> MembershipResponse:
    """Create a community and make the caller its first member."""
    community, user = await membership.create_community(
        payload.name, payload.username, is_guest=payload.is_guest
    )
    return _membership_response(community, user)


@router.post("/join", response_model=MembershipResponse)
async def join_community(
    payload: CommunityJoin,
    membership: MembershipDep,
) -> MembershipResponse:
    """Join a community by id or join code."""
    community, user = await membership.join_community(
        payload.community, payload.username, is_guest=payload.is_guest
    )
    return _membership_response(community, user)


@router.delete("/leave", response_model=UserResponse)
async def leave_community(current_user: CurrentUserDep, membership: MembershipDep) -> User:
    """Leave the caller's current community."""
    await membership.leave_community(current_user)
    return current_user


@router.get("/{community_id_or_code}", response_model=CommunityResponse)
async def get_community(community_id_or_code: str, session: SessionDep) -> Community:
    """Get a community by id or join code."""
    return await _find_or_404(session, community_id_or_code)


@router.get("/{community_id_or_code}/songs", response_model=list[SongResponse])
async def list_songs(
    community_id_or_code: str,
    session: SessionDep,
    feed: FeedDep,
) -> list[SongResponse]:
    """Return the community's songs, newest first."""
    community = await _find_or_404(session, community_id_or_code)
    return await feed.snapshot(community.code)


@router.get("/{community_id_or_code}/share", response_model=ShareResponse)
async def share_community(community_id_or_code: str, session: SessionDep) -> ShareResponse:
    """Return the join code and an invite link for the community."""
    community = await _find_or_404(session, community_id_or_code)
    return ShareResponse(code=community.code, link=shareable_link(community.code))


async def _stream(
    websocket: WebSocket,
    subscribe: Callable[[Callable[[list[BaseModel]], None]], Awaitable[Unsubscribe]],
) -> None:
    """Relay live snapshots to ``websocket`` until the client goes away."""
    queue: asyncio.Queue[list[BaseModel]] = asyncio.Queue()
    await websocket.accept()
    try:
        unsubscribe = await subscribe(queue.put_nowait)
    except StoreUnavailable as exc:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason=str(exc))
        return

    async def pump() -> None:
        while True:
            snapshot = await queue.get()
            await websocket.send_json([item.model_dump(mode="json") for item in snapshot])

    sender = asyncio.create_task(pump())
    try:
        while True:
            # Inbound messages are ignored; receiving detects the disconnect.
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Live subscriber disconnected")
    finally:
        unsubscribe()
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError, WebSocketDisconnect):
            await sender


@router.websocket("/live")
async def watch_directory(websocket: WebSocket, directory: DirectoryDep) -> None:
    """Push the full community list on connect and after every change."""
    await _stream(websocket, directory.subscribe)


@router.websocket("/{community_code}/feed")
async def watch_feed(websocket: WebSocket, community_code: str, feed: FeedDep) -> None:
    """Push the community's ordered feed on connect and after every new song."""
    code = normalize_code(community_code)

    async def subscribe(callback: Callable[[list[BaseModel]], None]) -> Unsubscribe:
        return await feed.subscribe(code, callback)

    await _stream(websocket, subscribe)
