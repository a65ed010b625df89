"""Version 1 API endpoints."""

from .endpoints import (
    communities_router,
    songs_router,
    tracks_router,
    users_router,
)

__all__ = [
    "communities_router",
    "songs_router",
    "tracks_router",
    "users_router",
]
