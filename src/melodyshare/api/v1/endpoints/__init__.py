"""API endpoint modules for version 1."""

from .communities import router as communities_router
from .songs import router as songs_router
from .tracks import router as tracks_router
from .users import router as users_router

__all__ = [
    "communities_router",
    "songs_router",
    "tracks_router",
    "users_router",
]
