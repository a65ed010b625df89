"""Data access layer for MelodyShare entities."""

from .community_repo import CommunityRegistry
from .song_repo import SongRepository
from .user_repo import IdentityStore

__all__ = ["CommunityRegistry", "IdentityStore", "SongRepository"]
