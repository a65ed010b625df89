# src/melodyshare/models/__init__.py
"""SQLAlchemy models for the MelodyShare application."""

from .community import Community
from .song import Song
from .user import User

__all__ = ["Community", "Song", "User"]
