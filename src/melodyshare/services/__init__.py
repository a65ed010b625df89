# src/melodyshare/services/__init__.py
"""Business logic services for the MelodyShare application."""

from .feed import CommunityDirectory, FeedProjection
from .feed_watcher import ChangeWatcher
from .membership import MembershipService
from .submission import SubmissionService
from .track_search import SpotifyTrackSearch, TokenCache

__all__ = [
    "ChangeWatcher",
    "CommunityDirectory",
    "FeedProjection",
    "MembershipService",
    "SpotifyTrackSearch",
    "SubmissionService",
    "TokenCache",
]
