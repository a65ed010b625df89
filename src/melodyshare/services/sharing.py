"""Links members hand out or follow outside the app."""

from __future__ import annotations

from urllib.parse import quote, quote_plus

from melodyshare.core.settings import settings


def shareable_link(community_code: str, base_url: str | None = None) -> str:
    """Return the onboarding URL that pre-fills ``community_code``."""
    base = (base_url or settings.public_base_url).rstrip("/")
    return f"{base}/onboarding?join={quote(community_code)}"


def youtube_search_url(title: str, artist: str) -> str:
    """Return a YouTube search link for a track."""
    return f"https://www.youtube.com/results?search_query={quote_plus(f'{title} {artist}'.strip())}"
