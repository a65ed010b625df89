"""Track search Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, Field


class TrackResult(BaseModel):
    """A track as returned by the search provider and submitted by clients."""

    id: str = Field(..., min_length=1, description="Provider track identifier")
    title: str = Field(..., min_length=1)
    artists: list[str] = Field(default_factory=list)
    album_art_url: str = Field("", description="Largest album image, empty if none")
    external_uri: str = Field(..., min_length=1, description="Provider URI, e.g. spotify:track:<id>")

    @property
    def artist_line(self) -> str:
        """Artist names joined for display."""
        return ", ".join(self.artists)

    @classmethod
    def from_spotify(cls, item: dict[str, Any]) -> "TrackResult":
        """Build a result from one item of a Spotify ``/search`` response."""
        images = (item.get("album") or {}).get("images") or []
        return cls(
            id=item["id"],
            title=item.get("name") or "",
            artists=[artist.get("name", "") for artist in item.get("artists") or []],
            album_art_url=images[0].get("url", "") if images else "",
            external_uri=item.get("uri") or f"spotify:track:{item['id']}",
        )
