from typing import Any

import pytest


@pytest.mark.asyncio
async def test_create_community_and_share_song(client: Any) -> None:
    """Smoke test: create a community, share a song, see it in the feed."""
    r = await client.post(
        "/api/v1/communities/",
        json={"name": "Jazz Fans", "username": "alice"},
    )
    assert r.status_code == 201
    body = r.json()
    code = body["community"]["code"]
    headers = {"Authorization": f"Bearer {body['session_token']}"}

    track = {
        "id": "4vLYewWIvqHfKtJDk8c8tq",
        "title": "So What",
        "artists": ["Miles Davis"],
        "album_art_url": "https://i.scdn.co/image/so-what",
        "external_uri": "spotify:track:4vLYewWIvqHfKtJDk8c8tq",
    }
    r = await client.post("/api/v1/songs/", json={"track": track, "mood": "Chill"}, headers=headers)
    assert r.status_code == 201

    r = await client.get(f"/api/v1/communities/{code}/songs")
    assert r.status_code == 200
    assert [song["title"] for song in r.json()] == ["So What"]
