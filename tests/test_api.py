# tests/test_api.py
"""Tests for the HTTP API surface and its error mapping."""

import re

import pytest
from fastapi import status

from melodyshare.core.errors import StoreUnavailable, TrackSearchError
from melodyshare.core.settings import settings
from melodyshare.services.track_search import TrackSearchDisabledError, get_track_search

from tests.conftest import auth_headers, make_track


def _track_payload() -> dict:
    return make_track().model_dump()


async def _create(client, name="Jazz Fans", username="alice") -> dict:
    r = await client.post("/api/v1/communities/", json={"name": name, "username": username})
    assert r.status_code == status.HTTP_201_CREATED
    return r.json()


def _bearer(body: dict) -> dict:
    return {"Authorization": f"Bearer {body['session_token']}"}


@pytest.mark.asyncio
async def test_create_community_returns_membership(client) -> None:
    body = await _create(client)

    assert body["community"]["members"] == 1
    assert re.match(r"^[A-Z]{1,4}\d{4}$", body["community"]["code"])
    assert body["user"]["username"] == "alice"
    assert body["user"]["community_code"] == body["community"]["code"]
    assert body["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_list_and_get_communities(client) -> None:
    body = await _create(client)
    code = body["community"]["code"]

    listed = await client.get("/api/v1/communities/")
    by_code = await client.get(f"/api/v1/communities/{code.lower()}")
    by_id = await client.get(f"/api/v1/communities/{body['community']['id']}")

    assert [c["code"] for c in listed.json()] == [code]
    assert by_code.json()["id"] == body["community"]["id"]
    assert by_id.json()["code"] == code


@pytest.mark.asyncio
async def test_get_unknown_community(client) -> None:
    r = await client.get("/api/v1/communities/NOPE0000")
    assert r.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_join_twice_counts_once(client) -> None:
    code = (await _create(client))["community"]["code"]

    first = await client.post("/api/v1/communities/join", json={"community": code, "username": "bob"})
    second = await client.post(
        "/api/v1/communities/join", json={"community": code, "username": "bob"}
    )

    assert first.status_code == status.HTTP_200_OK
    assert first.json()["community"]["members"] == 2
    assert second.json()["community"]["members"] == 2
    assert first.json()["user"]["id"] == second.json()["user"]["id"]


@pytest.mark.asyncio
async def test_join_unknown_code_is_404(client) -> None:
    r = await client.post(
        "/api/v1/communities/join", json={"community": "NOPE0000", "username": "bob"}
    )
    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.json()["detail"] == "Invalid community code"


@pytest.mark.asyncio
async def test_validation_error_names_field(client) -> None:
    r = await client.post("/api/v1/communities/", json={"name": "ab", "username": "alice"})

    assert r.status_code == 422
    assert r.json()["field"] == "name"


@pytest.mark.asyncio
async def test_leave_community(client) -> None:
    code = (await _create(client))["community"]["code"]
    bob = (
        await client.post("/api/v1/communities/join", json={"community": code, "username": "bob"})
    ).json()

    r = await client.delete("/api/v1/communities/leave", headers=_bearer(bob))
    community = await client.get(f"/api/v1/communities/{code}")
    again = await client.delete("/api/v1/communities/leave", headers=_bearer(bob))

    assert r.status_code == status.HTTP_200_OK
    assert r.json()["community_code"] is None
    assert community.json()["members"] == 1
    assert again.status_code == status.HTTP_409_CONFLICT


@pytest.mark.asyncio
async def test_share_link(client) -> None:
    code = (await _create(client))["community"]["code"]

    r = await client.get(f"/api/v1/communities/{code}/share")

    assert r.json() == {
        "code": code,
        "link": f"{settings.public_base_url.rstrip('/')}/onboarding?join={code}",
    }


@pytest.mark.asyncio
async def test_user_lookup_is_case_sensitive(client) -> None:
    await _create(client)

    found = await client.get("/api/v1/users/alice")
    missing = await client.get("/api/v1/users/Alice")

    assert found.status_code == status.HTTP_200_OK
    assert found.json()["username"] == "alice"
    assert missing.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
async def test_submit_requires_session_token(client) -> None:
    r = await client.post("/api/v1/songs/", json={"track": _track_payload()})
    assert r.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}

    r = await client.post(
        "/api/v1/songs/",
        json={"track": _track_payload()},
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert r.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.asyncio
async def test_second_submission_is_rate_limited(client) -> None:
    body = await _create(client)
    headers = _bearer(body)

    first = await client.post("/api/v1/songs/", json={"track": _track_payload()}, headers=headers)
    eligibility = await client.get("/api/v1/users/me/eligibility", headers=headers)
    second = await client.post("/api/v1/songs/", json={"track": _track_payload()}, headers=headers)

    assert first.status_code == status.HTTP_201_CREATED
    assert eligibility.json()["can_submit"] is False
    assert 0 < eligibility.json()["retry_after_seconds"] <= 24 * 3600
    assert second.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert 0 < int(second.headers["Retry-After"]) <= 24 * 3600
    assert "24 hours" in second.json()["detail"]


@pytest.mark.asyncio
async def test_eligibility_before_first_song(client) -> None:
    body = await _create(client)

    r = await client.get("/api/v1/users/me/eligibility", headers=_bearer(body))

    assert r.json() == {"can_submit": True, "retry_after_seconds": 0, "last_song_added": None}


@pytest.mark.asyncio
async def test_read_me(client) -> None:
    body = await _create(client)

    r = await client.get("/api/v1/users/me", headers=_bearer(body))

    assert r.json()["id"] == body["user"]["id"]


@pytest.mark.asyncio
async def test_submit_without_community_is_conflict(client, membership) -> None:
    _, alice = await membership.create_community("Jazz Fans", "alice")
    await membership.leave_community(alice)

    r = await client.post(
        "/api/v1/songs/", json={"track": _track_payload()}, headers=auth_headers(alice)
    )

    assert r.status_code == status.HTTP_409_CONFLICT


@pytest.mark.asyncio
async def test_mood_required_maps_to_422(client, monkeypatch) -> None:
    monkeypatch.setattr(settings, "mood_required", True)
    body = await _create(client)

    r = await client.post("/api/v1/songs/", json={"track": _track_payload()}, headers=_bearer(body))
    songs = await client.get(f"/api/v1/communities/{body['community']['code']}/songs")

    assert r.status_code == 422
    assert r.json()["field"] == "mood"
    assert songs.json() == []


@pytest.mark.asyncio
async def test_store_unavailable_maps_to_503(client, mocker) -> None:
    mocker.patch(
        "melodyshare.services.membership.MembershipService.create_community",
        side_effect=StoreUnavailable(),
    )

    r = await client.post("/api/v1/communities/", json={"name": "Jazz Fans", "username": "alice"})

    assert r.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert "try again" in r.json()["detail"]


@pytest.mark.asyncio
async def test_track_search_proxy(client, app) -> None:
    class StubSearch:
        async def search(self, query):
            return [make_track(title=query.title())] if query else []

    app.dependency_overrides[get_track_search] = lambda: StubSearch()
    try:
        r = await client.get("/api/v1/tracks/search", params={"q": "blue in green"})
        empty = await client.get("/api/v1/tracks/search")
    finally:
        app.dependency_overrides.pop(get_track_search, None)

    assert [track["title"] for track in r.json()] == ["Blue In Green"]
    assert empty.json() == []


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (TrackSearchError("upstream 500"), status.HTTP_502_BAD_GATEWAY),
        (TrackSearchDisabledError("not configured"), status.HTTP_503_SERVICE_UNAVAILABLE),
    ],
)
@pytest.mark.asyncio
async def test_track_search_errors(client, app, error, expected) -> None:
    class FailingSearch:
        async def search(self, query):
            raise error

    app.dependency_overrides[get_track_search] = lambda: FailingSearch()
    try:
        r = await client.get("/api/v1/tracks/search", params={"q": "anything"})
    finally:
        app.dependency_overrides.pop(get_track_search, None)

    assert r.status_code == expected
