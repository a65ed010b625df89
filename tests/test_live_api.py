# tests/test_live_api.py
"""Tests for the WebSocket feeds pushing live snapshots."""

from fastapi.testclient import TestClient

from tests.conftest import make_track


def _create(client: TestClient, name: str, username: str) -> dict:
    r = client.post("/api/v1/communities/", json={"name": name, "username": username})
    assert r.status_code == 201
    return r.json()


def test_feed_socket_pushes_snapshot_then_new_songs(sync_client: TestClient) -> None:
    body = _create(sync_client, "Jazz Fans", "alice")
    code = body["community"]["code"]
    headers = {"Authorization": f"Bearer {body['session_token']}"}

    with sync_client.websocket_connect(f"/api/v1/communities/{code.lower()}/feed") as ws:
        assert ws.receive_json() == []

        r = sync_client.post(
            "/api/v1/songs/",
            json={"track": make_track(title="So What").model_dump()},
            headers=headers,
        )
        assert r.status_code == 201

        snapshot = ws.receive_json()

    assert [song["title"] for song in snapshot] == ["So What"]
    assert snapshot[0]["added_by"] == "alice"


def test_directory_socket_pushes_new_communities(sync_client: TestClient) -> None:
    with sync_client.websocket_connect("/api/v1/communities/live") as ws:
        assert ws.receive_json() == []

        body = _create(sync_client, "Jazz Fans", "alice")
        snapshot = ws.receive_json()

    assert [community["code"] for community in snapshot] == [body["community"]["code"]]
    assert snapshot[0]["members"] == 1
