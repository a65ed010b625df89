# tests/test_health.py
from typing import Any

import pytest


@pytest.mark.asyncio
async def test_root_responds(client: Any) -> None:
    """Verify that the root endpoint describes the service."""
    r = await client.get("/")
    assert r.status_code == 200
    assert r.json()["name"] == "MelodyShare"


@pytest.mark.asyncio
async def test_health_check(client: Any) -> None:
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
