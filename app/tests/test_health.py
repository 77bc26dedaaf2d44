import pytest


@pytest.mark.asyncio
async def test_liveness(client):
    r = await client.get("/api/health/liveness")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_readiness_reports_cache(client):
    r = await client.get("/api/health/readiness")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["cache"]["size"] == 0
    assert {"maxEntries", "ttl", "enabled"} <= set(body["cache"])


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    r = await client.get("/api/nope")
    assert r.status_code == 404
    body = r.json()
    assert body["success"] is False
    assert body["path"] == "/api/nope"
