import pytest


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/v1/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_webhook_status(client):
    r = await client.get("/v1/webhooks/wompi")
    assert r.status_code == 200
    assert r.json() == {"status": "active"}
