"""Rate limit admin API integration tests."""

import pytest

from src.domain.entities.rate_limit import RateLimitFeature
from tests.identities import ADMIN_HEADERS, USER_HEADERS


@pytest.mark.asyncio
async def test_admin_only(client):
    resp = await client.get("/rate-limit/config", headers=USER_HEADERS)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_get_config_defaults(client):
    resp = await client.get("/rate-limit/config", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["global_enabled"] is False
    assert data["limits"]["optimize"]["rules"]["basic"]["max_requests"] == 50
    assert data["limits"]["general"]["rules"]["all"]["window_ms"] == 60_000


@pytest.mark.asyncio
async def test_toggle_and_update_rule(client, container):
    resp = await client.put("/rate-limit/global", json={"enabled": True}, headers=ADMIN_HEADERS)
    assert resp.json()["global_enabled"] is True

    resp = await client.put(
        "/rate-limit/config/optimize/free",
        json={"max_requests": 3, "enabled": True},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200
    assert container.rate_limit_gate.resolve_rule(RateLimitFeature.OPTIMIZE, "free").max_requests == 3

    audit = container.repository.list_audit_logs(99)
    assert len(audit) == 2


@pytest.mark.asyncio
async def test_update_unknown_tier_is_404(client):
    resp = await client.put("/rate-limit/config/import/pro", json={"max_requests": 1}, headers=ADMIN_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(client):
    resp = await client.put("/rate-limit/config/import/all", json={"limit": 1}, headers=ADMIN_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_preset(client):
    resp = await client.post("/rate-limit/preset", json={"preset": "unlimited"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    resp = await client.get("/rate-limit/config", headers=ADMIN_HEADERS)
    assert resp.json()["limits"]["import"]["rules"]["all"]["max_requests"] == 10000


@pytest.mark.asyncio
async def test_records_reset_and_status(client, container):
    gate = container.rate_limit_gate
    gate.set_global_enabled(True)
    gate.update_rule("general", "enabled", {"enabled": True})
    gate.update_rule("general", "all", {"enabled": True})
    await client.post("/workflows/run", json={"steps": []}, headers=USER_HEADERS)

    resp = await client.get("/rate-limit/me/general", headers=USER_HEADERS)
    status = resp.json()
    assert status["enabled"] is True
    assert status["used"] == 1
    assert status["remaining"] == 99

    resp = await client.get("/rate-limit/records", headers=ADMIN_HEADERS)
    assert [r["identifier"] for r in resp.json()] == ["general:1"]

    resp = await client.delete("/rate-limit/users/1", headers=ADMIN_HEADERS)
    assert resp.json()["removed"] == 1

    await client.post("/workflows/run", json={"steps": []}, headers=USER_HEADERS)
    resp = await client.delete("/rate-limit/records", headers=ADMIN_HEADERS)
    assert resp.json() == {"ok": True}
    assert gate.records() == []


@pytest.mark.asyncio
async def test_unknown_preset_is_422(client):
    resp = await client.post("/rate-limit/preset", json={"preset": "chaos"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 422
