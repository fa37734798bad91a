"""Workflow API integration tests."""

import pytest

from tests.identities import ADMIN_HEADERS, USER_HEADERS

STEPS = [
    {"id": "1", "name": "clean", "type": "transform", "config": {"operation": "format"}},
    {"id": "2", "name": "numbers", "type": "transform", "config": '{"operation":"extract","pattern":"\\\\d+"}'},
]


async def _create(client, title="Numbers", steps=STEPS, headers=USER_HEADERS):
    resp = await client.post("/workflows", json={"title": title, "steps": steps}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_requires_identity(client):
    resp = await client.get("/workflows")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_crud_roundtrip(client):
    created = await _create(client)
    assert created["steps"][0]["config"] == '{"operation": "format"}'

    resp = await client.get(f"/workflows/{created['id']}", headers=USER_HEADERS)
    assert resp.status_code == 200

    resp = await client.put(f"/workflows/{created['id']}", json={"title": "Renamed"}, headers=USER_HEADERS)
    assert resp.json()["title"] == "Renamed"
    assert len(resp.json()["steps"]) == 2

    resp = await client.get("/workflows", headers=USER_HEADERS)
    assert [w["title"] for w in resp.json()] == ["Renamed"]

    resp = await client.delete(f"/workflows/{created['id']}", headers=USER_HEADERS)
    assert resp.json() == {"ok": True}
    resp = await client.get(f"/workflows/{created['id']}", headers=USER_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_other_user_gets_404(client):
    created = await _create(client)
    resp = await client.get(f"/workflows/{created['id']}", headers={"X-User-Id": "2"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_quota_returns_403(client):
    for i in range(10):
        await _create(client, title=f"wf{i}")
    resp = await client.post("/workflows", json={"title": "eleventh"}, headers=USER_HEADERS)
    assert resp.status_code == 403
    assert resp.json()["limit"] == 10


@pytest.mark.asyncio
async def test_run_ad_hoc_steps(client):
    resp = await client.post(
        "/workflows/run",
        json={"steps": STEPS, "input": "  value: 42 and 7  "},
        headers=USER_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "completed"
    assert data["output"] == "42\n7"
    assert [r["output"] for r in data["step_results"]] == ["value: 42 and 7", "42\n7"]


@pytest.mark.asyncio
async def test_run_failure_is_reported_not_raised(client):
    resp = await client.post(
        "/workflows/run",
        json={"steps": [{"id": "x", "name": "parse", "type": "transform", "config": {"operation": "json_path", "jsonPath": "a"}}],
              "input": "not json"},
        headers=USER_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "failed"
    assert data["error"].startswith('Step "parse" failed:')


@pytest.mark.asyncio
async def test_prompt_step_uses_llm(client, stub_llm):
    resp = await client.post(
        "/workflows/run",
        json={"steps": [{"id": "1", "type": "prompt", "config": "Summarize {{input}}"}], "input": "text"},
        headers=USER_HEADERS,
    )
    assert resp.json()["output"] == "stub output"
    assert stub_llm.generate.call_args.kwargs["messages"][0].content == "Summarize text"


@pytest.mark.asyncio
async def test_background_execution_persisted(client):
    created = await _create(client)

    resp = await client.post(
        f"/workflows/{created['id']}/execute",
        json={"input": "  value: 42 and 7  "},
        headers=USER_HEADERS,
    )
    assert resp.status_code == 202
    execution_id = resp.json()["execution_id"]

    resp = await client.get(f"/workflows/{created['id']}/executions", headers=USER_HEADERS)
    executions = resp.json()
    assert executions[0]["id"] == execution_id
    assert executions[0]["status"] == "completed"
    assert executions[0]["result"]["final_output"] == "42\n7"


@pytest.mark.asyncio
async def test_import(client):
    resp = await client.post(
        "/workflows/import",
        json={"workflows": [{"title": "a"}, {"title": "b", "steps": STEPS}]},
        headers=USER_HEADERS,
    )
    assert resp.status_code == 201
    assert [w["title"] for w in resp.json()] == ["a", "b"]


@pytest.mark.asyncio
async def test_general_gate_returns_429(client, container):
    gate = container.rate_limit_gate
    gate.set_global_enabled(True)
    gate.update_rule("general", "enabled", {"enabled": True})
    gate.update_rule("general", "all", {"enabled": True, "max_requests": 1})

    body = {"steps": [], "input": "x"}
    first = await client.post("/workflows/run", json=body, headers=USER_HEADERS)
    second = await client.post("/workflows/run", json=body, headers=USER_HEADERS)

    assert first.status_code == 200
    assert second.status_code == 429
    assert second.json()["detail"]["reset_time"] > 0
    # Other users keep their own window
    other = await client.post("/workflows/run", json=body, headers=ADMIN_HEADERS)
    assert other.status_code == 200


@pytest.mark.asyncio
async def test_duplicate_step_ids_rejected(client):
    steps = [STEPS[0], {**STEPS[1], "id": "1"}]
    resp = await client.post("/workflows", json={"title": "dup", "steps": steps}, headers=USER_HEADERS)
    assert resp.status_code == 422
    assert "Duplicate step id: 1" in resp.text

    resp = await client.post("/workflows/run", json={"steps": steps, "input": "x"}, headers=USER_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_share_link_roundtrip(client):
    created = await _create(client)

    resp = await client.post(f"/workflows/{created['id']}/shares", json={}, headers=USER_HEADERS)
    assert resp.status_code == 201
    share = resp.json()

    # Public links resolve without identity headers
    resp = await client.get(f"/workflows/shared/{share['token']}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["permission"] == "view"
    assert data["workflow"]["title"] == "Numbers"
    assert "is_public" not in data["workflow"]

    resp = await client.delete(f"/workflows/shares/{share['id']}", headers=USER_HEADERS)
    assert resp.json() == {"ok": True}
    resp = await client.get(f"/workflows/shared/{share['token']}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_private_and_expired_shares(client):
    created = await _create(client)
    private = await client.post(
        f"/workflows/{created['id']}/shares", json={"is_public": False}, headers=USER_HEADERS
    )
    expired = await client.post(
        f"/workflows/{created['id']}/shares",
        json={"expires_at": "2020-01-01T00:00:00"},
        headers=USER_HEADERS,
    )

    assert (await client.get(f"/workflows/shared/{private.json()['token']}")).status_code == 403
    assert (await client.get(f"/workflows/shared/{expired.json()['token']}")).status_code == 404


@pytest.mark.asyncio
async def test_share_gate_returns_429(client, container):
    created = await _create(client)
    gate = container.rate_limit_gate
    gate.set_global_enabled(True)
    gate.update_rule("createShare", "enabled", {"enabled": True})
    gate.update_rule("createShare", "all", {"enabled": True, "max_requests": 1})

    first = await client.post(f"/workflows/{created['id']}/shares", json={}, headers=USER_HEADERS)
    second = await client.post(f"/workflows/{created['id']}/shares", json={}, headers=USER_HEADERS)

    assert first.status_code == 201
    assert second.status_code == 429
    assert second.json()["detail"]["message"] == "Limited to 20 share links per hour"
