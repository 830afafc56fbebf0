import httpx
import pytest

from mediachat.api.main import create_app
from mediachat.exceptions import ProviderException

from .fakes import make_asset

ADMIN = {"X-Admin-Token": "secret"}


@pytest.fixture
async def client(service):
    transport = httpx.ASGITransport(app=create_app(service))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _ingest(service, scheduler, catalog):
    catalog.add_asset(make_asset())
    service.orchestrator.submit("v1")
    await scheduler.run_all()


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_providers(client):
    response = await client.get("/providers")

    assert "peertube" in response.json()["supported_providers"]["catalog"]


async def test_send_message(client, service, scheduler, catalog):
    await _ingest(service, scheduler, catalog)

    response = await client.post(
        "/chat/send",
        json={"asset_id": "v1", "message": "where is the intro?"},
        headers={"X-User-Id": "alice"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["response"] == "The intro is at [0:00]."
    assert body["timestamps"] == [{"display": "[0:00]", "seconds": 0}]

    history = await client.get("/chat/history/v1", headers={"X-User-Id": "alice"})
    assert history.status_code == 200
    assert [item["message"] for item in history.json()] == ["where is the intro?"]
    assert history.json()[0]["user_id"] == "alice"


@pytest.mark.parametrize("payload", [
    {"asset_id": "v1"},
    {"message": "hi"},
    {"asset_id": "v1", "message": "   "},
    {"asset_id": "", "message": "hi"},
])
async def test_send_message_missing_fields(client, payload):
    response = await client.post("/chat/send", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields"}


async def test_send_message_when_disabled(client, config):
    config.chat.enabled = False

    response = await client.post("/chat/send", json={"asset_id": "v1", "message": "hi"})

    assert response.status_code == 403
    assert response.json() == {"error": "Chat is disabled"}


async def test_send_message_provider_failure(client, llm):
    llm.fail = True

    response = await client.post("/chat/send", json={"asset_id": "v1", "message": "hi"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process chat message"}


async def test_status_for_unknown_asset(client):
    response = await client.get("/processing/status/nope")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "not_processed"
    assert body["processing"] is False
    assert body["processed"] is False


async def test_status_after_processing(client, service, scheduler, catalog):
    await _ingest(service, scheduler, catalog)

    body = (await client.get("/processing/status/v1")).json()

    assert body["status"] == "completed"
    assert body["processed"] is True
    assert body["processed_at"] is not None


async def test_trigger_requires_admin(client, catalog):
    catalog.add_asset(make_asset())

    assert (await client.post("/processing/trigger/v1")).status_code == 403
    assert (await client.post("/processing/trigger/v1", headers={"X-Admin-Token": "wrong"})).status_code == 403


async def test_trigger_processing(client, catalog, scheduler):
    catalog.add_asset(make_asset())

    response = await client.post("/processing/trigger/v1", headers=ADMIN)

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Processing started", "status": "not_processed"}

    await scheduler.run_all()
    status = (await client.get("/processing/status/v1")).json()
    assert status["status"] == "completed"


async def test_trigger_unknown_asset(client):
    response = await client.post("/processing/trigger/nope", headers=ADMIN)

    assert response.status_code == 404
    assert response.json() == {"error": "Video not found: nope"}


async def test_trigger_catalog_failure(client, catalog, monkeypatch):
    async def unavailable(asset_id):
        raise ProviderException("catalog unavailable")

    monkeypatch.setattr(catalog, "get_asset", unavailable)

    response = await client.post("/processing/trigger/v1", headers=ADMIN)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


async def test_asset_hooks(client, service, scheduler, catalog, store):
    catalog.add_asset(make_asset())

    uploaded = await client.post("/hooks/assets/v1/uploaded", headers=ADMIN)
    assert uploaded.json() == {"asset_id": "v1", "event": "uploaded", "queued": True}
    await scheduler.run_all()
    assert len(await store.list_chunks("v1")) == 2

    updated = await client.post("/hooks/assets/v1/updated", headers=ADMIN)
    assert updated.json()["queued"] is False

    deleted = await client.post("/hooks/assets/v1/deleted", headers=ADMIN)
    assert deleted.status_code == 200
    assert await store.list_chunks("v1") == []
    assert (await client.get("/processing/status/v1")).json()["status"] == "not_processed"


async def test_hooks_require_admin(client):
    response = await client.post("/hooks/assets/v1/uploaded")

    assert response.status_code == 403


async def test_unknown_hook_event(client):
    response = await client.post("/hooks/assets/v1/renamed", headers=ADMIN)

    assert response.status_code == 400
