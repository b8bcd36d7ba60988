"""HTTP API tests with the database layer swapped for in-memory stores.

The lifespan handler is not run: the chain store, engine and stores are
injected through FastAPI dependency overrides, and the DB session is an
``AsyncMock`` (only ``rollback()`` is ever awaited on it).
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from helpers.fakes import FakeLookup

from votebot_chains.engine import ConversationEngine
from votebot_chains.memory import memory_stores
from votebot_server.app import create_app
from votebot_server.config import ServerSettings
from votebot_server.dependencies import get_db, get_engine, get_store, get_stores

PHONE = "+15555550100"


@pytest.fixture
def api(chain_store):
    """(client, stores) for an app wired to fresh in-memory stores."""
    stores = memory_stores()
    engine = ConversationEngine(chain_store, lookup=FakeLookup())
    db = AsyncMock()

    async def _db():
        yield db

    app = create_app(ServerSettings(zip_lookup_enabled=False))
    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_stores] = lambda: stores
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_store] = lambda: chain_store
    return TestClient(app), stores


# =====================================================================
# Conversations
# =====================================================================


class TestConversations:
    def test_create_uses_referral_intro(self, api):
        client, stores = api

        resp = client.post("/api/v1/conversations", json={"recipients": [PHONE]})

        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert len(body) == 1
        assert body[0]["step"] == "intro_refer", "Default chain starts at the referral intro"
        assert body[0]["status"] == "active"

    def test_create_requires_recipients(self, api):
        client, _ = api
        resp = client.post("/api/v1/conversations", json={"recipients": []})
        assert resp.status_code == 422

    def test_create_unknown_chain_is_500(self, api):
        client, _ = api
        resp = client.post(
            "/api/v1/conversations", json={"recipients": [PHONE], "chain": "vote_99"},
        )
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Internal server error"}, "No chain details leak"

    def test_incoming_runs_turns(self, api):
        client, stores = api

        for text in ("hi", "Ada"):
            resp = client.post("/api/v1/conversations/incoming", json={"from": PHONE, "body": text})
            assert resp.status_code == 200
            assert resp.json() == {"thanks": True}

        bodies = [m.body for m in stores.messages.messages]
        assert bodies[-1] == "Ok Ada, what's your last name?", f"Unexpected replies {bodies}"

    def test_get_conversation(self, api):
        client, _ = api
        created = client.post("/api/v1/conversations", json={"recipients": [PHONE]}).json()[0]

        resp = client.get(f"/api/v1/conversations/{created['id']}")

        assert resp.status_code == 200
        assert resp.json()["id"] == created["id"]

    def test_get_missing_conversation_is_404(self, api):
        client, _ = api
        resp = client.get("/api/v1/conversations/404")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Resource not found"}

    def test_goto_step(self, api):
        client, stores = api
        created = client.post("/api/v1/conversations", json={"recipients": [PHONE]}).json()[0]

        resp = client.post(
            f"/api/v1/conversations/{created['id']}/goto",
            json={"user_id": created["recipients"][0], "step": "submit"},
        )

        assert resp.status_code == 200, resp.text
        assert resp.json()["body"].startswith("We couldn't submit your registration online")
        assert client.get(f"/api/v1/conversations/{created['id']}").json()["status"] == "completed"


# =====================================================================
# Receipts
# =====================================================================


class TestReceipts:
    def test_success_receipt(self, api):
        client, stores = api
        created = client.post("/api/v1/conversations", json={"recipients": [PHONE]}).json()[0]

        resp = client.post(
            f"/api/v1/receipt/{PHONE}", json={"status": "success", "form_class": "OVR"},
        )

        assert resp.status_code == 200, resp.text
        assert resp.json()["body"].startswith("Congratulations!")
        conversation = client.get(f"/api/v1/conversations/{created['id']}").json()
        assert (conversation["step"], conversation["status"]) == ("processed", "completed")
        user = stores.users.users[created["recipients"][0]]
        assert user.settings["submit_success"] is True
        assert user.settings["submit_form_type"] == "OVR"

    def test_nvra_failure_receipt(self, api):
        client, stores = api
        created = client.post("/api/v1/conversations", json={"recipients": [PHONE]}).json()[0]

        resp = client.post(
            f"/api/v1/receipt/{PHONE}",
            json={"status": "failure", "form_class": "NVRA", "reference": 1234},
        )

        assert resp.status_code == 200, resp.text
        conversation = client.get(f"/api/v1/conversations/{created['id']}").json()
        assert conversation["step"] == "incomplete"
        user = stores.users.users[created["recipients"][0]]
        assert user.settings["failure_reference"] == 1234

    def test_empty_receipt_is_a_failure(self, api):
        client, _ = api
        created = client.post("/api/v1/conversations", json={"recipients": [PHONE]}).json()[0]

        resp = client.post(f"/api/v1/receipt/{PHONE}", json={})

        assert resp.status_code == 200, resp.text
        assert client.get(f"/api/v1/conversations/{created['id']}").json()["step"] == "submit"

    def test_unknown_user_is_404(self, api):
        client, _ = api
        resp = client.post("/api/v1/receipt/+15550000000", json={"status": "success"})
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Resource not found"}


# =====================================================================
# Chains
# =====================================================================


class TestChains:
    def test_list_chains(self, api):
        client, _ = api
        resp = client.get("/api/v1/chains")
        assert resp.status_code == 200
        names = [c["name"] for c in resp.json()]
        assert "vote_1" in names

    def test_get_chain(self, api):
        client, _ = api
        resp = client.get("/api/v1/chains/vote_1")
        assert resp.status_code == 200
        assert resp.json()["start"] == "intro_direct"

    def test_get_unknown_chain_is_404(self, api):
        client, _ = api
        assert client.get("/api/v1/chains/nope").status_code == 404
