"""HTTP API tests against a real application with a scripted model backend."""

import pytest
from fastapi.testclient import TestClient

from brain.api.app import create_fastapi_app
from brain.app import Application
from conftest import ScriptedLLM


@pytest.fixture
def client(settings):
    application = Application(settings, llm=ScriptedLLM(), tools=[])
    with TestClient(create_fastapi_app(application)) as test_client:
        yield test_client


class TestMessaging:
    def test_send_message(self, client):
        response = client.post("/api/messages", json={"text": "Hello"})

        assert response.status_code == 200
        assert response.json() == {
            "response": "Hello! How can I help?",
            "error": False,
            "tools": [],
            "thinking": [],
        }

    def test_empty_text_rejected(self, client):
        assert client.post("/api/messages", json={"text": ""}).status_code == 422

    def test_non_positive_timeout_rejected(self, client):
        response = client.post("/api/messages", json={"text": "hi", "timeout": 0})
        assert response.status_code == 422


class TestControl:
    def test_status(self, client):
        data = client.get("/api/control/status").json()

        assert data["status"] == "running"
        assert data["session_id"]
        assert data["tools"] == []
        assert data["exchanges_in_flight"] == 0
        assert data["exchange_policy"] == "concurrent"

    def test_reset(self, client):
        before = client.get("/api/control/status").json()["session_id"]

        response = client.post("/api/control/reset")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["session_id"] != before

    def test_reset_with_wipe(self, client):
        client.post("/api/knowledge/facts", json={"text": "User likes tea"})

        response = client.post("/api/control/reset", json={"wipe": True})

        assert response.status_code == 200
        assert client.get("/api/knowledge/facts").json() == []

    def test_get_personality(self, client):
        data = client.get("/api/control/personality").json()

        assert data["traits"]["warmth"] == 0.7
        assert data["traits"]["use_emoji"] is False
        assert data["prompt"].startswith("You are Albert.")

    def test_adjust_personality_preview(self, client):
        response = client.post("/api/control/personality", json={"trait": "humor", "value": 2})

        assert response.status_code == 200
        assert response.json()["traits"]["humor"] == 1.0

    def test_adjust_flag(self, client):
        response = client.post(
            "/api/control/personality", json={"trait": "use_emoji", "value": True}
        )

        assert response.status_code == 200
        assert response.json()["traits"]["use_emoji"] is True

    def test_adjust_unknown_trait(self, client):
        response = client.post("/api/control/personality", json={"trait": "sarcasm", "value": 0.5})

        assert response.status_code == 400
        assert "sarcasm" in response.json()["detail"]


class TestKnowledge:
    def test_learn_and_list(self, client):
        response = client.post(
            "/api/knowledge/facts", json={"text": "User likes coffee", "confidence": 0.8}
        )

        assert response.status_code == 200
        fact_id = response.json()["id"]
        facts = client.get("/api/knowledge/facts").json()
        assert [f["id"] for f in facts] == [fact_id]
        assert facts[0]["text"] == "User likes coffee"
        assert facts[0]["source"] == "api"
        assert facts[0]["confidence"] == 0.8

    def test_same_text_upserts(self, client):
        first = client.post("/api/knowledge/facts", json={"text": "User likes coffee"}).json()
        second = client.post("/api/knowledge/facts", json={"text": "User likes coffee"}).json()

        assert first["id"] == second["id"]
        assert len(client.get("/api/knowledge/facts").json()) == 1

    def test_get_and_delete(self, client):
        fact_id = client.post("/api/knowledge/facts", json={"text": "User lives in Oslo"}).json()["id"]

        assert client.get(f"/api/knowledge/facts/{fact_id}").json()["text"] == "User lives in Oslo"
        assert client.delete(f"/api/knowledge/facts/{fact_id}").status_code == 200
        assert client.get(f"/api/knowledge/facts/{fact_id}").status_code == 404
        assert client.delete(f"/api/knowledge/facts/{fact_id}").status_code == 404

    def test_search(self, client):
        client.post("/api/knowledge/facts", json={"text": "User likes coffee"})
        client.post("/api/knowledge/facts", json={"text": "User lives in Oslo"})

        results = client.get("/api/knowledge/search", params={"q": "coffee"}).json()

        assert [r["text"] for r in results] == ["User likes coffee"]
        assert results[0]["similarity"] == 1.0

    def test_invalid_confidence(self, client):
        response = client.post("/api/knowledge/facts", json={"text": "x", "confidence": 1.5})
        assert response.status_code == 422
