"""End-to-end API tests — auth, sessions and chat over the ASGI app."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

import agents.advisor as advisor_module
import services.conversation_store as conversation_store_module
import services.user_store as user_store_module
from agents.advisor import CyberAdvisor
from main import app, lifespan
from services.conversation_store import InMemoryConversationStore
from services.messages import t
from services.quiz_session import QuizSessionMachine
from services.user_store import InMemoryUserStore, RedisUserStore
from tests.conftest import always, always_raise, make_orchestrator


@pytest.fixture
def conversation_store(monkeypatch) -> InMemoryConversationStore:
    store = InMemoryConversationStore()
    monkeypatch.setattr(conversation_store_module, "_store", store)
    monkeypatch.setattr(user_store_module, "_store", InMemoryUserStore())
    return store


@pytest.fixture
def install_advisor(monkeypatch, conversation_store, fixed_bank):
    """Install an advisor whose provider follows *responder*; returns the provider."""

    def install(responder, credentials=("key-a", "key-b")):
        orchestrator, provider = make_orchestrator(responder, credentials=credentials)
        advisor = CyberAdvisor(orchestrator, conversation_store, QuizSessionMachine(fixed_bank))
        monkeypatch.setattr(advisor_module, "_advisor", advisor)
        return provider

    return install


@pytest.fixture
async def client(conversation_store):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register(client, email="user@example.com") -> dict:
    resp = await client.post(
        "/api/auth/register",
        json={"name": "Min", "email": email, "password": "pw123456", "knowledgeLevel": "Intermediate"},
    )
    assert resp.status_code == 200
    return resp.json()


def bearer(auth: dict) -> dict:
    return {"Authorization": f"Bearer {auth['token']}"}


# ── Health ───────────────────────────────────────────────────


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    async def test_root_banner(self, client):
        resp = await client.get("/")
        assert resp.status_code == 200
        assert "running" in resp.text

    async def test_request_id_echoed(self, client):
        resp = await client.get("/api/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["x-request-id"] == "abc123"

    async def test_lifespan_closes_redis_user_store(self, conversation_store, monkeypatch):
        user_store = RedisUserStore(redis_url="redis://localhost:6379/0")
        monkeypatch.setattr(user_store, "close", AsyncMock())
        monkeypatch.setattr(user_store_module, "_store", user_store)

        async with lifespan(app):
            pass

        user_store.close.assert_awaited_once()


# ── Auth ─────────────────────────────────────────────────────


class TestAuth:
    async def test_register_returns_token_and_public_user(self, client):
        data = await register(client)

        assert data["token"]
        assert data["user"]["email"] == "user@example.com"
        assert data["user"]["knowledgeLevel"] == "Intermediate"
        assert "passwordHash" not in data["user"]

    async def test_duplicate_email_is_400(self, client):
        await register(client)
        resp = await client.post(
            "/api/auth/register",
            json={"name": "Other", "email": "USER@example.com", "password": "x"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "User already exists"

    async def test_login(self, client):
        await register(client)

        ok = await client.post("/api/auth/login", json={"email": "user@example.com", "password": "pw123456"})
        bad = await client.post("/api/auth/login", json={"email": "user@example.com", "password": "nope"})

        assert ok.status_code == 200
        assert ok.json()["token"]
        assert bad.status_code == 401

    async def test_missing_token_is_401(self, client):
        resp = await client.get("/api/sessions")
        assert resp.status_code == 401

    async def test_invalid_token_is_403(self, client):
        resp = await client.get("/api/sessions", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 403


# ── Sessions ─────────────────────────────────────────────────


class TestSessions:
    async def test_create_and_list(self, client):
        auth = await register(client)

        created = await client.post("/api/sessions", json={"title": "Wi-Fi safety"}, headers=bearer(auth))
        listed = await client.get("/api/sessions", headers=bearer(auth))

        assert created.status_code == 200
        assert created.json()["title"] == "Wi-Fi safety"
        assert created.json()["mode"] == "normal"
        assert [c["id"] for c in listed.json()] == [created.json()["id"]]

    async def test_create_with_unknown_mode_is_400(self, client):
        auth = await register(client)
        resp = await client.post("/api/sessions", json={"mode": "pirate"}, headers=bearer(auth))
        assert resp.status_code == 400

    async def test_foreign_conversation_is_404(self, client, install_advisor):
        install_advisor(always("hi"))
        owner = await register(client, "owner@example.com")
        other = await register(client, "other@example.com")
        await client.post("/api/chat", json={"sessionId": "s-1", "message": "hello"}, headers=bearer(owner))

        resp = await client.get("/api/sessions/s-1/messages", headers=bearer(other))
        chat = await client.post(
            "/api/chat", json={"sessionId": "s-1", "message": "hijack"}, headers=bearer(other)
        )

        assert resp.status_code == 404
        assert chat.status_code == 404


# ── Chat ─────────────────────────────────────────────────────


class TestChat:
    async def test_first_message_creates_conversation_with_title(self, client, install_advisor):
        install_advisor(always("Enable MFA everywhere."))
        auth = await register(client)
        message = "How can I protect my email account from hackers?"

        resp = await client.post(
            "/api/chat", json={"sessionId": "s-42", "message": message}, headers=bearer(auth)
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["displayText"] == "Enable MFA everywhere."
        assert body["conversationId"] == "s-42"
        sessions = (await client.get("/api/sessions", headers=bearer(auth))).json()
        assert sessions[0]["title"] == message[:30] + "..."
        messages = (await client.get("/api/sessions/s-42/messages", headers=bearer(auth))).json()
        assert [m["role"] for m in messages] == ["user", "model"]

    async def test_account_level_is_default_user_level(self, client, install_advisor):
        provider = install_advisor(always("ok"))
        auth = await register(client)

        await client.post("/api/chat", json={"sessionId": "s-1", "message": "hi"}, headers=bearer(auth))

        assert "Intermediate" in provider.calls[0].request.system_instruction

    async def test_quiz_start(self, client, install_advisor, sample_question):
        provider = install_advisor(always("unused"))
        auth = await register(client)

        resp = await client.post(
            "/api/chat",
            json={"sessionId": "s-q", "message": "Start", "mode": "quiz"},
            headers=bearer(auth),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["kind"] == "quiz"
        assert body["quizData"]["questionText"] == sample_question.question_text
        assert body["quizData"]["correctOptionIndex"] == 2
        assert provider.calls == []

    async def test_analysis_all_model_unavailable_is_localized_503(self, client, install_advisor):
        provider = install_advisor(always_raise("404 model is not found"))
        auth = await register(client)

        resp = await client.post(
            "/api/chat",
            json={"sessionId": "s-a", "message": "check http://evil.test", "mode": "analysis", "language": "my"},
            headers=bearer(auth),
        )

        assert resp.status_code == 503
        assert resp.json()["error"] == t("error_overloaded", "my")
        assert "not found" not in resp.text
        # one call per tier: the remaining keys of each tier are skipped
        assert len(provider.calls) == 4

    async def test_no_credentials_is_misconfigured_503(self, client, install_advisor):
        install_advisor(always("never"), credentials=())
        auth = await register(client)

        resp = await client.post("/api/chat", json={"sessionId": "s-n", "message": "hi"}, headers=bearer(auth))

        assert resp.status_code == 503
        assert resp.json()["error"] == t("error_misconfigured")

    async def test_unknown_mode_is_400_and_nothing_stored(self, client, install_advisor, conversation_store):
        install_advisor(always("ok"))
        auth = await register(client)

        resp = await client.post(
            "/api/chat", json={"sessionId": "s-x", "message": "hi", "mode": "pirate"}, headers=bearer(auth)
        )

        assert resp.status_code == 400
        assert await conversation_store.get_conversation("s-x") is None
