"""
Integration tests for the chat API.

Runs the FastAPI app in-process with the store and model provider overridden.
"""

import json
import re
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from main import app
from rorie.api.deps import get_chat_session_repository, get_llm_provider
from rorie.core.config import get_settings
from rorie.models.enums import MessageRole


COOKIE_PATTERN = re.compile(r"gc_session_id=([0-9a-f]{32})")


def _body(text: str, role: str = "user") -> dict:
    return {"messages": [{"id": "m1", "role": role, "parts": [{"type": "text", "text": text}]}]}


def _cookie(session_id: str) -> dict:
    return {"Cookie": f"gc_session_id={session_id}"}


def _frames(text: str) -> list:
    frames = []
    for block in text.split("\n\n"):
        if not block.startswith("data: "):
            continue
        data = block[len("data: "):]
        frames.append(data if data == "[DONE]" else json.loads(data))
    return frames


@pytest.fixture
def overrides(chat_repo, fake_llm, settings):
    app.dependency_overrides[get_chat_session_repository] = lambda: chat_repo
    app.dependency_overrides[get_llm_provider] = lambda: fake_llm
    app.dependency_overrides[get_settings] = lambda: settings
    yield app.dependency_overrides
    app.dependency_overrides.clear()


@pytest.fixture
async def client(overrides):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestChatEndpoint:
    @pytest.mark.asyncio
    async def test_new_visitor_gets_cookie_and_stream(self, client, chat_repo):
        response = await client.post("/api/chat", json=_body("Why are brands valuable?"))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["x-vercel-ai-ui-message-stream"] == "v1"

        match = COOKIE_PATTERN.search(response.headers["set-cookie"])
        assert match is not None
        assert "httponly" in response.headers["set-cookie"].lower()

        frames = _frames(response.text)
        types = [f if f == "[DONE]" else f["type"] for f in frames]
        assert types == [
            "start",
            "start-step",
            "text-start",
            "text-delta",
            "text-delta",
            "text-delta",
            "text-end",
            "finish-step",
            "finish",
            "[DONE]",
        ]
        assert "".join(f["delta"] for f in frames if f != "[DONE]" and f["type"] == "text-delta") == "Hello, world"

        session_id = match.group(1)
        messages = await chat_repo.list_messages(session_id)
        assert [(m.role, m.content) for m in messages] == [
            (MessageRole.USER, "Why are brands valuable?"),
            (MessageRole.ASSISTANT, "Hello, world"),
        ]
        assert (await chat_repo.get_rate_limit(session_id)).used_count == 1

    @pytest.mark.asyncio
    async def test_existing_cookie_is_reused(self, client, chat_repo, session_id):
        response = await client.post("/api/chat", json=_body("Hi"), headers=_cookie(session_id))

        assert response.status_code == 200
        assert "set-cookie" not in response.headers
        assert (await chat_repo.get_rate_limit(session_id)).used_count == 1

    @pytest.mark.asyncio
    async def test_model_receives_memory_in_system_prompt(self, client, fake_llm, session_id):
        await client.post("/api/chat", json=_body("first question"), headers=_cookie(session_id))
        await client.post("/api/chat", json=_body("second question"), headers=_cookie(session_id))

        system_prompt = fake_llm.calls[-1]["system_prompt"]
        assert "USER: first question\nASSISTANT: Hello, world\nUSER: second question" in system_prompt

    @pytest.mark.asyncio
    async def test_exhausted_session_gets_429(self, client, chat_repo, fake_llm, session_id):
        await chat_repo.ensure_session(session_id, default_limit=15)
        for index in range(15):
            await chat_repo.add_user_message_within_limit(session_id, f"q{index}")

        response = await client.post("/api/chat", json=_body("one more"), headers=_cookie(session_id))

        assert response.status_code == 429
        assert response.json() == {
            "error": "rate_limited",
            "message": "Limit reached.",
            "bookLink": "https://example.com/book",
            "limit": 15,
            "used": 15,
        }
        assert len(await chat_repo.list_messages(session_id)) == 15
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_assistant_last_message_streams_without_quota(self, client, chat_repo, session_id):
        body = {
            "messages": [
                {"role": "user", "parts": [{"type": "text", "text": "Hi"}]},
                {"role": "assistant", "parts": [{"type": "text", "text": "Hello"}]},
            ]
        }

        response = await client.post("/api/chat", json=body, headers=_cookie(session_id))

        assert response.status_code == 200
        assert (await chat_repo.get_rate_limit(session_id)).used_count == 0

    @pytest.mark.asyncio
    async def test_provider_error_becomes_error_frame(self, client, overrides, fake_llm_factory, chat_repo, session_id):
        from rorie.core.exceptions import LLMError

        overrides[get_llm_provider] = lambda: fake_llm_factory(chunks=[], error=LLMError("Model call failed"))

        response = await client.post("/api/chat", json=_body("Hi"), headers=_cookie(session_id))

        frames = _frames(response.text)
        assert {"type": "error", "errorText": "Model call failed"} in frames
        assert frames[-1] == "[DONE]"
        messages = await chat_repo.list_messages(session_id)
        assert [m.role for m in messages] == [MessageRole.USER]

    @pytest.mark.asyncio
    async def test_empty_messages_rejected(self, client):
        response = await client.post("/api/chat", json={"messages": []})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_oversized_message_is_rejected_without_using_quota(self, client, chat_repo, fake_llm, session_id):
        response = await client.post("/api/chat", json=_body("x" * 100_001), headers=_cookie(session_id))

        assert response.status_code == 422
        assert "too long" in response.json()["detail"]
        assert await chat_repo.get_rate_limit(session_id) is None
        assert fake_llm.calls == []

        response = await client.post("/api/chat", json=_body("hi"), headers=_cookie(session_id))
        assert response.status_code == 200
        assert (await chat_repo.get_rate_limit(session_id)).used_count == 1

        response = await client.get("/api/chat/messages", headers=_cookie(session_id))
        assert response.status_code == 200
        assert [m["content"] for m in response.json()] == ["hi", "Hello, world"]

    @pytest.mark.asyncio
    async def test_message_without_text_is_rejected(self, client, chat_repo, session_id):
        body = {"messages": [{"role": "user", "parts": [{"type": "file", "url": "https://example.com/a.png"}]}]}

        response = await client.post("/api/chat", json=body, headers=_cookie(session_id))

        assert response.status_code == 422
        assert await chat_repo.get_rate_limit(session_id) is None

    @pytest.mark.asyncio
    async def test_long_reply_keeps_session_usable(self, client, overrides, fake_llm_factory, chat_repo, session_id):
        overrides[get_llm_provider] = lambda: fake_llm_factory(chunks=["y" * 150_000])
        await client.post("/api/chat", json=_body("write a lot"), headers=_cookie(session_id))

        response = await client.get("/api/chat/messages", headers=_cookie(session_id))

        assert response.status_code == 200
        assert len(response.json()[-1]["content"]) == 150_000

        overrides[get_llm_provider] = lambda: fake_llm_factory()
        response = await client.post("/api/chat", json=_body("thanks"), headers=_cookie(session_id))
        assert response.status_code == 200
        assert (await chat_repo.get_rate_limit(session_id)).used_count == 2

    @pytest.mark.asyncio
    async def test_history_failure_returns_500_without_using_quota(self, client, chat_repo, fake_llm, session_id):
        chat_repo.list_messages = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down")))

        response = await client.post("/api/chat", json=_body("Hi"), headers=_cookie(session_id))

        assert response.status_code == 500
        assert (await chat_repo.get_rate_limit(session_id)).used_count == 0
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_store_failure_returns_500(self, client, overrides):
        repo = AsyncMock()
        repo.ensure_session.side_effect = OperationalError("INSERT", {}, Exception("db down"))
        overrides[get_chat_session_repository] = lambda: repo

        response = await client.post("/api/chat", json=_body("Hi"))

        assert response.status_code == 500


class TestQuotaAndMessages:
    @pytest.mark.asyncio
    async def test_quota_for_new_visitor(self, client):
        response = await client.get("/api/chat/quota")

        assert response.status_code == 200
        assert response.json() == {"limit": 15, "used": 0, "remaining": 15}
        assert COOKIE_PATTERN.search(response.headers["set-cookie"])

    @pytest.mark.asyncio
    async def test_quota_after_message(self, client, session_id):
        await client.post("/api/chat", json=_body("Hi"), headers=_cookie(session_id))

        response = await client.get("/api/chat/quota", headers=_cookie(session_id))

        assert response.json() == {"limit": 15, "used": 1, "remaining": 14}

    @pytest.mark.asyncio
    async def test_messages_for_new_visitor_is_empty(self, client):
        response = await client.get("/api/chat/messages")

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_messages_restore_conversation(self, client, session_id):
        await client.post("/api/chat", json=_body("Hi"), headers=_cookie(session_id))

        response = await client.get("/api/chat/messages", headers=_cookie(session_id))

        assert [(m["role"], m["content"]) for m in response.json()] == [
            ("user", "Hi"),
            ("assistant", "Hello, world"),
        ]


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.json()["status"] == "healthy"
