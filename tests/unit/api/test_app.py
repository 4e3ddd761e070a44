"""Tests for the FastAPI boundary (fake model and embedder)."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from mentor.api.app import ChatBody, MessageIn, create_app
from mentor.config import MentorConfig
from mentor.errors import EmbeddingServiceError
from mentor.rag.llm_client import StreamDelta, ToolCallFragment


class ScriptedModel:
    def __init__(self, *scripts):
        self.scripts = list(scripts)
        self.calls = 0

    def stream(self, messages, tools=None):
        self.calls += 1
        return iter_script(self.scripts[self.calls - 1])


def iter_script(script):
    yield from script


def _parse(body: str) -> list[tuple[str, object]]:
    lines = []
    for line in body.splitlines():
        prefix, _, payload = line.partition(":")
        lines.append((prefix, json.loads(payload)))
    return lines


@pytest.fixture
def embedder():
    emb = MagicMock()
    emb.embed_many.side_effect = lambda chunks: [[1.0, 0.0] for _ in chunks]
    emb.embed_one.return_value = [1.0, 0.0]
    return emb


def _client(db_path, model=None, embedder=None) -> TestClient:
    cfg = MentorConfig()
    cfg.database.path = str(db_path)
    return TestClient(create_app(cfg, model=model, embedder=embedder))


STUDENT = {"X-User-Id": "stu-1"}


# ------------------------------------------------------------------
# Health + auth
# ------------------------------------------------------------------


def test_health(seeded_db_path):
    assert _client(seeded_db_path).get("/health").json() == {"status": "ok"}


def test_create_app_initializes_new_db(tmp_path):
    db_path = tmp_path / "fresh.db"
    _client(db_path)
    assert db_path.exists()


@pytest.mark.parametrize("headers", [{}, {"X-User-Id": "ghost"}])
def test_chat_unauthorized(seeded_db_path, headers):
    model = ScriptedModel([StreamDelta(content="never")])
    resp = _client(seeded_db_path, model=model).post(
        "/api/chat", json={"messages": [{"role": "user", "content": "hi"}]}, headers=headers
    )
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}
    assert model.calls == 0


def test_chat_requires_user_message(seeded_db_path):
    resp = _client(seeded_db_path, model=ScriptedModel()).post(
        "/api/chat", json={"messages": []}, headers=STUDENT
    )
    assert resp.status_code == 400


# ------------------------------------------------------------------
# Chat streaming
# ------------------------------------------------------------------


def test_chat_streams_data_lines(seeded_db_path):
    model = ScriptedModel([StreamDelta(content="Hel"), StreamDelta(content="lo")])
    client = _client(seeded_db_path, model=model)
    resp = client.post(
        "/api/chat", json={"messages": [{"role": "user", "content": "Hi"}]}, headers=STUDENT
    )

    assert resp.status_code == 200
    assert resp.headers["x-vercel-ai-data-stream"] == "v1"
    lines = _parse(resp.text)
    assert lines[0][0] == "2"
    assert lines[0][1][0]["status"] == "initialized"
    assert "".join(body for prefix, body in lines if prefix == "0") == "Hello"
    assert lines[-2][1][0]["status"] == "complete"
    assert lines[-1][0] == "8"
    chat_id = lines[-1][1][0]["chatId"]

    chat = client.get(f"/api/chats/{chat_id}", headers=STUDENT).json()
    assert [m["content"] for m in chat["messages"]] == ["Hi", "Hello"]


def test_chat_with_tool_call(seeded_db_path, embedder):
    model = ScriptedModel(
        [
            StreamDelta(
                tool_calls=[ToolCallFragment(index=0, id="call_1", name="getUserCourses", arguments="{}")]
            )
        ],
        [StreamDelta(content="Databases and Machine Learning.")],
    )
    resp = _client(seeded_db_path, model=model, embedder=embedder).post(
        "/api/chat",
        json={"messages": [{"role": "user", "content": "My courses?"}]},
        headers=STUDENT,
    )

    lines = _parse(resp.text)
    call = next(body for prefix, body in lines if prefix == "9")
    result = next(body for prefix, body in lines if prefix == "a")
    assert call == {"toolCallId": "call_1", "toolName": "getUserCourses", "args": {}}
    assert [c["name"] for c in result["result"]] == ["Databases", "Machine Learning"]
    assert model.calls == 2


def test_chat_continues_existing_chat(seeded_db_path):
    model = ScriptedModel([StreamDelta(content="a1")], [StreamDelta(content="a2")])
    client = _client(seeded_db_path, model=model)
    first = _parse(
        client.post(
            "/api/chat", json={"messages": [{"role": "user", "content": "q1"}]}, headers=STUDENT
        ).text
    )
    chat_id = first[-1][1][0]["chatId"]

    second = _parse(
        client.post(
            "/api/chat",
            json={
                "chatId": chat_id,
                "messages": [
                    {"role": "user", "content": "q1"},
                    {"role": "assistant", "content": "a1"},
                    {"role": "user", "content": "q2"},
                ],
            },
            headers=STUDENT,
        ).text
    )
    assert second[-1][1][0]["status"] == "complete"
    chat = client.get(f"/api/chats/{chat_id}", headers=STUDENT).json()
    assert [m["content"] for m in chat["messages"]] == ["q1", "a1", "q2", "a2"]


# ------------------------------------------------------------------
# Chat history
# ------------------------------------------------------------------


def _start_chat(client) -> str:
    lines = _parse(
        client.post(
            "/api/chat", json={"messages": [{"role": "user", "content": "q"}]}, headers=STUDENT
        ).text
    )
    return lines[-1][1][0]["chatId"]


def test_chat_with_unowned_chat_id_is_404(seeded_db_path):
    model = ScriptedModel([StreamDelta(content="a1")], [StreamDelta(content="never")])
    client = _client(seeded_db_path, model=model)
    chat_id = _start_chat(client)

    resp = client.post(
        "/api/chat",
        json={"chatId": chat_id, "messages": [{"role": "user", "content": "mine now"}]},
        headers={"X-User-Id": "stu-2"},
    )
    assert resp.status_code == 404
    assert resp.json() == {"error": "Chat not found"}
    assert model.calls == 1


def test_chat_connection_released_when_body_never_read(seeded_db_path):
    cfg = MentorConfig()
    cfg.database.path = str(seeded_db_path)
    model = ScriptedModel([StreamDelta(content="never")])
    app = create_app(cfg, model=model)
    route = next(r for r in app.routes if getattr(r, "path", "") == "/api/chat")

    response = route.endpoint(
        ChatBody(messages=[MessageIn(role="user", content="hi")]), x_user_id="stu-1"
    )
    _, conn = response.background.args
    asyncio.run(response.background())

    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")
    assert model.calls == 0


def test_list_chats(seeded_db_path):
    client = _client(seeded_db_path, model=ScriptedModel([StreamDelta(content="a")]))
    chat_id = _start_chat(client)

    assert [c["id"] for c in client.get("/api/chats", headers=STUDENT).json()] == [chat_id]
    assert client.get("/api/chats", headers={"X-User-Id": "stu-2"}).json() == []
    assert client.get("/api/chats").status_code == 401


def test_other_users_chat_is_404(seeded_db_path):
    client = _client(seeded_db_path, model=ScriptedModel([StreamDelta(content="a")]))
    chat_id = _start_chat(client)
    other = {"X-User-Id": "stu-2"}

    assert client.get(f"/api/chats/{chat_id}", headers=other).status_code == 404
    assert client.delete(f"/api/chats/{chat_id}", headers=other).status_code == 404


def test_rename_chat(seeded_db_path):
    client = _client(seeded_db_path, model=ScriptedModel([StreamDelta(content="a")]))
    chat_id = _start_chat(client)

    resp = client.patch(f"/api/chats/{chat_id}", json={"title": "Grades"}, headers=STUDENT)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Grades"

    blank = client.patch(f"/api/chats/{chat_id}", json={"title": "  "}, headers=STUDENT)
    assert blank.status_code == 400


def test_delete_chat(seeded_db_path):
    client = _client(seeded_db_path, model=ScriptedModel([StreamDelta(content="a")]))
    chat_id = _start_chat(client)

    assert client.delete(f"/api/chats/{chat_id}", headers=STUDENT).status_code == 204
    assert client.get(f"/api/chats/{chat_id}", headers=STUDENT).status_code == 404


# ------------------------------------------------------------------
# Resources
# ------------------------------------------------------------------


def test_add_and_list_resources(seeded_db_path, embedder):
    client = _client(seeded_db_path, embedder=embedder)
    resp = client.post(
        "/api/resources",
        json={"content": "Grades range from 0 to 100. Late work is penalized."},
        headers=STUDENT,
    )
    assert resp.status_code == 201
    assert resp.json()["chunks"] == 2

    listed = client.get("/api/resources", headers=STUDENT).json()
    assert [r["id"] for r in listed] == [resp.json()["id"]]


def test_add_resource_blank_is_400(seeded_db_path, embedder):
    resp = _client(seeded_db_path, embedder=embedder).post(
        "/api/resources", json={"content": " "}, headers=STUDENT
    )
    assert resp.status_code == 400


def test_add_resource_embedding_failure_is_502(seeded_db_path, embedder):
    embedder.embed_many.side_effect = EmbeddingServiceError("provider down")
    client = _client(seeded_db_path, embedder=embedder)
    resp = client.post("/api/resources", json={"content": "A."}, headers=STUDENT)

    assert resp.status_code == 502
    assert client.get("/api/resources", headers=STUDENT).json() == []


def test_resources_require_user(seeded_db_path, embedder):
    resp = _client(seeded_db_path, embedder=embedder).post("/api/resources", json={"content": "A."})
    assert resp.status_code == 401
