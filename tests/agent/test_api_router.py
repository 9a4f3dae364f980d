"""
Tests for the agent HTTP API.

Chat responses are NDJSON: one chat event per line, terminal event last.
"""

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from clipdesk.agent.api import create_agent_dependencies, router
from clipdesk.agent.api.router import NDJSON_MEDIA_TYPE
from clipdesk.agent.domain.entities import ToolCall
from clipdesk.agent.domain.exceptions import ConversationBusyError

from fakes import calls, done, error, text


@pytest.fixture
def app():
    app = FastAPI()
    app.include_router(router)
    yield app
    create_agent_dependencies(None)


def ndjson(response):
    return [json.loads(line) for line in response.text.splitlines() if line]


class TestChatEndpoint:
    """Tests for POST /api/agent/chat."""

    def test_streams_events_as_ndjson(self, app, make_orchestrator):
        orchestrator, _, _ = make_orchestrator(
            [
                [
                    text("Resizing."),
                    calls(ToolCall(id="t1", name="resize_video", arguments={"height": 480})),
                    done(),
                ],
                [text("Done."), done()],
            ],
            handlers={"resize_video": lambda height: f"resized to {height}p"},
        )
        create_agent_dependencies(orchestrator)

        with TestClient(app) as client:
            response = client.post("/api/agent/chat", json={"message": "resize the clip to 480p"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith(NDJSON_MEDIA_TYPE)

        events = ndjson(response)
        assert [e["type"] for e in events] == ["text_delta", "tool_results", "text_delta", "done"]
        assert [e["sequence"] for e in events] == [1, 2, 3, 4]
        assert events[1]["tool_results"][0]["content"] == "resized to 480p"

    def test_error_is_last_line(self, app, make_orchestrator):
        orchestrator, _, _ = make_orchestrator([[text("Par"), error("upstream overloaded")]])
        create_agent_dependencies(orchestrator)

        with TestClient(app) as client:
            events = ndjson(client.post("/api/agent/chat", json={"message": "hi"}))

        assert events[-1]["type"] == "error"
        assert events[-1]["error_type"] == "recoverable"

    def test_busy_returns_conflict(self, app):
        orchestrator = MagicMock()
        orchestrator.send_message = AsyncMock(side_effect=ConversationBusyError())
        create_agent_dependencies(orchestrator)

        with TestClient(app) as client:
            response = client.post("/api/agent/chat", json={"message": "hi"})

        assert response.status_code == 409
        assert response.json()["detail"] == "A message is already being processed"

    def test_blank_message_rejected(self, app, make_orchestrator):
        orchestrator, provider, _ = make_orchestrator([])
        create_agent_dependencies(orchestrator)

        with TestClient(app) as client:
            response = client.post("/api/agent/chat", json={"message": "   "})

        assert response.status_code == 422
        assert provider.requests == []

    def test_empty_message_fails_validation(self, app, make_orchestrator):
        orchestrator, _, _ = make_orchestrator([])
        create_agent_dependencies(orchestrator)

        with TestClient(app) as client:
            response = client.post("/api/agent/chat", json={"message": ""})

        assert response.status_code == 422

    def test_not_initialized(self, app):
        with TestClient(app) as client:
            response = client.post("/api/agent/chat", json={"message": "hi"})

        assert response.status_code == 503
        assert response.json()["detail"] == "Agent not initialized"


class TestHistoryEndpoints:
    """Tests for reading and clearing history."""

    def test_history_after_chat(self, app, make_orchestrator):
        orchestrator, _, _ = make_orchestrator([[text("Hello!"), done()]])
        create_agent_dependencies(orchestrator)

        with TestClient(app) as client:
            client.post("/api/agent/chat", json={"message": "hi"})
            response = client.get("/api/agent/history")

        body = response.json()
        assert response.status_code == 200
        assert body["message_count"] == 3
        assert [m["role"] for m in body["messages"]] == ["system", "user", "assistant"]
        assert body["messages"][-1]["content"] == "Hello!"

    def test_clear_history(self, app, make_orchestrator):
        orchestrator, _, _ = make_orchestrator([[done()]])
        create_agent_dependencies(orchestrator)

        with TestClient(app) as client:
            client.post("/api/agent/chat", json={"message": "hi"})
            response = client.delete("/api/agent/history")
            history = client.get("/api/agent/history").json()

        assert response.status_code == 204
        assert history["message_count"] == 1
        assert history["messages"][0]["role"] == "system"


class TestCancelEndpoint:
    """Tests for POST /api/agent/cancel."""

    def test_cancel_when_idle(self, app, make_orchestrator):
        orchestrator, _, _ = make_orchestrator([])
        create_agent_dependencies(orchestrator)

        with TestClient(app) as client:
            response = client.post("/api/agent/cancel")

        assert response.status_code == 200
        assert response.json() == {"cancelled": False}
