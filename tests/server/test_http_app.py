"""Tests for the HTTP surface (POST /api/chat, GET /healthz)."""

import json as _json
import typing as _typing

import fastapi.testclient as _testclient
import pytest as _pytest

import tests.conftest as conftest
import willknow.core as core
import willknow.server as server


def _parse_sse(body: str) -> list[dict[str, _typing.Any]]:
    frames = [frame for frame in body.split("\n\n") if frame.strip()]
    assert all(frame.startswith("data: ") for frame in frames)
    return [_json.loads(frame[len("data: ") :]) for frame in frames]


@_pytest.fixture
def make_client(make_settings):
    """Factory for a TestClient around a service with a scripted provider."""

    def _make(
        script: list[dict[str, _typing.Any]], **settings_kwargs: _typing.Any
    ) -> tuple[_testclient.TestClient, core.ChatService, conftest.ScriptedProvider]:
        provider = conftest.ScriptedProvider(script)
        service = core.ChatService(
            make_settings(**settings_kwargs),
            provider_factory=conftest.ProviderFactory(provider),
            http_client=conftest.mock_client(conftest.RecordingHandler()),
        )
        return _testclient.TestClient(server.create_app(service=service)), service, provider

    return _make


class TestChatEndpoint:
    """Tests for POST /api/chat."""

    def test_streams_events(self, make_client) -> None:
        """The response is an SSE stream ending with done."""
        client, _, _ = make_client([{"text": ["Hel", "lo"]}])

        response = client.post("/api/chat", json={"message": "hi"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert _parse_sse(response.text) == [
            {"type": "text", "content": "Hel"},
            {"type": "text", "content": "lo"},
            {"type": "done"},
        ]

    def test_error_event(self, make_client) -> None:
        """An upstream failure is reported in-stream, with status 200."""
        client, _, _ = make_client([{"error": RuntimeError("quota exceeded")}])

        response = client.post("/api/chat", json={"message": "hi"})

        assert response.status_code == 200
        assert _parse_sse(response.text) == [{"type": "error", "message": "quota exceeded"}]

    def test_conversation_id_and_history(self, make_client) -> None:
        """conversationId keys the session and history reaches the model."""
        client, service, provider = make_client([{"text": "ok"}])

        client.post(
            "/api/chat",
            json={
                "message": "and now?",
                "conversationId": "c7",
                "history": [
                    {"role": "user", "content": "before"},
                    {"role": "assistant", "content": "noted"},
                ],
            },
        )

        assert "c7" in service.sessions
        assert [m.text for m in provider.calls[0]["messages"]] == ["before", "noted", "and now?"]

    @_pytest.mark.parametrize("body", [{}, {"message": ""}, {"conversationId": "c1"}])
    def test_missing_message(self, make_client, body: dict[str, _typing.Any]) -> None:
        """A request without a message is rejected with 400."""
        client, _, provider = make_client([])

        response = client.post("/api/chat", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "message is required"}
        assert provider.calls == []

    def test_no_model(self, make_client) -> None:
        """Without a configured model the request is rejected with 400."""
        client, _, _ = make_client([], models=[])

        response = client.post("/api/chat", json={"message": "hi"})

        assert response.status_code == 400
        assert response.json() == {"error": "No model configured"}

    @_pytest.mark.parametrize(
        "entry",
        [
            {"role": "system", "content": "x"},
            {"role": "user", "content": ["hi"]},
            {
                "role": "assistant",
                "content": [{"type": "tool_use", "id": "t1", "name": "x", "input": 5}],
            },
        ],
    )
    def test_invalid_history(self, make_client, entry: dict[str, _typing.Any]) -> None:
        """Malformed history (bad role, non-object block, non-object tool input) is a 400."""
        client, _, _ = make_client([])

        response = client.post("/api/chat", json={"message": "hi", "history": [entry]})

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid history:")


class TestHealthz:
    """Tests for GET /healthz."""

    def test_ok(self, make_client) -> None:
        """The health check answers without touching the model."""
        client, _, provider = make_client([])

        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert provider.calls == []
