"""
Shared pytest fixtures for willknow tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports; helper classes and
functions are imported with ``import tests.conftest as conftest``.
"""

import json as _json
import os as _os
import pathlib as _pathlib
import typing as _typing
import unittest.mock as _mock

import httpx as _httpx
import pytest as _pytest

import willknow.api.base as api_base
import willknow.api.types as api_types
import willknow.config as config

# =============================================================================
# Environment isolation
# =============================================================================


@_pytest.fixture
def clean_env(tmp_path: _pathlib.Path) -> dict[str, str]:
    """
    Return environment dict with every WILLKNOW_* key removed.

    The config file is pointed at a path that does not exist so a
    willknow.yaml in the working directory cannot leak into tests.
    """
    env = {k: v for k, v in _os.environ.items() if not k.startswith("WILLKNOW_")}
    env["WILLKNOW_CONFIG_FILE"] = str(tmp_path / "absent.yaml")
    return env


@_pytest.fixture
def isolated_env(clean_env: dict[str, str]):
    """
    Context manager that isolates tests from environment variables.

    Usage:
        def test_something(isolated_env):
            with isolated_env:
                settings = config.Settings.construct_without_dotenv()
    """
    return _mock.patch.dict(_os.environ, clean_env, clear=True)


@_pytest.fixture
def clean_settings(isolated_env) -> config.Settings:
    """Settings isolated from environment, .env and YAML files."""
    with isolated_env:
        return config.Settings.construct_without_dotenv()


@_pytest.fixture
def make_settings(isolated_env) -> _typing.Callable[..., config.Settings]:
    """
    Factory for isolated Settings with one default model configured.

    Usage:
        settings = make_settings(subagents=[...], skills=[...])
        settings = make_settings(models=[])          # no model configured
    """

    def _make(**kwargs: _typing.Any) -> config.Settings:
        kwargs.setdefault(
            "models",
            [{"id": "m1", "provider": "anthropic", "api_key": "test-key", "is_default": True}],
        )
        with isolated_env:
            return config.Settings.construct_without_dotenv(**kwargs)

    return _make


# =============================================================================
# HTTP mocking
# =============================================================================


def sse_body(payloads: list[dict[str, _typing.Any] | str]) -> bytes:
    """Encode payloads as a server-sent event stream (``data: ...`` frames)."""
    frames = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else _json.dumps(payload)
        frames.append(f"data: {data}\n\n")
    return "".join(frames).encode("utf-8")


def mock_client(
    handler: _typing.Callable[[_httpx.Request], _httpx.Response],
) -> _httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler``."""
    return _httpx.AsyncClient(transport=_httpx.MockTransport(handler))


class RecordingHandler:
    """
    MockTransport handler that routes by (method, path) and records requests.

    Routes map ``"GET /willknow/info"``-style keys to a response, a list of
    responses (consumed in order), or a callable taking the request.
    Unmatched requests get a 404.
    """

    def __init__(self, routes: dict[str, _typing.Any] | None = None) -> None:
        self.routes: dict[str, _typing.Any] = dict(routes or {})
        self.requests: list[_httpx.Request] = []

    def __call__(self, request: _httpx.Request) -> _httpx.Response:
        self.requests.append(request)
        key = f"{request.method} {request.url.host}{request.url.path}"
        route = self.routes.get(key)
        if route is None:
            route = self.routes.get(f"{request.method} {request.url.path}")
        if route is None:
            return _httpx.Response(404, text="not found")
        if isinstance(route, list):
            route = route.pop(0)
        if callable(route):
            return route(request)
        return route

    def bodies(self, path: str) -> list[dict[str, _typing.Any]]:
        """JSON bodies of recorded requests to ``path``."""
        return [_json.loads(r.content) for r in self.requests if r.url.path == path]


# =============================================================================
# Mock providers
# =============================================================================


class ScriptedProvider(api_base.LLMProvider):
    """
    Mock provider that follows a script of responses.

    Useful for testing multi-turn conversations and tool loops.
    Each stream() call consumes the next script entry:

    [
        {"text": ["Let me ", "check"], "tool_calls": [{"name": "read_skill", "input": {...}}]},
        {"text": "Done."},
        {"error": RuntimeError("boom")},   # raised mid-stream
    ]
    """

    def __init__(
        self,
        script: list[dict[str, _typing.Any]],
        name: str = "mock",
        model: str = "mock-model",
    ) -> None:
        self._script = list(script)
        self._name = name
        self._model = model
        self.calls: list[dict[str, _typing.Any]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> str:
        return self._model

    async def stream(
        self,
        messages: list[api_types.Message],
        *,
        system: str | None = None,
        tools: list[api_types.Tool] | None = None,
        max_tokens: int = 4096,
    ) -> _typing.AsyncIterator[api_types.StreamEvent]:
        """Stream the next scripted response."""
        self.calls.append(
            {
                "messages": list(messages),
                "system": system,
                "tools": list(tools or []),
                "max_tokens": max_tokens,
            }
        )
        response = self._script.pop(0) if self._script else {"text": "[Script exhausted]"}

        yield api_types.StreamEvent(type="message_start")

        blocks: list[api_types.ContentBlock] = []
        text = response.get("text", [])
        fragments = [text] if isinstance(text, str) else list(text)
        for fragment in fragments:
            yield api_types.StreamEvent(type="text_delta", text=fragment)
        if fragments:
            blocks.append(api_types.TextBlock(text="".join(fragments)))

        if "error" in response:
            raise response["error"]

        for index, tc in enumerate(response.get("tool_calls", [])):
            block = api_types.ToolUseBlock(
                id=tc.get("id", f"tool-{len(self.calls)}-{index}"),
                name=tc["name"],
                input=tc.get("input", {}),
            )
            blocks.append(block)
            yield api_types.StreamEvent(type="content_stop", tool_use=block)

        yield api_types.StreamEvent(
            type="message_stop",
            stop_reason="tool_use" if response.get("tool_calls") else "end_turn",
            message=api_types.Message(role="assistant", content=tuple(blocks)),
        )

    def format_messages(
        self,
        messages: list[api_types.Message],
        system: str | None = None,  # noqa: ARG002
    ) -> list[dict[str, _typing.Any]]:
        return [m.to_dict() for m in messages]

    def parse_messages(
        self,
        messages: list[dict[str, _typing.Any]],
    ) -> list[api_types.Message]:
        return [api_types.Message.from_dict(m) for m in messages]

    async def close(self) -> None:
        self.closed = True


class ProviderFactory:
    """Stand-in for create_provider that hands out one scripted provider."""

    def __init__(self, provider: ScriptedProvider) -> None:
        self.provider = provider
        self.model_configs: list[config.ModelConfig] = []

    def __call__(
        self,
        model_config: config.ModelConfig,
        **kwargs: _typing.Any,  # noqa: ARG002
    ) -> ScriptedProvider:
        self.model_configs.append(model_config)
        return self.provider


def info_response(
    name: str,
    description: str = "",
    capabilities: list[dict[str, str]] | None = None,
) -> _httpx.Response:
    """A subagent discovery response."""
    return _httpx.Response(
        200,
        json={"name": name, "description": description, "capabilities": capabilities or []},
    )


def chat_response(message: str, session_id: str | None = None) -> _httpx.Response:
    """A subagent delegation response."""
    body: dict[str, _typing.Any] = {"message": message}
    if session_id is not None:
        body["session_id"] = session_id
    return _httpx.Response(200, json=body)


@_pytest.fixture
def scripted_provider_factory() -> _typing.Callable[..., ScriptedProvider]:
    """Factory for creating scripted mock providers."""

    def _create(script: list[dict[str, _typing.Any]]) -> ScriptedProvider:
        return ScriptedProvider(script)

    return _create
