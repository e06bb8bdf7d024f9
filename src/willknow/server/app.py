"""
HTTP surface for willknow.

    POST /api/chat   {message, conversationId?, history?} -> text/event-stream
    GET  /healthz    -> {"ok": true}

Each progress event is written as ``data: <json>`` followed by a blank line.
If the client disconnects mid-stream, the exchange keeps running in the
background so continuation tokens are still recorded.

Run with ``willknow serve`` or ``uvicorn willknow.server.app:create_app --factory``.
"""

from __future__ import annotations

import contextlib as _contextlib
import logging as _logging
import typing as _typing

import fastapi as _fastapi
import fastapi.responses as _responses
import pydantic as _pydantic

import willknow.config as config
import willknow.core as core

_logger = _logging.getLogger(__name__)


class ChatRequestBody(_pydantic.BaseModel):
    """Body of POST /api/chat."""

    model_config = _pydantic.ConfigDict(populate_by_name=True)

    message: str | None = None
    conversation_id: str | None = _pydantic.Field(default=None, alias="conversationId")
    history: list[dict[str, _typing.Any]] = _pydantic.Field(default_factory=list)


def _error(status_code: int, message: str) -> _responses.JSONResponse:
    return _responses.JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    settings: config.Settings | None = None,
    service: core.ChatService | None = None,
) -> _fastapi.FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Effective configuration (default: loaded from env/YAML).
        service: Pre-built chat service (tests inject one with mock transports).

    Returns:
        The application. The service is closed on shutdown.
    """
    chat_service = service or core.ChatService(settings or config.Settings())

    @_contextlib.asynccontextmanager
    async def lifespan(app: _fastapi.FastAPI) -> _typing.AsyncIterator[None]:  # noqa: ARG001
        yield
        await chat_service.aclose()

    app = _fastapi.FastAPI(title="willknow", lifespan=lifespan)
    app.state.chat_service = chat_service

    @app.post("/api/chat", response_model=None)
    async def chat(body: ChatRequestBody) -> _fastapi.Response:
        """Streaming chat endpoint (Server-Sent Events)."""
        if not body.message:
            return _error(400, "message is required")

        request = core.ChatRequest(
            message=body.message,
            conversation_id=body.conversation_id,
            history=body.history,
        )
        try:
            emitter = chat_service.start_exchange(request)
        except core.NoModelConfiguredError as e:
            return _error(400, str(e))
        except ValueError as e:
            return _error(400, f"Invalid history: {e}")

        async def event_stream() -> _typing.AsyncIterator[str]:
            async for event in emitter:
                yield event.to_sse()

        return _responses.StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
            },
        )

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    return app
