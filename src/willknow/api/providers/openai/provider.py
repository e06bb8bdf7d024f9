"""
OpenAI-compatible chat completions provider (chunk-oriented streaming).

Every chunk has the same shape and carries either a text fragment or a
partial tool call addressed by a per-response index. Completion is signalled
by ``finish_reason`` or ``[DONE]``, and some servers close the stream with
neither, so buffered fragments are always flushed when the stream ends.
"""

from __future__ import annotations

import json as _json
import logging as _logging
import typing as _typing

import httpx as _httpx

import willknow.api.base as base
import willknow.api.types as types
import willknow.constants as _constants

_logger = _logging.getLogger(__name__)


class _ToolCallBuffer:
    """Fragments of one tool call, concatenated across chunks."""

    def __init__(self, index: int) -> None:
        self.index = index
        self.id = ""
        self.name = ""
        self.arguments = ""

    def to_block(self) -> types.ToolUseBlock:
        return types.ToolUseBlock(
            id=self.id or f"call_{self.index}",
            name=self.name,
            input=base.parse_tool_input(self.arguments),
        )


class OpenAICompatibleProvider(base.LLMProvider):
    """
    OpenAI-compatible provider.

    Works with any server exposing ``POST {base_url}/chat/completions`` with
    bearer auth: OpenAI itself, OpenRouter, Ollama, vLLM, LM Studio, etc.
    """

    def __init__(
        self,
        api_key: str,
        model: str = _constants.DEFAULT_OPENAI_MODEL,
        base_url: str | None = None,
        *,
        connect_timeout: float = _constants.DEFAULT_UPSTREAM_CONNECT_TIMEOUT,
        http_client: _httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the OpenAI-compatible provider.

        Args:
            api_key: API key sent as a bearer token.
            model: Model to use.
            base_url: API base URL including the version segment
                (default: https://api.openai.com/v1).
            connect_timeout: Connect timeout in seconds. Reads are unbounded.
            http_client: Pre-built client (tests inject a mock transport here).
        """
        self._api_key = api_key
        self._model = model or _constants.DEFAULT_OPENAI_MODEL
        self._base_url = (base_url or _constants.DEFAULT_OPENAI_BASE_URL).rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or _httpx.AsyncClient(
            timeout=_httpx.Timeout(None, connect=connect_timeout),
        )

    @property
    def name(self) -> str:
        return "openai_compatible"

    @property
    def model(self) -> str:
        return self._model

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_payload(
        self,
        messages: list[types.Message],
        system: str | None,
        tools: list[types.Tool] | None,
        max_tokens: int,
    ) -> dict[str, _typing.Any]:
        """Build the request payload."""
        payload: dict[str, _typing.Any] = {
            "model": self._model,
            "messages": self.format_messages(messages, system),
            "max_tokens": max_tokens,
            "stream": True,
        }
        if tools:
            payload["tools"] = [t.to_openai_format() for t in tools]
        return payload

    async def stream(
        self,
        messages: list[types.Message],
        *,
        system: str | None = None,
        tools: list[types.Tool] | None = None,
        max_tokens: int = _constants.DEFAULT_MAX_TOKENS,
    ) -> _typing.AsyncIterator[types.StreamEvent]:
        """Stream messages and yield events."""
        payload = self._build_payload(messages, system, tools, max_tokens)

        text_buffer = ""
        tool_calls: dict[int, _ToolCallBuffer] = {}
        stop_reason: str | None = None

        async with self._client.stream(
            "POST",
            f"{self._base_url}/chat/completions",
            json=payload,
            headers=self._headers(),
        ) as response:
            await base.raise_for_upstream_status(self.name, response)

            yield types.StreamEvent(type="message_start")

            async for data_str in base.iter_sse_data(response):
                if data_str == "[DONE]":
                    break

                try:
                    data = _json.loads(data_str)
                except _json.JSONDecodeError:
                    _logger.debug("Skipping unparseable SSE payload: %r", data_str)
                    continue

                if "error" in data and not data.get("choices"):
                    error = data["error"]
                    message = error.get("message") if isinstance(error, dict) else str(error)
                    raise base.ProviderAPIError(self.name, None, message or str(error))

                for choice in data.get("choices") or []:
                    delta = choice.get("delta") or {}

                    # Text content
                    if delta.get("content"):
                        text_buffer += delta["content"]
                        yield types.StreamEvent(type="text_delta", text=delta["content"])

                    # Tool calls
                    for tc in delta.get("tool_calls") or []:
                        idx = tc.get("index", 0)

                        if idx not in tool_calls:
                            tool_calls[idx] = _ToolCallBuffer(idx)
                            yield types.StreamEvent(type="tool_use_start")

                        buffer = tool_calls[idx]
                        if tc.get("id"):
                            buffer.id = tc["id"]

                        func = tc.get("function") or {}
                        if func.get("name"):
                            buffer.name += func["name"]
                        if func.get("arguments"):
                            buffer.arguments += func["arguments"]
                            yield types.StreamEvent(
                                type="tool_use_delta",
                                tool_input_delta=func["arguments"],
                            )

                    # Finish reason; keep reading, a usage chunk or [DONE] may follow
                    if choice.get("finish_reason"):
                        stop_reason = choice["finish_reason"]

        # Flush everything buffered, whether or not a terminal signal arrived
        content: list[types.ContentBlock] = []
        if text_buffer:
            content.append(types.TextBlock(text=text_buffer))
        for idx in sorted(tool_calls):
            buffer = tool_calls[idx]
            if not buffer.name:
                _logger.debug("Dropping tool call %d without a name", idx)
                continue
            block = buffer.to_block()
            content.append(block)
            yield types.StreamEvent(type="content_stop", tool_use=block)

        yield types.StreamEvent(
            type="message_stop",
            stop_reason=stop_reason,
            message=types.Message(role="assistant", content=tuple(content)),
        )

    def format_messages(
        self,
        messages: list[types.Message],
        system: str | None = None,
    ) -> list[dict[str, _typing.Any]]:
        """Format messages for the OpenAI-compatible API."""
        formatted: list[dict[str, _typing.Any]] = []

        if system:
            formatted.append({"role": "system", "content": system})

        for msg in messages:
            if msg.role == "assistant":
                assistant_msg: dict[str, _typing.Any] = {
                    "role": "assistant",
                    "content": msg.text or None,
                }
                tool_calls = [
                    {
                        "id": tu.id,
                        "type": "function",
                        "function": {"name": tu.name, "arguments": _json.dumps(tu.input)},
                    }
                    for tu in msg.tool_uses
                ]
                if tool_calls:
                    assistant_msg["tool_calls"] = tool_calls
                formatted.append(assistant_msg)
                continue

            # User message: tool results become one "tool" message each
            results = msg.tool_results
            for result in results:
                formatted.append(
                    {
                        "role": "tool",
                        "tool_call_id": result.tool_use_id,
                        "content": result.content,
                    }
                )
            if not results or msg.text:
                formatted.append({"role": "user", "content": msg.text})

        return formatted

    def parse_messages(
        self,
        messages: list[dict[str, _typing.Any]],
    ) -> list[types.Message]:
        """
        Parse OpenAI-format messages into intermediate messages.

        System messages are dropped (the preamble is not history). Consecutive
        ``tool`` messages fold into one user message of tool results.
        """
        parsed: list[types.Message] = []
        pending_results: list[types.ContentBlock] = []

        def flush_results() -> None:
            if pending_results:
                parsed.append(types.Message(role="user", content=tuple(pending_results)))
                pending_results.clear()

        for msg in messages:
            role = msg.get("role")
            if role == "tool":
                pending_results.append(
                    types.ToolResultBlock(
                        tool_use_id=msg.get("tool_call_id", ""),
                        content=str(msg.get("content") or ""),
                    )
                )
                continue

            if role == "user" and pending_results:
                # Text sent alongside tool results belongs to the same turn
                pending_results.append(types.TextBlock(text=str(msg.get("content") or "")))
                flush_results()
                continue

            flush_results()

            if role == "assistant":
                blocks: list[types.ContentBlock] = []
                if msg.get("content"):
                    blocks.append(types.TextBlock(text=str(msg["content"])))
                for tc in msg.get("tool_calls") or []:
                    func = tc.get("function", {})
                    blocks.append(
                        types.ToolUseBlock(
                            id=tc.get("id", ""),
                            name=func.get("name", ""),
                            input=base.parse_tool_input(func.get("arguments", "")),
                        )
                    )
                parsed.append(types.Message(role="assistant", content=tuple(blocks)))
            elif role == "user":
                parsed.append(types.Message.user_text(str(msg.get("content") or "")))

        flush_results()
        return parsed

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()
