"""
Anthropic Messages API provider implementation (block-oriented streaming).

The upstream emits a start/delta/stop triple of events per content block.
A block's kind is revealed at ``content_block_start``; text deltas are
forwarded immediately, tool input fragments are accumulated and parsed
at ``content_block_stop``.
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


class _OpenBlock:
    """Accumulation state for one in-flight content block."""

    def __init__(self, kind: str, tool_id: str = "", tool_name: str = "") -> None:
        self.kind = kind
        self.tool_id = tool_id
        self.tool_name = tool_name
        self.buffer = ""

    def close(self) -> types.ContentBlock | None:
        """Finish the block. Empty text blocks produce nothing."""
        if self.kind == "tool_use":
            return types.ToolUseBlock(
                id=self.tool_id,
                name=self.tool_name,
                input=base.parse_tool_input(self.buffer),
            )
        if self.buffer:
            return types.TextBlock(text=self.buffer)
        return None


class AnthropicProvider(base.LLMProvider):
    """
    Anthropic-format provider.

    Uses ``POST /v1/messages`` with ``stream: true``. Tool results travel as
    ``tool_result`` blocks on user messages, which is also the shape of the
    intermediate representation.
    """

    def __init__(
        self,
        api_key: str,
        model: str = _constants.DEFAULT_ANTHROPIC_MODEL,
        base_url: str | None = None,
        *,
        connect_timeout: float = _constants.DEFAULT_UPSTREAM_CONNECT_TIMEOUT,
        http_client: _httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the Anthropic provider.

        Args:
            api_key: API key sent as ``x-api-key``.
            model: Model to use.
            base_url: API base URL (default: the public Anthropic endpoint).
            connect_timeout: Connect timeout in seconds. Reads are unbounded
                because the response is actively streaming.
            http_client: Pre-built client (tests inject a mock transport here).
        """
        self._api_key = api_key
        self._model = model or _constants.DEFAULT_ANTHROPIC_MODEL
        self._base_url = (base_url or _constants.DEFAULT_ANTHROPIC_BASE_URL).rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or _httpx.AsyncClient(
            timeout=_httpx.Timeout(None, connect=connect_timeout),
        )

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def model(self) -> str:
        return self._model

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": _constants.ANTHROPIC_API_VERSION,
        }

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
            "max_tokens": max_tokens,
            "stream": True,
            "messages": self.format_messages(messages),
        }
        if system:
            payload["system"] = system
        if tools:
            payload["tools"] = [t.to_anthropic_format() for t in tools]
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

        open_blocks: dict[int, _OpenBlock] = {}
        completed: list[types.ContentBlock] = []
        stop_reason: str | None = None

        async with self._client.stream(
            "POST",
            f"{self._base_url}/v1/messages",
            json=payload,
            headers=self._headers(),
        ) as response:
            await base.raise_for_upstream_status(self.name, response)

            yield types.StreamEvent(type="message_start")

            async for data_str in base.iter_sse_data(response):
                if data_str == "[DONE]":
                    break

                try:
                    event = _json.loads(data_str)
                except _json.JSONDecodeError:
                    _logger.debug("Skipping unparseable SSE payload: %r", data_str)
                    continue

                event_type = event.get("type")

                if event_type == "content_block_start":
                    index = event.get("index", 0)
                    block = event.get("content_block", {})
                    if block.get("type") == "tool_use":
                        open_blocks[index] = _OpenBlock(
                            "tool_use",
                            tool_id=block.get("id", ""),
                            tool_name=block.get("name", ""),
                        )
                        yield types.StreamEvent(
                            type="tool_use_start",
                            tool_use=types.ToolUseBlock(
                                id=block.get("id", ""),
                                name=block.get("name", ""),
                                input={},
                            ),
                        )
                    else:
                        open_blocks[index] = _OpenBlock("text")
                        # Some upstreams seed the block with initial text
                        if block.get("text"):
                            open_blocks[index].buffer += block["text"]
                            yield types.StreamEvent(type="text_delta", text=block["text"])

                elif event_type == "content_block_delta":
                    index = event.get("index", 0)
                    delta = event.get("delta", {})
                    open_block = open_blocks.get(index)
                    if delta.get("type") == "text_delta" and delta.get("text"):
                        if open_block is None:
                            open_block = open_blocks[index] = _OpenBlock("text")
                        open_block.buffer += delta["text"]
                        yield types.StreamEvent(type="text_delta", text=delta["text"])
                    elif delta.get("type") == "input_json_delta" and open_block is not None:
                        fragment = delta.get("partial_json", "")
                        open_block.buffer += fragment
                        yield types.StreamEvent(type="tool_use_delta", tool_input_delta=fragment)

                elif event_type == "content_block_stop":
                    open_block = open_blocks.pop(event.get("index", 0), None)
                    if open_block is None:
                        continue
                    finished = open_block.close()
                    if finished is not None:
                        completed.append(finished)
                        if isinstance(finished, types.ToolUseBlock):
                            yield types.StreamEvent(type="content_stop", tool_use=finished)

                elif event_type == "message_delta":
                    stop_reason = event.get("delta", {}).get("stop_reason") or stop_reason

                elif event_type == "message_stop":
                    break

                elif event_type == "error":
                    error = event.get("error", {})
                    raise base.ProviderAPIError(
                        self.name, None, error.get("message") or _json.dumps(error)
                    )

        # Flush blocks whose stop event never arrived
        for index in sorted(open_blocks):
            finished = open_blocks[index].close()
            if finished is not None:
                completed.append(finished)

        yield types.StreamEvent(
            type="message_stop",
            stop_reason=stop_reason,
            message=types.Message(role="assistant", content=tuple(completed)),
        )

    def format_messages(
        self,
        messages: list[types.Message],
        system: str | None = None,  # noqa: ARG002 - system travels as a top-level field
    ) -> list[dict[str, _typing.Any]]:
        """
        Format messages for the Anthropic API.

        Empty text blocks are rejected by the API, so they are dropped; a
        message left with no blocks is omitted altogether.
        """
        formatted: list[dict[str, _typing.Any]] = []
        for msg in messages:
            blocks = [
                b.to_dict()
                for b in msg.content
                if not (isinstance(b, types.TextBlock) and not b.text)
            ]
            if not blocks:
                _logger.debug("Omitting empty %s message from request", msg.role)
                continue
            formatted.append({"role": msg.role, "content": blocks})
        return formatted

    def parse_messages(
        self,
        messages: list[dict[str, _typing.Any]],
    ) -> list[types.Message]:
        """Parse Anthropic-format messages into intermediate messages."""
        return [types.Message.from_dict(m) for m in messages]

    async def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()
