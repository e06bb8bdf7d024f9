"""
Abstract base class for LLM providers.

All providers (Anthropic-format and OpenAI-compatible) implement this
interface. The turn loop depends only on it and never on a provider tag.
"""

from __future__ import annotations

import abc as _abc
import json as _json
import logging as _logging
import typing as _typing

import httpx as _httpx

import willknow.api.types as types
import willknow.constants as _constants

_logger = _logging.getLogger(__name__)


class ProviderAPIError(Exception):
    """Raised when the upstream model returns a non-success response or a stream error."""

    def __init__(self, provider: str, status_code: int | None, body: str) -> None:
        self.provider = provider
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"{provider} stream error: {body}")
        else:
            super().__init__(f"{provider} error {status_code}: {body}")


def parse_tool_input(raw: str) -> dict[str, _typing.Any]:
    """
    Parse an accumulated tool input payload.

    Streaming tool payloads can be truncated or malformed. Rather than fail
    the whole turn, an unparseable payload becomes an empty object.

    Args:
        raw: The concatenated JSON fragments.

    Returns:
        The parsed object, or ``{}`` if parsing fails or yields a non-object.
    """
    if not raw:
        return {}
    try:
        parsed = _json.loads(raw)
    except _json.JSONDecodeError:
        _logger.debug("Unparseable tool input, substituting empty object: %r", raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


async def iter_sse_data(response: _httpx.Response) -> _typing.AsyncIterator[str]:
    """
    Yield the payload of each ``data:`` line of a server-sent event stream.

    ``aiter_lines`` already reassembles lines split across network chunks.
    Empty payloads are skipped; ``[DONE]`` is passed through to the caller.
    """
    async for line in response.aiter_lines():
        if not line.startswith("data:"):
            continue
        data = line[5:].strip()
        if data:
            yield data


async def raise_for_upstream_status(provider: str, response: _httpx.Response) -> None:
    """Raise ProviderAPIError for a non-2xx streaming response."""
    if response.is_success:
        return
    body = (await response.aread()).decode("utf-8", errors="replace")
    raise ProviderAPIError(provider, response.status_code, body)


class LLMProvider(_abc.ABC):
    """
    Abstract base for LLM providers.

    Implementations handle the specifics of each provider's wire protocol
    while presenting a unified interface: one streaming round trip in,
    incremental text plus one completed assistant message out.
    """

    @property
    @_abc.abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'anthropic', 'openai_compatible')."""
        ...

    @property
    @_abc.abstractmethod
    def model(self) -> str:
        """Current model being used."""
        ...

    @_abc.abstractmethod
    def stream(
        self,
        messages: list[types.Message],
        *,
        system: str | None = None,
        tools: list[types.Tool] | None = None,
        max_tokens: int = _constants.DEFAULT_MAX_TOKENS,
    ) -> _typing.AsyncIterator[types.StreamEvent]:
        """
        Stream a response and yield events as they arrive.

        Note: This method is not async itself, but returns an async iterator.
        Implementations should use 'async def' which returns an async generator.

        Text fragments are yielded as ``text_delta`` events the moment they are
        parsed. The final event is ``message_stop`` carrying the completed
        assistant message.

        Args:
            messages: Conversation history in the intermediate representation
            system: Optional system preamble
            tools: Optional list of tools available to the model
            max_tokens: Maximum tokens in the response

        Raises:
            ProviderAPIError: On a non-success response or an in-stream error
        """
        ...

    @_abc.abstractmethod
    def format_messages(
        self,
        messages: list[types.Message],
        system: str | None = None,
    ) -> list[dict[str, _typing.Any]]:
        """Translate intermediate messages into this protocol's request shape."""
        ...

    @_abc.abstractmethod
    def parse_messages(
        self,
        messages: list[dict[str, _typing.Any]],
    ) -> list[types.Message]:
        """Translate this protocol's messages back into intermediate messages."""
        ...

    async def close(self) -> None:  # noqa: B027
        """Release any held network resources."""
        pass
