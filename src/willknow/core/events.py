"""
Progress events and the emitter that queues them.

Five event types reach the caller, in exactly the order they were emitted:

    {"type": "text", "content": "..."}
    {"type": "tool_call", "tool": "...", "agentName": "...", "input": "..."}
    {"type": "tool_result", "tool": "...", "content": "..."}
    {"type": "error", "message": "..."}
    {"type": "done"}

An exchange ends with exactly one of ``done`` or ``error``.
"""

from __future__ import annotations

import asyncio as _asyncio
import dataclasses as _dataclasses
import json as _json
import typing as _typing

import willknow.core.conversation as conversation
import willknow.tools.base as tools_base

EventType = _typing.Literal["text", "tool_call", "tool_result", "error", "done"]


@_dataclasses.dataclass(frozen=True)
class ProgressEvent:
    """One normalized progress event."""

    type: EventType
    content: str | None = None
    tool: str | None = None
    agent_name: str | None = None
    input: str | None = None
    message: str | None = None

    @classmethod
    def text(cls, content: str) -> ProgressEvent:
        return cls(type="text", content=content)

    @classmethod
    def tool_call(cls, tool: str, agent_name: str, input: str) -> ProgressEvent:
        return cls(type="tool_call", tool=tool, agent_name=agent_name, input=input)

    @classmethod
    def tool_result(cls, tool: str, content: str) -> ProgressEvent:
        return cls(type="tool_result", tool=tool, content=content)

    @classmethod
    def error(cls, message: str) -> ProgressEvent:
        return cls(type="error", message=message)

    @classmethod
    def done(cls) -> ProgressEvent:
        return cls(type="done")

    @property
    def is_terminal(self) -> bool:
        return self.type in ("done", "error")

    def to_dict(self) -> dict[str, _typing.Any]:
        """Wire form of the event."""
        if self.type == "text":
            return {"type": "text", "content": self.content or ""}
        if self.type == "tool_call":
            return {
                "type": "tool_call",
                "tool": self.tool,
                "agentName": self.agent_name,
                "input": self.input or "",
            }
        if self.type == "tool_result":
            return {"type": "tool_result", "tool": self.tool, "content": self.content or ""}
        if self.type == "error":
            return {"type": "error", "message": self.message or ""}
        return {"type": "done"}

    def to_json(self) -> str:
        return _json.dumps(self.to_dict(), ensure_ascii=False)

    def to_sse(self) -> str:
        """Server-sent event frame: ``data: <json>`` plus a blank line."""
        return f"data: {self.to_json()}\n\n"


_CLOSED = object()


class EventEmitter(conversation.ConversationCallbacks):
    """
    Turn loop callbacks that queue ProgressEvents for a consumer.

    The queue is unbounded, so the producing exchange never waits on the
    consumer and runs to completion even if nobody reads the events.
    """

    def __init__(self) -> None:
        self._queue: _asyncio.Queue[_typing.Any] = _asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: ProgressEvent) -> None:
        """Queue an event. Events after close are dropped."""
        if self._closed:
            return
        self._queue.put_nowait(event)
        if event.is_terminal:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def finish_done(self) -> None:
        self.emit(ProgressEvent.done())

    def finish_error(self, message: str) -> None:
        self.emit(ProgressEvent.error(message))

    async def on_text_delta(self, text: str) -> None:
        self.emit(ProgressEvent.text(text))

    async def on_tool_call(self, tool_call: conversation.ToolCallDisplay) -> None:
        self.emit(
            ProgressEvent.tool_call(
                tool=tool_call.tool_name,
                agent_name=tool_call.display_name,
                input=tool_call.summary,
            )
        )

    async def on_tool_result(
        self,
        tool_call: conversation.ToolCallDisplay,
        result: tools_base.ToolResult,
    ) -> None:
        self.emit(ProgressEvent.tool_result(tool=tool_call.tool_name, content=result.to_content()))

    async def __aiter__(self) -> _typing.AsyncIterator[ProgressEvent]:
        """Yield events in emission order until the terminal event."""
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


class TextCollector(conversation.ConversationCallbacks):
    """Turn loop callbacks that keep only the response text."""

    def __init__(self) -> None:
        self._parts: list[str] = []

    @property
    def text(self) -> str:
        return "".join(self._parts)

    async def on_text_delta(self, text: str) -> None:
        self._parts.append(text)

    async def on_tool_call(self, tool_call: conversation.ToolCallDisplay) -> None:  # noqa: ARG002
        pass

    async def on_tool_result(
        self,
        tool_call: conversation.ToolCallDisplay,  # noqa: ARG002
        result: tools_base.ToolResult,  # noqa: ARG002
    ) -> None:
        pass
