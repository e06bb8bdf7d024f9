"""Tests for ProgressEvent wire forms and the EventEmitter queue."""

import json as _json

import pytest as _pytest

import willknow.core.conversation as conversation
import willknow.core.events as events
import willknow.tools.base as tools_base


class TestProgressEvent:
    """Tests for ProgressEvent serialization."""

    def test_wire_forms(self) -> None:
        """Each event type serializes to its documented shape."""
        assert events.ProgressEvent.text("hi").to_dict() == {"type": "text", "content": "hi"}
        assert events.ProgressEvent.tool_call("subagent_w", "Weather Bot", "Oslo").to_dict() == {
            "type": "tool_call",
            "tool": "subagent_w",
            "agentName": "Weather Bot",
            "input": "Oslo",
        }
        assert events.ProgressEvent.tool_result("subagent_w", "Rain").to_dict() == {
            "type": "tool_result",
            "tool": "subagent_w",
            "content": "Rain",
        }
        assert events.ProgressEvent.error("boom").to_dict() == {"type": "error", "message": "boom"}
        assert events.ProgressEvent.done().to_dict() == {"type": "done"}

    def test_sse_frame(self) -> None:
        """to_sse() produces one data line and a blank line."""
        frame = events.ProgressEvent.text("naïve").to_sse()

        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert _json.loads(frame[len("data: ") :]) == {"type": "text", "content": "naïve"}

    def test_terminal_types(self) -> None:
        """Only done and error end an exchange."""
        assert events.ProgressEvent.done().is_terminal
        assert events.ProgressEvent.error("x").is_terminal
        assert not events.ProgressEvent.text("x").is_terminal


class TestEventEmitter:
    """Tests for EventEmitter ordering and termination."""

    @_pytest.mark.asyncio
    async def test_order_and_termination(self) -> None:
        """Events arrive in emission order and iteration stops after done."""
        emitter = events.EventEmitter()
        display = conversation.ToolCallDisplay(
            tool_name="read_skill",
            tool_id="t1",
            display_name="read_skill",
            summary="haiku",
            input={"skill_name": "haiku"},
        )

        await emitter.on_text_delta("a")
        await emitter.on_tool_call(display)
        await emitter.on_tool_result(display, tools_base.ToolResult(success=True, output="body"))
        emitter.finish_done()

        received = [e.type async for e in emitter]

        assert received == ["text", "tool_call", "tool_result", "done"]

    @_pytest.mark.asyncio
    async def test_single_terminal_event(self) -> None:
        """Anything emitted after the terminal event is dropped."""
        emitter = events.EventEmitter()

        emitter.finish_error("first")
        emitter.finish_done()
        await emitter.on_text_delta("late")

        received = [e.to_dict() async for e in emitter]

        assert received == [{"type": "error", "message": "first"}]
        assert emitter.closed

    @_pytest.mark.asyncio
    async def test_failed_result_content(self) -> None:
        """A failed tool result carries its error text."""
        emitter = events.EventEmitter()
        display = conversation.ToolCallDisplay("t", "1", "t", "", {})

        await emitter.on_tool_result(display, tools_base.ToolResult(success=False, output="", error="Call failed: x"))
        emitter.finish_done()

        received = [e async for e in emitter]
        assert received[0].content == "Call failed: x"


class TestTextCollector:
    """Tests for TextCollector."""

    @_pytest.mark.asyncio
    async def test_collects_text_only(self) -> None:
        """Text deltas are joined; tool progress is ignored."""
        collector = events.TextCollector()
        display = conversation.ToolCallDisplay("t", "1", "t", "", {})

        await collector.on_text_delta("Hello, ")
        await collector.on_tool_call(display)
        await collector.on_text_delta("world")

        assert collector.text == "Hello, world"
