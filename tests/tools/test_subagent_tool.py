"""Tests for SubAgentTool."""

import httpx as _httpx
import pytest as _pytest

import tests.conftest as conftest
import willknow.config as config
import willknow.session as session
import willknow.subagents as subagents
import willknow.tools as tools


def _tool(
    handler: conftest.RecordingHandler,
    state: session.ConversationState,
    info: subagents.SubAgentInfo | None = None,
    **config_kwargs,
) -> tools.SubAgentTool:
    config_kwargs.setdefault("id", "cal")
    config_kwargs.setdefault("url", "http://cal.test")
    return tools.SubAgentTool(
        config=config.SubAgentConfig(**config_kwargs),
        info=info or subagents.SubAgentInfo(name="Calendar", description="Manages events"),
        client=subagents.SubAgentClient(http_client=conftest.mock_client(handler)),
        conversation=state,
    )


class TestToolName:
    """Tests for tool_name_for()."""

    @_pytest.mark.parametrize(
        ("subagent_id", "expected"),
        [
            ("weather", "subagent_weather"),
            ("weather-bot", "subagent_weather_bot"),
            ("a.b c", "subagent_a_b_c"),
        ],
    )
    def test_sanitized(self, subagent_id: str, expected: str) -> None:
        """Characters outside [A-Za-z0-9_] become underscores."""
        assert tools.tool_name_for(subagent_id) == expected


class TestSubAgentToolDescription:
    """Tests for the model-facing definition."""

    def test_description_lists_capabilities(self) -> None:
        """Capabilities are listed under the description."""
        info = subagents.SubAgentInfo(
            name="Calendar",
            description="Manages events",
            capabilities=(
                subagents.SubAgentCapability("create", "Create an event"),
                subagents.SubAgentCapability("list", "List events"),
            ),
        )
        tool = _tool(conftest.RecordingHandler(), session.ConversationState("c"), info)

        assert tool.description == (
            "Calendar: Manages events\n\nCapabilities:\n- create: Create an event\n- list: List events"
        )
        assert tool.input_schema["required"] == ["message"]

    def test_display_name_fallbacks(self) -> None:
        """The advertised name wins, then the configured name, then the id."""
        state = session.ConversationState("c")
        handler = conftest.RecordingHandler()

        assert _tool(handler, state).display_name == "Calendar"
        assert _tool(handler, state, subagents.SubAgentInfo(name=""), name="Cal").display_name == "Cal"
        assert _tool(handler, state, subagents.SubAgentInfo(name="")).display_name == "cal"

    def test_describe_input(self) -> None:
        """The progress summary is the instruction itself."""
        tool = _tool(conftest.RecordingHandler(), session.ConversationState("c"))

        assert tool.describe_input({"message": "Lunch at noon"}) == "Lunch at noon"


class TestSubAgentToolExecute:
    """Tests for SubAgentTool.execute()."""

    @_pytest.mark.asyncio
    async def test_token_replaced_then_cleared(self) -> None:
        """The returned token replaces the stored one; a missing token clears it."""
        handler = conftest.RecordingHandler(
            {
                "POST /willknow/chat": [
                    conftest.chat_response("Booked", "s1"),
                    conftest.chat_response("Moved", "s2"),
                    conftest.chat_response("Cancelled"),
                ]
            }
        )
        state = session.ConversationState("c")
        tool = _tool(handler, state)

        first = await tool.execute({"message": "Book"})
        assert first.output == "Booked"
        assert state.tokens == {"cal": "s1"}

        await tool.execute({"message": "Move"})
        assert state.tokens == {"cal": "s2"}

        await tool.execute({"message": "Cancel"})
        assert state.tokens == {}

        assert [b.get("session_id") for b in handler.bodies("/willknow/chat")] == [None, "s1", "s2"]

    @_pytest.mark.asyncio
    async def test_missing_message(self) -> None:
        """A call without a message fails without contacting the subagent."""
        handler = conftest.RecordingHandler()
        tool = _tool(handler, session.ConversationState("c"))

        result = await tool.execute({})

        assert result.success is False
        assert result.error == "No message provided"
        assert handler.requests == []

    @_pytest.mark.asyncio
    async def test_failure_raises_and_keeps_token(self) -> None:
        """A failed delegation raises and leaves the stored token alone."""
        handler = conftest.RecordingHandler({"POST /willknow/chat": _httpx.Response(500)})
        state = session.ConversationState("c", tokens={"cal": "s1"})
        tool = _tool(handler, state)

        with _pytest.raises(subagents.SubAgentError):
            await tool.execute({"message": "x"})

        assert state.tokens == {"cal": "s1"}
