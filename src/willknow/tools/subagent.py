"""
Subagent tool: delegate an instruction to a collaborator service.

The tool is bound to one conversation so it can echo the collaborator's
continuation token back on the next call and store the new one.
"""

from __future__ import annotations

import logging as _logging
import re as _re
import typing as _typing

import willknow.constants as _constants
import willknow.tools.base as base

if _typing.TYPE_CHECKING:
    import willknow.config.types as config_types
    import willknow.session.state as state
    import willknow.subagents.client as subagent_client

_logger = _logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = _re.compile(r"[^A-Za-z0-9_]")


def tool_name_for(subagent_id: str) -> str:
    """Tool name for a subagent id, e.g. ``weather-bot`` -> ``subagent_weather_bot``."""
    return _constants.SUBAGENT_TOOL_PREFIX + _UNSAFE_NAME_CHARS.sub("_", subagent_id)


class SubAgentTool(base.Tool):
    """Delegate a sub-task to one collaborator service."""

    def __init__(
        self,
        *,
        config: config_types.SubAgentConfig,
        info: subagent_client.SubAgentInfo,
        client: subagent_client.SubAgentClient,
        conversation: state.ConversationState,
    ) -> None:
        """
        Initialize the tool.

        Args:
            config: Configured subagent (id, url, auth).
            info: What the subagent advertised at discovery.
            client: Client used for delegation.
            conversation: Conversation whose token map this tool reads and updates.
        """
        self._config = config
        self._info = info
        self._client = client
        self._conversation = conversation

    @property
    def name(self) -> str:
        return tool_name_for(self._config.id)

    @property
    def subagent_id(self) -> str:
        return self._config.id

    @property
    def display_name(self) -> str:
        return self._info.name or self._config.name or self._config.id

    @property
    def description(self) -> str:
        text = f"{self.display_name}: {self._info.description}"
        if self._info.capabilities:
            lines = [f"- {cap.name}: {cap.description}" for cap in self._info.capabilities]
            text += "\n\nCapabilities:\n" + "\n".join(lines)
        return text

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return {
            "type": "object",
            "properties": {
                "message": {
                    "type": "string",
                    "description": "The instruction to send to this agent",
                },
            },
            "required": ["message"],
        }

    def describe_input(self, input: dict[str, _typing.Any]) -> str:
        message = input.get("message", "")
        return message if isinstance(message, str) else str(message)

    async def execute(self, input: dict[str, _typing.Any]) -> base.ToolResult:
        """
        Send the instruction and record the returned continuation token.

        Raises:
            SubAgentError: If delegation fails.
        """
        message = self._require_input(input, "message")
        if isinstance(message, base.ToolResult):
            return message

        reply = await self._client.invoke(
            self._config.url,
            self._config.auth,
            message,
            session_id=self._conversation.get_token(self._config.id),
        )
        # The returned token always replaces the stored one
        self._conversation.set_token(self._config.id, reply.session_id)

        _logger.debug(
            "Subagent %s answered %d chars (token %s)",
            self._config.id,
            len(reply.message),
            "kept" if reply.session_id else "cleared",
        )
        return base.ToolResult(success=True, output=reply.message)
