"""
Tool interface.

Every capability offered to the model (one per subagent, plus read_skill) is
a Tool: an API definition (name, description, JSON schema) and an async
``execute``. The turn loop also asks a tool how to present a call in
progress events, through ``display_name`` and ``describe_input``.
"""

from __future__ import annotations

import abc as _abc
import dataclasses as _dataclasses
import json as _json
import typing as _typing

import willknow.api.types as api_types


@_dataclasses.dataclass
class ToolResult:
    """Outcome of one tool execution."""

    success: bool
    output: str
    error: str | None = None

    @classmethod
    def failure(cls, error: str) -> ToolResult:
        return cls(success=False, output="", error=error)

    def to_content(self) -> str:
        """The text the model receives as the tool_result block."""
        if not self.success and self.error:
            return self.error
        return self.output

    def to_dict(self) -> dict[str, _typing.Any]:
        return _dataclasses.asdict(self)


class Tool(_abc.ABC):
    """
    A capability the model may invoke.

    Implementations provide ``name``, ``description``, ``input_schema`` and
    ``execute``. Exceptions escaping ``execute`` are turned into a failed
    result by the turn loop, so tools only return failures they want to word
    themselves.
    """

    @property
    @_abc.abstractmethod
    def name(self) -> str:
        """Identifier the model uses in tool_use blocks."""

    @property
    @_abc.abstractmethod
    def description(self) -> str: ...

    @property
    @_abc.abstractmethod
    def input_schema(self) -> dict[str, _typing.Any]:
        """JSON schema of the ``input`` object."""

    @_abc.abstractmethod
    async def execute(self, input: dict[str, _typing.Any]) -> ToolResult: ...

    @property
    def display_name(self) -> str:
        """Who or what is being called, as shown in tool_call events."""
        return self.name

    def describe_input(self, input: dict[str, _typing.Any]) -> str:
        return _json.dumps(input, ensure_ascii=False)

    def to_api_tool(self) -> api_types.Tool:
        return api_types.Tool(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    def _require_input(
        self,
        input: dict[str, _typing.Any],
        key: str,
        *,
        label: str | None = None,
    ) -> str | ToolResult:
        """
        Fetch a non-empty string argument.

        Returns the value, or a failed ToolResult naming ``label`` (default:
        ``key``) when the argument is absent, empty or not a string.
        """
        value = input.get(key)
        if isinstance(value, str) and value:
            return value
        return ToolResult.failure(f"No {label or key} provided")
