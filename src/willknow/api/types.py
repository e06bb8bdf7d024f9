"""
Type definitions for LLM API interactions.

These types are the provider-agnostic intermediate representation that both
wire protocols translate into and out of. Content blocks form a closed tagged
union: text, a tool use request, or the result of a tool use.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import typing as _typing

Role = _typing.Literal["user", "assistant"]


@_dataclasses.dataclass(frozen=True)
class TextBlock:
    """Plain text content."""

    text: str
    type: _typing.Literal["text"] = "text"

    def to_dict(self) -> dict[str, _typing.Any]:
        return {"type": self.type, "text": self.text}


@_dataclasses.dataclass(frozen=True)
class ToolUseBlock:
    """A tool invocation request from the model (assistant messages only)."""

    id: str
    name: str
    input: dict[str, _typing.Any]
    type: _typing.Literal["tool_use"] = "tool_use"

    def to_dict(self) -> dict[str, _typing.Any]:
        return {"type": self.type, "id": self.id, "name": self.name, "input": self.input}


@_dataclasses.dataclass(frozen=True)
class ToolResultBlock:
    """The result of a tool invocation (user messages only)."""

    tool_use_id: str
    content: str
    type: _typing.Literal["tool_result"] = "tool_result"

    def to_dict(self) -> dict[str, _typing.Any]:
        return {"type": self.type, "tool_use_id": self.tool_use_id, "content": self.content}


ContentBlock = TextBlock | ToolUseBlock | ToolResultBlock


def content_block_from_dict(data: _typing.Any) -> ContentBlock:
    """
    Build a content block from its dict form.

    Args:
        data: Block dict with a "type" discriminator.

    Returns:
        The matching content block.

    Raises:
        ValueError: If the block is not an object, its type is unknown, or a
            tool_use input is not an object.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Content block must be an object, got {type(data).__name__}")
    block_type = data.get("type")
    if block_type == "text":
        return TextBlock(text=str(data.get("text", "")))
    if block_type == "tool_use":
        tool_input = data.get("input")
        if tool_input is None:
            tool_input = {}
        if not isinstance(tool_input, dict):
            raise ValueError(f"tool_use input must be an object, got {type(tool_input).__name__}")
        return ToolUseBlock(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            input=dict(tool_input),
        )
    if block_type == "tool_result":
        content = data.get("content", "")
        if isinstance(content, list):
            # Anthropic allows a list of text blocks as tool result content
            content = "".join(
                str(part.get("text", "")) for part in content if isinstance(part, dict)
            )
        return ToolResultBlock(tool_use_id=str(data.get("tool_use_id", "")), content=str(content))
    raise ValueError(f"Unknown content block type: {block_type!r}")


@_dataclasses.dataclass(frozen=True)
class Message:
    """A message in the conversation. Immutable once created."""

    role: Role
    content: tuple[ContentBlock, ...]

    @classmethod
    def user_text(cls, text: str) -> Message:
        """Create a user message holding a single text block."""
        return cls(role="user", content=(TextBlock(text=text),))

    @classmethod
    def from_dict(cls, data: dict[str, _typing.Any]) -> Message:
        """
        Create a message from a caller-supplied dict.

        ``content`` may be a plain string or a list of block dicts.
        """
        role = data.get("role")
        if role not in ("user", "assistant"):
            raise ValueError(f"Invalid message role: {role!r}")

        raw = data.get("content", "")
        if isinstance(raw, str):
            blocks: tuple[ContentBlock, ...] = (TextBlock(text=raw),)
        elif isinstance(raw, list):
            blocks = tuple(content_block_from_dict(b) for b in raw)
        else:
            raise ValueError(f"Invalid message content: {type(raw).__name__}")
        return cls(role=role, content=blocks)

    @property
    def text(self) -> str:
        """All text blocks joined together."""
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        """Tool use blocks, in order."""
        return [b for b in self.content if isinstance(b, ToolUseBlock)]

    @property
    def tool_results(self) -> list[ToolResultBlock]:
        """Tool result blocks, in order."""
        return [b for b in self.content if isinstance(b, ToolResultBlock)]

    def to_dict(self) -> dict[str, _typing.Any]:
        return {"role": self.role, "content": [b.to_dict() for b in self.content]}


@_dataclasses.dataclass
class Tool:
    """Tool definition for the API."""

    name: str
    description: str
    input_schema: dict[str, _typing.Any]

    def to_anthropic_format(self) -> dict[str, _typing.Any]:
        """Convert to Anthropic API format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def to_openai_format(self) -> dict[str, _typing.Any]:
        """Convert to OpenAI-compatible format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


@_dataclasses.dataclass
class StreamEvent:
    """
    Provider-agnostic stream event.

    Different providers emit different event types, but we normalize them
    to this common structure. Every stream ends with exactly one
    ``message_stop`` event carrying the completed assistant message.
    """

    type: _typing.Literal[
        "message_start",
        "text_delta",
        "tool_use_start",
        "tool_use_delta",
        "content_stop",
        "message_stop",
    ]

    # Text content (for text_delta events)
    text: str | None = None

    # Tool use (for tool_use_start and content_stop events)
    tool_use: ToolUseBlock | None = None

    # Partial tool input JSON (for tool_use_delta)
    tool_input_delta: str | None = None

    # Stop reason (for message_stop)
    stop_reason: str | None = None

    # Completed assistant message (for message_stop)
    message: Message | None = None
