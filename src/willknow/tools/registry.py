"""
Tool registry for managing the tools offered in one exchange.

The registry is rebuilt for every exchange: subagent tools depend on which
collaborators answered discovery, and read_skill exists only while at least
one skill is enabled.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

import willknow.api.types as api_types
import willknow.tools.base as base
import willknow.tools.skill as skill_tool

if _typing.TYPE_CHECKING:
    import willknow.skills as skills

_logger = _logging.getLogger(__name__)


class ToolRegistry:
    """Tools offered to the model in one exchange, keyed by name in insertion order."""

    def __init__(self) -> None:
        self._tools: dict[str, base.Tool] = {}

    def register(self, tool: base.Tool) -> None:
        """Add ``tool``; raises ValueError if its name is taken."""
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def get(self, name: str) -> base.Tool | None:
        return self._tools.get(name)

    def list_tools(self) -> list[base.Tool]:
        return list(self._tools.values())

    def list_names(self) -> list[str]:
        return list(self._tools)

    def to_api_tools(self) -> list[api_types.Tool]:
        return [tool.to_api_tool() for tool in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> _typing.Iterator[base.Tool]:
        return iter(list(self._tools.values()))


def build_tool_registry(
    subagent_tools: _typing.Iterable[base.Tool],
    skill_registry: skills.SkillRegistry | None = None,
) -> ToolRegistry:
    """
    Assemble the tools for one exchange.

    Args:
        subagent_tools: Tools for subagents that answered discovery.
        skill_registry: Skills; read_skill is added only if any is enabled.

    Returns:
        Registry with subagent tools first, then read_skill.
    """
    registry = ToolRegistry()
    for tool in subagent_tools:
        if tool.name in registry:
            _logger.warning("Duplicate tool name %s, keeping the first", tool.name)
            continue
        registry.register(tool)

    if skill_registry is not None and skill_registry.enabled():
        registry.register(skill_tool.ReadSkillTool(skill_registry))

    return registry
