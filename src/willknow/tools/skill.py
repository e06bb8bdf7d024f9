"""
read_skill tool: disclose a capability bundle's full content on demand.

Only skill names and descriptions are placed in the system preamble. The
model calls this tool with an exact skill name to read the instructions.
"""

from __future__ import annotations

import typing as _typing

import willknow.constants as _constants
import willknow.tools.base as base

if _typing.TYPE_CHECKING:
    import willknow.skills as skills


class ReadSkillTool(base.Tool):
    """Return the full content of an enabled skill."""

    def __init__(self, skill_registry: skills.SkillRegistry) -> None:
        """
        Initialize the read_skill tool.

        Args:
            skill_registry: Registry of available skills.
        """
        self._registry = skill_registry

    @property
    def name(self) -> str:
        return _constants.READ_SKILL_TOOL_NAME

    @property
    def description(self) -> str:
        return (
            "Read the full instructions for an available skill. Call this when "
            "you determine a user task matches a skill's description."
        )

    @property
    def input_schema(self) -> dict[str, _typing.Any]:
        return {
            "type": "object",
            "properties": {
                "skill_name": {
                    "type": "string",
                    "description": (
                        "The name of the skill to read "
                        "(must match a name in <available_skills>)"
                    ),
                },
            },
            "required": ["skill_name"],
        }

    def describe_input(self, input: dict[str, _typing.Any]) -> str:
        return str(input.get("skill_name", ""))

    async def execute(self, input: dict[str, _typing.Any]) -> base.ToolResult:
        """
        Look up the skill by exact name.

        Args:
            input: Tool input with ``skill_name``.

        Returns:
            ToolResult with the skill content, or a corrective message
            listing the available names.
        """
        skill_name = input.get("skill_name", "")
        skill = self._registry.get_enabled(skill_name) if isinstance(skill_name, str) else None
        if skill is None:
            available = ", ".join(s.name for s in self._registry.enabled())
            return base.ToolResult(
                success=False,
                output="",
                error=f'Skill "{skill_name}" not found. Available: {available}',
            )

        return base.ToolResult(success=True, output=skill.content)
