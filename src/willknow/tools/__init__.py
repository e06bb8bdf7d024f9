"""
Tool system for willknow.

Tools are the interface between the model and the outside world: one tool
per reachable subagent, plus read_skill when skills are enabled.

Usage:
    from willknow.tools import build_tool_registry

    registry = build_tool_registry(subagent_tools, skill_registry)
    tool = registry.get("read_skill")
    result = await tool.execute({"skill_name": "haiku"})
"""

from willknow.tools.base import Tool, ToolResult
from willknow.tools.registry import ToolRegistry, build_tool_registry
from willknow.tools.skill import ReadSkillTool
from willknow.tools.subagent import SubAgentTool, tool_name_for

__all__ = [
    # Base classes
    "Tool",
    "ToolResult",
    # Registry
    "ToolRegistry",
    "build_tool_registry",
    # Tool implementations
    "ReadSkillTool",
    "SubAgentTool",
    "tool_name_for",
]
