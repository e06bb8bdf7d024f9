"""
Capability bundles (skills) for willknow.

Skills come from configuration or from SKILL.md files under configured
directories. Only their names and descriptions reach the model up front;
full content is disclosed through the read_skill tool.
"""

from willknow.skills.registry import SkillRegistry, discover_skill_dirs
from willknow.skills.skill import (
    SKILL_FILE_NAME,
    Skill,
    SkillFrontmatter,
    load_skill,
    parse_skill_markdown,
)

__all__ = [
    # Core
    "Skill",
    "SkillFrontmatter",
    "SKILL_FILE_NAME",
    # Parsing
    "load_skill",
    "parse_skill_markdown",
    # Registry
    "SkillRegistry",
    "discover_skill_dirs",
]
