"""
System preamble construction.

The preamble advertises enabled skills by name and description only, so the
model knows it may call read_skill to get the full instructions.
"""

from __future__ import annotations

import typing as _typing

if _typing.TYPE_CHECKING:
    import willknow.skills as skills

SKILLS_INTRO = (
    "You have access to the following skills that extend your capabilities.\n"
    "When a user task matches a skill's description, use the read_skill tool "
    "to load the full instructions before proceeding."
)


def xml_escape(value: str) -> str:
    """Escape ``&``, ``<`` and ``>`` for element text."""
    return str(value).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def build_system_prompt(enabled_skills: _typing.Sequence[skills.Skill]) -> str | None:
    """
    Build the system preamble for an exchange.

    Args:
        enabled_skills: Skills to advertise, in order.

    Returns:
        The preamble, or None when there is nothing to advertise.
    """
    if not enabled_skills:
        return None

    items = "\n".join(
        "  <skill>\n"
        f"    <name>{xml_escape(skill.name)}</name>\n"
        f"    <description>{xml_escape(skill.description)}</description>\n"
        "  </skill>"
        for skill in enabled_skills
    )
    return "\n".join(
        [
            SKILLS_INTRO,
            "",
            "<available_skills>",
            items,
            "</available_skills>",
        ]
    )
