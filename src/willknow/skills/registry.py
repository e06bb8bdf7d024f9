"""
Skill registry for managing available skills.

Skills are collected from (lowest to highest priority):
1. Each configured skill directory, in order (<dir>/<name>/SKILL.md)
2. Skills listed directly in configuration

Later sources replace earlier ones with the same name.
"""

from __future__ import annotations

import logging as _logging
import pathlib as _pathlib
import typing as _typing

import willknow.skills.skill as skill_module

if _typing.TYPE_CHECKING:
    import willknow.config.types as config_types

_logger = _logging.getLogger(__name__)


def discover_skill_dirs(search_paths: list[_pathlib.Path]) -> list[skill_module.Skill]:
    """
    Load every valid skill found under the given directories.

    Invalid skills are logged and skipped.

    Args:
        search_paths: Directories whose subdirectories hold SKILL.md files.

    Returns:
        Skills in discovery order.
    """
    found: list[skill_module.Skill] = []
    for search_path in search_paths:
        search_path = _pathlib.Path(search_path).expanduser()
        if not search_path.is_dir():
            _logger.debug("Skill directory %s does not exist, skipping", search_path)
            continue

        for skill_dir in sorted(search_path.iterdir()):
            if not skill_dir.is_dir():
                continue
            if not (skill_dir / skill_module.SKILL_FILE_NAME).exists():
                continue
            try:
                found.append(skill_module.load_skill(skill_dir))
            except (FileNotFoundError, ValueError) as e:
                _logger.warning("Skipping invalid skill in %s: %s", skill_dir, e)

    return found


class SkillRegistry:
    """
    Registry for capability bundles.

    Preserves insertion order so the system preamble and the read_skill
    "Available" list are stable.
    """

    def __init__(self, skills: _typing.Iterable[skill_module.Skill] = ()) -> None:
        self._skills: dict[str, skill_module.Skill] = {}
        for skill in skills:
            self.add(skill)

    @classmethod
    def from_config(
        cls,
        skills: list[config_types.SkillConfig],
        skill_dirs: list[_pathlib.Path] | None = None,
    ) -> SkillRegistry:
        """
        Build a registry from configuration.

        Args:
            skills: Skills supplied directly in config.
            skill_dirs: Directories to scan for SKILL.md bundles.

        Returns:
            Populated registry.
        """
        registry = cls(discover_skill_dirs(skill_dirs or []))
        for config in skills:
            registry.add(skill_module.Skill.from_config(config))
        return registry

    def add(self, skill: skill_module.Skill) -> None:
        """Add a skill, replacing any existing skill with the same name."""
        if skill.name in self._skills:
            _logger.debug("Skill %s overridden by later source", skill.name)
            del self._skills[skill.name]
        self._skills[skill.name] = skill

    def list_skills(self) -> list[skill_module.Skill]:
        """All skills, enabled or not."""
        return list(self._skills.values())

    def enabled(self) -> list[skill_module.Skill]:
        """Enabled skills only."""
        return [s for s in self._skills.values() if s.enabled]

    def get_enabled(self, name: str) -> skill_module.Skill | None:
        """
        Look up an enabled skill by exact name.

        Args:
            name: Skill name (case-sensitive, no normalization).

        Returns:
            The skill, or None if absent or disabled.
        """
        skill = self._skills.get(name)
        if skill is None or not skill.enabled:
            return None
        return skill

    def __len__(self) -> int:
        return len(self._skills)

    def __contains__(self, name: str) -> bool:
        return name in self._skills
