"""
Skills: named instruction bundles disclosed on demand.

The model always sees a skill's name and one-line description in the system
prompt. The body is handed over only when the model calls read_skill.

A skill is declared inline in configuration or as ``<dir>/<name>/SKILL.md``:

    ---
    name: haiku
    description: Write a haiku on request
    ---
    Use a 5-7-5 syllable structure...
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import yaml as _yaml

if _typing.TYPE_CHECKING:
    import willknow.config.types as config_types

_logger = _logging.getLogger(__name__)

SKILL_FILE_NAME = "SKILL.md"

_FENCE = "---"


class SkillFrontmatter(_pydantic.BaseModel):
    """YAML header of a SKILL.md file. Unknown keys are kept."""

    model_config = _pydantic.ConfigDict(extra="allow")

    name: str = _pydantic.Field(
        ...,
        min_length=1,
        max_length=64,
        pattern=r"^[A-Za-z0-9][A-Za-z0-9_-]*$",
    )
    description: str = _pydantic.Field(..., min_length=1, max_length=1024)
    enabled: bool = True
    metadata: dict[str, _typing.Any] = _pydantic.Field(default_factory=dict)


@_dataclasses.dataclass
class Skill:
    name: str
    description: str
    content: str
    enabled: bool = True
    source: str = "config"
    """"config" for inline entries, "file" for SKILL.md skills."""
    path: _pathlib.Path | None = None

    @classmethod
    def from_config(cls, entry: config_types.SkillConfig) -> Skill:
        return cls(
            name=entry.name,
            description=entry.description,
            content=entry.content,
            enabled=entry.enabled,
        )

    def to_dict(self) -> dict[str, _typing.Any]:
        """Listing form used by the CLI; the body is reduced to its length."""
        return {
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "source": self.source,
            "path": None if self.path is None else str(self.path),
            "content_length": len(self.content),
        }


def _split_frontmatter(text: str) -> tuple[str, str] | None:
    lines = text.splitlines()
    if not lines or lines[0].strip() != _FENCE:
        return None
    for index in range(1, len(lines)):
        if lines[index].strip() == _FENCE:
            header = "\n".join(lines[1:index])
            body = "\n".join(lines[index + 1 :])
            return header, body
    return None


def parse_skill_markdown(content: str) -> tuple[SkillFrontmatter, str]:
    """
    Split SKILL.md text into its validated header and stripped body.

    Raises:
        ValueError: No ``---`` fenced header, malformed YAML, or a header that
            fails validation.
    """
    parts = _split_frontmatter(content)
    if parts is None:
        raise ValueError("SKILL.md must start with a '---' fenced YAML header")
    header, body = parts

    try:
        raw = _yaml.safe_load(header)
    except _yaml.YAMLError as e:
        raise ValueError(f"Malformed SKILL.md header: {e}") from e
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError("SKILL.md header must be a YAML mapping")

    try:
        frontmatter = SkillFrontmatter.model_validate(raw)
    except _pydantic.ValidationError as e:
        raise ValueError(f"Invalid SKILL.md header: {e}") from e
    return frontmatter, body.strip()


def load_skill(skill_dir: _pathlib.Path) -> Skill:
    """
    Read ``skill_dir/SKILL.md``.

    Raises:
        FileNotFoundError: The directory has no SKILL.md.
        ValueError: The file does not parse.
    """
    skill_file = skill_dir / SKILL_FILE_NAME
    if not skill_file.is_file():
        raise FileNotFoundError(f"No {SKILL_FILE_NAME} in {skill_dir}")

    frontmatter, body = parse_skill_markdown(skill_file.read_text(encoding="utf-8"))
    if not body:
        _logger.warning("Skill %s has no instructions after its header", frontmatter.name)

    return Skill(
        name=frontmatter.name,
        description=frontmatter.description,
        content=body,
        enabled=frontmatter.enabled,
        source="file",
        path=skill_dir.resolve(),
    )
