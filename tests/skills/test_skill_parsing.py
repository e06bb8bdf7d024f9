"""Tests for SKILL.md parsing and skill registry assembly."""

import pathlib as _pathlib

import pytest as _pytest

import willknow.config as config
import willknow.skills as skills


def _write_skill(root: _pathlib.Path, dirname: str, text: str) -> _pathlib.Path:
    skill_dir = root / dirname
    skill_dir.mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text(text, encoding="utf-8")
    return skill_dir


class TestParseSkillMarkdown:
    """Tests for parse_skill_markdown()."""

    def test_valid(self) -> None:
        """Frontmatter and body are separated."""
        frontmatter, body = skills.parse_skill_markdown(
            "---\nname: haiku\ndescription: Write haiku\n---\n\n# Haiku\n\nUse 5-7-5.\n"
        )

        assert frontmatter.name == "haiku"
        assert frontmatter.description == "Write haiku"
        assert frontmatter.enabled is True
        assert body == "# Haiku\n\nUse 5-7-5."

    @_pytest.mark.parametrize(
        "text",
        [
            "no frontmatter here",
            "---\nname: [unclosed\n---\nbody",
            "---\ndescription: missing name\n---\nbody",
            "---\nname: bad name!\ndescription: d\n---\nbody",
        ],
    )
    def test_invalid(self, text: str) -> None:
        """Missing or invalid frontmatter raises ValueError."""
        with _pytest.raises(ValueError):
            skills.parse_skill_markdown(text)


class TestLoadSkill:
    """Tests for load_skill() and discover_skill_dirs()."""

    def test_load(self, tmp_path: _pathlib.Path) -> None:
        """A skill directory loads into a file-sourced Skill."""
        skill_dir = _write_skill(tmp_path, "haiku", "---\nname: haiku\ndescription: Poems\n---\nBody")

        skill = skills.load_skill(skill_dir)

        assert skill.source == "file"
        assert skill.path == skill_dir.resolve()
        assert skill.content == "Body"
        assert skill.to_dict()["content_length"] == 4

    def test_missing_file(self, tmp_path: _pathlib.Path) -> None:
        """A directory without SKILL.md raises FileNotFoundError."""
        with _pytest.raises(FileNotFoundError):
            skills.load_skill(tmp_path)

    def test_discover_skips_invalid(self, tmp_path: _pathlib.Path) -> None:
        """Invalid skills are skipped and valid ones kept in name order."""
        _write_skill(tmp_path, "b-skill", "---\nname: b-skill\ndescription: B\n---\nB body")
        _write_skill(tmp_path, "a-skill", "---\nname: a-skill\ndescription: A\n---\nA body")
        _write_skill(tmp_path, "broken", "no frontmatter")
        (tmp_path / "not-a-skill").mkdir()

        found = skills.discover_skill_dirs([tmp_path, tmp_path / "absent"])

        assert [s.name for s in found] == ["a-skill", "b-skill"]


class TestSkillRegistry:
    """Tests for SkillRegistry."""

    def test_config_overrides_directory(self, tmp_path: _pathlib.Path) -> None:
        """A configured skill replaces a directory skill of the same name."""
        _write_skill(tmp_path, "haiku", "---\nname: haiku\ndescription: From file\n---\nFile body")
        _write_skill(tmp_path, "sql", "---\nname: sql\ndescription: Queries\n---\nSQL body")

        registry = skills.SkillRegistry.from_config(
            [config.SkillConfig(name="haiku", description="From config", content="Config body")],
            [tmp_path],
        )

        assert [s.name for s in registry.list_skills()] == ["sql", "haiku"]
        haiku = registry.get_enabled("haiku")
        assert haiku is not None
        assert haiku.content == "Config body"
        assert haiku.source == "config"

    def test_disabled_hidden(self) -> None:
        """Disabled skills are registered but not enabled."""
        registry = skills.SkillRegistry(
            [skills.Skill("on", "d", "c"), skills.Skill("off", "d", "c", enabled=False)]
        )

        assert "off" in registry
        assert registry.get_enabled("off") is None
        assert [s.name for s in registry.enabled()] == ["on"]

    def test_frontmatter_can_disable(self, tmp_path: _pathlib.Path) -> None:
        """enabled: false in frontmatter disables a file skill."""
        _write_skill(tmp_path, "quiet", "---\nname: quiet\ndescription: d\nenabled: false\n---\nx")

        registry = skills.SkillRegistry.from_config([], [tmp_path])

        assert len(registry) == 1
        assert registry.enabled() == []
