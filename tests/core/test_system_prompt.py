"""Tests for the system preamble."""

import willknow.core.prompts as prompts
import willknow.skills as skills


class TestBuildSystemPrompt:
    """Tests for build_system_prompt()."""

    def test_no_skills(self) -> None:
        """Nothing to advertise means no preamble."""
        assert prompts.build_system_prompt([]) is None

    def test_exact_layout(self) -> None:
        """Skills are listed by name and description in order."""
        prompt = prompts.build_system_prompt(
            [
                skills.Skill(name="haiku", description="Write haiku", content="secret"),
                skills.Skill(name="sql", description="Query databases", content="secret"),
            ]
        )

        assert prompt == (
            prompts.SKILLS_INTRO
            + "\n\n<available_skills>\n"
            + "  <skill>\n"
            + "    <name>haiku</name>\n"
            + "    <description>Write haiku</description>\n"
            + "  </skill>\n"
            + "  <skill>\n"
            + "    <name>sql</name>\n"
            + "    <description>Query databases</description>\n"
            + "  </skill>\n"
            + "</available_skills>"
        )
        assert "secret" not in prompt

    def test_escapes_markup(self) -> None:
        """Angle brackets and ampersands in descriptions are escaped."""
        prompt = prompts.build_system_prompt(
            [skills.Skill(name="cmp", description="Compare a < b & b > c", content="")]
        )

        assert prompt is not None
        assert "<description>Compare a &lt; b &amp; b &gt; c</description>" in prompt
