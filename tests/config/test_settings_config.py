"""Tests for Settings loading from YAML, environment and constructor."""

import os as _os
import pathlib as _pathlib
import unittest.mock as _mock

import pydantic as _pydantic
import pytest as _pytest

import willknow.config as config

_YAML = """
models:
  - id: claude
    provider: anthropic
    apiKey: from-yaml
  - id: local
    provider: openai_compatible
    baseURL: http://localhost:11434/v1
    model: llama3
    isDefault: true
subagents:
  - id: calendar
    url: http://calendar.test/
    auth:
      type: bearer
      token: secret
behavior:
  max_turns: 4
skills:
  - name: haiku
    description: Write haiku
    content: Use 5-7-5.
"""


@_pytest.fixture
def yaml_env(clean_env: dict[str, str], tmp_path: _pathlib.Path) -> dict[str, str]:
    config_file = tmp_path / "willknow.yaml"
    config_file.write_text(_YAML, encoding="utf-8")
    return {**clean_env, "WILLKNOW_CONFIG_FILE": str(config_file)}


class TestSettingsDefaults:
    """Tests for defaults without any configuration."""

    def test_defaults(self, clean_settings: config.Settings) -> None:
        """An empty configuration has no model and default bounds."""
        assert clean_settings.models == []
        assert clean_settings.get_default_model() is None
        assert clean_settings.behavior.max_turns == 10
        assert clean_settings.timeouts.discovery == 5.0
        assert clean_settings.timeouts.delegation == 60.0
        assert clean_settings.server.port == 3000


class TestSettingsYaml:
    """Tests for the YAML config file."""

    def test_yaml_loaded(self, yaml_env: dict[str, str]) -> None:
        """Models, subagents, skills and behavior come from the YAML file."""
        with _mock.patch.dict(_os.environ, yaml_env, clear=True):
            settings = config.Settings.construct_without_dotenv()

        default = settings.get_default_model()
        assert default is not None
        assert default.id == "local"
        assert default.base_url == "http://localhost:11434/v1"
        assert settings.models[0].api_key == "from-yaml"
        assert settings.subagents[0].url == "http://calendar.test"
        assert settings.subagents[0].auth.headers() == {"Authorization": "Bearer secret"}
        assert settings.behavior.max_turns == 4
        assert settings.skills[0].content == "Use 5-7-5."

    def test_env_overrides_yaml(self, yaml_env: dict[str, str]) -> None:
        """Nested environment variables take precedence over the file."""
        env = {**yaml_env, "WILLKNOW_BEHAVIOR__MAX_TURNS": "7"}
        with _mock.patch.dict(_os.environ, env, clear=True):
            settings = config.Settings.construct_without_dotenv()

        assert settings.behavior.max_turns == 7

    def test_constructor_overrides_all(self, yaml_env: dict[str, str]) -> None:
        """Constructor arguments have the highest precedence."""
        with _mock.patch.dict(_os.environ, yaml_env, clear=True):
            settings = config.Settings.construct_without_dotenv(models=[])

        assert settings.get_default_model() is None


class TestSettingsHelpers:
    """Tests for Settings helpers and validation."""

    def test_first_model_is_fallback_default(self, make_settings) -> None:
        """Without is_default the first model is used."""
        settings = make_settings(models=[{"id": "a"}, {"id": "b"}])

        default = settings.get_default_model()
        assert default is not None
        assert default.id == "a"

    def test_enabled_subagents(self, make_settings) -> None:
        """Disabled subagents are filtered out."""
        settings = make_settings(
            subagents=[
                {"id": "a", "url": "http://a"},
                {"id": "b", "url": "http://b", "enabled": False},
            ]
        )

        assert [s.id for s in settings.get_enabled_subagents()] == ["a"]

    def test_unknown_keys_collected(self, make_settings) -> None:
        """Typos are preserved and reported with dotted paths."""
        settings = make_settings(behavior={"max_turn": 3}, subagents=[{"id": "a", "url": "http://a", "enabeld": False}])

        extras = settings.collect_all_extra_fields()

        assert extras["behavior.max_turn"] == 3
        assert extras["subagents.0.enabeld"] is False

    def test_invalid_bounds_rejected(self, make_settings) -> None:
        """Out-of-range values fail validation."""
        with _pytest.raises(_pydantic.ValidationError):
            make_settings(behavior={"max_turns": 0})
