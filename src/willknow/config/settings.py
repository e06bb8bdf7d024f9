"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with WILLKNOW_ prefix
3. .env file (if present)
4. YAML config file: $WILLKNOW_CONFIG_FILE, or ./willknow.yaml (lowest)

Nested config uses double underscore delimiter:
  WILLKNOW_BEHAVIOR__MAX_TURNS=5
  WILLKNOW_TIMEOUTS__DELEGATION=30
List sections (models, subagents, skills) take JSON in env vars.
"""

import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import willknow.config.types as types

DEFAULT_CONFIG_FILE = "willknow.yaml"


def _get_env_file() -> str | None:
    """Determine which .env file to load.

    Priority:
    1. WILLKNOW_ENV_FILE if set (explicit override)
    2. .env in the current directory if present
    3. None (rely on environment variables)
    """
    if env_file := _os.environ.get("WILLKNOW_ENV_FILE"):
        # If explicitly set but doesn't exist, don't fall back silently
        return env_file if _pathlib.Path(env_file).exists() else None

    if _pathlib.Path(".env").exists():
        return ".env"
    return None


def get_config_file() -> _pathlib.Path:
    """Path of the YAML config file (may not exist)."""
    return _pathlib.Path(_os.environ.get("WILLKNOW_CONFIG_FILE", DEFAULT_CONFIG_FILE))


class Settings(_pydantic_settings.BaseSettings):
    """
    willknow configuration settings.

    All settings can be overridden via environment variables with WILLKNOW_ prefix.
    For nested config, use double underscore: WILLKNOW_BEHAVIOR__MAX_TURNS=5
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="WILLKNOW_",
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="allow",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[_pydantic_settings.BaseSettings],
        init_settings: _pydantic_settings.PydanticBaseSettingsSource,
        env_settings: _pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,
        file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,
    ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
        """
        Configure settings sources with precedence:
        1. init_settings (constructor args), highest
        2. env_settings (WILLKNOW_* env vars)
        3. dotenv_settings (.env file)
        4. yaml_settings (willknow.yaml)
        5. defaults via Field definitions, lowest
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            _pydantic_settings.YamlConfigSettingsSource(
                settings_cls, yaml_file=get_config_file()
            ),
            file_secret_settings,
        )

    @classmethod
    def construct_without_dotenv(cls, **kwargs: _typing.Any) -> "Settings":
        """Create Settings without loading a .env file.

        Useful for test isolation and pure env var configuration.
        """
        return cls(_env_file=None, **kwargs)  # type: ignore[call-arg]

    # =========================================================================
    # Nested config sections
    # =========================================================================

    models: list[types.ModelConfig] = _pydantic.Field(default_factory=list)
    """Upstream model selections; one may be marked is_default."""

    subagents: list[types.SubAgentConfig] = _pydantic.Field(default_factory=list)
    """External collaborators exposed to the model as tools."""

    skills: list[types.SkillConfig] = _pydantic.Field(default_factory=list)
    """Capability bundles supplied directly in config."""

    skill_dirs: list[_pathlib.Path] = _pydantic.Field(default_factory=list)
    """Directories scanned for <name>/SKILL.md bundles."""

    behavior: types.BehaviorConfig = _pydantic.Field(default_factory=types.BehaviorConfig)
    timeouts: types.TimeoutsConfig = _pydantic.Field(default_factory=types.TimeoutsConfig)
    session: types.SessionConfig = _pydantic.Field(default_factory=types.SessionConfig)
    logging: types.LoggingConfig = _pydantic.Field(default_factory=types.LoggingConfig)
    server: types.ServerConfig = _pydantic.Field(default_factory=types.ServerConfig)

    # =========================================================================
    # Convenience accessors
    # =========================================================================

    def get_default_model(self) -> types.ModelConfig | None:
        """The model marked is_default, else the first model, else None."""
        for model in self.models:
            if model.is_default:
                return model
        return self.models[0] if self.models else None

    def get_enabled_subagents(self) -> list[types.SubAgentConfig]:
        """Subagents with enabled=True, in config order."""
        return [sa for sa in self.subagents if sa.enabled]

    def collect_all_extra_fields(self) -> dict[str, _typing.Any]:
        """Unknown keys anywhere in the config, as dotted paths."""
        result: dict[str, _typing.Any] = {}
        for key, value in (self.model_extra or {}).items():
            result[key] = value
        for field_name in ("behavior", "timeouts", "session", "logging", "server"):
            section: types.ConfigBase = getattr(self, field_name)
            result.update(section.collect_all_extra_fields(field_name))
        for field_name in ("models", "subagents", "skills"):
            for index, item in enumerate(getattr(self, field_name)):
                result.update(item.collect_all_extra_fields(f"{field_name}.{index}"))
        return result
