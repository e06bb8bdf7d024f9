"""Configuration type definitions for willknow settings.

This module defines the Pydantic models used to represent configuration
structures. These are "config section" types nested within the main
Settings class:

- ModelConfig: one upstream model selection (provider format, key, model)
- SubAgentConfig / SubAgentAuth: an external collaborator and its auth
- SkillConfig: one capability bundle (metadata + full content)
- BehaviorConfig: turn budget, max_tokens
- TimeoutsConfig: discovery, delegation and upstream connect bounds
- SessionConfig: in-memory capacity bounds
- LoggingConfig: JSONL exchange log
- ServerConfig: HTTP bind address

Design decision: All types use `extra="allow"` to preserve unknown fields,
so a config can be audited for typos with `collect_all_extra_fields()`.
"""

import typing as _typing

import pydantic as _pydantic

import willknow.constants as _constants

# =============================================================================
# Base class with introspection
# =============================================================================


class ConfigBase(_pydantic.BaseModel):
    """
    Base class for all config types.

    All config types use `extra="allow"` so unknown fields are preserved
    rather than silently dropped. This enables auditing for typos.
    """

    model_config = _pydantic.ConfigDict(extra="allow", populate_by_name=True)

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """Return fields that were provided but not in the schema."""
        return dict(self.model_extra) if self.model_extra else {}

    def collect_all_extra_fields(
        self,
        prefix: str = "",
    ) -> dict[str, _typing.Any]:
        """
        Recursively collect extra fields from this config and nested configs.

        Returns a flat dict with dotted paths as keys, e.g.:
            {"behavior.max_turn": 5, "subagents.0.enabeld": True}
        """
        result: dict[str, _typing.Any] = {}

        for key, value in self.get_extra_fields().items():
            path = f"{prefix}.{key}" if prefix else key
            result[path] = value

        for field_name in self.__class__.model_fields:
            value = getattr(self, field_name, None)
            child_prefix = f"{prefix}.{field_name}" if prefix else field_name

            if isinstance(value, ConfigBase):
                result.update(value.collect_all_extra_fields(child_prefix))
            elif isinstance(value, list):
                for index, item in enumerate(value):
                    if isinstance(item, ConfigBase):
                        result.update(item.collect_all_extra_fields(f"{child_prefix}.{index}"))

        return result


# =============================================================================
# Models
# =============================================================================


class ModelConfig(ConfigBase):
    """
    One upstream model selection.

    YAML section: models[]
    """

    id: str
    name: str = ""
    provider: _typing.Literal["anthropic", "openai_compatible"] = "openai_compatible"
    """Wire format spoken by the upstream."""

    api_key: str = _pydantic.Field(default="", alias="apiKey")
    base_url: str | None = _pydantic.Field(default=None, alias="baseURL")
    model: str = ""
    """Upstream model name. Empty means the provider default."""

    is_default: bool = _pydantic.Field(default=False, alias="isDefault")


# =============================================================================
# Subagents
# =============================================================================


class SubAgentAuth(ConfigBase):
    """
    Authentication for a subagent.

    YAML section: subagents[].auth
    """

    type: _typing.Literal["none", "bearer"] = "none"
    token: str | None = None

    def headers(self) -> dict[str, str]:
        """Auth headers to attach to requests, if any."""
        if self.type == "bearer" and self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}


class SubAgentConfig(ConfigBase):
    """
    An external collaborator service.

    YAML section: subagents[]
    """

    id: str
    name: str = ""
    url: str
    auth: SubAgentAuth = _pydantic.Field(default_factory=SubAgentAuth)
    enabled: bool = True

    @_pydantic.field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


# =============================================================================
# Skills
# =============================================================================


class SkillConfig(ConfigBase):
    """
    A capability bundle as supplied by the skill registry.

    YAML section: skills[]
    """

    name: str
    description: str = ""
    content: str = ""
    """Full instructions, disclosed only through read_skill."""

    enabled: bool = True


# =============================================================================
# Behavior / timeouts / session
# =============================================================================


class BehaviorConfig(ConfigBase):
    """
    Turn loop behavior.

    YAML section: behavior.*
    """

    max_turns: int = _pydantic.Field(default=_constants.DEFAULT_MAX_TURNS, ge=1, le=100)
    """Maximum model calls per chat exchange."""

    max_tokens: int = _pydantic.Field(default=_constants.DEFAULT_MAX_TOKENS, ge=1, le=200000)
    """Maximum tokens per model response."""


class TimeoutsConfig(ConfigBase):
    """
    Outbound network bounds, in seconds.

    YAML section: timeouts.*
    """

    discovery: float = _pydantic.Field(default=_constants.DEFAULT_DISCOVERY_TIMEOUT, gt=0)
    delegation: float = _pydantic.Field(default=_constants.DEFAULT_DELEGATION_TIMEOUT, gt=0)
    upstream_connect: float = _pydantic.Field(
        default=_constants.DEFAULT_UPSTREAM_CONNECT_TIMEOUT, gt=0
    )


class SessionConfig(ConfigBase):
    """
    In-memory session capacity bounds.

    YAML section: session.*
    """

    max_conversations: int = _pydantic.Field(
        default=_constants.DEFAULT_MAX_CONVERSATIONS, ge=1
    )
    """Conversations kept before least-recently-used eviction."""

    history_limit: int = _pydantic.Field(default=_constants.DEFAULT_HISTORY_LIMIT, ge=2)
    """Messages kept for server-held histories."""


class LoggingConfig(ConfigBase):
    """
    JSONL exchange logging.

    YAML section: logging.*
    """

    enabled: bool = False
    dir: str | None = None
    """Directory for log files (default: /tmp/willknow-logs)."""

    private: bool = True
    """Restrict the log directory to the current user (0o700)."""


class ServerConfig(ConfigBase):
    """
    HTTP server bind address.

    YAML section: server.*
    """

    host: str = "127.0.0.1"
    port: int = _pydantic.Field(default=3000, ge=1, le=65535)
