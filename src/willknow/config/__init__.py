"""
Configuration module for willknow.

Uses pydantic-settings for environment variable and YAML loading.
"""

from willknow.config.settings import Settings, get_config_file
from willknow.config.types import (
    BehaviorConfig,
    LoggingConfig,
    ModelConfig,
    ServerConfig,
    SessionConfig,
    SkillConfig,
    SubAgentAuth,
    SubAgentConfig,
    TimeoutsConfig,
)

__all__ = [
    "BehaviorConfig",
    "LoggingConfig",
    "ModelConfig",
    "ServerConfig",
    "SessionConfig",
    "Settings",
    "SkillConfig",
    "SubAgentAuth",
    "SubAgentConfig",
    "TimeoutsConfig",
    "get_config_file",
]
