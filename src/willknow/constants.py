"""
Shared constants for willknow.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

# LLM interaction defaults
DEFAULT_MAX_TOKENS = 4096
"""Default maximum tokens for LLM responses."""

DEFAULT_MAX_TURNS = 10
"""Default maximum number of model calls per chat exchange."""

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-6"
"""Model used for Anthropic-format providers when the config leaves it empty."""

DEFAULT_OPENAI_MODEL = "gpt-4o"
"""Model used for OpenAI-compatible providers when the config leaves it empty."""

DEFAULT_ANTHROPIC_BASE_URL = "https://api.anthropic.com"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"

ANTHROPIC_API_VERSION = "2023-06-01"

# Subagent protocol
SUBAGENT_DISCOVERY_PATH = "/willknow/info"
"""Well-known capability discovery path on a subagent."""

SUBAGENT_DELEGATION_PATH = "/willknow/chat"
"""Well-known natural-language delegation path on a subagent."""

SUBAGENT_TOOL_PREFIX = "subagent_"
"""Prefix for tool names backed by a subagent."""

# Timeouts (seconds)
DEFAULT_DISCOVERY_TIMEOUT = 5.0
"""Timeout for subagent capability discovery."""

DEFAULT_DELEGATION_TIMEOUT = 60.0
"""Timeout for a delegated subagent call."""

DEFAULT_UPSTREAM_CONNECT_TIMEOUT = 10.0
"""Connect timeout for the upstream model. Reads are unbounded while streaming."""

# Session bounds
DEFAULT_CONVERSATION_ID = "default"
"""Conversation id used when the caller does not supply one."""

DEFAULT_MAX_CONVERSATIONS = 1000
"""Maximum conversations kept in the session store before LRU eviction."""

DEFAULT_HISTORY_LIMIT = 40
"""Maximum messages kept for server-held (channel-style) histories."""

# Skills
READ_SKILL_TOOL_NAME = "read_skill"
"""Name of the capability disclosure tool."""

# Tool results
TOOL_NOT_FOUND_MESSAGE = "Tool not found"
"""Result content when the model requests a tool that is not registered."""

TOOL_CALL_FAILED_PREFIX = "Call failed: "
"""Prefix of the result content when a tool raises."""

# Channel replies
PROCESSING_FAILED_PREFIX = "Processing failed: "
"""Prefix of a channel reply when the exchange fails."""

NO_RESPONSE_TEXT = "(no response)"
"""Channel reply when the exchange produced no text."""
