"""
LLM API providers for willknow.

Provides a unified interface over two upstream wire protocols:
- Anthropic Messages API (block-oriented SSE)
- OpenAI-compatible chat completions (chunk-oriented SSE)
"""

from willknow.api.base import LLMProvider, ProviderAPIError
from willknow.api.factory import create_provider
from willknow.api.types import (
    ContentBlock,
    Message,
    StreamEvent,
    TextBlock,
    Tool,
    ToolResultBlock,
    ToolUseBlock,
)

__all__ = [
    # Base class
    "LLMProvider",
    # Factory
    "create_provider",
    # Exceptions
    "ProviderAPIError",
    # Types
    "ContentBlock",
    "Message",
    "StreamEvent",
    "TextBlock",
    "Tool",
    "ToolResultBlock",
    "ToolUseBlock",
]


import typing as _typing


# Lazy imports for providers
def __getattr__(name: str) -> _typing.Any:
    if name == "AnthropicProvider":
        from willknow.api.providers.anthropic import AnthropicProvider

        return AnthropicProvider
    if name == "OpenAICompatibleProvider":
        from willknow.api.providers.openai import OpenAICompatibleProvider

        return OpenAICompatibleProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
