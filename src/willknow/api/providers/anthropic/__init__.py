"""Anthropic Messages API provider."""

from willknow.api.providers.anthropic.provider import AnthropicProvider

__all__ = ["AnthropicProvider"]
