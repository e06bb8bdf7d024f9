"""OpenAI-compatible chat completions provider."""

from willknow.api.providers.openai.provider import OpenAICompatibleProvider

__all__ = ["OpenAICompatibleProvider"]
