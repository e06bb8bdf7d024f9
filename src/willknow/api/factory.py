"""
Provider factory for creating LLM providers.

Providers are created based on the ``provider`` field of a model selection:
``anthropic`` speaks the Messages API, ``openai_compatible`` speaks chat
completions. The returned object is only ever used through LLMProvider.
"""

from __future__ import annotations

import logging as _logging

import httpx as _httpx

import willknow.api.base as base
import willknow.config.types as config_types
import willknow.constants as _constants

_logger = _logging.getLogger(__name__)

PROVIDER_TYPES: tuple[str, ...] = ("anthropic", "openai_compatible")


def create_provider(
    model_config: config_types.ModelConfig,
    *,
    connect_timeout: float = _constants.DEFAULT_UPSTREAM_CONNECT_TIMEOUT,
    http_client: _httpx.AsyncClient | None = None,
) -> base.LLMProvider:
    """
    Create an LLM provider instance for a model selection.

    Args:
        model_config: The selected model (provider format, key, base URL, model).
        connect_timeout: Upstream connect timeout in seconds.
        http_client: Optional pre-built HTTP client, shared with the provider.

    Returns:
        Configured LLMProvider instance.

    Raises:
        ValueError: If the provider format is unknown.
    """
    provider_type = model_config.provider
    _logger.debug(
        "Creating %s provider for model %r (config id %s)",
        provider_type,
        model_config.model,
        model_config.id,
    )

    if provider_type == "anthropic":
        from willknow.api.providers.anthropic import AnthropicProvider

        return AnthropicProvider(
            api_key=model_config.api_key,
            model=model_config.model or _constants.DEFAULT_ANTHROPIC_MODEL,
            base_url=model_config.base_url,
            connect_timeout=connect_timeout,
            http_client=http_client,
        )

    if provider_type == "openai_compatible":
        from willknow.api.providers.openai import OpenAICompatibleProvider

        return OpenAICompatibleProvider(
            api_key=model_config.api_key,
            model=model_config.model or _constants.DEFAULT_OPENAI_MODEL,
            base_url=model_config.base_url,
            connect_timeout=connect_timeout,
            http_client=http_client,
        )

    raise ValueError(
        f"Unknown provider: {provider_type!r}. Available: {', '.join(PROVIDER_TYPES)}"
    )
