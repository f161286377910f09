"""LLM provider registry.

``get_provider`` builds a provider by name. Native SDK providers are imported
lazily so only the SDK in use gets loaded. Every other built-in name is an
OpenAI-compatible endpoint. User-defined endpoints come from
``StorefrontConfig.providers``.

``get_oracle_provider`` caches one provider per name, so a turn's concurrent
decisions share an async client that ``close_oracle_providers`` shuts down
before the event loop ends.
"""

import importlib

from .base import LLMProvider, TokenUsage
from ...config import (
    CustomProviderConfig,
    get_api_key_for_provider,
    get_config,
    parse_model_string,
)


# =============================================================================
# Provider Registry
# =============================================================================

# name -> (module, class), imported on first use
_NATIVE_PROVIDERS: dict[str, tuple[str, str]] = {
    "openai": (".openai", "OpenAIProvider"),
    "anthropic": (".anthropic", "AnthropicProvider"),
}

# name -> (base_url, default_model), served by OpenAICompatProvider
_COMPAT_ENDPOINTS: dict[str, tuple[str, str]] = {
    "gemini": (
        "https://generativelanguage.googleapis.com/v1beta/openai/",
        "gemini-2.5-flash",
    ),
    "openrouter": ("https://openrouter.ai/api/v1", "openai/gpt-5-mini"),
    "deepseek": ("https://api.deepseek.com/v1", "deepseek-chat"),
    "together": (
        "https://api.together.xyz/v1",
        "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo",
    ),
    "groq": ("https://api.groq.com/openai/v1", "llama-3.3-70b-versatile"),
}

# Legacy names still accepted in model strings
_ALIASES = {"claude": "anthropic"}


def available_providers(
    custom_providers: dict[str, CustomProviderConfig] | None = None,
) -> list[str]:
    return sorted(set(_NATIVE_PROVIDERS) | set(_COMPAT_ENDPOINTS) | set(custom_providers or {}))


def get_provider(
    provider_name: str,
    custom_providers: dict[str, CustomProviderConfig] | None = None,
) -> LLMProvider:
    """Create a provider instance by name.

    Custom providers shadow built-in ones of the same name.

    Raises:
        ValueError: If the provider is unknown or its API key is missing
    """
    provider_name = _ALIASES.get(provider_name, provider_name)
    api_key = get_api_key_for_provider(provider_name, custom_providers)

    if custom_providers and provider_name in custom_providers:
        from .openai_compat import OpenAICompatProvider

        custom = custom_providers[provider_name]
        if not api_key and custom.api_key_env:
            raise ValueError(
                f"No API key for {provider_name}. Set {custom.api_key_env} in the environment"
            )
        return OpenAICompatProvider(
            api_key, base_url=custom.base_url, provider_label=provider_name
        )

    if provider_name in _COMPAT_ENDPOINTS:
        from .openai_compat import OpenAICompatProvider

        base_url, default_model = _COMPAT_ENDPOINTS[provider_name]
        return OpenAICompatProvider(
            api_key,
            base_url=base_url,
            provider_label=provider_name,
            default_model=default_model,
        )

    if provider_name not in _NATIVE_PROVIDERS:
        raise ValueError(
            f"Unknown LLM provider: {provider_name!r}. "
            f"Available: {', '.join(available_providers(custom_providers))}"
        )

    module_name, class_name = _NATIVE_PROVIDERS[provider_name]
    module = importlib.import_module(module_name, package=__package__)
    return getattr(module, class_name)(api_key)


# =============================================================================
# Cached oracle providers
# =============================================================================

_cached_providers: dict[str, LLMProvider] = {}


def get_oracle_provider(model_string: str) -> LLMProvider:
    """Get the cached provider serving a "provider/model" string."""
    provider_name, _ = parse_model_string(model_string)
    provider_name = _ALIASES.get(provider_name, provider_name)
    if provider_name not in _cached_providers:
        config = get_config()
        _cached_providers[provider_name] = get_provider(provider_name, config.providers)
    return _cached_providers[provider_name]


async def close_oracle_providers() -> None:
    """Close every cached provider's client and empty the cache."""
    for provider in list(_cached_providers.values()):
        await provider.close_async()
    _cached_providers.clear()


def reset_provider_cache() -> None:
    """Drop cached providers without closing them (for tests)."""
    _cached_providers.clear()


__all__ = [
    "LLMProvider",
    "TokenUsage",
    "available_providers",
    "get_provider",
    "get_oracle_provider",
    "close_oracle_providers",
    "reset_provider_cache",
    "parse_model_string",
]
