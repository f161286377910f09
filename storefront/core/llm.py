"""LLM client facade for Storefront.

Model strings use "provider/model" format. The provider is extracted to route
to the correct backend; the model name is passed through.

Configure via `storefront config` CLI or programmatically via storefront.config.configure().
"""

from .providers import get_oracle_provider, close_oracle_providers
from .providers.base import TokenUsage
from ..config import get_config, parse_model_string


__all__ = [
    "simple_call_async",
    "close_oracle_providers",
    "TokenUsage",
]


async def simple_call_async(
    prompt: str,
    response_schema: dict,
    schema_name: str = "response",
    model: str | None = None,
    max_tokens: int | None = None,
) -> tuple[dict, TokenUsage]:
    """Structured-output call routed by model string.

    Falls back to config.oracle.model when no model is given.
    Returns (structured_data, token_usage) tuple.
    """
    config = get_config()
    model_string = model or config.oracle.model
    _, model_name = parse_model_string(model_string)
    provider = get_oracle_provider(model_string)
    return await provider.simple_call_async(
        prompt=prompt,
        response_schema=response_schema,
        schema_name=schema_name,
        model=model_name,
        max_tokens=max_tokens,
    )
