"""OpenAI provider: Responses API with a strict JSON-schema text format."""

import json

import openai

from .base import LLMProvider, TokenUsage

# Also used by OpenAICompatProvider, which talks through the same SDK
OPENAI_TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.InternalServerError,
    openai.RateLimitError,
)


class OpenAIProvider(LLMProvider):
    provider_name = "openai"
    transient_errors = OPENAI_TRANSIENT_ERRORS

    def __init__(self, api_key: str = "", default_model: str = "gpt-5-mini") -> None:
        super().__init__(api_key, default_model)

    def _make_client(self) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(api_key=self._api_key)

    async def _request(self, model, prompt, schema, schema_name, max_tokens):
        params = {
            "model": model,
            "input": prompt,
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                }
            },
        }
        if max_tokens is not None:
            params["max_output_tokens"] = max_tokens

        response = await self.client.responses.create(**params)
        text = response.output_text
        usage = TokenUsage.from_usage(getattr(response, "usage", None))
        return (json.loads(text) if text else None), usage
