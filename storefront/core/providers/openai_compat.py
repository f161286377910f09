"""Chat Completions provider for OpenAI-compatible endpoints.

Serves Gemini, OpenRouter, DeepSeek, Together, Groq and user-configured
endpoints through ``openai.AsyncOpenAI(base_url=...)``, asking for a
``json_schema`` response format.
"""

import json

import openai

from .base import LLMProvider, TokenUsage
from .openai import OPENAI_TRANSIENT_ERRORS


class OpenAICompatProvider(LLMProvider):
    transient_errors = OPENAI_TRANSIENT_ERRORS

    def __init__(
        self,
        api_key: str = "",
        *,
        base_url: str = "",
        provider_label: str = "openai_compat",
        default_model: str = "gpt-5-mini",
    ) -> None:
        self.provider_name = provider_label
        super().__init__(api_key, default_model, base_url=base_url)

    def _make_client(self) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(api_key=self._api_key, base_url=self._base_url or None)

    async def _request(self, model, prompt, schema, schema_name, max_tokens):
        params: dict = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "strict": True, "schema": schema},
            },
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        response = await self.client.chat.completions.create(**params)
        text = response.choices[0].message.content if response.choices else None
        usage = TokenUsage.from_usage(
            getattr(response, "usage", None), "prompt_tokens", "completion_tokens"
        )
        return (json.loads(text) if text else None), usage
