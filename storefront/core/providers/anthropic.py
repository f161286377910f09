"""Anthropic provider.

Claude has no JSON-schema response format, so the decision schema is offered
as the only tool and Claude is made to call it. The tool input is the answer.
"""

import logging

import anthropic

from .base import LLMProvider, TokenUsage

logger = logging.getLogger(__name__)


def _tool_schema(node):
    """Copy a JSON schema into a form a tool ``input_schema`` accepts.

    ``additionalProperties`` is kept only when it is ``false``.
    """
    if isinstance(node, list):
        return [_tool_schema(item) for item in node]
    if not isinstance(node, dict):
        return node

    cleaned = {}
    for key, value in node.items():
        if key == "additionalProperties" and value is not False:
            logger.debug(f"[anthropic] Dropping additionalProperties={value!r} from tool schema")
            continue
        cleaned[key] = _tool_schema(value)
    return cleaned


class AnthropicProvider(LLMProvider):
    provider_name = "anthropic"
    transient_errors = (
        anthropic.APIConnectionError,
        anthropic.InternalServerError,
        anthropic.RateLimitError,
    )

    def __init__(
        self,
        api_key: str = "",
        default_model: str = "claude-haiku-4-5-20251001",
        base_url: str = "",
    ) -> None:
        super().__init__(api_key, default_model, base_url=base_url)

    def _make_client(self) -> anthropic.AsyncAnthropic:
        if self._base_url:
            return anthropic.AsyncAnthropic(api_key=self._api_key, base_url=self._base_url)
        return anthropic.AsyncAnthropic(api_key=self._api_key)

    async def _request(self, model, prompt, schema, schema_name, max_tokens):
        tool = {
            "name": schema_name,
            "description": "Submit your answer. Always respond by calling this tool.",
            "input_schema": _tool_schema(schema),
        }
        response = await self.client.messages.create(
            model=model,
            max_tokens=max_tokens or 1024,
            tools=[tool],
            tool_choice={"type": "tool", "name": schema_name},
            messages=[{"role": "user", "content": prompt}],
        )
        data = next((b.input for b in response.content if b.type == "tool_use"), None)
        return data, TokenUsage.from_usage(getattr(response, "usage", None))
