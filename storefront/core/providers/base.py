"""Provider base: one structured-output request per persona decision.

A backend supplies a client factory and a single ``_request``. The base class
owns the API key check, the shared async client and transient-error backoff.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

# Extra attempts after the first one fails transiently
API_RETRIES = 3


@dataclass
class TokenUsage:
    """Token counts reported for one request."""

    input_tokens: int = 0
    output_tokens: int = 0

    @classmethod
    def from_usage(
        cls,
        usage: Any,
        input_attr: str = "input_tokens",
        output_attr: str = "output_tokens",
    ) -> "TokenUsage":
        """Read counts off an SDK usage object; missing usage counts as zero."""
        if usage is None:
            return cls()
        return cls(
            input_tokens=getattr(usage, input_attr, 0) or 0,
            output_tokens=getattr(usage, output_attr, 0) or 0,
        )


async def call_with_backoff(
    call: Callable[[], Awaitable[Any]],
    transient: tuple[type[BaseException], ...],
    label: str,
    retries: int = API_RETRIES,
) -> Any:
    """Await ``call()``, retrying transient errors with jittered exponential waits.

    Anything not in ``transient`` propagates immediately; a transient error
    propagates once ``retries`` extra attempts are used up.
    """
    attempt = 0
    while True:
        try:
            return await call()
        except transient as e:
            if attempt >= retries:
                raise
            wait = 2**attempt + random.random()
            attempt += 1
            logger.warning(
                f"[{label}] {type(e).__name__} on attempt {attempt}/{retries + 1}, "
                f"retrying in {wait:.1f}s: {e}"
            )
            await asyncio.sleep(wait)


class LLMProvider(ABC):
    """A backend that answers one prompt with JSON matching a schema.

    The async client is created on first use and shared by every call, so the
    concurrent decisions of a turn reuse one connection pool. Call
    ``close_async`` before the event loop shuts down.
    """

    provider_name: str = "unknown"
    transient_errors: tuple[type[BaseException], ...] = ()

    def __init__(self, api_key: str, default_model: str, base_url: str = "") -> None:
        if not api_key:
            raise ValueError(
                f"No API key for {self.provider_name}. Set "
                f"{self.provider_name.upper()}_API_KEY in the environment or .env"
            )
        self._api_key = api_key
        self._base_url = base_url
        self._client = None
        self.default_model = default_model

    @property
    def client(self):
        if self._client is None:
            self._client = self._make_client()
        return self._client

    async def close_async(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    @abstractmethod
    def _make_client(self):
        """Build the SDK's async client."""

    @abstractmethod
    async def _request(
        self,
        model: str,
        prompt: str,
        schema: dict,
        schema_name: str,
        max_tokens: int | None,
    ) -> tuple[dict | None, TokenUsage]:
        """Send one request; return the parsed object (None if absent) and usage."""

    async def simple_call_async(
        self,
        prompt: str,
        response_schema: dict,
        schema_name: str = "response",
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> tuple[dict, TokenUsage]:
        """Structured-output call. Returns ``(data, usage)``; ``data`` is ``{}`` when empty."""
        model = model or self.default_model
        data, usage = await call_with_backoff(
            lambda: self._request(model, prompt, response_schema, schema_name, max_tokens),
            self.transient_errors,
            self.provider_name,
        )
        logger.debug(
            f"[{self.provider_name}] {schema_name} model={model} "
            f"tokens={usage.input_tokens}/{usage.output_tokens}"
        )
        return data or {}, usage
