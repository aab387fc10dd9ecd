"""Content-generator boundary and its Anthropic-backed implementation.

The orchestrator depends only on the ``ContentGenerator`` protocol: an
async call taking a system prompt, a user prompt and the pydantic model the
response must parse into.  Any failure surfaces as ``ExternalCallFailure``.
"""

from __future__ import annotations

import asyncio
import json
from typing import Protocol, TypeVar

import anthropic
import structlog
from anthropic import Anthropic
from pydantic import BaseModel, ValidationError

from threadsmith.domain.errors import ExternalCallFailure
from threadsmith.resilience.retry import resilient_api_call

logger = structlog.get_logger()

GENERATION_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_MAX_TOKENS = 8192

# Transport-level failures worth retrying with backoff
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)

T = TypeVar("T", bound=BaseModel)


def get_anthropic_client(api_key: str | None = None) -> Anthropic:
    """Create an Anthropic client.

    With no *api_key* the constructor reads ``ANTHROPIC_API_KEY`` from the
    environment.

    Returns:
        Configured Anthropic client instance.
    """
    if api_key:
        return Anthropic(api_key=api_key)
    return Anthropic()


class ContentGenerator(Protocol):
    """Opaque, possibly failing, possibly slow structured generation call."""

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        output_model: type[T],
        operation: str,
    ) -> T:
        """Return a parsed *output_model* or raise ``ExternalCallFailure``."""
        ...


class AnthropicContentGenerator:
    """``ContentGenerator`` backed by ``client.messages.parse()``.

    The synchronous client call runs in a worker thread so it does not block
    the event loop.  Transient transport errors are retried by
    ``resilient_api_call``; any other API error, and structured output that
    fails to parse, becomes ``ExternalCallFailure``.
    """

    def __init__(
        self,
        client: Anthropic,
        *,
        model: str = GENERATION_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        attempts: int = 3,
    ) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens

        def parse_once(system_prompt: str, user_prompt: str, output_model: type[T]) -> T:
            return self._parse_once(system_prompt, user_prompt, output_model)

        self._parse = resilient_api_call(
            "anthropic.messages.parse", attempts=attempts, retry_on=TRANSIENT_ERRORS
        )(parse_once)

    def _parse_once(self, system_prompt: str, user_prompt: str, output_model: type[T]) -> T:
        response = self._client.messages.parse(
            model=self._model,
            max_tokens=self._max_tokens,
            system=[
                {
                    "type": "text",
                    "text": system_prompt,
                    "cache_control": {"type": "ephemeral"},
                }
            ],
            messages=[
                {
                    "role": "user",
                    "content": user_prompt,
                }
            ],
            output_format=output_model,
        )
        parsed = response.parsed_output
        if parsed is None:
            raise ExternalCallFailure("anthropic.messages.parse", "structured output was empty")
        return parsed

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        output_model: type[T],
        operation: str,
    ) -> T:
        logger.debug("content_generation_started", operation=operation, model=self._model)
        try:
            result = await asyncio.to_thread(
                self._parse, system_prompt, user_prompt, output_model
            )
        except ExternalCallFailure:
            raise
        except anthropic.APIError as exc:
            raise ExternalCallFailure(operation, str(exc)) from exc
        except (ValidationError, json.JSONDecodeError) as exc:
            logger.warning("structured_output_invalid", operation=operation, error=str(exc))
            raise ExternalCallFailure(operation, f"invalid structured output: {exc}") from exc
        logger.debug("content_generation_finished", operation=operation)
        return result
