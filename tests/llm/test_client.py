"""Tests for the Anthropic-backed content generator using a mocked client.

All tests use a mocked Anthropic client -- no real API calls are made.
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import anthropic
import pydantic
import pytest

from threadsmith.domain.errors import ExternalCallFailure
from threadsmith.llm.client import GENERATION_MODEL, AnthropicContentGenerator
from threadsmith.llm.models import EmailDraftResponse


@pytest.fixture()
def mock_anthropic_client() -> MagicMock:
    """Return a MagicMock standing in for anthropic.Anthropic."""
    return MagicMock()


def make_mock_parse_response(parsed: EmailDraftResponse | None) -> MagicMock:
    """Wrap a parsed model in a mock ParsedMessage-like object."""
    response = MagicMock()
    response.parsed_output = parsed
    return response


def test_generate_returns_parsed_output(mock_anthropic_client: MagicMock) -> None:
    draft = EmailDraftResponse(body_plain="Hi Bob,\n\nSee the attached report.\n\nAlice")
    mock_anthropic_client.messages.parse.return_value = make_mock_parse_response(draft)
    generator = AnthropicContentGenerator(mock_anthropic_client, max_tokens=1024)

    result = asyncio.run(
        generator.generate("system text", "user text", EmailDraftResponse, "Email Generation")
    )

    assert result == draft
    kwargs = mock_anthropic_client.messages.parse.call_args.kwargs
    assert kwargs["model"] == GENERATION_MODEL
    assert kwargs["max_tokens"] == 1024
    assert kwargs["output_format"] is EmailDraftResponse
    assert kwargs["system"][0]["text"] == "system text"
    assert kwargs["system"][0]["cache_control"] == {"type": "ephemeral"}
    assert kwargs["messages"] == [{"role": "user", "content": "user text"}]


def test_custom_model_is_used(mock_anthropic_client: MagicMock) -> None:
    mock_anthropic_client.messages.parse.return_value = make_mock_parse_response(
        EmailDraftResponse(body_plain="ok")
    )
    generator = AnthropicContentGenerator(mock_anthropic_client, model="claude-test-model")

    asyncio.run(generator.generate("s", "u", EmailDraftResponse, "op"))

    assert mock_anthropic_client.messages.parse.call_args.kwargs["model"] == "claude-test-model"


def test_empty_structured_output_raises(mock_anthropic_client: MagicMock) -> None:
    mock_anthropic_client.messages.parse.return_value = make_mock_parse_response(None)
    generator = AnthropicContentGenerator(mock_anthropic_client, attempts=1)

    with pytest.raises(ExternalCallFailure, match="structured output was empty"):
        asyncio.run(generator.generate("s", "u", EmailDraftResponse, "op"))

    assert mock_anthropic_client.messages.parse.call_count == 1


def test_api_error_becomes_external_call_failure(mock_anthropic_client: MagicMock) -> None:
    mock_anthropic_client.messages.parse.side_effect = anthropic.APIError(
        "invalid request", MagicMock(), body=None
    )
    generator = AnthropicContentGenerator(mock_anthropic_client, attempts=3)

    with pytest.raises(ExternalCallFailure, match="Email Generation failed: invalid request") as exc_info:
        asyncio.run(generator.generate("s", "u", EmailDraftResponse, "Email Generation"))

    assert exc_info.value.operation == "Email Generation"
    assert mock_anthropic_client.messages.parse.call_count == 1


def test_unparseable_structured_output_becomes_external_call_failure(
    mock_anthropic_client: MagicMock,
) -> None:
    with pytest.raises(pydantic.ValidationError) as invalid:
        EmailDraftResponse.model_validate_json('{"body_plain": "truncated')
    mock_anthropic_client.messages.parse.side_effect = invalid.value
    generator = AnthropicContentGenerator(mock_anthropic_client, attempts=3)

    with pytest.raises(ExternalCallFailure, match="invalid structured output") as exc_info:
        asyncio.run(generator.generate("s", "u", EmailDraftResponse, "Email Repair"))

    assert exc_info.value.operation == "Email Repair"
    assert isinstance(exc_info.value.__cause__, pydantic.ValidationError)
    assert mock_anthropic_client.messages.parse.call_count == 1
