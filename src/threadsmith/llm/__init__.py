"""Content-generator boundary: client, response models, prompts, validation."""

from threadsmith.llm.client import (
    GENERATION_MODEL,
    AnthropicContentGenerator,
    ContentGenerator,
    get_anthropic_client,
)
from threadsmith.llm.models import (
    EmailDraftResponse,
    EmailDto,
    ThreadApiResponse,
    ValidationFailure,
    ValidationResult,
)
from threadsmith.llm.validation import validate_email_body, validate_thread_response

__all__ = [
    "GENERATION_MODEL",
    "AnthropicContentGenerator",
    "ContentGenerator",
    "EmailDraftResponse",
    "EmailDto",
    "ThreadApiResponse",
    "ValidationFailure",
    "ValidationResult",
    "get_anthropic_client",
    "validate_email_body",
    "validate_thread_response",
]
