"""Pydantic models defining structured I/O contracts for content generation.

These models are used for:
- Whole-thread generation (structured output from Claude)
- Single-email drafts for the per-email repair path
- Deterministic validation gate results
"""

from pydantic import BaseModel, Field


class EmailDto(BaseModel):
    """One email as returned by the content generator for a whole thread."""

    from_email: str = Field(description="Sender email address; must be a thread participant")
    to_emails: list[str] = Field(
        default_factory=list,
        description="Recipient email addresses; each must be a thread participant",
    )
    cc_emails: list[str] = Field(
        default_factory=list,
        description="CC email addresses; each must be a thread participant",
    )
    sent_date_time: str = Field(
        default="",
        description="ISO 8601 local send time, e.g. '2024-03-05T09:12:00'",
    )
    body_plain: str = Field(description="Plain-text body without quoted history")
    is_reply: bool = Field(default=False, description="True if this email replies to another")
    is_forward: bool = Field(default=False, description="True if this email forwards another")
    reply_to_index: int | None = Field(
        default=None,
        description="Zero-based index of the email this one answers or forwards",
    )
    has_document: bool = Field(default=False, description="Whether a document is attached")
    document_type: str | None = Field(
        default=None,
        description="Document kind: 'word', 'excel' or 'powerpoint'",
    )
    document_description: str = Field(default="", description="Short description of the document")
    has_image: bool = Field(default=False, description="Whether an image is attached")
    image_description: str = Field(default="", description="Short description of the image")
    is_image_inline: bool = Field(default=False, description="Whether the image is shown inline")
    has_voicemail: bool = Field(default=False, description="Whether a voicemail accompanies the email")
    voicemail_context: str = Field(default="", description="What the voicemail is about")


class ThreadApiResponse(BaseModel):
    """Structured whole-thread response from the content generator."""

    subject: str = Field(description="Subject line of the root email, without prefixes")
    emails: list[EmailDto] = Field(
        default_factory=list,
        description="Emails in planned slot order",
    )


class EmailDraftResponse(BaseModel):
    """Structured single-email response used by the per-email path."""

    body_plain: str = Field(
        default="",
        description="Plain-text body including greeting and signature, without quoted history",
    )


class ValidationFailure(BaseModel):
    """A single validation check failure from the deterministic validation gate."""

    check: str = Field(description="Name of the validation check that failed")
    reason: str = Field(description="Human-readable explanation of the failure")
    severity: str = Field(
        default="error",
        description="Severity level: 'error' rejects the response, 'warning' logs but allows",
    )


class ValidationResult(BaseModel):
    """Result of running all validation checks on a generated response.

    The validation gate is entirely deterministic -- no LLM involved.
    """

    passed: bool = Field(description="Whether all error-severity checks passed")
    failures: list[ValidationFailure] = Field(
        default_factory=list,
        description="List of validation failures found",
    )

    @property
    def errors(self) -> list[str]:
        return [f.reason for f in self.failures if f.severity == "error"]

    def summary(self) -> str:
        """Join error reasons into one line for error logs."""
        return "; ".join(self.errors) or "no errors"
