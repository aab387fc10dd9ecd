"""Pydantic v2 models for the read-only inputs of the generation core."""

from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from threadsmith.domain.types import AttachmentType


def _default_end() -> datetime:
    return datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)


def _default_start() -> datetime:
    return _default_end() - timedelta(days=90)


class Character(BaseModel):
    """A person who can send or receive email in the simulated world.

    Characters live in a flat collection keyed by ``id``; the organization
    they belong to is referenced by name rather than by nesting.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    first_name: str
    last_name: str = ""
    email: str
    organization: str = ""
    role: str = ""
    department: str = ""
    personality: str = ""
    signature_block: str = ""
    is_key_character: bool = False

    @field_validator("email")
    @classmethod
    def email_must_have_domain(cls, v: str) -> str:
        """Ensure the address has a local part and a domain."""
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError(f"invalid email address: {v!r}")
        return v.strip()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        return f"{self.full_name} <{self.email}>"

    @property
    def domain(self) -> str:
        return self.email.split("@", 1)[1]


class GenerationConfig(BaseModel):
    """Read-only configuration consumed by the planner and orchestrator.

    Percentages are whole numbers in ``0..100``.  ``enabled_attachment_types``
    is derived from the ``include_*`` document flags; images and voicemails
    are planned separately from documents.
    """

    model_config = ConfigDict(frozen=True)

    start_date: datetime = Field(default_factory=_default_start)
    end_date: datetime = Field(default_factory=_default_end)

    attachment_percentage: int = Field(default=20, ge=0, le=100)
    include_word: bool = True
    include_excel: bool = True
    include_powerpoint: bool = True

    include_images: bool = False
    image_percentage: int = Field(default=10, ge=0, le=100)

    include_voicemails: bool = False
    voicemail_percentage: int = Field(default=5, ge=0, le=100)

    include_calendar_invites: bool = True
    calendar_invite_percentage: int = Field(default=10, ge=0, le=100)

    parallel_threads: int = Field(default=3, ge=1)
    max_thread_attempts: int = Field(default=3, ge=1)
    max_email_repair_attempts: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def end_must_not_precede_start(self) -> GenerationConfig:
        """Ensure the configured date range is not inverted."""
        if self.end_date < self.start_date:
            raise ValueError(
                f"end_date ({self.end_date}) must not precede start_date ({self.start_date})"
            )
        return self

    @property
    def enabled_attachment_types(self) -> list[AttachmentType]:
        types: list[AttachmentType] = []
        if self.include_word:
            types.append(AttachmentType.WORD)
        if self.include_excel:
            types.append(AttachmentType.EXCEL)
        if self.include_powerpoint:
            types.append(AttachmentType.POWERPOINT)
        return types
