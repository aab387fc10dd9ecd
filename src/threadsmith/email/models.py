"""Mutable email aggregates filled in during generation.

``EmailMessage`` is a pydantic model that is mutated in place as a slot is
generated or marked failed.  ``EmailThread`` owns its messages and
participants and only exposes them through accessor methods, so a thread is
the single owner of its collections.  Characters are referenced by id.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from threadsmith.domain.types import (
    AttachmentType,
    ThreadEmailIntent,
    ThreadRelevance,
    ThreadScope,
)


class EmailMessage(BaseModel):
    """A single message slot in a thread.

    Placeholders carry only the thread, beat and storyline ids plus their
    sequence number.  Structure fields (parent, branch, intent, dates and the
    ``planned_*`` attachment flags) are copied from the slot plan, and
    content fields are filled in by the generator.
    """

    id: UUID
    thread_id: UUID
    story_beat_id: UUID | None = None
    storyline_id: UUID | None = None
    sequence_in_thread: int = Field(ge=0)

    # Structure
    parent_email_id: UUID | None = None
    root_email_id: UUID | None = None
    branch_id: UUID | None = None
    intent: ThreadEmailIntent = ThreadEmailIntent.NEW
    narrative_phase: str = ""
    sent_date: datetime | None = None

    # Addressing
    from_character_id: UUID | None = None
    to_character_ids: list[UUID] = Field(default_factory=list)
    cc_character_ids: list[UUID] = Field(default_factory=list)

    # Content
    subject: str = ""
    body_plain: str = ""

    # Threading headers
    message_id_header: str = ""
    in_reply_to: str = ""
    references: list[str] = Field(default_factory=list)

    # Planned attachments
    planned_has_document: bool = False
    planned_document_type: AttachmentType | None = None
    planned_has_image: bool = False
    planned_is_image_inline: bool = False
    planned_has_voicemail: bool = False
    document_description: str = ""
    image_description: str = ""
    voicemail_context: str = ""

    # Outcome
    generation_failed: bool = False
    failure_reason: str = ""

    @property
    def is_root(self) -> bool:
        return self.parent_email_id is None

    @property
    def planned_attachment_count(self) -> int:
        return (
            int(self.planned_has_document)
            + int(self.planned_has_image)
            + int(self.planned_has_voicemail)
        )

    def mark_failed(self, reason: str) -> None:
        """Flag the message as failed; planned attachment flags are kept for audit."""
        self.generation_failed = True
        self.failure_reason = reason


class EmailThread:
    """A conversation owned by one story beat.

    Messages and participant ids are private lists; callers read immutable
    tuples and mutate through ``set_messages``, ``add_message``,
    ``clear_messages`` and ``set_participants``.
    """

    def __init__(
        self,
        *,
        story_beat_id: UUID | None = None,
        storyline_id: UUID | None = None,
        thread_id: UUID | None = None,
        scope: ThreadScope = ThreadScope.INTERNAL,
        relevance: ThreadRelevance = ThreadRelevance.NON_RESPONSIVE,
        is_hot: bool = False,
        topic: str = "",
        subject: str = "",
    ) -> None:
        self.id: UUID = thread_id or uuid.uuid4()
        self.story_beat_id = story_beat_id
        self.storyline_id = storyline_id
        self.scope = scope
        self.relevance = relevance
        self.is_hot = is_hot
        self.topic = topic
        self.subject = subject
        self._messages: list[EmailMessage] = []
        self._participant_ids: list[UUID] = []
        self._organizations: list[str] = []

    def __repr__(self) -> str:
        return (
            f"EmailThread(id={self.id}, messages={len(self._messages)}, "
            f"scope={self.scope.value}, relevance={self.relevance.value}, hot={self.is_hot})"
        )

    @property
    def messages(self) -> tuple[EmailMessage, ...]:
        return tuple(self._messages)

    @property
    def message_count(self) -> int:
        return len(self._messages)

    @property
    def participant_ids(self) -> tuple[UUID, ...]:
        return tuple(self._participant_ids)

    @property
    def organizations(self) -> tuple[str, ...]:
        return tuple(self._organizations)

    @property
    def is_responsive(self) -> bool:
        return self.is_hot or self.relevance == ThreadRelevance.RESPONSIVE

    def set_messages(self, messages: Iterable[EmailMessage]) -> None:
        """Replace all messages, rejecting any that belong to another thread."""
        new_messages = list(messages)
        for message in new_messages:
            if message.thread_id != self.id:
                raise ValueError(
                    f"message {message.id} belongs to thread {message.thread_id}, not {self.id}"
                )
        self._messages = new_messages

    def add_message(self, message: EmailMessage) -> None:
        if message.thread_id != self.id:
            raise ValueError(
                f"message {message.id} belongs to thread {message.thread_id}, not {self.id}"
            )
        self._messages.append(message)

    def clear_messages(self) -> None:
        self._messages = []

    def message_at(self, sequence: int) -> EmailMessage:
        """Return the message with the given ``sequence_in_thread``.

        Raises:
            KeyError: If no message has that sequence number.
        """
        for message in self._messages:
            if message.sequence_in_thread == sequence:
                return message
        raise KeyError(f"no message with sequence {sequence} in thread {self.id}")

    def set_participants(
        self, character_ids: Iterable[UUID], organizations: Iterable[str] = ()
    ) -> None:
        """Replace the participant ids and organization names, dropping duplicates."""
        self._participant_ids = list(dict.fromkeys(character_ids))
        self._organizations = list(dict.fromkeys(organizations))
