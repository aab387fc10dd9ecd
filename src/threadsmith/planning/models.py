"""Immutable structure plans and the mutable story beat that owns threads."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from types import MappingProxyType
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from threadsmith.domain.types import AttachmentType, ThreadEmailIntent
from threadsmith.email.models import EmailThread


class ThreadAttachmentPlan(BaseModel):
    """Attachment flags planned for one slot."""

    model_config = ConfigDict(frozen=True)

    has_document: bool = False
    document_type: AttachmentType | None = None
    has_image: bool = False
    is_image_inline: bool = False
    has_voicemail: bool = False

    @model_validator(mode="after")
    def flags_must_be_consistent(self) -> ThreadAttachmentPlan:
        """Ensure a document type implies a document and inline implies an image."""
        if self.document_type is not None and not self.has_document:
            raise ValueError("document_type set without has_document")
        if self.is_image_inline and not self.has_image:
            raise ValueError("is_image_inline set without has_image")
        return self

    @property
    def count(self) -> int:
        return int(self.has_document) + int(self.has_image) + int(self.has_voicemail)


class ThreadEmailSlotPlan(BaseModel):
    """One planned position in a thread.  Created once by the planner."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    email_id: UUID
    parent_email_id: UUID | None = None
    root_email_id: UUID
    branch_id: UUID
    sent_date: datetime
    narrative_phase: str
    intent: ThreadEmailIntent
    attachments: ThreadAttachmentPlan = Field(default_factory=ThreadAttachmentPlan)

    @property
    def is_root(self) -> bool:
        return self.parent_email_id is None


class ThreadStructurePlan:
    """Ordered slots for a thread plus a lookup and a chronological order.

    Slots are stored by index.  The chronological order sorts by
    ``(sent_date, index)``.  Construction checks that exactly one slot is the
    root and that every parent exists and precedes its child both by index
    and chronologically.

    Raises:
        ValueError: If the slots do not form a valid single-rooted plan.
    """

    def __init__(
        self,
        thread_id: UUID,
        root_email_id: UUID,
        slots: Iterable[ThreadEmailSlotPlan],
    ) -> None:
        self.thread_id = thread_id
        self.root_email_id = root_email_id
        self._slots = tuple(sorted(slots, key=lambda s: s.index))
        self._lookup = {s.email_id: s for s in self._slots}
        self._chronological_order = tuple(
            s.email_id for s in sorted(self._slots, key=lambda s: (s.sent_date, s.index))
        )
        self._check_structure()

    def _check_structure(self) -> None:
        if len(self._lookup) != len(self._slots):
            raise ValueError("slot email ids must be unique")

        roots = [s for s in self._slots if s.is_root]
        if len(roots) != 1 or roots[0].email_id != self.root_email_id:
            raise ValueError(f"plan must have exactly one root, found {len(roots)}")

        position = {email_id: i for i, email_id in enumerate(self._chronological_order)}
        for slot in self._slots:
            if slot.parent_email_id is None:
                continue
            parent = self._lookup.get(slot.parent_email_id)
            if parent is None:
                raise ValueError(f"slot {slot.index} references an unknown parent")
            if parent.index >= slot.index or position[parent.email_id] >= position[slot.email_id]:
                raise ValueError(f"slot {slot.index} does not follow its parent {parent.index}")

    def __len__(self) -> int:
        return len(self._slots)

    @property
    def slots(self) -> tuple[ThreadEmailSlotPlan, ...]:
        return self._slots

    @property
    def slot_lookup(self) -> Mapping[UUID, ThreadEmailSlotPlan]:
        return MappingProxyType(self._lookup)

    @property
    def chronological_order(self) -> tuple[UUID, ...]:
        return self._chronological_order

    def parent_of(self, slot: ThreadEmailSlotPlan) -> ThreadEmailSlotPlan | None:
        if slot.parent_email_id is None:
            return None
        return self._lookup[slot.parent_email_id]

    def attachment_totals(self) -> tuple[int, int, int]:
        """Return ``(documents, images, voicemails)`` flagged across all slots."""
        docs = sum(1 for s in self._slots if s.attachments.has_document)
        images = sum(1 for s in self._slots if s.attachments.has_image)
        voicemails = sum(1 for s in self._slots if s.attachments.has_voicemail)
        return docs, images, voicemails


class StoryBeat:
    """A dated segment of a storyline that owns the threads planned for it."""

    def __init__(
        self,
        *,
        beat_id: UUID,
        storyline_id: UUID,
        name: str,
        start_date: datetime,
        end_date: datetime,
        plot: str = "",
    ) -> None:
        if end_date < start_date:
            raise ValueError(f"beat '{name}' ends before it starts")
        self.id = beat_id
        self.storyline_id = storyline_id
        self.name = name
        self.plot = plot
        self.start_date = start_date
        self.end_date = end_date
        self.email_count = 0
        self._threads: list[EmailThread] = []

    def __repr__(self) -> str:
        return f"StoryBeat(name={self.name!r}, emails={self.email_count}, threads={len(self._threads)})"

    @property
    def threads(self) -> tuple[EmailThread, ...]:
        return tuple(self._threads)

    def set_threads(self, threads: Iterable[EmailThread]) -> None:
        new_threads = list(threads)
        for thread in new_threads:
            if thread.story_beat_id != self.id:
                raise ValueError(f"thread {thread.id} does not belong to beat '{self.name}'")
        self._threads = new_threads
