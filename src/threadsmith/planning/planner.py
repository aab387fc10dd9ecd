"""Per-thread structure planning: dates, parents, branches, intents, attachments.

All randomness for one plan comes from a generator seeded with
``derive_seed("thread-plan", generation_seed, thread_id)``, so the same
thread id, window, configuration and run seed always yield the same plan.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

import structlog

from threadsmith.domain.errors import RangeError, ValidationError
from threadsmith.domain.models import GenerationConfig
from threadsmith.domain.types import AttachmentType, ThreadEmailIntent
from threadsmith.email.models import EmailThread
from threadsmith.planning.attachments import calculate_attachment_totals, pick_attachment_slots
from threadsmith.planning.models import (
    ThreadAttachmentPlan,
    ThreadEmailSlotPlan,
    ThreadStructurePlan,
)
from threadsmith.seeding.derive import derive_id
from threadsmith.seeding.rng import create_rng
from threadsmith.volume.dates import distribute_dates_for_thread

logger = structlog.get_logger()

SIDE_BRANCH_FORWARD_ODDS = 0.45
MAIN_LINE_FORWARD_ODDS = 0.12
INLINE_IMAGE_ODDS = 0.7

PHASE_SINGLE = "SINGLE - Introduce the conflict and leave open questions."
PHASE_BEGINNING = "BEGINNING - Set up the conflict and stakes."
PHASE_MIDDLE = "MIDDLE - Escalate tension and develop the conflict."
PHASE_LATE = "LATE - Escalate consequences without full resolution."


@dataclass
class _AttachmentAssignments:
    document_slots: set[int] = field(default_factory=set)
    document_types: dict[int, AttachmentType] = field(default_factory=dict)
    image_slots: set[int] = field(default_factory=set)
    inline_images: set[int] = field(default_factory=set)
    voicemail_slots: set[int] = field(default_factory=set)


def resolve_branch_count(email_count: int, rng: random.Random) -> int:
    """Number of side branches for a thread of *email_count* messages."""
    if email_count < 5:
        return 0
    if email_count < 8:
        return 1 if rng.random() < 0.6 else 0
    if email_count < 12:
        return 1 if rng.random() < 0.7 else 2
    return 1 if rng.random() < 0.4 else 2


def build_parent_plan(email_count: int, rng: random.Random) -> list[int]:
    """Return the parent index of every slot, ``-1`` for the root.

    Slots default to replying to their predecessor.  Each side branch
    re-attaches one slot (index 2 or later) to an earlier ancestor that is
    not its immediate predecessor.
    """
    if email_count <= 0:
        return []

    parents = [i - 1 for i in range(email_count)]
    branch_count = resolve_branch_count(email_count, rng)

    used_children: set[int] = set()
    for _ in range(branch_count):
        child = rng.randrange(2, email_count)
        if child in used_children:
            continue
        used_children.add(child)
        parents[child] = rng.randrange(0, child - 1)

    return parents


def resolve_intent(index: int, parent_index: int, rng: random.Random) -> ThreadEmailIntent:
    """Root slots are new; side-branch slots forward more often than main-line ones."""
    if index == 0 or parent_index < 0:
        return ThreadEmailIntent.NEW
    odds = SIDE_BRANCH_FORWARD_ODDS if parent_index != index - 1 else MAIN_LINE_FORWARD_ODDS
    return ThreadEmailIntent.FORWARD if rng.random() < odds else ThreadEmailIntent.REPLY


def resolve_narrative_phase(index: int, total: int) -> str:
    """Label a slot by its relative position in the thread."""
    if total <= 1:
        return PHASE_SINGLE
    fraction = index / max(1, total - 1)
    if fraction < 0.34:
        return PHASE_BEGINNING
    if fraction > 0.66:
        return PHASE_LATE
    return PHASE_MIDDLE


def _build_attachment_assignments(
    email_count: int, config: GenerationConfig, rng: random.Random
) -> _AttachmentAssignments:
    docs, images, voicemails = calculate_attachment_totals(config, email_count)
    assignments = _AttachmentAssignments()

    assignments.document_slots = pick_attachment_slots(email_count, docs, rng)
    if config.include_images:
        assignments.image_slots = pick_attachment_slots(email_count, images, rng)
    if config.include_voicemails:
        assignments.voicemail_slots = pick_attachment_slots(email_count, voicemails, rng)

    enabled = config.enabled_attachment_types
    if enabled:
        for slot in sorted(assignments.document_slots):
            assignments.document_types[slot] = rng.choice(enabled)

    for slot in sorted(assignments.image_slots):
        if rng.random() < INLINE_IMAGE_ODDS:
            assignments.inline_images.add(slot)

    return assignments


def _attachment_plan_for_slot(
    index: int, assignments: _AttachmentAssignments
) -> ThreadAttachmentPlan:
    has_document = index in assignments.document_slots
    has_image = index in assignments.image_slots
    return ThreadAttachmentPlan(
        has_document=has_document,
        document_type=assignments.document_types.get(index) if has_document else None,
        has_image=has_image,
        is_image_inline=has_image and index in assignments.inline_images,
        has_voicemail=index in assignments.voicemail_slots,
    )


def build_plan(
    thread: EmailThread,
    email_count: int,
    start: datetime,
    end: datetime,
    config: GenerationConfig,
    generation_seed: int,
) -> ThreadStructurePlan:
    """Build the structure plan for *thread*.

    Args:
        thread: Thread whose placeholders the plan describes.  Slot email ids
            are taken from its messages so plan and placeholders line up.
        email_count: Number of slots; must equal the placeholder count.
        start: Start of the thread's send window.
        end: End of the thread's send window.
        config: Attachment and generation configuration.
        generation_seed: Run-level seed.

    Returns:
        A ``ThreadStructurePlan`` with exactly *email_count* slots whose
        attachment flags match the computed quotas.

    Raises:
        RangeError: If *email_count* is not positive or *end* precedes *start*.
        ValidationError: If *email_count* differs from the thread's
            placeholder count.
    """
    if email_count <= 0:
        raise RangeError(f"thread email count must be positive, got {email_count}")
    if end < start:
        raise RangeError(f"thread window end {end} precedes start {start}")
    if thread.message_count != email_count:
        raise ValidationError(
            f"thread {thread.id} has {thread.message_count} placeholders "
            f"but {email_count} emails were requested"
        )

    rng = create_rng("thread-plan", generation_seed, thread.id.hex)

    dates = distribute_dates_for_thread(email_count, start, end, rng)
    parents = build_parent_plan(email_count, rng)
    assignments = _build_attachment_assignments(email_count, config, rng)

    email_ids: list[UUID] = [
        m.id for m in sorted(thread.messages, key=lambda m: m.sequence_in_thread)
    ]
    root_id = email_ids[0]

    branch_ids: list[UUID] = [derive_id("email-branch", thread.id.hex, "root")]
    slots: list[ThreadEmailSlotPlan] = []
    for i in range(email_count):
        parent_index = parents[i]
        if i > 0:
            if parent_index == i - 1:
                branch_ids.append(branch_ids[parent_index])
            else:
                branch_ids.append(derive_id("email-branch", thread.id.hex, parent_index, i))

        slots.append(
            ThreadEmailSlotPlan(
                index=i,
                email_id=email_ids[i],
                parent_email_id=email_ids[parent_index] if parent_index >= 0 else None,
                root_email_id=root_id,
                branch_id=branch_ids[i],
                sent_date=dates[i],
                narrative_phase=resolve_narrative_phase(i, email_count),
                intent=resolve_intent(i, parent_index, rng),
                attachments=_attachment_plan_for_slot(i, assignments),
            )
        )

    plan = ThreadStructurePlan(thread.id, root_id, slots)
    docs, images, voicemails = plan.attachment_totals()
    logger.debug(
        "thread_plan_built",
        thread_id=str(thread.id),
        email_count=email_count,
        branches=sum(1 for i, p in enumerate(parents) if i > 0 and p != i - 1),
        documents=docs,
        images=images,
        voicemails=voicemails,
    )
    return plan
