"""Email-by-email generation with per-email repair and attachment carry-forward.

Slots are generated strictly in plan order, so every parent is filled in
before its children.  Each slot runs its own ``GenerationStateMachine``
whose attempt budget is one initial draft plus the configured number of
repairs.  A slot that exhausts its budget is filled with a fixed failure
body and marked failed; the thread carries on with the next slot.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from uuid import UUID

import structlog

from threadsmith.domain.errors import ExternalCallFailure
from threadsmith.domain.models import Character
from threadsmith.domain.types import AttachmentType, GenerationState, ThreadEmailIntent
from threadsmith.email.models import EmailMessage, EmailThread
from threadsmith.email.placeholders import reset_thread_for_retry
from threadsmith.email.threading import (
    add_forward_prefix,
    add_reply_prefix,
    format_forwarded_content,
    format_quoted_reply,
    get_clean_subject,
    setup_threading,
)
from threadsmith.llm.models import EmailDraftResponse
from threadsmith.llm.prompts import (
    EMAIL_REPAIR_USER_PROMPT,
    SINGLE_EMAIL_USER_PROMPT,
    build_attachment_section,
    build_parent_section,
)
from threadsmith.llm.validation import validate_email_body
from threadsmith.orchestration.carryover import (
    AttachmentCarryover,
    AttachmentRequirement,
    build_attachment_requirement,
)
from threadsmith.orchestration.context import ThreadPlan, ThreadPlanContext
from threadsmith.planning.models import ThreadEmailSlotPlan
from threadsmith.state_machine import GenerationEvent, GenerationStateMachine

logger = structlog.get_logger()

DEFAULT_TOPIC = "Project update"
NO_BODY_ERROR = "LLM returned no email body."
UNKNOWN_FAILURE = "Unknown email generation failure."

NEW_CC_ODDS = 0.25
REPLY_CC_ODDS = 0.4
FORWARD_CC_ODDS = 0.2


@dataclass(frozen=True)
class SlotParticipants:
    """Sender and recipients chosen for one slot."""

    sender: Character
    to: list[Character]
    cc: list[Character]


@dataclass(frozen=True)
class AttachmentDetails:
    document_description: str = ""
    image_description: str = ""
    voicemail_context: str = ""


@dataclass
class _ExecutionState:
    plan: ThreadPlan
    context: ThreadPlanContext
    rng: random.Random
    subject: str
    topic: str
    carryover: AttachmentCarryover = field(default_factory=AttachmentCarryover)
    generated: dict[UUID, EmailMessage] = field(default_factory=dict)
    failed_emails: int = 0

    @property
    def characters(self) -> dict[UUID, Character]:
        return {c.id: c for c in self.plan.participants}


def resolve_thread_subject(thread: EmailThread, beat_name: str) -> str:
    """Subject for a thread: its own subject, else its topic, else the beat name."""
    for candidate in (thread.subject, thread.topic, beat_name):
        if candidate and candidate.strip():
            return get_clean_subject(candidate)
    return DEFAULT_TOPIC


def resolve_slot_subject(thread_subject: str, intent: ThreadEmailIntent, index: int) -> str:
    if intent == ThreadEmailIntent.FORWARD:
        return add_forward_prefix(thread_subject)
    if intent == ThreadEmailIntent.REPLY and index > 0:
        return add_reply_prefix(thread_subject)
    return thread_subject


def _distinct(characters: list[Character]) -> list[Character]:
    return list({c.id: c for c in characters}.values())


def resolve_participants_for_slot(
    slot: ThreadEmailSlotPlan,
    participants: list[Character],
    parent: EmailMessage | None,
    rng: random.Random,
) -> SlotParticipants:
    """Pick sender, To and CC for a slot.

    New messages go from a random participant to another one, with an
    occasional CC.  Replies come from one of the parent's recipients and go
    back to the parent's sender.  Forwards go to someone outside the
    parent's audience when possible.

    Raises:
        ValueError: If *participants* is empty.
    """
    if not participants:
        raise ValueError("no participants available for thread")

    by_id = {c.id: c for c in participants}

    def lookup(ids: list[UUID]) -> list[Character]:
        return [by_id[i] for i in ids if i in by_id]

    to: list[Character] = []
    cc: list[Character] = []

    if slot.intent == ThreadEmailIntent.NEW or parent is None:
        sender = participants[rng.randrange(len(participants))]
        to_pool = [c for c in participants if c.id != sender.id] or list(participants)
        to.append(to_pool[rng.randrange(len(to_pool))])
        if len(participants) > 2 and rng.random() < NEW_CC_ODDS:
            cc_pool = [c for c in participants if c.id not in (sender.id, to[0].id)]
            if cc_pool:
                cc.append(cc_pool[rng.randrange(len(cc_pool))])

    elif slot.intent == ThreadEmailIntent.REPLY:
        audience = _distinct(lookup([*parent.to_character_ids, *parent.cc_character_ids]))
        from_pool = audience or list(participants)
        sender = from_pool[rng.randrange(len(from_pool))]

        parent_sender = by_id.get(parent.from_character_id) if parent.from_character_id else None
        if parent_sender is None or parent_sender.id == sender.id:
            reply_to = next((c for c in participants if c.id != sender.id), sender)
        else:
            reply_to = parent_sender
        to.append(reply_to)

        if rng.random() < REPLY_CC_ODDS:
            excluded = {sender.id, reply_to.id}
            cc_pool = [c for c in audience if c.id not in excluded]
            if not cc_pool:
                cc_pool = [c for c in participants if c.id not in excluded]
            cc.extend(cc_pool)

    else:
        audience = _distinct(lookup([*parent.to_character_ids, *parent.cc_character_ids]))
        from_pool = audience or list(participants)
        sender = from_pool[rng.randrange(len(from_pool))]

        excluded = {c.id for c in audience} | {sender.id}
        if parent.from_character_id is not None:
            excluded.add(parent.from_character_id)
        to_pool = [c for c in participants if c.id not in excluded]
        if not to_pool:
            to_pool = [c for c in participants if c.id != sender.id] or list(participants)
        to.append(to_pool[rng.randrange(len(to_pool))])

        if len(participants) > 2 and rng.random() < FORWARD_CC_ODDS:
            cc_pool = [c for c in participants if c.id not in (sender.id, to[0].id)]
            if cc_pool:
                cc.append(cc_pool[rng.randrange(len(cc_pool))])

    return SlotParticipants(sender=sender, to=to, cc=cc)


def _resolve_document_type(state: _ExecutionState, requirement: AttachmentRequirement) -> AttachmentType:
    if requirement.document_type is not None:
        return requirement.document_type
    enabled = state.context.config.enabled_attachment_types
    return enabled[0] if enabled else AttachmentType.WORD


def build_attachment_details(
    requirement: AttachmentRequirement,
    document_type: AttachmentType,
    topic: str,
    narrative_phase: str,
) -> AttachmentDetails:
    """Short descriptions handed to the prompt and stored on the message."""
    topic = topic.strip() or DEFAULT_TOPIC
    phase = narrative_phase.split(" - ")[0].strip().lower() or "update"

    document = ""
    if requirement.requires_document:
        if document_type == AttachmentType.EXCEL:
            document = f"{topic} tracker ({phase})"
        elif document_type == AttachmentType.POWERPOINT:
            document = f"{topic} slides ({phase})"
        else:
            document = f"{topic} summary ({phase})"

    return AttachmentDetails(
        document_description=document,
        image_description=f"Screenshot related to {topic} ({phase})" if requirement.requires_image else "",
        voicemail_context=f"Follow-up on {topic} ({phase})" if requirement.requires_voicemail else "",
    )


def _names(characters: list[Character]) -> str:
    return ", ".join(c.display_name for c in characters) or "(none)"


def _build_email_prompt(
    state: _ExecutionState,
    slot: ThreadEmailSlotPlan,
    parent: EmailMessage | None,
    people: SlotParticipants,
    details: AttachmentDetails,
) -> str:
    return SINGLE_EMAIL_USER_PROMPT.format(
        slot_number=slot.index + 1,
        email_count=state.plan.email_count,
        beat_name=state.plan.beat_name,
        topic=state.topic,
        subject=resolve_slot_subject(state.subject, slot.intent, slot.index),
        phase=slot.narrative_phase,
        intent=slot.intent.value,
        sent_date=f"{slot.sent_date:%Y-%m-%d %H:%M}",
        sender=people.sender.display_name,
        to_list=_names(people.to),
        cc_list=_names(people.cc),
        signature=people.sender.signature_block or people.sender.full_name,
        parent_section=build_parent_section(slot, parent),
        attachment_section=build_attachment_section(
            details.document_description or None,
            details.image_description or None,
            details.voicemail_context or None,
        ),
    )


async def _request_draft(
    state: _ExecutionState,
    slot: ThreadEmailSlotPlan,
    parent: EmailMessage | None,
    requirement: AttachmentRequirement,
    prompt: str,
    operation: str,
) -> tuple[str, list[str]]:
    """Ask for one draft and validate it.  Returns ``(body, errors)``."""
    context = state.context
    try:
        response = await context.generator.generate(
            context.system_prompt, prompt, EmailDraftResponse, operation
        )
    except ExternalCallFailure as exc:
        return "", [str(exc)]

    body = response.body_plain if response is not None else ""
    if not body or not body.strip():
        return "", [NO_BODY_ERROR]

    validation = validate_email_body(
        body,
        slot,
        parent is not None,
        requires_document=requirement.requires_document,
        requires_image=requirement.requires_image,
        requires_voicemail=requirement.requires_voicemail,
    )
    return body, validation.errors


async def generate_validated_draft(
    state: _ExecutionState,
    slot: ThreadEmailSlotPlan,
    parent: EmailMessage | None,
    requirement: AttachmentRequirement,
    people: SlotParticipants,
    details: AttachmentDetails,
) -> tuple[str | None, list[str]]:
    """Run the draft/repair loop for one slot.

    Returns:
        ``(body, [])`` on success, or ``(None, errors)`` once the repair
        budget is spent.
    """
    context = state.context
    repairs = max(0, context.config.max_email_repair_attempts)
    machine = GenerationStateMachine(max_attempts=repairs + 1)
    machine.trigger(GenerationEvent.START)

    original_prompt = _build_email_prompt(state, slot, parent, people, details)
    thread_id = state.plan.thread.id
    errors: list[str] = []
    last_body = ""

    while True:
        context.raise_if_cancelled()

        if machine.attempts == 1:
            prompt = original_prompt
            operation = f"Email Generation (thread {thread_id}, slot {slot.index + 1})"
        else:
            prompt = EMAIL_REPAIR_USER_PROMPT.format(
                problems="\n".join(f"- {e}" for e in errors),
                previous_body=last_body or "(empty)",
                original_prompt=original_prompt,
            )
            operation = (
                f"Email Repair (thread {thread_id}, slot {slot.index + 1}, "
                f"attempt {machine.attempts - 1})"
            )

        body, errors = await _request_draft(state, slot, parent, requirement, prompt, operation)
        if body:
            last_body = body
        if not errors:
            machine.trigger(GenerationEvent.SUCCEED)
            return body, []

        logger.debug(
            "email_draft_rejected",
            slot_index=slot.index,
            attempt=machine.attempts,
            errors=errors,
        )
        machine.trigger(GenerationEvent.REJECT)
        if machine.advance_after_rejection() == GenerationState.FAILED:
            return None, errors


def _append_quoted_content(
    body: str,
    parent: EmailMessage | None,
    is_forward: bool,
    characters: dict[UUID, Character],
) -> str:
    if parent is None:
        return body
    sender = characters.get(parent.from_character_id) if parent.from_character_id else None
    if is_forward:
        to = [characters[i] for i in parent.to_character_ids if i in characters]
        cc = [characters[i] for i in parent.cc_character_ids if i in characters]
        return body + format_forwarded_content(parent, sender, to, cc)
    return body + format_quoted_reply(parent, sender)


def _stamp_structure(target: EmailMessage, thread: EmailThread, slot: ThreadEmailSlotPlan) -> None:
    target.thread_id = thread.id
    target.story_beat_id = thread.story_beat_id
    target.storyline_id = thread.storyline_id
    target.sequence_in_thread = slot.index
    target.parent_email_id = slot.parent_email_id
    target.root_email_id = slot.root_email_id
    target.branch_id = slot.branch_id
    target.intent = slot.intent
    target.narrative_phase = slot.narrative_phase
    target.sent_date = slot.sent_date


def apply_draft_to_email(
    state: _ExecutionState,
    target: EmailMessage,
    slot: ThreadEmailSlotPlan,
    body: str,
    parent: EmailMessage | None,
    people: SlotParticipants,
    requirement: AttachmentRequirement,
    details: AttachmentDetails,
) -> None:
    """Fill a placeholder from a validated draft and the slot plan."""
    _stamp_structure(target, state.plan.thread, slot)
    target.from_character_id = people.sender.id
    target.to_character_ids = [c.id for c in people.to]
    target.cc_character_ids = [c.id for c in people.cc]
    target.subject = resolve_slot_subject(state.subject, slot.intent, slot.index)
    target.body_plain = _append_quoted_content(
        body, parent, slot.intent == ThreadEmailIntent.FORWARD, state.characters
    )

    target.planned_has_document = requirement.requires_document
    target.planned_document_type = (
        _resolve_document_type(state, requirement) if requirement.requires_document else None
    )
    target.document_description = details.document_description
    target.planned_has_image = requirement.requires_image
    target.planned_is_image_inline = requirement.requires_image and requirement.is_image_inline
    target.image_description = details.image_description
    target.planned_has_voicemail = requirement.requires_voicemail
    target.voicemail_context = details.voicemail_context
    target.generation_failed = False
    target.failure_reason = ""


def populate_failure_email(
    state: _ExecutionState,
    target: EmailMessage,
    slot: ThreadEmailSlotPlan,
    reason: str,
) -> None:
    """Fill a placeholder whose generation failed so the thread stays continuous.

    The slot's own planned attachment flags are kept for audit; the
    carry-forward queue is what moves them to a later message.
    """
    participants = list(state.plan.participants)
    sender = participants[0]
    recipient = next((c for c in participants if c.id != sender.id), sender)

    _stamp_structure(target, state.plan.thread, slot)
    target.from_character_id = sender.id
    target.to_character_ids = [recipient.id]
    target.cc_character_ids = []
    target.subject = resolve_slot_subject(state.subject or "Untitled thread", slot.intent, slot.index)
    target.body_plain = (
        f"Hi {recipient.first_name},\n\n"
        "This email could not be generated due to an internal error.\n\n"
        f"{sender.signature_block}"
    )

    planned = slot.attachments
    target.planned_has_document = planned.has_document
    target.planned_document_type = planned.document_type
    target.planned_has_image = planned.has_image
    target.planned_is_image_inline = planned.is_image_inline
    target.planned_has_voicemail = planned.has_voicemail
    target.document_description = ""
    target.image_description = ""
    target.voicemail_context = ""
    target.mark_failed(reason)


async def generate_email_for_slot(state: _ExecutionState, slot: ThreadEmailSlotPlan) -> bool:
    """Generate (or fail) one slot and update the carryover.  Returns success."""
    plan = state.plan
    context = state.context
    thread = plan.thread
    target = thread.message_at(slot.index)

    parent = state.generated.get(slot.parent_email_id) if slot.parent_email_id else None
    requirement = build_attachment_requirement(
        slot, state.carryover, is_final_slot=slot.index == plan.email_count - 1
    )
    people = resolve_participants_for_slot(slot, list(plan.participants), parent, state.rng)
    details = build_attachment_details(
        requirement,
        _resolve_document_type(state, requirement),
        state.topic,
        slot.narrative_phase,
    )

    body, errors = await generate_validated_draft(state, slot, parent, requirement, people, details)
    success = body is not None
    if body is not None:
        apply_draft_to_email(state, target, slot, body, parent, people, requirement, details)
    else:
        reason = "; ".join(errors) or UNKNOWN_FAILURE
        populate_failure_email(state, target, slot, reason)
        state.failed_emails += 1
        context.result.add_error(
            f"Email slot {slot.index + 1} failed for thread {thread.id}: {reason}"
        )
        logger.warning(
            "email_generation_failed",
            slot_index=slot.index,
            subject=target.subject,
            reason=reason,
        )

    state.generated[target.id] = target
    state.carryover.update(slot, requirement, success=success)
    context.result.record_email(success)
    context.progress.email_completed(target.subject or state.subject, success)

    if requirement.is_final_slot and state.carryover.has_pending:
        logger.warning(
            "thread_completed_with_pending_attachments",
            pending_documents=len(state.carryover.pending_documents),
            pending_images=state.carryover.pending_images,
            pending_voicemails=state.carryover.pending_voicemails,
        )
    return success


async def generate_thread_by_email(plan: ThreadPlan, context: ThreadPlanContext) -> EmailThread:
    """Generate every slot of *plan* one email at a time.

    The thread's placeholders are recreated first, so the call can be
    repeated.  Failed slots never abort the thread.

    Raises:
        GenerationCancelled: If the run is cancelled before a slot or attempt.
        ValueError: If the plan has no participants.
    """
    thread = plan.thread
    if not plan.participants:
        raise ValueError(f"thread {thread.id} has no participants")

    reset_thread_for_retry(thread, plan.email_count)
    subject = resolve_thread_subject(thread, plan.beat_name)
    thread.subject = subject
    state = _ExecutionState(
        plan=plan,
        context=context,
        rng=random.Random(plan.thread_seed),
        subject=subject,
        topic=thread.topic or subject,
    )

    logger.info("thread_generation_started", mode="email", email_count=plan.email_count)
    for slot in plan.structure_plan.slots:
        context.raise_if_cancelled()
        await generate_email_for_slot(state, slot)

    setup_threading(thread, context.domain)
    logger.info(
        "thread_generation_finished",
        mode="email",
        failed_emails=state.failed_emails,
    )
    return thread
