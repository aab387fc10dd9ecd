"""Whole-thread generation with a bounded number of full retries.

One request asks for every planned email at once.  The response is checked
against the structure plan; a rejected attempt is discarded completely and
the next attempt starts from fresh placeholders.  Dates, parents and
attachment flags always come from the plan, never from the response.
"""

from __future__ import annotations

from uuid import UUID

import structlog

from threadsmith.domain.errors import ExternalCallFailure
from threadsmith.domain.models import Character
from threadsmith.domain.types import GenerationState, ThreadEmailIntent
from threadsmith.email.models import EmailMessage, EmailThread
from threadsmith.email.placeholders import reset_thread_for_retry
from threadsmith.email.threading import (
    format_forwarded_content,
    format_quoted_reply,
    get_clean_subject,
    setup_threading,
)
from threadsmith.llm.models import EmailDto, ThreadApiResponse
from threadsmith.llm.prompts import THREAD_USER_PROMPT, build_participant_list, build_slot_list
from threadsmith.llm.validation import validate_thread_response
from threadsmith.orchestration.context import ThreadPlan, ThreadPlanContext
from threadsmith.orchestration.email_generation import resolve_slot_subject, resolve_thread_subject
from threadsmith.planning.models import ThreadEmailSlotPlan
from threadsmith.state_machine import GenerationEvent, GenerationStateMachine

logger = structlog.get_logger()


def build_thread_prompt(plan: ThreadPlan) -> str:
    thread = plan.thread
    return THREAD_USER_PROMPT.format(
        beat_name=plan.beat_name,
        topic=thread.topic or resolve_thread_subject(thread, plan.beat_name),
        relevance="hot" if thread.is_hot else thread.relevance.value,
        window_start=f"{plan.start:%Y-%m-%d}",
        window_end=f"{plan.end:%Y-%m-%d}",
        participant_list=build_participant_list(plan.participants),
        email_count=plan.email_count,
        slot_list=build_slot_list(plan.structure_plan),
    )


def _resolve(addresses: list[str], lookup: dict[str, Character]) -> list[Character]:
    resolved = [lookup[a.lower()] for a in addresses if a.lower() in lookup]
    return list({c.id: c for c in resolved}.values())


def _apply_email(
    target: EmailMessage,
    slot: ThreadEmailSlotPlan,
    email: EmailDto,
    subject: str,
    parent: EmailMessage | None,
    lookup: dict[str, Character],
    characters: dict[UUID, Character],
) -> None:
    sender = lookup[email.from_email.lower()]
    to = _resolve(email.to_emails, lookup)
    cc = [c for c in _resolve(email.cc_emails, lookup) if c.id not in {t.id for t in to}]

    body = email.body_plain.strip()
    if parent is not None:
        parent_sender = characters.get(parent.from_character_id) if parent.from_character_id else None
        if slot.intent == ThreadEmailIntent.FORWARD:
            body += format_forwarded_content(
                parent,
                parent_sender,
                [characters[i] for i in parent.to_character_ids if i in characters],
                [characters[i] for i in parent.cc_character_ids if i in characters],
            )
        else:
            body += format_quoted_reply(parent, parent_sender)

    target.sequence_in_thread = slot.index
    target.parent_email_id = slot.parent_email_id
    target.root_email_id = slot.root_email_id
    target.branch_id = slot.branch_id
    target.intent = slot.intent
    target.narrative_phase = slot.narrative_phase
    target.sent_date = slot.sent_date
    target.from_character_id = sender.id
    target.to_character_ids = [c.id for c in to]
    target.cc_character_ids = [c.id for c in cc]
    target.subject = resolve_slot_subject(subject, slot.intent, slot.index)
    target.body_plain = body

    planned = slot.attachments
    target.planned_has_document = planned.has_document
    target.planned_document_type = planned.document_type
    target.document_description = email.document_description if planned.has_document else ""
    target.planned_has_image = planned.has_image
    target.planned_is_image_inline = planned.is_image_inline
    target.image_description = email.image_description if planned.has_image else ""
    target.planned_has_voicemail = planned.has_voicemail
    target.voicemail_context = email.voicemail_context if planned.has_voicemail else ""
    target.generation_failed = False
    target.failure_reason = ""


def apply_thread_response(
    plan: ThreadPlan, context: ThreadPlanContext, response: ThreadApiResponse
) -> EmailThread:
    """Copy a validated response into the thread's placeholders, slot by slot."""
    thread = plan.thread
    subject = get_clean_subject(response.subject)
    thread.subject = subject
    lookup = plan.participant_lookup
    characters = {c.id: c for c in plan.participants}

    generated: dict[UUID, EmailMessage] = {}
    for slot, email in zip(plan.structure_plan.slots, response.emails, strict=True):
        target = thread.message_at(slot.index)
        parent = generated.get(slot.parent_email_id) if slot.parent_email_id else None
        _apply_email(target, slot, email, subject, parent, lookup, characters)
        generated[target.id] = target
        context.result.record_email(True)
        context.progress.email_completed(target.subject, True)

    setup_threading(thread, context.domain)
    return thread


async def generate_thread_with_retries(
    plan: ThreadPlan, context: ThreadPlanContext
) -> EmailThread | None:
    """Generate the whole thread, retrying rejected attempts from scratch.

    Returns:
        The filled thread, or ``None`` once ``max_thread_attempts`` attempts
        have been rejected.  In that case exactly one error naming the beat
        and the attempt count is added to the run result.

    Raises:
        GenerationCancelled: If the run is cancelled before an attempt.
    """
    thread = plan.thread
    machine = GenerationStateMachine(max_attempts=context.config.max_thread_attempts)
    machine.trigger(GenerationEvent.START)
    prompt = build_thread_prompt(plan)
    logger.info("thread_generation_started", mode="thread", email_count=plan.email_count)

    while True:
        context.raise_if_cancelled()
        reset_thread_for_retry(thread, plan.email_count)
        operation = f"Thread Generation (thread {thread.id}, attempt {machine.attempts})"

        try:
            response = await context.generator.generate(
                context.system_prompt, prompt, ThreadApiResponse, operation
            )
        except ExternalCallFailure as exc:
            reason = str(exc)
        else:
            validation = validate_thread_response(
                response,
                plan.structure_plan,
                list(plan.participants),
                plan.start,
                plan.end,
            )
            if validation.passed:
                machine.trigger(GenerationEvent.SUCCEED)
                apply_thread_response(plan, context, response)
                logger.info("thread_generation_finished", mode="thread", attempts=machine.attempts)
                return thread
            reason = validation.summary()

        logger.warning("thread_attempt_rejected", attempt=machine.attempts, reason=reason)
        machine.trigger(GenerationEvent.REJECT)
        if machine.advance_after_rejection() == GenerationState.FAILED:
            break

    context.result.add_error(
        f"Thread generation for beat '{plan.beat_name}' failed after "
        f"{machine.attempts} attempts: {reason}"
    )
    for _ in range(plan.email_count):
        context.result.record_email(False)
        context.progress.email_completed(thread.subject or plan.beat_name, False)
    logger.error("thread_generation_exhausted", attempts=machine.attempts)
    return None
