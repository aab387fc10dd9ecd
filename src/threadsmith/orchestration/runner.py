"""Run-level orchestration: thread plans, bounded concurrency, reconciliation.

Planning is synchronous and happens before any external call, so planning
errors (``RangeError``, ``StateError``) reach the caller directly.  Each
thread is then an independent unit of work gated by an
``asyncio.Semaphore`` sized to ``config.parallel_threads``.  A unit that
fails is recorded on the result and never stops the run; cancellation is
reported through ``GenerationResult.was_cancelled``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from threadsmith.domain.errors import GenerationCancelled
from threadsmith.domain.models import Character, GenerationConfig
from threadsmith.domain.types import GenerationMode
from threadsmith.email.placeholders import ensure_placeholder_messages
from threadsmith.llm.client import ContentGenerator
from threadsmith.orchestration.context import DEFAULT_DOMAIN, ThreadPlan, ThreadPlanContext
from threadsmith.orchestration.email_generation import (
    generate_thread_by_email,
    resolve_thread_subject,
)
from threadsmith.orchestration.results import (
    GenerationProgress,
    GenerationResult,
    ProgressCallback,
    count_planned_attachments,
)
from threadsmith.orchestration.thread_generation import generate_thread_with_retries
from threadsmith.planning.attachments import (
    calculate_attachment_totals,
    calculate_calendar_invite_checks,
)
from threadsmith.planning.beats import thread_windows
from threadsmith.planning.models import StoryBeat
from threadsmith.planning.participants import (
    assign_thread_participants,
    resolve_thread_participants,
)
from threadsmith.planning.planner import build_plan
from threadsmith.seeding.derive import derive_seed
from threadsmith.seeding.rng import create_rng

logger = structlog.get_logger()


@dataclass(frozen=True)
class PlannedTotals:
    threads: int
    emails: int
    attachments: int
    images: int


def build_thread_plans(
    beats: Sequence[StoryBeat],
    characters: Sequence[Character],
    config: GenerationConfig,
    generation_seed: int,
) -> list[ThreadPlan]:
    """Assign participants and build a structure plan for every planned thread.

    Beats without emails or threads are skipped.  Each thread's window is its
    share of the beat's range.

    Raises:
        StateError: If a beat's threads do not add up to its email count.
        RangeError: If a thread window or count is invalid.
    """
    plans: list[ThreadPlan] = []
    for beat in beats:
        if beat.email_count <= 0 or not beat.threads:
            continue

        for thread, start, end in thread_windows(beat):
            email_count = thread.message_count
            rng = create_rng("thread-participants", generation_seed, thread.id.hex)
            assign_thread_participants(thread, characters, rng)
            ensure_placeholder_messages(thread, email_count)

            participants = resolve_thread_participants(thread, characters)
            structure_plan = build_plan(thread, email_count, start, end, config, generation_seed)
            plans.append(
                ThreadPlan(
                    index=len(plans),
                    thread=thread,
                    email_count=email_count,
                    start=start,
                    end=end,
                    beat_name=beat.name,
                    participants=tuple(participants),
                    structure_plan=structure_plan,
                    thread_seed=derive_seed("thread-gen", generation_seed, thread.id.hex),
                )
            )
            logger.debug(
                "thread_structure_planned",
                thread_id=str(thread.id),
                beat_name=beat.name,
                email_count=email_count,
                participants=len(participants),
            )

    return plans


def calculate_planned_totals(plans: Sequence[ThreadPlan], config: GenerationConfig) -> PlannedTotals:
    """Totals used to size progress: documents, images, voicemails and calendar checks."""
    emails = 0
    attachments = 0
    images = 0
    for plan in plans:
        emails += plan.email_count
        docs, image_count, voicemails = calculate_attachment_totals(config, plan.email_count)
        calendar = calculate_calendar_invite_checks(config, plan.email_count)
        attachments += docs + image_count + voicemails + calendar
        images += image_count
    return PlannedTotals(threads=len(plans), emails=emails, attachments=attachments, images=images)


async def generate_thread_plan(plan: ThreadPlan, context: ThreadPlanContext) -> None:
    """Generate one thread, reconcile its attachments and record the outcome.

    Raises:
        GenerationCancelled: If the run is cancelled; every other failure is
            recorded on ``context.result``.
    """
    thread = plan.thread
    subject = resolve_thread_subject(thread, plan.beat_name)
    stage = "thread-generation"

    with structlog.contextvars.bound_contextvars(
        thread_id=str(thread.id),
        beat_name=plan.beat_name,
        planned_email_count=plan.email_count,
    ):
        try:
            if context.mode == GenerationMode.THREAD:
                generated = await generate_thread_with_retries(plan, context)
            else:
                generated = await generate_thread_by_email(plan, context)

            if generated is None:
                context.result.record_thread(False)
                context.progress.thread_completed(subject, False)
                return

            stage = "reconciliation"
            documents, images, voicemails = count_planned_attachments(generated)
            context.result.record_attachments(documents, images, voicemails)
            context.progress.attachments_completed(
                sum(documents.values()) + images + voicemails, images
            )
            context.result.add_thread(plan.index, generated)

            success = all(not m.generation_failed for m in generated.messages)
            context.result.record_thread(success, email_count=generated.message_count)
            context.progress.thread_completed(generated.subject or subject, success)
            if success:
                logger.info("thread_completed", stage=stage, subject=generated.subject)
        except GenerationCancelled:
            raise
        except Exception as exc:
            context.result.add_error(
                f"Thread '{subject}' (thread {thread.id}) failed during {stage}: {exc}"
            )
            logger.exception("thread_failed_during_stage", stage=stage)
            context.result.record_thread(False)
            context.progress.thread_completed(subject, False)


async def run_generation(
    beats: Sequence[StoryBeat],
    characters: Sequence[Character],
    config: GenerationConfig,
    generator: ContentGenerator,
    *,
    mode: GenerationMode = GenerationMode.EMAIL,
    generation_seed: int = 0,
    domain: str = DEFAULT_DOMAIN,
    progress_callback: ProgressCallback | None = None,
    cancel_event: asyncio.Event | None = None,
) -> GenerationResult:
    """Plan and generate every thread of every beat.

    At most ``config.parallel_threads`` threads are generated at once.  The
    cancellation signal is checked before each thread and before every
    attempt inside it; once set, running units stop at their next check and
    the returned result has ``was_cancelled`` set.

    Args:
        beats: Beats whose threads were planned by ``plan_email_threads_for_beats``.
        characters: The full character arena.
        config: Read-only generation configuration.
        generator: Content generator used for every request.
        mode: Generate one email at a time or a whole thread per request.
        generation_seed: Run-level seed for every derived random stream.
        domain: Domain used in generated ``Message-ID`` headers.
        progress_callback: Optional sink for progress snapshots.
        cancel_event: Optional cooperative cancellation signal.

    Returns:
        The run's ``GenerationResult``.

    Raises:
        RangeError: If planning receives invalid counts or dates.
        StateError: If planned threads disagree with their beats.
    """
    context = ThreadPlanContext(
        config=config,
        generator=generator,
        result=GenerationResult(),
        progress=GenerationProgress(progress_callback),
        mode=mode,
        domain=domain,
        generation_seed=generation_seed,
        cancel_event=cancel_event,
    )

    plans = build_thread_plans(beats, characters, config, generation_seed)
    totals = calculate_planned_totals(plans, config)
    context.progress.set_totals(totals.emails, totals.attachments, totals.images)
    logger.info(
        "generation_started",
        mode=mode.value,
        threads=totals.threads,
        emails=totals.emails,
        attachments=totals.attachments,
        parallel_threads=config.parallel_threads,
    )

    semaphore = asyncio.Semaphore(config.parallel_threads)

    async def run_unit(plan: ThreadPlan) -> None:
        async with semaphore:
            try:
                context.raise_if_cancelled()
                context.progress.set_operation(
                    f"Generating thread {plan.index + 1} of {totals.threads}",
                    storyline=plan.beat_name,
                )
                await generate_thread_plan(plan, context)
            except GenerationCancelled:
                logger.info("thread_generation_cancelled", thread_id=str(plan.thread.id))

    await asyncio.gather(*(run_unit(plan) for plan in plans))

    if context.is_cancelled:
        context.result.mark_cancelled()
        logger.warning("generation_cancelled")

    logger.info(
        "generation_finished",
        succeeded_threads=context.result.succeeded_threads,
        failed_threads=context.result.failed_threads,
        succeeded_emails=context.result.succeeded_emails,
        failed_emails=context.result.failed_emails,
        errors=len(context.result.errors),
        cancelled=context.result.was_cancelled,
    )
    return context.result
