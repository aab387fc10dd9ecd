"""Application wiring: logging, configuration, generator and pipeline entry points.

Configures:
- **structlog** with JSON rendering (production) or colored console (development),
  written to stderr so command output on stdout stays parseable
- **GenerationConfig** from settings plus per-scenario overrides
- **AnthropicContentGenerator** with tenacity-backed retries
- **Planning** of every beat and thread without any external call
- **Generation** of the planned threads with bounded concurrency
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Sequence
from typing import Any

import structlog

from threadsmith.config import Settings, get_settings, validate_credentials
from threadsmith.domain.models import GenerationConfig
from threadsmith.domain.types import GenerationMode
from threadsmith.llm.client import AnthropicContentGenerator, ContentGenerator, get_anthropic_client
from threadsmith.orchestration.context import ThreadPlan
from threadsmith.orchestration.results import GenerationResult, ProgressCallback
from threadsmith.orchestration.runner import (
    build_thread_plans,
    calculate_planned_totals,
    run_generation,
)
from threadsmith.planning.beats import plan_email_threads_for_beats
from threadsmith.planning.models import StoryBeat
from threadsmith.scenario import Scenario, build_beats
from threadsmith.seeding.rng import create_rng

logger = structlog.get_logger()

_CONFIG_FIELDS = (
    "attachment_percentage",
    "include_word",
    "include_excel",
    "include_powerpoint",
    "include_images",
    "image_percentage",
    "include_voicemails",
    "voicemail_percentage",
    "include_calendar_invites",
    "calendar_invite_percentage",
    "parallel_threads",
    "max_thread_attempts",
    "max_email_repair_attempts",
)


def configure_logging(production: bool = False) -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode (*production=True*): JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.

    Args:
        production: Enable production mode if ``True``.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service="threadsmith")


def build_generation_config(settings: Settings, scenario: Scenario) -> GenerationConfig:
    """Merge settings defaults, the scenario's date range and its overrides.

    Raises:
        pydantic.ValidationError: If an override is out of range.
    """
    values: dict[str, Any] = {name: getattr(settings, name) for name in _CONFIG_FIELDS}
    values["start_date"] = min(b.start_date for b in scenario.beats)
    values["end_date"] = max(b.end_date for b in scenario.beats)
    values.update(scenario.config)
    return GenerationConfig.model_validate(values)


def build_generator(settings: Settings) -> ContentGenerator:
    """Create the Anthropic-backed content generator from settings."""
    api_key = settings.anthropic_api_key.get_secret_value() or None
    client = get_anthropic_client(api_key)
    return AnthropicContentGenerator(
        client,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        attempts=settings.anthropic_call_attempts,
    )


def resolve_seed(settings: Settings, scenario: Scenario) -> int:
    return scenario.seed if scenario.seed is not None else settings.generation_seed


def plan_beats(scenario: Scenario, seed: int) -> list[StoryBeat]:
    """Size every beat, split it into threads and apply the beat topics."""
    beats = build_beats(scenario)
    rng = create_rng("beat-plan", seed, scenario.storyline)
    plan_email_threads_for_beats(beats, scenario.resolved_key_participant_count, rng)

    for beat, spec in zip(beats, scenario.beats, strict=True):
        for thread in beat.threads:
            thread.topic = spec.topic or beat.name
    return beats


def plan_scenario(
    scenario: Scenario, settings: Settings | None = None
) -> tuple[GenerationConfig, list[StoryBeat], list[ThreadPlan]]:
    """Plan a scenario end to end without calling the content generator.

    Returns:
        The effective configuration, the planned beats and one
        ``ThreadPlan`` per thread.
    """
    if settings is None:
        settings = get_settings()

    config = build_generation_config(settings, scenario)
    seed = resolve_seed(settings, scenario)
    beats = plan_beats(scenario, seed)
    plans = build_thread_plans(beats, scenario.characters, config, seed)
    logger.info("scenario_planned", storyline=scenario.storyline, threads=len(plans))
    return config, beats, plans


def describe_plans(
    beats: Sequence[StoryBeat], plans: Sequence[ThreadPlan], config: GenerationConfig
) -> dict[str, Any]:
    """Render beats and thread plans as JSON-serialisable data."""
    totals = calculate_planned_totals(plans, config)
    by_beat: dict[Any, list[dict[str, Any]]] = {b.id: [] for b in beats}

    for plan in plans:
        index_by_id = {s.email_id: s.index for s in plan.structure_plan.slots}
        slots = []
        for slot in plan.structure_plan.slots:
            attachments = slot.attachments
            slots.append(
                {
                    "index": slot.index,
                    "email_id": str(slot.email_id),
                    "parent_index": index_by_id.get(slot.parent_email_id)
                    if slot.parent_email_id
                    else None,
                    "branch_id": str(slot.branch_id),
                    "sent_date": slot.sent_date.isoformat(),
                    "intent": slot.intent.value,
                    "narrative_phase": slot.narrative_phase.split(" - ")[0],
                    "document": attachments.document_type.value
                    if attachments.document_type
                    else None,
                    "image": attachments.has_image,
                    "inline_image": attachments.is_image_inline,
                    "voicemail": attachments.has_voicemail,
                }
            )

        thread = plan.thread
        by_beat[thread.story_beat_id].append(
            {
                "thread_id": str(thread.id),
                "scope": thread.scope.value,
                "relevance": thread.relevance.value,
                "is_hot": thread.is_hot,
                "email_count": plan.email_count,
                "window_start": plan.start.isoformat(),
                "window_end": plan.end.isoformat(),
                "participants": [c.email for c in plan.participants],
                "slots": slots,
            }
        )

    return {
        "totals": {
            "threads": totals.threads,
            "emails": totals.emails,
            "attachments": totals.attachments,
            "images": totals.images,
        },
        "beats": [
            {
                "name": beat.name,
                "start_date": beat.start_date.isoformat(),
                "end_date": beat.end_date.isoformat(),
                "email_count": beat.email_count,
                "thread_sizes": [t.message_count for t in beat.threads],
                "threads": by_beat[beat.id],
            }
            for beat in beats
        ],
    }


async def run_pipeline(
    scenario: Scenario,
    settings: Settings | None = None,
    *,
    generator: ContentGenerator | None = None,
    progress_callback: ProgressCallback | None = None,
    cancel_event: asyncio.Event | None = None,
) -> GenerationResult:
    """Plan a scenario and generate every thread.

    Args:
        scenario: The storyline to generate.
        settings: Application settings.  If ``None``, ``get_settings()`` is used.
        generator: Content generator override; the Anthropic-backed one is
            built from settings when omitted.
        progress_callback: Optional sink for progress snapshots.
        cancel_event: Optional cooperative cancellation signal.

    Returns:
        The run's ``GenerationResult``.
    """
    if settings is None:
        settings = get_settings()
    if generator is None:
        validate_credentials(settings)
        generator = build_generator(settings)

    config = build_generation_config(settings, scenario)
    seed = resolve_seed(settings, scenario)
    beats = plan_beats(scenario, seed)

    return await run_generation(
        beats,
        scenario.characters,
        config,
        generator,
        mode=GenerationMode(settings.generation_mode),
        generation_seed=seed,
        domain=settings.company_domain,
        progress_callback=progress_callback,
        cancel_event=cancel_event,
    )
