"""Per-thread work items and the run-wide context they execute against."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime

from threadsmith.domain.errors import GenerationCancelled
from threadsmith.domain.models import Character, GenerationConfig
from threadsmith.domain.types import GenerationMode
from threadsmith.email.models import EmailThread
from threadsmith.llm.client import ContentGenerator
from threadsmith.llm.prompts import EMAIL_SYSTEM_PROMPT
from threadsmith.orchestration.results import GenerationProgress, GenerationResult
from threadsmith.planning.models import ThreadStructurePlan

DEFAULT_DOMAIN = "threadsmith.example"


@dataclass(frozen=True)
class ThreadPlan:
    """Everything needed to generate one thread, fixed before any external call."""

    index: int
    thread: EmailThread
    email_count: int
    start: datetime
    end: datetime
    beat_name: str
    participants: tuple[Character, ...]
    structure_plan: ThreadStructurePlan
    thread_seed: int

    @property
    def participant_lookup(self) -> dict[str, Character]:
        """Participants keyed by lower-cased email address."""
        return {c.email.lower(): c for c in self.participants}


@dataclass
class ThreadPlanContext:
    """Shared collaborators and sinks for every unit of a run."""

    config: GenerationConfig
    generator: ContentGenerator
    result: GenerationResult = field(default_factory=GenerationResult)
    progress: GenerationProgress = field(default_factory=GenerationProgress)
    mode: GenerationMode = GenerationMode.EMAIL
    domain: str = DEFAULT_DOMAIN
    system_prompt: str = EMAIL_SYSTEM_PROMPT
    generation_seed: int = 0
    cancel_event: asyncio.Event | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise ``GenerationCancelled`` once the run's cancellation signal is set."""
        if self.is_cancelled:
            raise GenerationCancelled("generation run was cancelled")
