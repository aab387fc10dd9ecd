"""Fixtures for orchestration tests: a scripted content generator and plan builders."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import pytest
from pydantic import BaseModel

from threadsmith.domain.errors import ExternalCallFailure
from threadsmith.domain.models import Character, GenerationConfig
from threadsmith.domain.types import ThreadEmailIntent
from threadsmith.email.models import EmailThread
from threadsmith.email.placeholders import ensure_placeholder_messages
from threadsmith.orchestration.context import ThreadPlan, ThreadPlanContext
from threadsmith.planning.models import (
    ThreadAttachmentPlan,
    ThreadEmailSlotPlan,
    ThreadStructurePlan,
)
from threadsmith.planning.planner import resolve_narrative_phase
from threadsmith.seeding.derive import derive_id, derive_seed

WINDOW_START = datetime(2024, 3, 4, 9, 0)
WINDOW_END = datetime(2024, 3, 8, 17, 0)

ALL_MENTIONS_BODY = (
    "Hi all,\n\nPlease see the attached report and the screenshot below. "
    "I also left you a voicemail about it.\n\nThanks"
)


@dataclass(frozen=True)
class GeneratorCall:
    system_prompt: str
    user_prompt: str
    output_model: type[BaseModel]
    operation: str


Responder = Callable[[GeneratorCall], Any]


class ScriptedGenerator:
    """Async ``ContentGenerator`` that replays queued responses.

    Each queued item is returned as-is, or raised when it is an exception.
    Once the queue is empty the optional *responder* is called with the
    request; without one the call fails with ``ExternalCallFailure``.
    """

    def __init__(self, responses: Iterable[Any] = (), responder: Responder | None = None) -> None:
        self._responses = deque(responses)
        self._responder = responder
        self.calls: list[GeneratorCall] = []

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        output_model: type[BaseModel],
        operation: str,
    ) -> Any:
        call = GeneratorCall(system_prompt, user_prompt, output_model, operation)
        self.calls.append(call)

        if self._responses:
            item = self._responses.popleft()
        elif self._responder is not None:
            item = self._responder(call)
        else:
            raise ExternalCallFailure(operation, "no scripted response left")

        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def scripted_generator() -> type[ScriptedGenerator]:
    """The ``ScriptedGenerator`` class, for building per-test instances."""
    return ScriptedGenerator


@pytest.fixture
def all_mentions_body() -> str:
    """A draft body that satisfies every attachment mention check."""
    return ALL_MENTIONS_BODY


@pytest.fixture
def thread_participants(acme_characters: list[Character]) -> tuple[Character, ...]:
    """Alice, Bob and Carol from Acme."""
    return tuple(acme_characters[:3])


@pytest.fixture
def make_plan(thread_participants: tuple[Character, ...]):
    """Factory for a single-branch ``ThreadPlan`` with explicit slot attachments."""

    def factory(
        email_count: int,
        *,
        attachments: dict[int, ThreadAttachmentPlan] | None = None,
        intents: dict[int, ThreadEmailIntent] | None = None,
        key: str = "orchestration",
        beat_name: str = "Budget review",
        topic: str = "Budget",
        index: int = 0,
    ) -> ThreadPlan:
        thread = EmailThread(
            thread_id=derive_id("test-thread", key),
            story_beat_id=derive_id("test-beat", key),
            storyline_id=derive_id("test-storyline", key),
            topic=topic,
        )
        ensure_placeholder_messages(thread, email_count)
        thread.set_participants(c.id for c in thread_participants)
        ids = [m.id for m in thread.messages]

        slots = []
        for i in range(email_count):
            default_intent = ThreadEmailIntent.NEW if i == 0 else ThreadEmailIntent.REPLY
            slots.append(
                ThreadEmailSlotPlan(
                    index=i,
                    email_id=ids[i],
                    parent_email_id=ids[i - 1] if i > 0 else None,
                    root_email_id=ids[0],
                    branch_id=derive_id("test-branch", key),
                    sent_date=WINDOW_START + timedelta(hours=i),
                    narrative_phase=resolve_narrative_phase(i, email_count),
                    intent=(intents or {}).get(i, default_intent),
                    attachments=(attachments or {}).get(i, ThreadAttachmentPlan()),
                )
            )

        return ThreadPlan(
            index=index,
            thread=thread,
            email_count=email_count,
            start=WINDOW_START,
            end=WINDOW_END,
            beat_name=beat_name,
            participants=thread_participants,
            structure_plan=ThreadStructurePlan(thread.id, ids[0], slots),
            thread_seed=derive_seed("thread-gen", 0, thread.id.hex),
        )

    return factory


@pytest.fixture
def make_context():
    """Factory for a ``ThreadPlanContext`` around a generator and config overrides."""

    def factory(generator: Any, **config_overrides: Any) -> ThreadPlanContext:
        config = GenerationConfig(
            start_date=WINDOW_START,
            end_date=WINDOW_END,
            **config_overrides,
        )
        return ThreadPlanContext(config=config, generator=generator)

    return factory
