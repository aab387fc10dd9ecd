"""Tests for per-thread structure planning."""

import random
from datetime import datetime

import pytest

from threadsmith.domain.errors import RangeError, ValidationError
from threadsmith.domain.models import GenerationConfig
from threadsmith.domain.types import ThreadEmailIntent
from threadsmith.email.models import EmailThread
from threadsmith.email.placeholders import ensure_placeholder_messages
from threadsmith.planning.attachments import calculate_attachment_totals
from threadsmith.planning.planner import (
    PHASE_BEGINNING,
    PHASE_LATE,
    PHASE_MIDDLE,
    PHASE_SINGLE,
    build_parent_plan,
    build_plan,
    resolve_intent,
    resolve_narrative_phase,
)
from threadsmith.seeding.derive import derive_id

START = datetime(2024, 3, 4, 9, 0)
END = datetime(2024, 3, 15, 17, 0)


def _thread(count: int, key: str = "planner") -> EmailThread:
    thread = EmailThread(thread_id=derive_id("test-thread", key))
    ensure_placeholder_messages(thread, count)
    return thread


class TestBuildParentPlan:
    def test_short_threads_are_a_chain(self) -> None:
        for seed in range(10):
            assert build_parent_plan(4, random.Random(seed)) == [-1, 0, 1, 2]

    @pytest.mark.parametrize("count", [5, 8, 12, 30])
    def test_parents_precede_children(self, count: int) -> None:
        for seed in range(10):
            parents = build_parent_plan(count, random.Random(seed))
            assert parents[0] == -1
            assert all(0 <= parents[i] < i for i in range(1, count))

    def test_empty(self) -> None:
        assert build_parent_plan(0, random.Random(0)) == []


class TestResolveNarrativePhase:
    def test_single_message(self) -> None:
        assert resolve_narrative_phase(0, 1) == PHASE_SINGLE

    def test_three_messages(self) -> None:
        assert [resolve_narrative_phase(i, 3) for i in range(3)] == [
            PHASE_BEGINNING,
            PHASE_MIDDLE,
            PHASE_LATE,
        ]


class TestResolveIntent:
    def test_root_is_new(self) -> None:
        assert resolve_intent(0, -1, random.Random(0)) == ThreadEmailIntent.NEW

    def test_non_root_is_reply_or_forward(self) -> None:
        intents = {resolve_intent(3, 2, random.Random(seed)) for seed in range(50)}
        assert intents <= {ThreadEmailIntent.REPLY, ThreadEmailIntent.FORWARD}
        assert ThreadEmailIntent.REPLY in intents


class TestBuildPlan:
    @pytest.mark.parametrize("count", [1, 2, 6, 15, 50])
    def test_plan_shape(self, count: int, base_config: GenerationConfig) -> None:
        thread = _thread(count)
        plan = build_plan(thread, count, START, END, base_config, generation_seed=3)

        assert len(plan) == count
        assert [s.index for s in plan.slots] == list(range(count))
        assert [s.email_id for s in plan.slots] == [m.id for m in thread.messages]

        root = plan.slots[0]
        assert root.is_root
        assert root.intent == ThreadEmailIntent.NEW
        assert plan.root_email_id == root.email_id
        assert all(s.root_email_id == root.email_id for s in plan.slots)
        assert sum(1 for s in plan.slots if s.is_root) == 1

        for slot in plan.slots[1:]:
            parent = plan.parent_of(slot)
            assert parent is not None
            assert parent.index < slot.index
            assert parent.sent_date <= slot.sent_date
            assert slot.intent in (ThreadEmailIntent.REPLY, ThreadEmailIntent.FORWARD)

        dates = [s.sent_date for s in plan.slots]
        assert dates == sorted(dates)
        assert all(START <= d <= END for d in dates)

    def test_attachment_flags_match_quota(self) -> None:
        config = GenerationConfig(
            start_date=START,
            end_date=END,
            attachment_percentage=30,
            include_images=True,
            image_percentage=20,
            include_voicemails=True,
            voicemail_percentage=10,
        )
        thread = _thread(20)
        plan = build_plan(thread, 20, START, END, config, generation_seed=1)
        assert plan.attachment_totals() == calculate_attachment_totals(config, 20)
        for slot in plan.slots:
            if slot.attachments.has_document:
                assert slot.attachments.document_type in config.enabled_attachment_types

    def test_main_line_shares_root_branch(self, base_config: GenerationConfig) -> None:
        plan = build_plan(_thread(4), 4, START, END, base_config, generation_seed=0)
        assert len({s.branch_id for s in plan.slots}) == 1

    def test_same_inputs_same_plan(self, base_config: GenerationConfig) -> None:
        first = build_plan(_thread(12, "same"), 12, START, END, base_config, 9)
        second = build_plan(_thread(12, "same"), 12, START, END, base_config, 9)
        assert first.slots == second.slots

    def test_seed_changes_plan(self, base_config: GenerationConfig) -> None:
        first = build_plan(_thread(12, "seed"), 12, START, END, base_config, 1)
        second = build_plan(_thread(12, "seed"), 12, START, END, base_config, 2)
        assert [s.sent_date for s in first.slots] != [s.sent_date for s in second.slots]

    def test_placeholder_mismatch_rejected(self, base_config: GenerationConfig) -> None:
        with pytest.raises(ValidationError, match="placeholders"):
            build_plan(_thread(3), 4, START, END, base_config, 0)

    def test_non_positive_count_rejected(self, base_config: GenerationConfig) -> None:
        with pytest.raises(RangeError):
            build_plan(EmailThread(), 0, START, END, base_config, 0)

    def test_inverted_window_rejected(self, base_config: GenerationConfig) -> None:
        with pytest.raises(RangeError):
            build_plan(_thread(2), 2, END, START, base_config, 0)

    @pytest.mark.parametrize(
        ("start", "end"),
        [
            (datetime(2024, 3, 8, 20, 0), datetime(2024, 3, 8, 22, 0)),
            (datetime(2024, 3, 9, 10, 0), datetime(2024, 3, 10, 18, 0)),
            (datetime(2024, 3, 5, 23, 30), datetime(2024, 3, 6, 0, 0)),
            (datetime(2024, 3, 6, 6, 0), datetime(2024, 3, 6, 6, 0)),
        ],
        ids=["friday-evening", "weekend", "before-midnight", "early-morning-instant"],
    )
    @pytest.mark.parametrize("count", [1, 3])
    def test_slots_stay_inside_off_hours_window(
        self, start: datetime, end: datetime, count: int, base_config: GenerationConfig
    ) -> None:
        for seed in range(10):
            thread = _thread(count, f"off-hours-{seed}")
            plan = build_plan(thread, count, start, end, base_config, generation_seed=seed)
            assert all(start <= s.sent_date <= end for s in plan.slots)
