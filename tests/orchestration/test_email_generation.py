"""Tests for email-by-email generation, repair and attachment carry-forward."""

from __future__ import annotations

import asyncio
import dataclasses
import random

import pytest

from threadsmith.domain.errors import ExternalCallFailure, GenerationCancelled
from threadsmith.domain.types import AttachmentType, ThreadEmailIntent
from threadsmith.email.models import EmailThread
from threadsmith.llm.models import EmailDraftResponse
from threadsmith.orchestration.carryover import AttachmentRequirement
from threadsmith.orchestration.email_generation import (
    NO_BODY_ERROR,
    build_attachment_details,
    generate_thread_by_email,
    resolve_participants_for_slot,
    resolve_slot_subject,
    resolve_thread_subject,
)
from threadsmith.planning.models import ThreadAttachmentPlan

PLAIN_BODY = "Hi team,\n\nQuick note on where the numbers stand.\n\nAlice"
DOCUMENT_BODY = "Hi,\n\nAttached is the updated report.\n\nBob"


def _draft(body: str) -> EmailDraftResponse:
    return EmailDraftResponse(body_plain=body)


def _mentions_document(call) -> EmailDraftResponse:
    if "Mention the attached document" in call.user_prompt:
        return _draft(DOCUMENT_BODY)
    return _draft(PLAIN_BODY)


class TestSubjects:
    def test_thread_subject_prefers_own_subject(self) -> None:
        thread = EmailThread(subject="RE: Vendor contract", topic="Contracts")
        assert resolve_thread_subject(thread, "Beat") == "Vendor contract"

    def test_thread_subject_falls_back(self) -> None:
        assert resolve_thread_subject(EmailThread(topic="Contracts"), "Beat") == "Contracts"
        assert resolve_thread_subject(EmailThread(), "Beat") == "Beat"
        assert resolve_thread_subject(EmailThread(), " ") == "Project update"

    @pytest.mark.parametrize(
        ("intent", "index", "expected"),
        [
            (ThreadEmailIntent.NEW, 0, "Budget"),
            (ThreadEmailIntent.REPLY, 2, "RE: Budget"),
            (ThreadEmailIntent.FORWARD, 3, "FW: Budget"),
        ],
    )
    def test_slot_subject(self, intent: ThreadEmailIntent, index: int, expected: str) -> None:
        assert resolve_slot_subject("Budget", intent, index) == expected


class TestResolveParticipantsForSlot:
    def test_new_email_has_distinct_sender_and_recipient(self, make_plan) -> None:
        plan = make_plan(1)
        slot = plan.structure_plan.slots[0]
        for seed in range(20):
            people = resolve_participants_for_slot(
                slot, list(plan.participants), None, random.Random(seed)
            )
            assert len(people.to) == 1
            assert people.to[0].id != people.sender.id
            assert all(c.id not in (people.sender.id, people.to[0].id) for c in people.cc)

    def test_reply_goes_back_to_parent_sender(self, make_plan) -> None:
        plan = make_plan(2)
        alice, bob, carol = plan.participants
        parent = plan.thread.messages[0]
        parent.from_character_id = alice.id
        parent.to_character_ids = [bob.id]
        slot = plan.structure_plan.slots[1]

        for seed in range(20):
            people = resolve_participants_for_slot(
                slot, list(plan.participants), parent, random.Random(seed)
            )
            assert people.sender == bob
            assert people.to == [alice]

    def test_forward_reaches_someone_new(self, make_plan) -> None:
        plan = make_plan(2, intents={1: ThreadEmailIntent.FORWARD})
        alice, bob, carol = plan.participants
        parent = plan.thread.messages[0]
        parent.from_character_id = alice.id
        parent.to_character_ids = [bob.id]
        slot = plan.structure_plan.slots[1]

        people = resolve_participants_for_slot(slot, list(plan.participants), parent, random.Random(0))

        assert people.sender == bob
        assert people.to == [carol]

    def test_no_participants(self, make_plan) -> None:
        plan = make_plan(1)
        with pytest.raises(ValueError, match="no participants"):
            resolve_participants_for_slot(plan.structure_plan.slots[0], [], None, random.Random(0))


class TestAttachmentDetails:
    def test_descriptions_follow_requirement(self) -> None:
        requirement = AttachmentRequirement(
            requires_document=True,
            document_type=AttachmentType.EXCEL,
            requires_voicemail=True,
        )
        details = build_attachment_details(
            requirement, AttachmentType.EXCEL, "Budget", "LATE - Escalate."
        )
        assert details.document_description == "Budget tracker (late)"
        assert details.image_description == ""
        assert details.voicemail_context == "Follow-up on Budget (late)"


class TestGenerateThreadByEmail:
    def test_all_slots_succeed(self, make_plan, make_context, scripted_generator) -> None:
        plan = make_plan(3)
        generator = scripted_generator(responder=lambda call: _draft(PLAIN_BODY))
        context = make_context(generator)

        thread = asyncio.run(generate_thread_by_email(plan, context))

        assert thread is plan.thread
        assert len(generator.calls) == 3
        assert all(call.output_model is EmailDraftResponse for call in generator.calls)
        assert context.result.succeeded_emails == 3
        assert context.result.failed_emails == 0
        assert context.result.errors == ()

        first, second, third = thread.messages
        assert thread.subject == "Budget"
        assert first.subject == "Budget"
        assert second.subject == "RE: Budget"
        assert first.body_plain == PLAIN_BODY
        assert "wrote:" in second.body_plain
        assert second.body_plain.startswith(PLAIN_BODY)
        assert second.in_reply_to == first.message_id_header
        assert third.references == [first.message_id_header, second.message_id_header]
        assert [m.sent_date for m in thread.messages] == [
            s.sent_date for s in plan.structure_plan.slots
        ]
        participant_ids = {c.id for c in plan.participants}
        for message in thread.messages:
            assert message.from_character_id in participant_ids
            assert set(message.to_character_ids) <= participant_ids
            assert message.from_character_id not in message.to_character_ids

    def test_failed_document_slot_carries_forward(
        self, make_plan, make_context, scripted_generator
    ) -> None:
        plan = make_plan(
            3,
            attachments={
                1: ThreadAttachmentPlan(has_document=True, document_type=AttachmentType.WORD)
            },
        )
        generator = scripted_generator(
            responses=[
                _draft(PLAIN_BODY),
                ExternalCallFailure("Email Generation", "service unavailable"),
            ],
            responder=_mentions_document,
        )
        context = make_context(generator, max_email_repair_attempts=0)

        thread = asyncio.run(generate_thread_by_email(plan, context))

        first, failed, carrier = thread.messages
        assert failed.generation_failed is True
        assert failed.planned_has_document is True
        assert failed.planned_document_type == AttachmentType.WORD
        assert "could not be generated due to an internal error" in failed.body_plain

        assert carrier.generation_failed is False
        assert carrier.planned_has_document is True
        assert carrier.planned_document_type == AttachmentType.WORD
        assert carrier.document_description
        assert "Mention the attached document" in generator.calls[2].user_prompt

        assert first.planned_has_document is False
        assert context.result.succeeded_emails == 2
        assert context.result.failed_emails == 1
        assert len(context.result.errors) == 1
        assert context.result.errors[0].startswith(f"Email slot 2 failed for thread {thread.id}")
        assert "service unavailable" in context.result.errors[0]

    def test_repair_attempt_fixes_empty_draft(
        self, make_plan, make_context, scripted_generator
    ) -> None:
        plan = make_plan(1)
        generator = scripted_generator(responses=[_draft("  "), _draft(PLAIN_BODY)])
        context = make_context(generator, max_email_repair_attempts=1)

        thread = asyncio.run(generate_thread_by_email(plan, context))

        assert thread.messages[0].generation_failed is False
        assert len(generator.calls) == 2
        assert generator.calls[0].operation.startswith("Email Generation")
        assert generator.calls[1].operation.startswith("Email Repair")
        assert NO_BODY_ERROR in generator.calls[1].user_prompt
        assert generator.calls[0].user_prompt in generator.calls[1].user_prompt

    def test_missing_mention_exhausts_repairs(
        self, make_plan, make_context, scripted_generator
    ) -> None:
        plan = make_plan(1, attachments={0: ThreadAttachmentPlan(has_voicemail=True)})
        generator = scripted_generator(responder=lambda call: _draft(PLAIN_BODY))
        context = make_context(generator, include_voicemails=True, max_email_repair_attempts=2)

        thread = asyncio.run(generate_thread_by_email(plan, context))

        message = thread.messages[0]
        assert len(generator.calls) == 3
        assert message.generation_failed is True
        assert "voicemail" in message.failure_reason
        assert message.planned_has_voicemail is True
        assert context.result.failed_emails == 1

    def test_rerun_starts_from_fresh_placeholders(
        self, make_plan, make_context, scripted_generator
    ) -> None:
        plan = make_plan(2)
        context = make_context(scripted_generator(responder=lambda call: _draft(PLAIN_BODY)))

        first_run = asyncio.run(generate_thread_by_email(plan, context))
        bodies = [m.body_plain for m in first_run.messages]
        second_run = asyncio.run(generate_thread_by_email(plan, context))

        assert [m.body_plain for m in second_run.messages] == bodies
        assert second_run.message_count == 2

    def test_cancelled_before_first_slot(
        self, make_plan, make_context, scripted_generator
    ) -> None:
        plan = make_plan(2)
        generator = scripted_generator(responder=lambda call: _draft(PLAIN_BODY))
        context = make_context(generator)
        context.cancel_event = asyncio.Event()
        context.cancel_event.set()

        with pytest.raises(GenerationCancelled):
            asyncio.run(generate_thread_by_email(plan, context))
        assert generator.calls == []

    def test_plan_without_participants(self, make_plan, make_context, scripted_generator) -> None:
        plan = dataclasses.replace(make_plan(1), participants=())
        context = make_context(scripted_generator())
        with pytest.raises(ValueError, match="no participants"):
            asyncio.run(generate_thread_by_email(plan, context))
