"""Tests for the EmailMessage model."""

from threadsmith.domain.types import AttachmentType, ThreadRelevance
from threadsmith.email.models import EmailMessage, EmailThread
from threadsmith.seeding.derive import derive_id


def _message(**kwargs) -> EmailMessage:
    return EmailMessage(
        id=derive_id("msg", "models"),
        thread_id=derive_id("thread", "models"),
        sequence_in_thread=0,
        **kwargs,
    )


class TestEmailMessage:
    def test_defaults(self) -> None:
        message = _message()
        assert message.is_root
        assert message.planned_attachment_count == 0
        assert message.generation_failed is False
        assert message.references == []

    def test_mark_failed_keeps_planned_flags(self) -> None:
        message = _message(
            planned_has_document=True,
            planned_document_type=AttachmentType.POWERPOINT,
            planned_has_voicemail=True,
        )
        message.mark_failed("gate rejected")

        assert message.generation_failed is True
        assert message.failure_reason == "gate rejected"
        assert message.planned_has_document is True
        assert message.planned_attachment_count == 2


class TestEmailThreadFlags:
    def test_hot_is_responsive(self) -> None:
        thread = EmailThread(is_hot=True, relevance=ThreadRelevance.NON_RESPONSIVE)
        assert thread.is_responsive

    def test_repr_mentions_counts(self) -> None:
        assert "messages=0" in repr(EmailThread())
