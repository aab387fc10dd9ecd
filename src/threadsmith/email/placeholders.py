"""Pre-allocation of empty message slots before content generation."""

from __future__ import annotations

import structlog

from threadsmith.domain.errors import RangeError, StateError
from threadsmith.email.models import EmailMessage, EmailThread
from threadsmith.seeding.derive import derive_id

logger = structlog.get_logger()


def _build_placeholders(thread: EmailThread, count: int) -> list[EmailMessage]:
    return [
        EmailMessage(
            id=derive_id("email-message", thread.id, i),
            thread_id=thread.id,
            story_beat_id=thread.story_beat_id,
            storyline_id=thread.storyline_id,
            sequence_in_thread=i,
        )
        for i in range(count)
    ]


def _require_positive(count: int) -> None:
    if count <= 0:
        raise RangeError(f"thread email count must be positive, got {count}")


def ensure_placeholder_messages(thread: EmailThread, count: int) -> None:
    """Make sure *thread* holds exactly *count* placeholder messages.

    An empty thread is filled with *count* placeholders stamped with the
    thread, beat and storyline ids and sequence numbers ``0..count-1``.  A
    thread that already holds *count* messages is left untouched.

    Args:
        thread: The thread to fill.
        count: The planned number of messages.

    Raises:
        RangeError: If *count* is not positive.
        StateError: If the thread already holds a different, non-zero
            number of messages.
    """
    _require_positive(count)

    existing = thread.message_count
    if existing == count:
        return
    if existing > 0:
        raise StateError(
            f"placeholder count mismatch: thread {thread.id} holds {existing} messages "
            f"but {count} were planned"
        )

    thread.set_messages(_build_placeholders(thread, count))
    logger.debug("placeholders_created", thread_id=str(thread.id), count=count)


def reset_thread_for_retry(thread: EmailThread, count: int) -> None:
    """Discard all messages and recreate *count* fresh placeholders.

    Raises:
        RangeError: If *count* is not positive.
    """
    _require_positive(count)
    thread.set_messages(_build_placeholders(thread, count))
