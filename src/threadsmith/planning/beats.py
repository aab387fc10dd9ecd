"""Beat-level planning: email counts, thread partitions, relevance coverage.

For each beat the total email count is sampled from the volume model,
partitioned into thread sizes, and each thread gets placeholders, a scope
and a relevance roll.  Coverage is then enforced across all beats.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from datetime import datetime

import structlog

from threadsmith.domain.errors import RangeError, StateError
from threadsmith.domain.types import ThreadRelevance, ThreadScope
from threadsmith.email.models import EmailThread
from threadsmith.email.placeholders import ensure_placeholder_messages
from threadsmith.planning.models import StoryBeat
from threadsmith.relevance.classifier import evaluate_thread_relevance
from threadsmith.seeding.derive import derive_id
from threadsmith.volume.dates import interpolate_date_in_range
from threadsmith.volume.estimator import build_thread_size_plan, calculate_email_count_for_range

logger = structlog.get_logger()

INTERNAL_THREAD_ODDS = 0.7


def create_threads(beat: StoryBeat, rng: random.Random) -> list[EmailThread]:
    """Partition ``beat.email_count`` into threads with placeholders and relevance.

    Raises:
        RangeError: If the beat's email count is negative.
    """
    if beat.email_count < 0:
        raise RangeError(f"beat '{beat.name}' has a negative email count")
    if beat.email_count == 0:
        return []

    threads: list[EmailThread] = []
    for index, size in enumerate(build_thread_size_plan(beat.email_count, rng)):
        thread = EmailThread(
            thread_id=derive_id("email-thread", beat.id, index),
            story_beat_id=beat.id,
            storyline_id=beat.storyline_id,
        )
        thread.scope = (
            ThreadScope.INTERNAL if rng.random() < INTERNAL_THREAD_ODDS else ThreadScope.EXTERNAL
        )
        ensure_placeholder_messages(thread, size)

        relevance, is_hot = evaluate_thread_relevance(size, rng.random(), rng.random())
        thread.relevance = relevance
        thread.is_hot = is_hot
        threads.append(thread)

    return threads


def _pick(threads: Sequence[EmailThread], rng: random.Random) -> EmailThread:
    if len(threads) == 1:
        return threads[0]
    return threads[rng.randrange(len(threads))]


def ensure_relevance_coverage(beats: Sequence[StoryBeat], rng: random.Random) -> None:
    """Guarantee at least one responsive thread per beat and one hot thread overall.

    Beats without threads are ignored.  A beat with no responsive thread has
    one promoted to responsive.  If no thread is hot, one thread in the
    middle beat is promoted to hot (and therefore responsive).
    """
    with_threads = [b for b in beats if b.threads]
    if not with_threads:
        return

    for beat in with_threads:
        if not any(t.is_responsive for t in beat.threads):
            promoted = _pick(beat.threads, rng)
            promoted.relevance = ThreadRelevance.RESPONSIVE
            logger.debug("thread_promoted_responsive", beat_name=beat.name, thread_id=str(promoted.id))

    if not any(t.is_hot for b in with_threads for t in b.threads):
        beat = with_threads[len(with_threads) // 2]
        promoted = _pick(beat.threads, rng)
        promoted.is_hot = True
        promoted.relevance = ThreadRelevance.RESPONSIVE
        logger.debug("thread_promoted_hot", beat_name=beat.name, thread_id=str(promoted.id))


def plan_email_threads_for_beats(
    beats: Sequence[StoryBeat],
    key_participant_count: int,
    rng: random.Random,
) -> None:
    """Fill every beat with an email count and planned threads.

    Args:
        beats: Beats to plan, in storyline order.
        key_participant_count: Number of key participants driving volume.
        rng: Caller-owned random stream.

    Raises:
        RangeError: If *key_participant_count* is not positive.
    """
    if key_participant_count <= 0:
        raise RangeError(
            f"key participant count must be positive, got {key_participant_count}"
        )

    for beat in beats:
        beat.email_count = calculate_email_count_for_range(
            beat.start_date, beat.end_date, key_participant_count, rng
        )
        beat.set_threads(create_threads(beat, rng))
        logger.info(
            "beat_planned",
            beat_name=beat.name,
            email_count=beat.email_count,
            thread_count=len(beat.threads),
        )

    ensure_relevance_coverage(beats, rng)


def thread_windows(beat: StoryBeat) -> list[tuple[EmailThread, datetime, datetime]]:
    """Split the beat's date range into consecutive per-thread windows.

    Each window's width is proportional to the thread's share of the beat's
    emails.

    Raises:
        StateError: If the beat's threads do not account for exactly
            ``beat.email_count`` messages.
    """
    if not beat.threads:
        return []

    total = sum(t.message_count for t in beat.threads)
    if total != beat.email_count:
        raise StateError(
            f"beat '{beat.name}' planned emails ({total}) do not match "
            f"beat email count ({beat.email_count})"
        )

    windows: list[tuple[EmailThread, datetime, datetime]] = []
    assigned = 0
    for thread in beat.threads:
        start = interpolate_date_in_range(beat.start_date, beat.end_date, assigned / total)
        assigned += thread.message_count
        end = interpolate_date_in_range(beat.start_date, beat.end_date, assigned / total)
        windows.append((thread, start, end))
    return windows
