"""Attachment quotas and their placement across a thread's slots."""

from __future__ import annotations

import random

from threadsmith.domain.models import GenerationConfig

ROOT_SLOT_PROBABILITY = 0.75
SECOND_SLOT_PROBABILITY = 0.35
BASE_PROBABILITY = 0.18
POSITION_WEIGHT = 0.6
MAX_PROBABILITY = 0.95
MISS_BOOST = 0.15
MAX_BOOST = 0.45


def _share(email_count: int, percentage: int) -> int:
    # round() is half-to-even
    return round(email_count * percentage / 100)


def calculate_attachment_totals(config: GenerationConfig, email_count: int) -> tuple[int, int, int]:
    """Return the exact ``(documents, images, voicemails)`` quotas for a thread.

    - Documents: ``round(n * pct / 100)`` when a document type is enabled
      and ``attachment_percentage > 0``.
    - Images: at least one when images are enabled and ``image_percentage > 0``.
    - Voicemails: ``round(n * pct / 100)`` when voicemails are enabled.

    Each quota is capped at *email_count*.

    Args:
        config: Generation configuration.
        email_count: Number of slots in the thread.

    Returns:
        ``(documents, images, voicemails)``; all zero when *email_count* is
        not positive.
    """
    if email_count <= 0:
        return 0, 0, 0

    docs = 0
    if config.attachment_percentage > 0 and config.enabled_attachment_types:
        docs = _share(email_count, config.attachment_percentage)

    images = 0
    if config.include_images and config.image_percentage > 0:
        images = max(1, _share(email_count, config.image_percentage))

    voicemails = 0
    if config.include_voicemails and config.voicemail_percentage > 0:
        voicemails = _share(email_count, config.voicemail_percentage)

    return min(docs, email_count), min(images, email_count), min(voicemails, email_count)


def _slot_probability(index: int, email_count: int) -> float:
    if index == 0:
        return ROOT_SLOT_PROBABILITY
    if index == 1:
        return SECOND_SLOT_PROBABILITY
    return BASE_PROBABILITY + POSITION_WEIGHT * index / max(1, email_count - 1)


def pick_attachment_slots(email_count: int, quota: int, rng: random.Random) -> set[int]:
    """Choose exactly ``min(quota, email_count)`` slot indices.

    Slots are visited in order with a position-dependent probability that
    favours the root and later messages; every miss raises the next
    probability until a hit.  When the remaining slots equal the remaining
    quota they are all taken, and any shortfall is backfilled from the end.

    Args:
        email_count: Number of slots in the thread.
        quota: Number of slots to choose.
        rng: Caller-owned random stream.

    Returns:
        The chosen indices.
    """
    chosen: set[int] = set()
    if quota <= 0 or email_count <= 0:
        return chosen

    remaining = min(quota, email_count)
    boost = 0.0
    for i in range(email_count):
        if remaining <= 0:
            break
        if email_count - i == remaining:
            chosen.add(i)
            remaining -= 1
            continue

        probability = min(MAX_PROBABILITY, _slot_probability(i, email_count) + boost)
        if rng.random() < probability:
            chosen.add(i)
            remaining -= 1
            boost = 0.0
        else:
            boost = min(MAX_BOOST, boost + MISS_BOOST)

    for i in range(email_count - 1, -1, -1):
        if remaining <= 0:
            break
        if i not in chosen:
            chosen.add(i)
            remaining -= 1

    return chosen


def calculate_calendar_invite_checks(config: GenerationConfig, email_count: int) -> int:
    """Return how many calendar-invite checks a thread contributes to planned totals.

    At least one when invites are enabled with a positive percentage.
    """
    if not config.include_calendar_invites or config.calendar_invite_percentage <= 0:
        return 0
    if email_count <= 0:
        return 0
    return max(1, _share(email_count, config.calendar_invite_percentage))
