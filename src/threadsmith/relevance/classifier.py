"""Responsive / hot classification for planned threads.

Odds come from a two-component mixture: a small share of threads are drawn
from a "high" population whose per-message hit rate is much larger than the
background rate, so longer threads are more likely to be relevant.
"""

from __future__ import annotations

from threadsmith.domain.errors import RangeError
from threadsmith.domain.types import ThreadRelevance

RESPONSIVE_MIX = 0.0794979079497908
RESPONSIVE_HIGH_RATE = 0.12
RESPONSIVE_LOW_RATE = 0.0005

HOT_MIX = 0.06542056074766354
HOT_HIGH_RATE = 0.015
HOT_LOW_RATE = 0.00002


def _mixture(email_count: int, mix: float, high: float, low: float) -> float:
    return mix * (1 - (1 - high) ** email_count) + (1 - mix) * (1 - (1 - low) ** email_count)


def get_thread_odds(email_count: int) -> tuple[float, float]:
    """Return ``(responsive_odds, hot_odds)`` for a thread of *email_count* messages.

    Both odds are non-decreasing in *email_count* and ``hot <= responsive``.

    Raises:
        RangeError: If *email_count* is not positive.
    """
    if email_count <= 0:
        raise RangeError(f"thread email count must be positive, got {email_count}")

    responsive = _mixture(email_count, RESPONSIVE_MIX, RESPONSIVE_HIGH_RATE, RESPONSIVE_LOW_RATE)
    hot = _mixture(email_count, HOT_MIX, HOT_HIGH_RATE, HOT_LOW_RATE)
    return responsive, hot


def _require_roll(name: str, roll: float) -> None:
    if not 0.0 <= roll <= 1.0:
        raise RangeError(f"{name} must be between 0.0 and 1.0, got {roll}")


def evaluate_thread_relevance(
    email_count: int,
    responsive_roll: float,
    hot_roll: float,
) -> tuple[ThreadRelevance, bool]:
    """Classify a thread from two independent uniform rolls.

    A thread is hot when ``hot_roll <= hot_odds`` and responsive when it is
    hot or ``responsive_roll <= responsive_odds``.  Hot always implies
    responsive.

    Args:
        email_count: Number of messages in the thread.
        responsive_roll: Uniform roll in ``[0, 1]``.
        hot_roll: Uniform roll in ``[0, 1]``.

    Returns:
        ``(relevance, is_hot)``.

    Raises:
        RangeError: If a roll is outside ``[0, 1]`` or *email_count* is not
            positive.
    """
    _require_roll("responsive_roll", responsive_roll)
    _require_roll("hot_roll", hot_roll)

    responsive_odds, hot_odds = get_thread_odds(email_count)
    is_hot = hot_roll <= hot_odds
    is_responsive = is_hot or responsive_roll <= responsive_odds

    relevance = ThreadRelevance.RESPONSIVE if is_responsive else ThreadRelevance.NON_RESPONSIVE
    return relevance, is_hot
