"""Closed-form email volume model and thread-size partitioning.

Daily message volume is modelled per day type from the number of key
participants ``n``:

    p     = P_MAX * (1 - exp(-(n - 1) / K))
    mu    = n * S * p                       (business days)
    mu    = m_day * n * S * p               (weekends)
    sigma = sqrt(mu + mu**2 / (n * kappa0))
    range = (ceil(max(0, mu - Z*sigma)), ceil(mu + Z*sigma))

Thread sizes are drawn from weighted buckets biased toward short threads.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from datetime import date, datetime, timedelta

import structlog

from threadsmith.domain.errors import RangeError
from threadsmith.domain.types import DayType

logger = structlog.get_logger()

# Model constants
MESSAGES_PER_PARTICIPANT = 24.0
P_MAX = 0.65
SATURATION_K = 12.0
BUSINESS_KAPPA0 = 3.0
WEEKEND_KAPPA0 = 2.0
Z_SCORE = 1.645

WEEKEND_MULTIPLIERS: dict[DayType, float] = {
    DayType.SATURDAY: 0.146,
    DayType.SUNDAY: 0.136,
}

THREAD_SIZE_CAP = 50


@dataclass(frozen=True)
class ThreadSizeBucket:
    """Inclusive size range with a selection weight."""

    min_size: int
    max_size: int
    weight: float


THREAD_SIZE_BUCKETS: tuple[ThreadSizeBucket, ...] = (
    ThreadSizeBucket(1, 1, 0.35),
    ThreadSizeBucket(2, 2, 0.25),
    ThreadSizeBucket(3, 3, 0.12),
    ThreadSizeBucket(4, 4, 0.07),
    ThreadSizeBucket(5, 5, 0.05),
    ThreadSizeBucket(6, 10, 0.10),
    ThreadSizeBucket(11, 15, 0.03),
    ThreadSizeBucket(16, 20, 0.02),
    ThreadSizeBucket(21, 30, 0.007),
    ThreadSizeBucket(31, 40, 0.002),
    ThreadSizeBucket(41, 50, 0.001),
)


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def day_type_of(day: date | datetime) -> DayType:
    """Classify a calendar day as business, Saturday or Sunday."""
    weekday = _as_date(day).weekday()
    if weekday == 5:
        return DayType.SATURDAY
    if weekday == 6:
        return DayType.SUNDAY
    return DayType.BUSINESS


def _iter_days(start: date | datetime, end: date | datetime):
    current = _as_date(start)
    last = _as_date(end)
    if last < current:
        raise RangeError(f"end date {last} must be on or after start date {current}")
    while current <= last:
        yield current
        current += timedelta(days=1)


def count_day_types(start: date | datetime, end: date | datetime) -> tuple[int, int, int]:
    """Count business days, Saturdays and Sundays in an inclusive range.

    Args:
        start: First day of the range.  Times are ignored.
        end: Last day of the range.  Times are ignored.

    Returns:
        ``(business_days, saturdays, sundays)``.

    Raises:
        RangeError: If *end* is before *start*.
    """
    counts = {DayType.BUSINESS: 0, DayType.SATURDAY: 0, DayType.SUNDAY: 0}
    for day in _iter_days(start, end):
        counts[day_type_of(day)] += 1
    return counts[DayType.BUSINESS], counts[DayType.SATURDAY], counts[DayType.SUNDAY]


def _ceil_non_negative(value: float) -> int:
    if value <= 0:
        return 0
    return math.ceil(value)


def _require_participants(key_participant_count: int) -> None:
    if key_participant_count <= 0:
        raise RangeError(
            f"key participant count must be positive, got {key_participant_count}"
        )


def _participation(key_participant_count: int) -> float:
    return P_MAX * (1 - math.exp(-(key_participant_count - 1) / SATURATION_K))


def _range_from_mean(mu: float, key_participant_count: int, kappa0: float) -> tuple[int, int]:
    sigma = math.sqrt(mu + (mu * mu) / (key_participant_count * kappa0))
    margin = Z_SCORE * sigma
    return _ceil_non_negative(max(0.0, mu - margin)), _ceil_non_negative(mu + margin)


def business_day_email_range(key_participant_count: int) -> tuple[int, int]:
    """Return the ``(low, high)`` daily email range for a business day.

    Raises:
        RangeError: If *key_participant_count* is not positive.
    """
    _require_participants(key_participant_count)
    mu = key_participant_count * MESSAGES_PER_PARTICIPANT * _participation(key_participant_count)
    return _range_from_mean(mu, key_participant_count, BUSINESS_KAPPA0)


def weekend_email_range(key_participant_count: int, day_type: DayType) -> tuple[int, int]:
    """Return the ``(low, high)`` daily email range for a Saturday or Sunday.

    The business-day mean is scaled by a day-specific multiplier (Saturday
    carries slightly more traffic than Sunday) and a looser dispersion
    constant is used.

    Raises:
        RangeError: If *day_type* is not a weekend day or the participant
            count is not positive.
    """
    if day_type not in WEEKEND_MULTIPLIERS:
        raise RangeError(f"day type must be saturday or sunday, got {day_type!r}")
    _require_participants(key_participant_count)
    mu_business = (
        key_participant_count * MESSAGES_PER_PARTICIPANT * _participation(key_participant_count)
    )
    mu = WEEKEND_MULTIPLIERS[day_type] * mu_business
    return _range_from_mean(mu, key_participant_count, WEEKEND_KAPPA0)


def email_range_for_day(key_participant_count: int, day_type: DayType) -> tuple[int, int]:
    """Dispatch to the business-day or weekend range for *day_type*."""
    if day_type == DayType.BUSINESS:
        return business_day_email_range(key_participant_count)
    return weekend_email_range(key_participant_count, day_type)


def calculate_email_count_for_range(
    start: date | datetime,
    end: date | datetime,
    key_participant_count: int,
    rng: random.Random,
) -> int:
    """Sample the total number of emails for an inclusive date range.

    Each day contributes a uniform draw from its day type's range.

    Args:
        start: First day of the range.
        end: Last day of the range.
        key_participant_count: Number of key participants driving volume.
        rng: Caller-owned random stream.

    Returns:
        The sampled total, always ``>= 0``.

    Raises:
        RangeError: If the participant count is not positive or the range
            is inverted.
    """
    _require_participants(key_participant_count)
    ranges = {
        day_type: email_range_for_day(key_participant_count, day_type) for day_type in DayType
    }

    total = 0
    for day in _iter_days(start, end):
        low, high = ranges[day_type_of(day)]
        low = max(0, low)
        high = max(low, high)
        total += rng.randint(low, high)

    logger.debug(
        "email_count_sampled",
        start=str(_as_date(start)),
        end=str(_as_date(end)),
        key_participant_count=key_participant_count,
        total=total,
    )
    return total


def _weighted_choice(buckets: list[ThreadSizeBucket], rng: random.Random) -> ThreadSizeBucket:
    total_weight = sum(b.weight for b in buckets)
    roll = rng.random() * total_weight
    acc = 0.0
    for bucket in buckets:
        acc += bucket.weight
        if roll <= acc:
            return bucket
    return buckets[-1]


def _sample_lower_biased(low: int, high: int, rng: random.Random) -> int:
    return min(rng.randint(low, high), rng.randint(low, high))


def build_thread_size_plan(total_emails: int, rng: random.Random) -> list[int]:
    """Partition *total_emails* into thread sizes.

    Every size is in ``[1, THREAD_SIZE_CAP]`` and the sizes sum to exactly
    *total_emails*.  The result depends only on *total_emails* and the
    state of *rng*.

    Args:
        total_emails: Number of emails to distribute.
        rng: Caller-owned random stream.

    Returns:
        Thread sizes in draw order.  Empty when *total_emails* is zero.

    Raises:
        RangeError: If *total_emails* is negative.
    """
    if total_emails < 0:
        raise RangeError(f"total email count must be non-negative, got {total_emails}")

    sizes: list[int] = []
    remaining = total_emails
    while remaining > 0:
        eligible = [b for b in THREAD_SIZE_BUCKETS if b.min_size <= remaining]
        bucket = _weighted_choice(eligible, rng)
        high = min(bucket.max_size, remaining, THREAD_SIZE_CAP)
        low = bucket.min_size

        if high < low:
            size = 1
        elif high == low:
            size = low
        else:
            size = _sample_lower_biased(low, high, rng)

        sizes.append(size)
        remaining -= size

    return sizes
