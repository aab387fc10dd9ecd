"""Send-time helpers: spreading a thread over a window and business hours."""

from __future__ import annotations

import random
from datetime import datetime, time, timedelta

BUSINESS_DAY_START_HOUR = 8
BUSINESS_DAY_END_HOUR = 19
WEEKEND_RESUME_HOUR = 9
BUSINESS_HOURS_PROBABILITY = 0.9
MIN_GAP_FACTOR = 0.3
GAP_FACTOR_SPREAD = 1.4


def _is_weekend(dt: datetime) -> bool:
    return dt.weekday() >= 5


def _at_hour(dt: datetime, hour: int) -> datetime:
    return datetime.combine(dt.date(), time(hour), tzinfo=dt.tzinfo)


def adjust_to_business_hours(dt: datetime, rng: random.Random) -> datetime:
    """Move *dt* into weekday business hours (08:00 to 19:00).

    Weekend times roll forward to Monday 09:00.  Early-morning times move to
    08:00 plus up to an hour; evening times move to the next weekday at 08:00
    plus up to an hour.  Times already inside business hours are unchanged.
    """
    while _is_weekend(dt):
        dt = _at_hour(dt + timedelta(days=1), WEEKEND_RESUME_HOUR)

    if dt.hour < BUSINESS_DAY_START_HOUR:
        return _at_hour(dt, BUSINESS_DAY_START_HOUR) + timedelta(minutes=rng.randrange(60))

    if dt.hour >= BUSINESS_DAY_END_HOUR:
        next_day = dt + timedelta(days=1)
        while _is_weekend(next_day):
            next_day += timedelta(days=1)
        return _at_hour(next_day, BUSINESS_DAY_START_HOUR) + timedelta(
            minutes=rng.randrange(60)
        )

    return dt


def distribute_dates_for_thread(
    email_count: int,
    start: datetime,
    end: datetime,
    rng: random.Random,
) -> list[datetime]:
    """Spread *email_count* send times across ``[start, end]``.

    Points advance by the average gap scaled by a random factor in
    ``[0.3, 1.7)`` and are clamped to *end*.  Roughly 90% of points are
    nudged into business hours, unless the nudge would leave the window.
    The returned list is non-decreasing so earlier slots never follow
    later ones.

    Args:
        email_count: Number of send times to produce.
        start: Window start.
        end: Window end.
        rng: Caller-owned random stream.

    Returns:
        A list of *email_count* datetimes; empty when *email_count* is not
        positive.
    """
    if email_count <= 0:
        return []
    if email_count == 1:
        adjusted = adjust_to_business_hours(start, rng)
        return [adjusted if adjusted <= end else start]

    total_minutes = max(0.0, (end - start).total_seconds() / 60)
    average_gap = total_minutes / (email_count - 1)

    dates: list[datetime] = []
    current = start
    for i in range(email_count):
        candidate = current
        if rng.random() < BUSINESS_HOURS_PROBABILITY:
            adjusted = adjust_to_business_hours(current, rng)
            if adjusted <= end:
                candidate = adjusted
        if dates and candidate < dates[-1]:
            candidate = dates[-1]
        dates.append(candidate)

        if i < email_count - 1:
            gap = average_gap * (MIN_GAP_FACTOR + rng.random() * GAP_FACTOR_SPREAD)
            current = min(current + timedelta(minutes=gap), end)

    return dates


def random_date_in_range(start: datetime, end: datetime, rng: random.Random) -> datetime:
    """Return a uniformly random instant in ``[start, end)``."""
    span = (end - start).total_seconds()
    return start + timedelta(seconds=rng.random() * span)


def interpolate_date_in_range(start: datetime, end: datetime, fraction: float) -> datetime:
    """Return the instant at *fraction* of the way from *start* to *end*.

    *fraction* is clamped to ``[0, 1]``.
    """
    fraction = min(1.0, max(0.0, fraction))
    return start + (end - start) * fraction
