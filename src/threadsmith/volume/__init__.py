"""Email volume estimation and send-time distribution."""

from threadsmith.volume.dates import (
    adjust_to_business_hours,
    distribute_dates_for_thread,
    interpolate_date_in_range,
    random_date_in_range,
)
from threadsmith.volume.estimator import (
    THREAD_SIZE_CAP,
    build_thread_size_plan,
    business_day_email_range,
    calculate_email_count_for_range,
    count_day_types,
    day_type_of,
    email_range_for_day,
    weekend_email_range,
)

__all__ = [
    "THREAD_SIZE_CAP",
    "adjust_to_business_hours",
    "build_thread_size_plan",
    "business_day_email_range",
    "calculate_email_count_for_range",
    "count_day_types",
    "day_type_of",
    "distribute_dates_for_thread",
    "email_range_for_day",
    "interpolate_date_in_range",
    "random_date_in_range",
    "weekend_email_range",
]
