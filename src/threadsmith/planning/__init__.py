"""Thread structure planning, attachment quotas, beats and participants."""

from threadsmith.planning.attachments import (
    calculate_attachment_totals,
    calculate_calendar_invite_checks,
    pick_attachment_slots,
)
from threadsmith.planning.beats import (
    create_threads,
    ensure_relevance_coverage,
    plan_email_threads_for_beats,
    thread_windows,
)
from threadsmith.planning.models import (
    StoryBeat,
    ThreadAttachmentPlan,
    ThreadEmailSlotPlan,
    ThreadStructurePlan,
)
from threadsmith.planning.participants import (
    assign_thread_participants,
    resolve_thread_participants,
)
from threadsmith.planning.planner import build_plan

__all__ = [
    "StoryBeat",
    "ThreadAttachmentPlan",
    "ThreadEmailSlotPlan",
    "ThreadStructurePlan",
    "assign_thread_participants",
    "build_plan",
    "calculate_attachment_totals",
    "calculate_calendar_invite_checks",
    "create_threads",
    "ensure_relevance_coverage",
    "pick_attachment_slots",
    "plan_email_threads_for_beats",
    "resolve_thread_participants",
    "thread_windows",
]
