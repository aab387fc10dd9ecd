"""Generation orchestration: retry loops, carry-forward, concurrency, results."""

from threadsmith.orchestration.carryover import (
    AttachmentCarryover,
    AttachmentRequirement,
    build_attachment_requirement,
)
from threadsmith.orchestration.context import ThreadPlan, ThreadPlanContext
from threadsmith.orchestration.email_generation import generate_thread_by_email
from threadsmith.orchestration.results import (
    GenerationProgress,
    GenerationResult,
    ProgressSnapshot,
    count_planned_attachments,
)
from threadsmith.orchestration.runner import (
    PlannedTotals,
    build_thread_plans,
    calculate_planned_totals,
    run_generation,
)
from threadsmith.orchestration.thread_generation import generate_thread_with_retries

__all__ = [
    "AttachmentCarryover",
    "AttachmentRequirement",
    "GenerationProgress",
    "GenerationResult",
    "PlannedTotals",
    "ProgressSnapshot",
    "ThreadPlan",
    "ThreadPlanContext",
    "build_attachment_requirement",
    "build_thread_plans",
    "calculate_planned_totals",
    "count_planned_attachments",
    "generate_thread_by_email",
    "generate_thread_with_retries",
    "run_generation",
]
