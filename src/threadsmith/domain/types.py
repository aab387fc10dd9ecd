"""Domain enumerations shared by the planner, orchestrator, and models."""

from enum import StrEnum


class ThreadEmailIntent(StrEnum):
    """Narrative intent of a planned email slot."""

    NEW = "new"
    REPLY = "reply"
    FORWARD = "forward"


class ThreadRelevance(StrEnum):
    """Whether a thread is relevant to the case being simulated."""

    NON_RESPONSIVE = "non_responsive"
    RESPONSIVE = "responsive"


class ThreadScope(StrEnum):
    """Audience of a thread: a single organization or several."""

    INTERNAL = "internal"
    EXTERNAL = "external"


class AttachmentType(StrEnum):
    """Document attachment kinds.  Images and voicemails are planned separately."""

    WORD = "word"
    EXCEL = "excel"
    POWERPOINT = "powerpoint"


class DayType(StrEnum):
    """Day-of-week categories used by the volume model."""

    BUSINESS = "business"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class GenerationMode(StrEnum):
    """How the orchestrator asks the content generator for a thread."""

    EMAIL = "email"
    THREAD = "thread"


class GenerationState(StrEnum):
    """States of a single generation unit (one thread or one email)."""

    PENDING = "pending"
    GENERATING = "generating"
    SUCCEEDED = "succeeded"
    NEEDS_REPAIR = "needs_repair"
    FAILED = "failed"
