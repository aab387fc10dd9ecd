"""Domain types, models, and errors for threadsmith."""

from threadsmith.domain.errors import (
    ExternalCallFailure,
    GenerationCancelled,
    InvalidTransitionError,
    RangeError,
    StateError,
    ThreadsmithError,
    ValidationError,
)
from threadsmith.domain.models import Character, GenerationConfig
from threadsmith.domain.types import (
    AttachmentType,
    DayType,
    GenerationMode,
    GenerationState,
    ThreadEmailIntent,
    ThreadRelevance,
    ThreadScope,
)

__all__ = [
    "AttachmentType",
    "Character",
    "DayType",
    "ExternalCallFailure",
    "GenerationCancelled",
    "GenerationConfig",
    "GenerationMode",
    "GenerationState",
    "InvalidTransitionError",
    "RangeError",
    "StateError",
    "ThreadEmailIntent",
    "ThreadRelevance",
    "ThreadScope",
    "ThreadsmithError",
    "ValidationError",
]
