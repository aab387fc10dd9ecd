"""Domain-specific exception classes for thread planning and generation.

``RangeError`` and ``StateError`` are caller bugs and propagate immediately.
``ValidationError`` and ``ExternalCallFailure`` describe a bad or missing
response from the content generator; the orchestrator retries those up to its
attempt budget and records the outcome instead of raising.
"""

from __future__ import annotations


class ThreadsmithError(Exception):
    """Base class for all domain errors in threadsmith."""


class RangeError(ThreadsmithError, ValueError):
    """Raised when a numeric or date argument is outside its valid range."""


class StateError(ThreadsmithError):
    """Raised when a precondition on mutable state is violated."""


class InvalidTransitionError(StateError):
    """Raised when a generation unit's state machine rejects an event.

    Attributes:
        current_state: The state the machine was in when the event arrived.
        event: The event that was rejected.
    """

    def __init__(self, current_state: str, event: str) -> None:
        self.current_state = current_state
        self.event = event
        super().__init__(f"Cannot apply event '{event}' in state '{current_state}'")


class ValidationError(ThreadsmithError):
    """Raised when a plan or a generated response fails structural checks."""


class ExternalCallFailure(ThreadsmithError):
    """Raised when the content generator fails or returns nothing usable.

    Attributes:
        operation: Human-readable name of the operation that failed.
    """

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")


class GenerationCancelled(ThreadsmithError):
    """Raised inside a unit of work when the run's cancellation signal is set.

    The runner catches it and reports a cancelled result instead of raising
    through the caller.
    """
