"""GenerationStateMachine with a bounded attempt budget."""

from __future__ import annotations

from threadsmith.domain.errors import InvalidTransitionError
from threadsmith.domain.types import GenerationState
from threadsmith.state_machine.transitions import TERMINAL_STATES, TRANSITIONS, GenerationEvent


class GenerationStateMachine:
    """Finite state machine governing one generation unit (a thread or an email).

    Tracks the current state, validates transitions against the transition
    map, counts attempts, and records the full history of state changes.
    The retry loops drive it explicitly instead of relying on exceptions.

    Usage::

        sm = GenerationStateMachine(max_attempts=3)
        sm.trigger("start")     # -> GENERATING (attempt 1)
        sm.trigger("reject")    # -> NEEDS_REPAIR
        sm.advance_after_rejection()  # -> GENERATING (attempt 2) or FAILED
    """

    def __init__(
        self,
        max_attempts: int = 1,
        initial_state: GenerationState = GenerationState.PENDING,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self._state: GenerationState = initial_state
        self._attempts = 0
        self._history: list[tuple[GenerationState, str, GenerationState]] = []

    @property
    def state(self) -> GenerationState:
        """Return the current generation state."""
        return self._state

    @property
    def attempts(self) -> int:
        """Return how many times the unit has entered ``GENERATING``."""
        return self._attempts

    @property
    def is_terminal(self) -> bool:
        """Return True if the machine is in a terminal state (SUCCEEDED or FAILED)."""
        return self._state in TERMINAL_STATES

    @property
    def can_retry(self) -> bool:
        return self._attempts < self.max_attempts

    @property
    def history(self) -> list[tuple[GenerationState, str, GenerationState]]:
        """Return a copy of the transition history.

        Each entry is a ``(from_state, event, to_state)`` tuple recorded in
        chronological order.
        """
        return list(self._history)

    def trigger(self, event: str) -> GenerationState:
        """Apply an event to the current state and transition.

        Args:
            event: The event string (e.g. ``"start"``).

        Returns:
            The new state after the transition.

        Raises:
            InvalidTransitionError: If the transition is not allowed from
                the current state, if the machine is terminal, or if a retry
                is requested with no attempts left.
        """
        if self.is_terminal:
            raise InvalidTransitionError(self._state, event)

        key = (self._state, event)
        if key not in TRANSITIONS:
            raise InvalidTransitionError(self._state, event)
        if event == GenerationEvent.RETRY and not self.can_retry:
            raise InvalidTransitionError(self._state, event)

        old_state = self._state
        new_state = TRANSITIONS[key]
        if new_state == GenerationState.GENERATING:
            self._attempts += 1
        self._history.append((old_state, event, new_state))
        self._state = new_state
        return new_state

    def advance_after_rejection(self) -> GenerationState:
        """From ``NEEDS_REPAIR``, retry if attempts remain, otherwise give up."""
        if self.can_retry:
            return self.trigger(GenerationEvent.RETRY)
        return self.trigger(GenerationEvent.GIVE_UP)

    def get_valid_events(self) -> list[str]:
        """Return a sorted list of events valid from the current state.

        Returns an empty list if the machine is in a terminal state.
        """
        if self.is_terminal:
            return []
        events = sorted(event for state, event in TRANSITIONS if state == self._state)
        if not self.can_retry:
            events = [e for e in events if e != GenerationEvent.RETRY]
        return events
