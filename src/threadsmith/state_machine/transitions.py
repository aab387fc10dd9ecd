"""Transition map defining all valid (state, event) -> state mappings."""

from enum import StrEnum

from threadsmith.domain.types import GenerationState


class GenerationEvent(StrEnum):
    """Events that can trigger state transitions for a generation unit."""

    START = "start"
    SUCCEED = "succeed"
    REJECT = "reject"
    RETRY = "retry"
    GIVE_UP = "give_up"


# All valid (current_state, event_string) -> next_state mappings.
# Any pair not in this dict is an invalid transition.
TRANSITIONS: dict[tuple[GenerationState, str], GenerationState] = {
    # From PENDING
    (GenerationState.PENDING, GenerationEvent.START): GenerationState.GENERATING,
    # From GENERATING
    (GenerationState.GENERATING, GenerationEvent.SUCCEED): GenerationState.SUCCEEDED,
    (GenerationState.GENERATING, GenerationEvent.REJECT): GenerationState.NEEDS_REPAIR,
    # From NEEDS_REPAIR
    (GenerationState.NEEDS_REPAIR, GenerationEvent.RETRY): GenerationState.GENERATING,
    (GenerationState.NEEDS_REPAIR, GenerationEvent.GIVE_UP): GenerationState.FAILED,
}

TERMINAL_STATES: frozenset[GenerationState] = frozenset(
    {GenerationState.SUCCEEDED, GenerationState.FAILED}
)
