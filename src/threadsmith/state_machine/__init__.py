"""Generation unit state machine."""

from threadsmith.state_machine.machine import GenerationStateMachine
from threadsmith.state_machine.transitions import TERMINAL_STATES, TRANSITIONS, GenerationEvent

__all__ = [
    "GenerationEvent",
    "GenerationStateMachine",
    "TERMINAL_STATES",
    "TRANSITIONS",
]
