"""Interview state machine and its state model."""
from .build import HANDLERS, InterviewStateMachine
from .state import (
    STATE_TRANSITIONS,
    InterviewState,
    SessionConfig,
    StepAction,
    can_transition_to,
    update_progress,
)

__all__ = [
    "HANDLERS",
    "InterviewStateMachine",
    "STATE_TRANSITIONS",
    "InterviewState",
    "SessionConfig",
    "StepAction",
    "can_transition_to",
    "update_progress",
]
