"""Terminal-until-restart error handler."""
from __future__ import annotations

from typing import Optional

from graph.deps import NodeDeps
from graph.state import InterviewState

UNKNOWN_ERROR = "Unknown error"


def run(state: InterviewState, deps: Optional[NodeDeps] = None, message: Optional[str] = None) -> InterviewState:
    reason = message or state.ui.error_message or UNKNOWN_ERROR
    state.current_state = "error"
    state.ui.current_message = f"An error occurred: {reason}. Please try again."
    state.ui.is_waiting_for_answer = False
    state.ui.error_message = reason
    return state


__all__ = ["run"]
