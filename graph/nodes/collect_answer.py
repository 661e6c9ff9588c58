"""Placeholder between receiving an answer and scoring it."""
from __future__ import annotations

from graph.deps import NodeDeps
from graph.state import InterviewState


def run(state: InterviewState, deps: NodeDeps) -> InterviewState:
    state.current_state = "collecting_answers"
    state.ui.current_message = "Thank you for your answer. Let me evaluate it..."
    state.ui.is_waiting_for_answer = False
    return state


__all__ = ["run"]
