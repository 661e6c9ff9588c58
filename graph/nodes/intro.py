"""Welcome handler; also runs for a fresh ``idle`` session."""
from __future__ import annotations

from graph.deps import NodeDeps
from graph.state import InterviewState


def welcome_message(state: InterviewState) -> str:
    session = state.session
    return (
        f"Welcome to the {session.topic} Interview!\n\n"
        f"I'm your AI interviewer, and I'll be asking you {session.total_questions} questions "
        f"about {session.topic} at {session.difficulty} level.\n\n"
        "Let's begin! Are you ready to start?"
    )


def run(state: InterviewState, deps: NodeDeps) -> InterviewState:
    deps.profiles.get_or_create(state.session_id, state.session.difficulty)
    state.current_state = "intro"
    state.ui.current_message = welcome_message(state)
    state.ui.is_waiting_for_answer = True
    state.ui.error_message = None
    return state


__all__ = ["run", "welcome_message"]
