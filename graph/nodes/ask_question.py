"""Emit the current question, selecting a new one adaptively when needed."""
from __future__ import annotations

from agents.types import Question
from graph.deps import NodeDeps
from graph.state import InterviewState


def question_message(state: InterviewState, question: Question) -> str:
    return (
        f"Question {state.current_question_index + 1} of {state.session.total_questions}:\n\n"
        f"{question.question}\n\n"
        "Please provide your answer:"
    )


def _to_summary(state: InterviewState) -> InterviewState:
    state.current_state = "summary"
    state.ui.current_message = "All questions have been asked. Moving to summary..."
    state.ui.is_waiting_for_answer = False
    state.ui.current_question_id = None
    return state


def run(state: InterviewState, deps: NodeDeps) -> InterviewState:
    session = state.session
    if state.current_question() is None:
        if state.current_question_index >= session.total_questions or len(state.questions) >= session.total_questions:
            return _to_summary(state)
        if state.current_question_index != len(state.questions):
            raise ValueError(
                f"Question index {state.current_question_index} is ahead of the "
                f"{len(state.questions)} question(s) asked so far"
            )
        deps.profiles.get_or_create(state.session_id, session.difficulty)
        last = state.evaluations[-1] if state.evaluations else None
        selection = deps.selector.select(
            state.session_id,
            last,
            asked=[question.question for question in state.questions],
            question_id=f"q_{len(state.questions) + 1}",
        )
        state.questions.append(selection.next_question)
        state.metadata.adaptive_reasoning = selection.reasoning
        state.metadata.adaptation_level = selection.adaptation_level
        if deps.selector.available:
            state.metadata.llm_calls += 1

    question = state.current_question()
    if question is None:
        raise ValueError(f"No question at index {state.current_question_index}")
    state.current_state = "asking_questions"
    state.ui.current_message = question_message(state, question)
    state.ui.is_waiting_for_answer = True
    state.ui.current_question_id = question.id
    return state


__all__ = ["run", "question_message"]
