"""Score the current answer once, fold it into the profile and advance."""
from __future__ import annotations

from agents.types import Evaluation, Question, QuestionReference
from graph.deps import NodeDeps
from graph.state import InterviewState

NEXT_MESSAGE = "Great! Moving to the next question..."
DONE_MESSAGE = "All questions completed! Generating your summary..."


def _score(state: InterviewState, question: Question, deps: NodeDeps) -> str:
    session_id = state.session_id
    answer = state.answer_for(question.id)
    if answer is None:
        raise ValueError("No answer found for current question")

    result = deps.evaluator.evaluate(
        question.question,
        answer.answer,
        QuestionReference.from_question(question),
    )
    if deps.evaluator.available:
        state.metadata.llm_calls += 1
    evaluation = Evaluation.from_rubric(question, result)

    # The shared profile is only touched once everything that can fail has run.
    deps.profiles.get_or_create(session_id, state.session.difficulty)
    with deps.profiles.locked(session_id) as profile:
        preview = profile.model_copy(deep=True)
    preview.record(evaluation)
    feedback = deps.selector.adaptive_feedback(evaluation, preview.summary(), state.metadata.adaptive_reasoning or "")
    if deps.selector.available:
        state.metadata.llm_calls += 1
    if deps.store is not None:
        deps.store.save_evaluation(session_id, evaluation.question_id, evaluation.model_dump(mode="json"))

    with deps.profiles.locked(session_id) as profile:
        profile.record(evaluation)
    state.evaluations.append(evaluation)
    return feedback or NEXT_MESSAGE


def run(state: InterviewState, deps: NodeDeps) -> InterviewState:
    question = state.current_question()
    if question is None:
        raise ValueError(f"No question at index {state.current_question_index}")

    if state.evaluation_for(question.id) is None:
        message = _score(state, question, deps)
        done_message = f"{message}\n\n{DONE_MESSAGE}"
    else:
        message = "Moving to next question..."
        done_message = "All questions evaluated. Generating summary..."

    state.current_question_index += 1
    state.ui.is_waiting_for_answer = False
    if state.current_question_index >= state.session.total_questions:
        state.current_state = "summary"
        state.ui.current_message = done_message
    else:
        state.current_state = "asking_questions"
        state.ui.current_message = message
    return state


__all__ = ["run"]
