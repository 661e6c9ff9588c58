"""Final report handler; ends the session in ``completed``."""
from __future__ import annotations

import time

from graph.deps import NodeDeps
from graph.state import InterviewState


def run(state: InterviewState, deps: NodeDeps) -> InterviewState:
    session = state.session
    profile = None
    if deps.profiles.has(state.session_id):
        with deps.profiles.locked(state.session_id) as current:
            profile = current.summary()

    answered = len({answer.question_id for answer in state.answers})
    scores = [evaluation.score for evaluation in state.evaluations]
    average = sum(scores) / len(scores) if scores else 0.0
    report = deps.writer.build(
        topic=session.topic,
        difficulty=session.difficulty,
        total_questions=session.total_questions,
        questions_answered=answered,
        average_score=average,
        questions=state.questions,
        evaluations=state.evaluations,
        profile=profile,
        candidate_name=session.candidate_name,
        created_at=session.created_at,
    )
    if deps.writer.available:
        state.metadata.llm_calls += 1
    text = report.render()
    if deps.store is not None:
        deps.store.save_summary(state.session_id, text)

    now = time.time()
    state.current_state = "completed"
    state.ui.current_message = text
    state.ui.is_waiting_for_answer = False
    state.ui.show_summary = True
    state.ui.current_question_id = None
    state.metadata.end_time = now
    state.metadata.total_duration = now - state.metadata.start_time
    return state


__all__ = ["run"]
