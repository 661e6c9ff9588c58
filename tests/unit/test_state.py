import pytest

from agents.types import Answer, Question
from graph.state import (
    STATE_TRANSITIONS,
    InterviewState,
    Session,
    SessionConfig,
    can_transition_to,
    update_progress,
)
from tests.fakes import make_evaluation


def _state():
    session = Session.from_config(SessionConfig(session_id="s1"), topic="Excel", difficulty="intermediate", total=3)
    return InterviewState(session=session)


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        ("idle", "intro", True),
        ("idle", "asking_questions", False),
        ("idle", "error", True),
        ("intro", "asking_questions", True),
        ("asking_questions", "evaluating", True),
        ("asking_questions", "summary", True),
        ("collecting_answers", "summary", False),
        ("evaluating", "asking_questions", True),
        ("evaluating", "summary", True),
        ("summary", "completed", True),
        ("completed", "intro", False),
        ("completed", "completed", True),
        ("error", "intro", True),
        ("error", "idle", True),
        ("error", "summary", False),
        ("evaluating", "evaluating", True),
    ],
)
def test_transition_table(current, target, allowed):
    assert can_transition_to(current, target) is allowed


def test_every_non_terminal_state_can_fail():
    for state, targets in STATE_TRANSITIONS.items():
        if state in {"completed", "error"}:
            continue
        assert "error" in targets
    assert STATE_TRANSITIONS["completed"] == ()


def test_session_defaults_and_config_overrides():
    session = Session.from_config(SessionConfig(topic="SQL", total_questions=2), topic="Excel", difficulty="beginner", total=5)
    assert session.topic == "SQL"
    assert session.total_questions == 2
    assert session.difficulty == "beginner"
    assert session.session_id.startswith("interview_")


def test_config_rejects_non_positive_total():
    with pytest.raises(ValueError):
        SessionConfig(total_questions=0)


def test_update_progress_counts_distinct_answers():
    state = _state()
    state.questions.append(Question(id="q_1", question="Q", difficulty="beginner", category="x"))
    state.answers.extend(
        [Answer(question_id="q_1", answer="first"), Answer(question_id="q_1", answer="second")]
    )
    state.evaluations.extend([make_evaluation(80, question_id="q_1"), make_evaluation(61, question_id="q_2")])

    progress = update_progress(state).progress
    assert progress.questions_asked == 1
    assert progress.questions_answered == 1
    assert progress.questions_evaluated == 2
    assert progress.total_score == 141
    assert progress.average_score == pytest.approx(70.5)
    assert state.answer_for("q_1").answer == "second"


def test_fork_is_independent():
    state = _state()
    copy = state.fork()
    copy.answers.append(Answer(question_id="q", answer="a"))
    copy.session.topic = "changed"
    assert state.answers == []
    assert state.session.topic == "Excel"
