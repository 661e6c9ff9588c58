import random

import pytest

from agents.adaptive_selector import AdaptiveSelector, build_recommendations, fallback_reasoning
from agents.errors import NoQuestionsAvailableError, NotFoundError
from agents.types import Question
from llm_gateway import Generation
from services.profile_store import ProfileStore
from services.question_bank import QuestionBank
from tests.fakes import ScriptedGenerator, make_evaluation


@pytest.fixture
def profiles():
    store = ProfileStore()
    store.get_or_create("s1", "intermediate")
    return store


def _record(profiles, evaluation):
    with profiles.locked("s1") as profile:
        profile.record(evaluation)


def test_first_question_uses_session_difficulty(corpus, profiles):
    selector = AdaptiveSelector(corpus, profiles, rng=random.Random(1))
    selection = selector.select("s1", question_id="q_1")

    question = selection.next_question
    assert question.id == "q_1"
    assert question.difficulty == "intermediate"
    assert question.time_limit == 300
    assert selection.recommended_category is None
    assert selection.adaptation_level == 0
    assert question.adaptive_reasoning == selection.reasoning
    assert "intermediate" in selection.reasoning


def test_high_score_raises_difficulty_within_strong_category(corpus, profiles):
    evaluation = make_evaluation(92, category="formulas")
    _record(profiles, evaluation)
    selector = AdaptiveSelector(corpus, profiles)

    selection = selector.select("s1", evaluation)

    assert selection.next_difficulty == "advanced"
    assert selection.recommended_category == "formulas"
    assert selection.next_question.question == "Explain dynamic arrays."
    assert "increasing the difficulty to advanced" in selection.reasoning
    assert profiles.get("s1").current_difficulty == "advanced"


def test_low_score_targets_weak_category_at_lower_level(corpus, profiles):
    evaluation = make_evaluation(45, category="pivot_tables")
    _record(profiles, evaluation)
    selection = AdaptiveSelector(corpus, profiles).select("s1", evaluation)

    assert selection.next_difficulty == "beginner"
    assert selection.next_question.question == "What is a pivot table?"
    assert "adjusting to beginner" in selection.reasoning
    assert "focusing on pivot_tables" in selection.reasoning


def test_falls_back_to_any_category_at_same_difficulty(corpus, profiles):
    evaluation = make_evaluation(40, category="charts")
    _record(profiles, evaluation)
    selection = AdaptiveSelector(corpus, profiles).select("s1", evaluation)

    assert selection.recommended_category == "charts"
    assert selection.next_question.difficulty == "beginner"
    assert selection.next_question.category in {"formulas", "pivot_tables"}


def test_falls_back_to_intermediate_when_difficulty_is_empty(profiles):
    corpus = QuestionBank([Question(id="only", question="Q?", difficulty="intermediate", category="x")])
    evaluation = make_evaluation(95, category="x")
    _record(profiles, evaluation)
    selection = AdaptiveSelector(corpus, profiles).select("s1", evaluation)

    assert selection.next_difficulty == "advanced"
    assert selection.next_question.difficulty == "intermediate"


def test_empty_corpus_raises(profiles):
    selector = AdaptiveSelector(QuestionBank([]), profiles)
    with pytest.raises(NoQuestionsAvailableError):
        selector.select("s1")


def test_unknown_session_raises(corpus):
    with pytest.raises(NotFoundError):
        AdaptiveSelector(corpus, ProfileStore()).select("nope")


def test_prefers_questions_not_yet_asked(corpus, profiles):
    selector = AdaptiveSelector(corpus, profiles, rng=random.Random(3))
    asked = ["Explain VLOOKUP.", "When is a bar chart better than a pie chart?"]
    for _ in range(5):
        picked = selector.pick_question("intermediate", None, asked=asked)
        assert picked.question == "How do you add a secondary axis?"


def test_repeats_when_every_candidate_was_asked(corpus, profiles):
    selector = AdaptiveSelector(corpus, profiles)
    picked = selector.pick_question("advanced", "pivot_tables", asked=["Explain calculated fields in pivot tables."])
    assert picked.id == "p_adv"


def test_generated_reasoning_is_used_when_available(corpus, profiles):
    generator = ScriptedGenerator(["Because you did well."])
    selection = AdaptiveSelector(corpus, profiles, generator).select("s1")
    assert selection.reasoning == "Because you did well."
    assert "Recommended Difficulty: intermediate" in generator.prompts[0]


def test_failed_generation_uses_template(corpus, profiles):
    generator = ScriptedGenerator([Generation(success=False, error="boom")])
    selection = AdaptiveSelector(corpus, profiles, generator).select("s1")
    assert selection.reasoning == fallback_reasoning(0, "intermediate", None)


def test_adaptive_feedback_template(corpus, profiles):
    evaluation = make_evaluation(92)
    _record(profiles, evaluation)
    selector = AdaptiveSelector(corpus, profiles)
    feedback = selector.adaptive_feedback(evaluation, profiles.get("s1").summary())
    assert feedback.startswith("You scored 92/100 on this question.")
    assert "excellent" in feedback
    assert "100% across 1 questions" in feedback


def test_adaptive_feedback_from_generator(corpus, profiles):
    evaluation = make_evaluation(50)
    _record(profiles, evaluation)
    selector = AdaptiveSelector(corpus, profiles, ScriptedGenerator(["Keep at it."]))
    assert selector.adaptive_feedback(evaluation, profiles.get("s1").summary(), "reason") == "Keep at it."


def test_insights_and_recommendations(corpus, profiles):
    _record(profiles, make_evaluation(40, question_id="q_1", category="charts"))
    _record(profiles, make_evaluation(50, question_id="q_2", category="formulas"))
    insights = AdaptiveSelector(corpus, profiles).insights("s1")

    assert insights.total_questions == 2
    assert insights.accuracy == 0
    assert insights.average_score == 45
    assert len(insights.difficulty_progression) == 2
    kinds = [(item.type, item.priority) for item in insights.recommendations]
    assert kinds == [("difficulty", "high"), ("category", "medium")]
    assert "charts" in insights.recommendations[1].message


def test_challenge_recommendation_for_strong_sessions(profiles):
    with profiles.locked("s1") as profile:
        profile.record(make_evaluation(95))
        summary = profile.summary()
    assert [item.type for item in build_recommendations(summary)] == ["challenge"]
