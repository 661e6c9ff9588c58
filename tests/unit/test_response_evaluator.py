import pytest

from agents.errors import MalformedResponseError
from agents.response_evaluator import (
    HEURISTIC_FEEDBACK,
    AnswerEvaluator,
    BatchItem,
    parse_heuristic,
    parse_strict,
)
from agents.types import CriterionAssessment, QuestionReference, clamp_score
from config.routes import RubricWeights
from config.rubric import build_rubric
from llm_gateway import Generation
from tests.fakes import ScriptedGenerator, evaluation_json


def test_parse_strict_accepts_plain_json():
    scores = parse_strict(evaluation_json(90, 80, 70, 84))
    assert scores.correctness.score == 90
    assert scores.overall.strengths == ["Accurate"]


def test_parse_strict_strips_fences_and_prose():
    fenced = "```json\n" + evaluation_json(60, 61, 62, 61) + "\n```"
    assert parse_strict(fenced).depth.score == 61

    chatty = "Here is my evaluation:\n" + evaluation_json(50, 50, 50, 50) + "\nHope that helps."
    assert parse_strict(chatty).overall.score == 50


def test_parse_strict_clamps_scores_and_fills_levels():
    text = (
        '{"correctness": {"score": 140, "level": "stellar", "feedback": ""},'
        ' "depth": {"score": -3, "feedback": ""},'
        ' "clarity": {"score": 81.6, "level": "Needs Improvement", "feedback": ""},'
        ' "overall": {"score": 101, "feedback": "x"}}'
    )
    scores = parse_strict(text)
    assert scores.correctness.score == 100
    assert scores.correctness.level == "excellent"
    assert scores.depth.score == 0
    assert scores.depth.level == "incorrect"
    assert scores.clarity.score == 82
    assert scores.clarity.level == "needs_improvement"
    assert scores.overall.score == 100


@pytest.mark.parametrize(
    "text",
    [
        "",
        "Good job, scores 88 77 91",
        '{"correctness": {"score": 1}, "depth": {"score": 2}, "clarity": {"score": 3}}',
        "[1, 2, 3]",
    ],
)
def test_parse_strict_rejects_malformed(text):
    with pytest.raises(MalformedResponseError):
        parse_strict(text)


def test_parse_heuristic_uses_first_three_numbers():
    scores = parse_heuristic("Good job, scores 88 77 91")
    assert (scores.correctness.score, scores.depth.score, scores.clarity.score) == (88, 77, 91)
    assert (scores.correctness.level, scores.depth.level, scores.clarity.level) == (
        "good",
        "satisfactory",
        "excellent",
    )
    assert scores.overall.score == 85
    assert scores.overall.feedback.startswith("Good job")


def test_parse_heuristic_defaults_to_neutral_scores():
    scores = parse_heuristic("")
    assert (scores.correctness.score, scores.depth.score, scores.clarity.score) == (70, 70, 70)
    assert scores.overall.score == 70
    assert scores.overall.feedback == HEURISTIC_FEEDBACK


def test_parse_heuristic_clamps_and_pads():
    scores = parse_heuristic("scored 150 then 40")
    assert (scores.correctness.score, scores.depth.score, scores.clarity.score) == (100, 40, 70)
    assert scores.overall.score == 70


def test_evaluate_with_structured_reply():
    generator = ScriptedGenerator([evaluation_json(90, 80, 70, 84)])
    evaluator = AnswerEvaluator(generator)
    reference = QuestionReference(expected_answer="SUM adds", key_points=["range"], example="=SUM(A1:A3)")

    result = evaluator.evaluate("What does SUM do?", "It adds numbers", reference)

    assert result.source == "llm"
    assert result.overall.score == 84
    assert result.weighted_score == 83
    assert "### Correctness (90/100 - GOOD)" in result.detailed_feedback
    assert "=SUM(A1:A3)" in result.detailed_feedback
    prompt = generator.prompts[0]
    assert "What does SUM do?" in prompt
    assert "It adds numbers" in prompt
    assert "CORRECTNESS (Weight: 50%)" in prompt
    assert "range" in prompt


def test_evaluate_recovers_from_unparsable_reply():
    evaluator = AnswerEvaluator(ScriptedGenerator(["Good job, scores 88 77 91"]))
    result = evaluator.evaluate("Q", "A")
    assert result.source == "heuristic"
    assert (result.correctness.score, result.depth.score, result.clarity.score) == (88, 77, 91)
    assert result.overall.score == 85
    assert result.weighted_score == 85


@pytest.mark.parametrize(
    "generator",
    [
        None,
        ScriptedGenerator(available=False),
        ScriptedGenerator([Generation(success=False, error="timeout")]),
    ],
)
def test_evaluate_without_usable_service_is_neutral(generator):
    evaluator = AnswerEvaluator(generator)
    result = evaluator.evaluate("Q", "A")
    assert result.source == "heuristic"
    assert result.overall.score == 70
    assert result.weighted_score == 70


def test_custom_weights_change_weighted_score():
    rubric = build_rubric(RubricWeights(correctness=1.0, depth=0.0, clarity=0.0))
    evaluator = AnswerEvaluator(ScriptedGenerator([evaluation_json(90, 10, 10, 50)]), rubric)
    assert evaluator.evaluate("Q", "A").weighted_score == 90


def test_batch_continues_past_failures():
    generator = ScriptedGenerator([evaluation_json(90, 90, 90, 90), "scores 80 80 80"])
    evaluator = AnswerEvaluator(generator)
    items = [
        BatchItem(question_id="q_1", question="Q1", answer="A1"),
        BatchItem(question_id="q_2", question="Q2", answer="   "),
        BatchItem(question_id="q_3", question="Q3", answer="A3"),
    ]

    batch = evaluator.evaluate_batch(items)

    assert [result.success for result in batch.evaluations] == [True, False, True]
    assert batch.evaluations[1].error
    summary = batch.summary
    assert summary.total_questions == 3
    assert summary.valid_evaluations == 2
    assert summary.average_score == 85
    assert summary.highest_score == 90
    assert summary.lowest_score == 80
    assert summary.performance_level == "Good"


def test_batch_with_no_valid_items():
    batch = AnswerEvaluator().evaluate_batch([BatchItem(question_id="q", question="", answer="")])
    assert batch.summary.valid_evaluations == 0
    assert batch.summary.performance_level == "No valid evaluations"


@pytest.mark.parametrize("bad", [None, {"value": 80}, [80], "high", float("inf"), float("nan")])
def test_non_numeric_scores_are_malformed(bad):
    with pytest.raises(MalformedResponseError):
        parse_strict(evaluation_json(bad, 80, 70, 75))
    with pytest.raises(MalformedResponseError):
        parse_strict(evaluation_json(80, 80, 70, bad))


@pytest.mark.parametrize("bad", [None, "high", float("inf")])
def test_evaluate_falls_back_on_non_numeric_scores(bad):
    evaluator = AnswerEvaluator(ScriptedGenerator([evaluation_json(bad, 80, 70, 75)]))
    result = evaluator.evaluate("Q", "A")
    assert result.source == "heuristic"
    assert 0 <= result.overall.score <= 100


def test_clamp_score_rejects_non_numbers():
    assert clamp_score("87.5") == 88
    assert clamp_score(140) == 100
    for bad in (None, [1], "abc", float("inf")):
        with pytest.raises(ValueError):
            clamp_score(bad)
    with pytest.raises(ValueError):
        CriterionAssessment(score=None, level="good")


def test_evaluate_survives_a_raising_generator():
    def explode(prompt):
        raise ConnectionError("socket closed")

    result = AnswerEvaluator(ScriptedGenerator(explode)).evaluate("Q", "A")
    assert result.source == "heuristic"
    assert result.overall.score == 70
