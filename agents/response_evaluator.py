"""LLM-backed answer evaluator with a deterministic heuristic fallback.

Scoring is a two-stage pipeline: ``parse_strict`` validates the structured
reply; when it raises ``MalformedResponseError`` the raw text goes through
``parse_heuristic``. The heuristic reads the first three integers it finds as
correctness, depth and clarity. That is a best-effort recovery and carries no
guarantee the numbers mean what their position suggests.
"""
from __future__ import annotations

import json
import logging
import re
from textwrap import dedent
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from agents.errors import MalformedResponseError
from agents.types import (
    CriterionAssessment,
    OverallAssessment,
    QuestionReference,
    RubricEvaluation,
    RubricScores,
    round_half_up,
    score_level,
)
from config.rubric import DEFAULT_RUBRIC, Rubric
from llm_gateway import TextGenerator, safe_generate, strip_code_fences

logger = logging.getLogger(__name__)

DEFAULT_HEURISTIC_SCORE = 70
HEURISTIC_FEEDBACK = "Evaluation based on automated analysis"
_NUMBER_RE = re.compile(r"\d+")
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


class BatchItem(BaseModel):
    question_id: str
    question: str
    answer: str
    reference: Optional[QuestionReference] = None


class BatchResult(BaseModel):
    question_id: str
    success: bool
    evaluation: Optional[RubricEvaluation] = None
    error: Optional[str] = None


class BatchSummary(BaseModel):
    total_questions: int
    valid_evaluations: int
    average_score: int
    highest_score: int
    lowest_score: int
    performance_level: str


class BatchEvaluation(BaseModel):
    evaluations: List[BatchResult] = Field(default_factory=list)
    summary: BatchSummary


def _bullets(items: Sequence[str]) -> str:
    return ", ".join(items) if items else "Not provided"


def parse_strict(text: str) -> RubricScores:
    """Parse a structured evaluation or raise ``MalformedResponseError``."""
    cleaned = strip_code_fences(text or "")
    candidates = [cleaned]
    match = _OBJECT_RE.search(cleaned)
    if match and match.group(0) != cleaned:
        candidates.append(match.group(0))
    last_error: Optional[Exception] = None
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = exc
            continue
        if not isinstance(data, dict):
            last_error = TypeError("evaluation payload is not an object")
            continue
        missing = [key for key in ("correctness", "depth", "clarity", "overall") if key not in data]
        if missing:
            last_error = KeyError(f"missing keys: {', '.join(missing)}")
            continue
        try:
            return RubricScores.model_validate(data)
        except (ValidationError, TypeError, ValueError, OverflowError) as exc:
            last_error = exc
    raise MalformedResponseError(f"Unparsable evaluation: {last_error}")


def parse_heuristic(text: str) -> RubricScores:
    """Best-effort scores from free text: first three integers, 70 when absent."""
    numbers = [int(value) for value in _NUMBER_RE.findall(text or "")]
    scores = [max(0, min(100, value)) for value in numbers[:3]]
    while len(scores) < 3:
        scores.append(DEFAULT_HEURISTIC_SCORE)
    correctness, depth, clarity = (
        CriterionAssessment(score=value, level=score_level(value), feedback=HEURISTIC_FEEDBACK) for value in scores
    )
    excerpt = (text or "").strip()
    feedback = excerpt[:200] + "..." if excerpt else HEURISTIC_FEEDBACK
    return RubricScores(
        correctness=correctness,
        depth=depth,
        clarity=clarity,
        overall=OverallAssessment(
            score=round_half_up(sum(scores) / 3),
            feedback=feedback,
            strengths=["Answer provided"],
            improvements=["Could be more detailed"],
        ),
    )


def _performance_level(average: int) -> str:
    if average >= 90:
        return "Excellent"
    if average >= 80:
        return "Good"
    if average >= 70:
        return "Satisfactory"
    return "Needs Improvement"


class AnswerEvaluator:
    """Scores free-text answers against a weighted rubric."""

    def __init__(self, generator: Optional[TextGenerator] = None, rubric: Rubric = DEFAULT_RUBRIC) -> None:
        self._generator = generator
        self._rubric = rubric

    @property
    def rubric(self) -> Rubric:
        return self._rubric

    @property
    def available(self) -> bool:
        return self._generator is not None and self._generator.available

    def build_prompt(self, question: str, answer: str, reference: Optional[QuestionReference] = None) -> str:
        reference = reference or QuestionReference()
        criteria_lines: List[str] = []
        for index, (name, criterion) in enumerate(self._rubric.criteria().items(), start=1):
            criteria_lines.append(
                f"{index}. {name.upper()} (Weight: {criterion.weight * 100:.0f}%): {criterion.description}"
            )
            for level, description in criterion.levels.items():
                criteria_lines.append(f"   - {level.replace('_', ' ').title()}: {description}")
        criteria_block = "\n".join(criteria_lines)
        return dedent(
            """
            You are an expert instructor evaluating an interview answer. Evaluate the response using the criteria below.

            QUESTION: {question}

            EXPECTED ANSWER (for reference): {expected}
            KEY POINTS TO COVER: {key_points}
            EXAMPLE: {example}

            USER'S ANSWER: {answer}

            EVALUATION CRITERIA:
            {criteria}

            Reply with a single JSON object and nothing else, in this shape:
            {{
              "correctness": {{"score": 0-100, "level": "excellent|good|satisfactory|needs_improvement|incorrect", "feedback": "..."}},
              "depth": {{"score": 0-100, "level": "...", "feedback": "..."}},
              "clarity": {{"score": 0-100, "level": "...", "feedback": "..."}},
              "overall": {{"score": 0-100, "feedback": "...", "strengths": ["..."], "improvements": ["..."]}}
            }}

            Be thorough but fair, and consider the difficulty of the question.
            """
        ).strip().format(
            question=question,
            expected=reference.expected_answer or "Not provided",
            key_points=_bullets(reference.key_points),
            example=reference.example or "Not provided",
            answer=answer,
            criteria=criteria_block,
        )

    def weighted_score(self, scores: RubricScores) -> int:
        rubric = self._rubric
        return round_half_up(
            scores.correctness.score * rubric.correctness.weight
            + scores.depth.score * rubric.depth.weight
            + scores.clarity.score * rubric.clarity.weight
        )

    def detailed_feedback(self, scores: RubricScores, reference: Optional[QuestionReference] = None) -> str:
        parts = ["## Detailed Evaluation", ""]
        for name in ("correctness", "depth", "clarity"):
            item: CriterionAssessment = getattr(scores, name)
            parts.append(f"### {name.title()} ({item.score}/100 - {item.level.upper()})")
            parts.append(item.feedback)
            parts.append("")
        parts.append(f"### Overall Assessment ({scores.overall.score}/100)")
        parts.append(scores.overall.feedback)
        parts.append("")
        if scores.overall.strengths:
            parts.append("### Strengths")
            parts.extend(f"- {strength}" for strength in scores.overall.strengths)
            parts.append("")
        if scores.overall.improvements:
            parts.append("### Areas for Improvement")
            parts.extend(f"- {improvement}" for improvement in scores.overall.improvements)
            parts.append("")
        if reference is not None and reference.example:
            parts.append("### Example")
            parts.append(reference.example)
            parts.append("")
        return "\n".join(parts)

    def evaluate(self, question: str, answer: str, reference: Optional[QuestionReference] = None) -> RubricEvaluation:
        """Evaluate one answer; generator failures and malformed replies fall back to the heuristic."""
        raw = ""
        source = "heuristic"
        scores: Optional[RubricScores] = None
        if self.available:
            result = safe_generate(self._generator, self.build_prompt(question, answer, reference))  # type: ignore[arg-type]
            if result.success and result.content:
                raw = result.content
                try:
                    scores = parse_strict(raw)
                    source = "llm"
                except MalformedResponseError as exc:
                    logger.warning("Evaluation reply malformed, using heuristic scores: %s", exc)
            else:
                logger.warning("Evaluation generation failed, using heuristic scores: %s", result.error)
        if scores is None:
            scores = parse_heuristic(raw)
        return RubricEvaluation(
            **scores.model_dump(),
            weighted_score=self.weighted_score(scores),
            detailed_feedback=self.detailed_feedback(scores, reference),
            source=source,
        )

    def evaluate_batch(self, items: Sequence[BatchItem]) -> BatchEvaluation:
        results: List[BatchResult] = []
        for item in items:
            try:
                if not item.question.strip() or not item.answer.strip():
                    raise ValueError("question and answer are required")
                evaluation = self.evaluate(item.question, item.answer, item.reference)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Batch item %s failed: %s", item.question_id, exc)
                results.append(BatchResult(question_id=item.question_id, success=False, error=str(exc)))
                continue
            results.append(BatchResult(question_id=item.question_id, success=True, evaluation=evaluation))
        return BatchEvaluation(evaluations=results, summary=self._batch_summary(results))

    @staticmethod
    def _batch_summary(results: Sequence[BatchResult]) -> BatchSummary:
        scores = [r.evaluation.overall.score for r in results if r.success and r.evaluation is not None]
        if not scores:
            return BatchSummary(
                total_questions=len(results),
                valid_evaluations=0,
                average_score=0,
                highest_score=0,
                lowest_score=0,
                performance_level="No valid evaluations",
            )
        average = round_half_up(sum(scores) / len(scores))
        return BatchSummary(
            total_questions=len(results),
            valid_evaluations=len(scores),
            average_score=average,
            highest_score=max(scores),
            lowest_score=min(scores),
            performance_level=_performance_level(average),
        )


__all__ = [
    "AnswerEvaluator",
    "BatchItem",
    "BatchResult",
    "BatchSummary",
    "BatchEvaluation",
    "parse_strict",
    "parse_heuristic",
]
