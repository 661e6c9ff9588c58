"""Shared type definitions for agents."""
from __future__ import annotations

import math
import time
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

Difficulty = Literal["beginner", "intermediate", "advanced"]
DIFFICULTY_SCALE: tuple[Difficulty, ...] = ("beginner", "intermediate", "advanced")
Level = Literal["excellent", "good", "satisfactory", "needs_improvement", "incorrect"]
LEVELS: tuple[str, ...] = ("excellent", "good", "satisfactory", "needs_improvement", "incorrect")

CORRECT_THRESHOLD = 70


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return int(math.floor(value + 0.5))


def clamp_score(value: Any) -> int:
    try:
        return max(0, min(100, round_half_up(float(value))))
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"score must be a finite number, got {value!r}") from exc


def score_level(score: float) -> Level:
    if score >= 90:
        return "excellent"
    if score >= 80:
        return "good"
    if score >= 70:
        return "satisfactory"
    if score >= 60:
        return "needs_improvement"
    return "incorrect"


class Question(BaseModel):
    id: str
    question: str
    difficulty: Difficulty
    category: str
    expected_answer: Optional[str] = None
    key_points: List[str] = Field(default_factory=list)
    example: Optional[str] = None
    time_limit: Optional[int] = None  # seconds
    adaptive_reasoning: Optional[str] = None
    adaptation_level: Optional[int] = None


class Answer(BaseModel):
    question_id: str
    answer: str
    timestamp: float = Field(default_factory=time.time)
    time_spent: Optional[float] = None  # seconds


class QuestionReference(BaseModel):
    """Reference material embedded in the evaluation prompt."""

    expected_answer: Optional[str] = None
    key_points: List[str] = Field(default_factory=list)
    example: Optional[str] = None

    @classmethod
    def from_question(cls, question: Question) -> "QuestionReference":
        return cls(
            expected_answer=question.expected_answer,
            key_points=list(question.key_points),
            example=question.example,
        )


class CriterionAssessment(BaseModel):
    score: int
    level: Level
    feedback: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def _bound_score(cls, value: Any) -> int:
        return clamp_score(value)

    @model_validator(mode="before")
    @classmethod
    def _fill_level(cls, data: Any) -> Any:
        # Missing or unknown levels are derived from the score.
        if not isinstance(data, dict) or "score" not in data:
            return data
        level = data.get("level")
        if isinstance(level, str):
            level = level.strip().lower().replace(" ", "_")
        if level not in LEVELS:
            try:
                level = score_level(clamp_score(data["score"]))
            except (TypeError, ValueError):
                return data
        return {**data, "level": level}


class OverallAssessment(BaseModel):
    score: int
    feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _bound_score(cls, value: Any) -> int:
        return clamp_score(value)


class RubricScores(BaseModel):
    """Structured scores expected back from the text-generation service."""

    correctness: CriterionAssessment
    depth: CriterionAssessment
    clarity: CriterionAssessment
    overall: OverallAssessment


class RubricEvaluation(RubricScores):
    weighted_score: int
    detailed_feedback: str
    timestamp: float = Field(default_factory=time.time)
    source: Literal["llm", "heuristic"] = "llm"


class Evaluation(BaseModel):
    """Per-question evaluation stored on the interview state."""

    question_id: str
    category: str = "general"
    difficulty: Difficulty = "intermediate"
    score: int
    weighted_score: int
    feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    is_correct: bool
    detailed_analysis: Optional[str] = None
    correctness: CriterionAssessment
    depth: CriterionAssessment
    clarity: CriterionAssessment
    timestamp: float = Field(default_factory=time.time)

    @classmethod
    def from_rubric(cls, question: Question, result: RubricEvaluation) -> "Evaluation":
        score = result.overall.score
        return cls(
            question_id=question.id,
            category=question.category,
            difficulty=question.difficulty,
            score=score,
            weighted_score=result.weighted_score,
            feedback=result.overall.feedback,
            strengths=list(result.overall.strengths),
            improvements=list(result.overall.improvements),
            is_correct=score >= CORRECT_THRESHOLD,
            detailed_analysis=result.detailed_feedback,
            correctness=result.correctness,
            depth=result.depth,
            clarity=result.clarity,
            timestamp=result.timestamp,
        )

    @classmethod
    def placeholder(cls) -> "Evaluation":
        """Neutral evaluation used before the first question has been scored."""
        empty = CriterionAssessment(score=0, level="incorrect")
        return cls(
            question_id="",
            score=0,
            weighted_score=0,
            is_correct=False,
            correctness=empty,
            depth=empty,
            clarity=empty,
        )


class TallyEntry(BaseModel):
    category: str
    aspects: List[str] = Field(default_factory=list)
    count: int = 0


class ProfileSummary(BaseModel):
    total_questions: int
    correct_answers: int
    accuracy: int
    average_score: int
    current_difficulty: Difficulty
    performance_trend: Literal["improving", "declining", "stable"]
    adaptation_level: int
    strengths: List[TallyEntry] = Field(default_factory=list)
    weaknesses: List[TallyEntry] = Field(default_factory=list)
    last_updated: float


class AdaptiveSelection(BaseModel):
    next_question: Question
    reasoning: str
    profile_summary: ProfileSummary
    next_difficulty: Difficulty
    recommended_category: Optional[str] = None
    adaptation_level: int


class Recommendation(BaseModel):
    type: Literal["difficulty", "category", "challenge"]
    message: str
    priority: Literal["high", "medium", "low"]


__all__ = [
    "Difficulty",
    "DIFFICULTY_SCALE",
    "Level",
    "LEVELS",
    "CORRECT_THRESHOLD",
    "round_half_up",
    "clamp_score",
    "score_level",
    "Question",
    "Answer",
    "QuestionReference",
    "CriterionAssessment",
    "OverallAssessment",
    "RubricScores",
    "RubricEvaluation",
    "Evaluation",
    "TallyEntry",
    "ProfileSummary",
    "AdaptiveSelection",
    "Recommendation",
]
