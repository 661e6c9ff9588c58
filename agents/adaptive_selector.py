"""Adaptive next-question selection driven by the session performance profile."""
from __future__ import annotations

import logging
import random
from textwrap import dedent
from typing import Collection, List, Optional

from pydantic import BaseModel, Field

from agents.errors import NoQuestionsAvailableError
from agents.types import (
    AdaptiveSelection,
    Difficulty,
    Evaluation,
    ProfileSummary,
    Question,
    Recommendation,
)
from llm_gateway import TextGenerator, safe_generate
from services.performance_profile import DifficultyStep
from services.profile_store import ProfileStore
from services.question_bank import QuestionCorpus, time_limit_for

logger = logging.getLogger(__name__)

FALLBACK_DIFFICULTY: Difficulty = "intermediate"

REASONING_PROMPT = dedent(
    """
    As an interview agent, analyze the candidate's performance and explain your reasoning for the next question selection.

    USER PROFILE:
    - Total Questions: {total}
    - Correct Answers: {correct}
    - Accuracy: {accuracy}%
    - Average Score: {average}
    - Current Difficulty: {difficulty}
    - Performance Trend: {trend}
    - Strengths: {strengths}
    - Weaknesses: {weaknesses}

    LATEST EVALUATION:
    - Score: {score}/100
    - Correctness: {correctness}/100
    - Depth: {depth}/100
    - Clarity: {clarity}/100

    NEXT QUESTION STRATEGY:
    - Recommended Difficulty: {next_difficulty}
    - Recommended Category: {category}

    Provide a brief reasoning (2-3 sentences) explaining why this difficulty and category were chosen.
    """
).strip()

FEEDBACK_PROMPT = dedent(
    """
    Generate personalized feedback for an interview candidate based on their performance.

    EVALUATION:
    - Overall Score: {score}/100
    - Correctness: {correctness}/100
    - Depth: {depth}/100
    - Clarity: {clarity}/100
    - Strengths: {strengths}
    - Improvements: {improvements}

    USER PROFILE:
    - Total Questions: {total}
    - Accuracy: {accuracy}%
    - Average Score: {average}
    - Performance Trend: {trend}
    - Current Difficulty: {difficulty}

    REASONING FOR NEXT QUESTION:
    {reasoning}

    Acknowledge strengths, give constructive guidance, and keep it encouraging and concise (2-3 paragraphs).
    """
).strip()


class SessionInsights(BaseModel):
    total_questions: int
    accuracy: int
    average_score: int
    trend: str
    strengths: List[dict] = Field(default_factory=list)
    weaknesses: List[dict] = Field(default_factory=list)
    difficulty_progression: List[DifficultyStep] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)


def fallback_reasoning(score: int, next_difficulty: Difficulty, category: Optional[str]) -> str:
    reasoning = f"Based on your performance ({score}/100), "
    if score >= 85:
        reasoning += f"you're excelling! I'm increasing the difficulty to {next_difficulty} to challenge you further."
    elif score >= 70:
        reasoning += f"you're doing well. I'm maintaining the {next_difficulty} difficulty level."
    else:
        reasoning += f"I'm adjusting to {next_difficulty} difficulty to better match your current level."
    if category:
        reasoning += f" I'm focusing on {category} to help strengthen your weak areas."
    return reasoning


def fallback_feedback(evaluation: Evaluation, summary: ProfileSummary) -> str:
    score = evaluation.score
    feedback = f"You scored {score}/100 on this question. "
    if score >= 85:
        feedback += "Your performance is excellent and shows a strong grasp of the concepts. "
    elif score >= 70:
        feedback += "You're doing well with a solid understanding of the material. "
    else:
        feedback += "There's room for improvement, but you're on the right track. "
    feedback += f"Your overall accuracy is {summary.accuracy}% across {summary.total_questions} questions. "
    if summary.performance_trend == "improving":
        feedback += "You're getting better with each question! "
    elif summary.performance_trend == "declining":
        feedback += "Let's focus on the fundamentals to build your confidence. "
    return feedback + "Keep going!"


def build_recommendations(summary: ProfileSummary) -> List[Recommendation]:
    recommendations: List[Recommendation] = []
    if summary.total_questions and summary.accuracy < 60:
        recommendations.append(
            Recommendation(
                type="difficulty",
                message="Consider focusing on beginner-level questions to build foundational knowledge",
                priority="high",
            )
        )
    if summary.weaknesses:
        recommendations.append(
            Recommendation(
                type="category",
                message=f"Focus on {summary.weaknesses[0].category} to strengthen your weak areas",
                priority="medium",
            )
        )
    if summary.average_score >= 85:
        recommendations.append(
            Recommendation(
                type="challenge",
                message="You're ready for advanced concepts and real-world scenarios",
                priority="low",
            )
        )
    return recommendations


class AdaptiveSelector:
    """Chooses the next question from the corpus using the session's profile."""

    def __init__(
        self,
        corpus: QuestionCorpus,
        profiles: ProfileStore,
        generator: Optional[TextGenerator] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._corpus = corpus
        self._profiles = profiles
        self._generator = generator
        self._rng = rng or random.Random()

    @property
    def available(self) -> bool:
        return self._generator is not None and self._generator.available

    def select(
        self,
        session_id: str,
        last_evaluation: Optional[Evaluation] = None,
        *,
        asked: Collection[str] = (),
        question_id: Optional[str] = None,
    ) -> AdaptiveSelection:
        """Pick the next question for ``session_id`` without recording anything."""
        evaluation = last_evaluation or Evaluation.placeholder()
        with self._profiles.locked(session_id) as profile:
            next_difficulty = profile.next_difficulty()
            category = profile.recommended_category()
            summary = profile.summary()
            reasoning = self.selection_reasoning(summary, evaluation, next_difficulty, category)
            picked = self.pick_question(next_difficulty, category, asked=asked)
            profile.commit_difficulty(next_difficulty)
            level = profile.adaptation_level
            summary = profile.summary()
        question = picked.model_copy(
            update={
                "id": question_id or picked.id,
                "time_limit": picked.time_limit or time_limit_for(picked.difficulty),
                "adaptive_reasoning": reasoning,
                "adaptation_level": level,
            }
        )
        return AdaptiveSelection(
            next_question=question,
            reasoning=reasoning,
            profile_summary=summary,
            next_difficulty=next_difficulty,
            recommended_category=category,
            adaptation_level=level,
        )

    def pick_question(
        self, difficulty: Difficulty, category: Optional[str], *, asked: Collection[str] = ()
    ) -> Question:
        tiers: List[tuple] = []
        for tier in ((category, difficulty), (None, difficulty), (None, FALLBACK_DIFFICULTY)):
            if tier not in tiers:
                tiers.append(tier)
        for tier_category, tier_difficulty in tiers:
            candidates = self._corpus.query(tier_category, tier_difficulty)
            if not candidates:
                continue
            fresh = [q for q in candidates if q.question not in asked and q.id not in asked]
            return self._rng.choice(fresh or candidates)
        raise NoQuestionsAvailableError(
            f"No questions available for difficulty '{difficulty}' (category={category or 'any'})"
        )

    def selection_reasoning(
        self,
        summary: ProfileSummary,
        evaluation: Evaluation,
        next_difficulty: Difficulty,
        category: Optional[str],
    ) -> str:
        if not self.available:
            return fallback_reasoning(evaluation.score, next_difficulty, category)
        prompt = REASONING_PROMPT.format(
            total=summary.total_questions,
            correct=summary.correct_answers,
            accuracy=summary.accuracy,
            average=summary.average_score,
            difficulty=summary.current_difficulty,
            trend=summary.performance_trend,
            strengths=", ".join(entry.category for entry in summary.strengths) or "None yet",
            weaknesses=", ".join(entry.category for entry in summary.weaknesses) or "None yet",
            score=evaluation.score,
            correctness=evaluation.correctness.score,
            depth=evaluation.depth.score,
            clarity=evaluation.clarity.score,
            next_difficulty=next_difficulty,
            category=category or "Any",
        )
        result = safe_generate(self._generator, prompt)  # type: ignore[arg-type]
        if result.success and result.content and result.content.strip():
            return result.content.strip()
        logger.warning("Selection reasoning unavailable, using template: %s", result.error)
        return fallback_reasoning(evaluation.score, next_difficulty, category)

    def adaptive_feedback(self, evaluation: Evaluation, summary: ProfileSummary, reasoning: str = "") -> str:
        if not self.available:
            return fallback_feedback(evaluation, summary)
        prompt = FEEDBACK_PROMPT.format(
            score=evaluation.score,
            correctness=evaluation.correctness.score,
            depth=evaluation.depth.score,
            clarity=evaluation.clarity.score,
            strengths=", ".join(evaluation.strengths) or "None noted",
            improvements=", ".join(evaluation.improvements) or "None noted",
            total=summary.total_questions,
            accuracy=summary.accuracy,
            average=summary.average_score,
            trend=summary.performance_trend,
            difficulty=summary.current_difficulty,
            reasoning=reasoning or "Adaptive feedback based on your performance",
        )
        result = safe_generate(self._generator, prompt)  # type: ignore[arg-type]
        if result.success and result.content and result.content.strip():
            return result.content.strip()
        logger.warning("Adaptive feedback unavailable, using template: %s", result.error)
        return fallback_feedback(evaluation, summary)

    def insights(self, session_id: str) -> SessionInsights:
        with self._profiles.locked(session_id) as profile:
            summary = profile.summary()
            progression = [step.model_copy() for step in profile.difficulty_progression]
        return SessionInsights(
            total_questions=summary.total_questions,
            accuracy=summary.accuracy,
            average_score=summary.average_score,
            trend=summary.performance_trend,
            strengths=[entry.model_dump() for entry in summary.strengths],
            weaknesses=[entry.model_dump() for entry in summary.weaknesses],
            difficulty_progression=progression,
            recommendations=build_recommendations(summary),
        )


__all__ = [
    "AdaptiveSelector",
    "SessionInsights",
    "fallback_reasoning",
    "fallback_feedback",
    "build_recommendations",
]
