"""Final interview summary synthesis with a deterministic fallback."""
from __future__ import annotations

import logging
from datetime import datetime
from textwrap import dedent
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from agents.types import Evaluation, ProfileSummary, Question, round_half_up
from llm_gateway import TextGenerator, safe_generate

logger = logging.getLogger(__name__)

SUMMARY_PROMPT = dedent(
    """
    Generate a comprehensive interview summary for a {topic} interview:

    Session Details:
    - Topic: {topic}
    - Difficulty: {difficulty}
    - Total Questions: {total}
    - Questions Answered: {answered}
    - Average Score: {average:.1f}%

    Questions and Evaluations:
    {details}

    Please provide:
    1. Overall performance assessment
    2. Key strengths demonstrated
    3. Areas for improvement
    4. Recommended next steps

    Format as a professional interview summary.
    """
).strip()


def grade(score: float) -> str:
    if score >= 90:
        return "A (Excellent)"
    if score >= 80:
        return "B (Good)"
    if score >= 70:
        return "C (Satisfactory)"
    if score >= 60:
        return "D (Needs Improvement)"
    return "F (Unsatisfactory)"


def main_takeaway(average: float, topic: str) -> str:
    if average >= 90:
        return f"Outstanding {topic} skills with potential for advanced roles."
    if average >= 80:
        return f"Strong {topic} foundation with room for advanced feature mastery."
    if average >= 70:
        return f"Good understanding of {topic} basics; focus next on intermediate material."
    return f"A foundation is in place; continue building core {topic} skills."


class BreakdownEntry(BaseModel):
    average_score: int
    questions: int


class SummaryReport(BaseModel):
    candidate_name: str = "Anonymous"
    topic: str
    difficulty: str
    date: str
    total_questions: int
    questions_answered: int
    average_score: float
    grade: str
    highlights: List[str] = Field(default_factory=list)
    by_category: Dict[str, BreakdownEntry] = Field(default_factory=dict)
    by_difficulty: Dict[str, BreakdownEntry] = Field(default_factory=dict)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    analysis: str
    analysis_source: str = "heuristic"

    def render(self) -> str:
        lines = [
            "# Interview Summary",
            "",
            f"**Candidate:** {self.candidate_name}",
            f"**Topic:** {self.topic}",
            f"**Difficulty:** {self.difficulty}",
            f"**Date:** {self.date}",
            "",
            "## Performance Overview",
            f"- **Total Questions:** {self.total_questions}",
            f"- **Questions Answered:** {self.questions_answered}",
            f"- **Average Score:** {self.average_score:.1f}/100",
            f"- **Overall Grade:** {self.grade}",
            "",
        ]
        if self.highlights:
            lines.append("## Highlights")
            lines.extend(f"- {item}" for item in self.highlights)
            lines.append("")
        if self.by_category:
            lines.append("## By Category")
            for name, entry in self.by_category.items():
                lines.append(f"- {name}: {entry.average_score}/100 over {entry.questions} question(s)")
            lines.append("")
        if self.by_difficulty:
            lines.append("## By Difficulty")
            for name, entry in self.by_difficulty.items():
                lines.append(f"- {name}: {entry.average_score}/100 over {entry.questions} question(s)")
            lines.append("")
        if self.strengths:
            lines.append(f"**Strengths:** {', '.join(self.strengths)}")
        if self.weaknesses:
            lines.append(f"**Areas to strengthen:** {', '.join(self.weaknesses)}")
        if self.strengths or self.weaknesses:
            lines.append("")
        lines.extend(["## Detailed Analysis", self.analysis, ""])
        lines.append("## Recommendations")
        lines.extend(f"- {item}" for item in self.recommendations)
        return "\n".join(lines).rstrip() + "\n"


def _breakdown(evaluations: Sequence[Evaluation], key: str) -> Dict[str, BreakdownEntry]:
    totals: Dict[str, List[int]] = {}
    for evaluation in evaluations:
        totals.setdefault(getattr(evaluation, key), []).append(evaluation.score)
    return {
        name: BreakdownEntry(average_score=round_half_up(sum(scores) / len(scores)), questions=len(scores))
        for name, scores in totals.items()
    }


def _highlights(average: float, trend: str, evaluations: Sequence[Evaluation]) -> List[str]:
    highlights: List[str] = []
    if average >= 85:
        highlights.append("Excellent overall performance")
    if trend == "improving":
        highlights.append("Shows consistent improvement")
    strong = [evaluation for evaluation in evaluations if evaluation.score >= 85]
    if strong:
        highlights.append(f"Strong performance on {len(strong)} question(s)")
    return highlights or ["Completed the interview successfully"]


def _recommendations(average: float, weaknesses: Sequence[str], topic: str) -> List[str]:
    recommendations: List[str] = []
    if weaknesses:
        recommendations.append(f"Focus on {weaknesses[0]} fundamentals")
    if average >= 80:
        recommendations.append(f"Move on to advanced {topic} scenarios")
    else:
        recommendations.append(f"Practice core {topic} tasks regularly")
    recommendations.append("Review the feedback for each question above")
    return recommendations


class SummaryWriter:
    """Builds the end-of-session report; the generator only adds the analysis paragraph."""

    def __init__(self, generator: Optional[TextGenerator] = None) -> None:
        self._generator = generator

    @property
    def available(self) -> bool:
        return self._generator is not None and self._generator.available

    def build(
        self,
        *,
        topic: str,
        difficulty: str,
        total_questions: int,
        questions_answered: int,
        average_score: float,
        questions: Sequence[Question],
        evaluations: Sequence[Evaluation],
        profile: Optional[ProfileSummary] = None,
        candidate_name: Optional[str] = None,
        created_at: Optional[float] = None,
    ) -> SummaryReport:
        strengths = [entry.category for entry in profile.strengths] if profile else []
        weaknesses = [entry.category for entry in profile.weaknesses] if profile else []
        trend = profile.performance_trend if profile else "stable"
        analysis, source = self._analysis(
            topic, difficulty, total_questions, questions_answered, average_score, questions, evaluations
        )
        stamp = datetime.fromtimestamp(created_at) if created_at else datetime.now()
        return SummaryReport(
            candidate_name=candidate_name or "Anonymous",
            topic=topic,
            difficulty=difficulty,
            date=stamp.strftime("%Y-%m-%d"),
            total_questions=total_questions,
            questions_answered=questions_answered,
            average_score=average_score,
            grade=grade(average_score),
            highlights=_highlights(average_score, trend, evaluations),
            by_category=_breakdown(evaluations, "category"),
            by_difficulty=_breakdown(evaluations, "difficulty"),
            strengths=strengths,
            weaknesses=weaknesses,
            recommendations=_recommendations(average_score, weaknesses, topic),
            analysis=analysis,
            analysis_source=source,
        )

    def _analysis(
        self,
        topic: str,
        difficulty: str,
        total: int,
        answered: int,
        average: float,
        questions: Sequence[Question],
        evaluations: Sequence[Evaluation],
    ) -> tuple[str, str]:
        fallback = main_takeaway(average, topic)
        if not self.available:
            return fallback, "heuristic"
        texts = {question.id: question.question for question in questions}
        details = "\n".join(
            f"Question {index}: {texts.get(evaluation.question_id, evaluation.question_id)}\n"
            f"Score: {evaluation.score}/100\nFeedback: {evaluation.feedback}"
            for index, evaluation in enumerate(evaluations, start=1)
        )
        prompt = SUMMARY_PROMPT.format(
            topic=topic,
            difficulty=difficulty,
            total=total,
            answered=answered,
            average=average,
            details=details or "No evaluations recorded.",
        )
        result = safe_generate(self._generator, prompt)  # type: ignore[arg-type]
        if result.success and result.content and result.content.strip():
            return result.content.strip(), "llm"
        logger.warning("Summary analysis unavailable, using takeaway: %s", result.error)
        return fallback, "heuristic"


__all__ = ["SummaryReport", "SummaryWriter", "BreakdownEntry", "grade", "main_takeaway"]
