"""Per-session performance profile driving adaptive question selection."""
from __future__ import annotations

import time
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from agents.types import (
    CORRECT_THRESHOLD,
    DIFFICULTY_SCALE,
    Difficulty,
    Evaluation,
    ProfileSummary,
    TallyEntry,
    round_half_up,
)

Trend = Literal["improving", "declining", "stable"]

STRENGTH_THRESHOLD = 80
WEAKNESS_THRESHOLD = 60
TREND_WINDOW = 3
TREND_DELTA = 10
RAISE_THRESHOLD = 85
LOWER_THRESHOLD = 60
ASPECTS = ("correctness", "depth", "clarity")


class CategoryTally(BaseModel):
    """Category -> observed aspects with a count that grows once per new aspect."""

    entries: List[TallyEntry] = Field(default_factory=list)

    def add(self, category: str, aspect: str) -> None:
        for entry in self.entries:
            if entry.category == category:
                if aspect not in entry.aspects:
                    entry.aspects.append(aspect)
                    entry.count += 1
                return
        self.entries.append(TallyEntry(category=category, aspects=[aspect], count=1))

    def ranked(self) -> List[TallyEntry]:
        # Stable sort keeps first-seen order among equal counts.
        return sorted(self.entries, key=lambda entry: entry.count, reverse=True)

    def top(self, limit: int = 3) -> List[TallyEntry]:
        return [entry.model_copy(deep=True) for entry in self.ranked()[:limit]]

    def leader(self) -> Optional[str]:
        ranked = self.ranked()
        return ranked[0].category if ranked else None

    def categories(self) -> List[str]:
        return [entry.category for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)


class HistoryEntry(BaseModel):
    question_id: str
    score: int
    correctness: int
    depth: int
    clarity: int
    category: str
    difficulty: Difficulty
    timestamp: float


class DifficultyStep(BaseModel):
    difficulty: Difficulty
    score: int
    timestamp: float


class PerformanceProfile(BaseModel):
    """Running statistics for one session; never shared between sessions."""

    session_id: str
    performance_history: List[HistoryEntry] = Field(default_factory=list)
    difficulty_progression: List[DifficultyStep] = Field(default_factory=list)
    strengths: CategoryTally = Field(default_factory=CategoryTally)
    weaknesses: CategoryTally = Field(default_factory=CategoryTally)
    initial_difficulty: Difficulty = "intermediate"
    current_difficulty: Difficulty = "intermediate"
    total_questions: int = 0
    correct_answers: int = 0
    total_score: int = 0
    average_score: float = 0.0
    performance_trend: Trend = "stable"
    adaptation_level: int = 0
    last_updated: float = Field(default_factory=time.time)

    @classmethod
    def create(cls, session_id: str, difficulty: Difficulty = "intermediate") -> "PerformanceProfile":
        return cls(session_id=session_id, initial_difficulty=difficulty, current_difficulty=difficulty)

    def record(self, evaluation: Evaluation) -> None:
        now = time.time()
        self.performance_history.append(
            HistoryEntry(
                question_id=evaluation.question_id,
                score=evaluation.score,
                correctness=evaluation.correctness.score,
                depth=evaluation.depth.score,
                clarity=evaluation.clarity.score,
                category=evaluation.category,
                difficulty=evaluation.difficulty,
                timestamp=now,
            )
        )
        self.total_questions += 1
        if evaluation.score >= CORRECT_THRESHOLD:
            self.correct_answers += 1
        self.total_score += evaluation.score
        self.average_score = self.total_score / len(self.performance_history)

        sub_scores = {
            "correctness": evaluation.correctness.score,
            "depth": evaluation.depth.score,
            "clarity": evaluation.clarity.score,
        }
        for aspect in ASPECTS:
            value = sub_scores[aspect]
            if value >= STRENGTH_THRESHOLD:
                self.strengths.add(evaluation.category, aspect)
            elif value < WEAKNESS_THRESHOLD:
                self.weaknesses.add(evaluation.category, aspect)

        self.difficulty_progression.append(
            DifficultyStep(difficulty=self.current_difficulty, score=evaluation.score, timestamp=now)
        )
        self.performance_trend = self.trend()
        self.adaptation_level = self.compute_adaptation_level()
        self.last_updated = now

    def recent_scores(self) -> List[int]:
        return [entry.score for entry in self.performance_history[-TREND_WINDOW:]]

    def trend(self) -> Trend:
        scores = self.recent_scores()
        if len(scores) < 2:
            return "stable"
        diff = scores[-1] - scores[0]
        if diff > TREND_DELTA:
            return "improving"
        if diff < -TREND_DELTA:
            return "declining"
        return "stable"

    def compute_adaptation_level(self) -> int:
        scores = self.recent_scores()
        if not scores:
            return 0
        mean = sum(scores) / len(scores)
        if mean >= RAISE_THRESHOLD:
            return 1
        if mean <= LOWER_THRESHOLD:
            return -1
        return 0

    def next_difficulty(self) -> Difficulty:
        index = DIFFICULTY_SCALE.index(self.current_difficulty)
        level = self.compute_adaptation_level()
        if level > 0:
            index = min(index + 1, len(DIFFICULTY_SCALE) - 1)
        elif level < 0:
            index = max(index - 1, 0)
        return DIFFICULTY_SCALE[index]

    def commit_difficulty(self, difficulty: Difficulty) -> None:
        self.current_difficulty = difficulty
        self.last_updated = time.time()

    def recommended_category(self) -> Optional[str]:
        """Weakest category first, then the strongest; None means choose freely."""
        return self.weaknesses.leader() or self.strengths.leader()

    def summary(self) -> ProfileSummary:
        accuracy = (self.correct_answers / self.total_questions * 100) if self.total_questions else 0.0
        return ProfileSummary(
            total_questions=self.total_questions,
            correct_answers=self.correct_answers,
            accuracy=round_half_up(accuracy),
            average_score=round_half_up(self.average_score),
            current_difficulty=self.current_difficulty,
            performance_trend=self.performance_trend,
            adaptation_level=self.adaptation_level,
            strengths=self.strengths.top(3),
            weaknesses=self.weaknesses.top(3),
            last_updated=self.last_updated,
        )

    def clear(self) -> None:
        fresh = PerformanceProfile.create(self.session_id, self.initial_difficulty)
        for name in type(self).model_fields:
            setattr(self, name, getattr(fresh, name))

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PerformanceProfile":
        return cls.model_validate(data)


__all__ = [
    "CategoryTally",
    "HistoryEntry",
    "DifficultyStep",
    "PerformanceProfile",
    "Trend",
]
