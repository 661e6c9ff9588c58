"""Question corpus interface and a JSON-backed reference implementation."""
from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from pydantic import BaseModel, Field

from agents.types import Difficulty, Question

logger = logging.getLogger(__name__)

TIME_LIMITS: Dict[str, int] = {
    "beginner": 180,
    "intermediate": 300,
    "advanced": 420,
}


class QuestionCorpus(Protocol):
    def query(self, category: Optional[str] = None, difficulty: Optional[Difficulty] = None) -> List[Question]: ...

    def random_sample(
        self, n: int, category: Optional[str] = None, difficulty: Optional[Difficulty] = None
    ) -> List[Question]: ...


class CategoryInfo(BaseModel):
    name: str
    description: str = ""


class CorpusStatistics(BaseModel):
    total_questions: int
    categories: int
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_difficulty: Dict[str, int] = Field(default_factory=dict)


def time_limit_for(difficulty: str) -> int:
    return TIME_LIMITS.get(difficulty, 300)


class QuestionBank:
    """In-memory corpus; ``rng`` makes sampling reproducible in tests."""

    def __init__(
        self,
        questions: Iterable[Question],
        categories: Optional[Dict[str, CategoryInfo]] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._questions: List[Question] = list(questions)
        self._categories: Dict[str, CategoryInfo] = dict(categories or {})
        self._rng = rng or random.Random()

    @classmethod
    def from_file(cls, path: Path, *, rng: Optional[random.Random] = None) -> "QuestionBank":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        questions = [
            Question.model_validate({"time_limit": time_limit_for(item.get("difficulty", "")), **item})
            for item in data.get("questions", [])
        ]
        categories = {
            key: CategoryInfo.model_validate(value) for key, value in (data.get("categories") or {}).items()
        }
        logger.info("Question bank loaded path=%s questions=%d", path, len(questions))
        return cls(questions, categories, rng=rng)

    def query(self, category: Optional[str] = None, difficulty: Optional[Difficulty] = None) -> List[Question]:
        matches = self._questions
        if category:
            matches = [q for q in matches if q.category == category]
        if difficulty:
            matches = [q for q in matches if q.difficulty == difficulty]
        return [q.model_copy(deep=True) for q in matches]

    def random_sample(
        self, n: int, category: Optional[str] = None, difficulty: Optional[Difficulty] = None
    ) -> List[Question]:
        matches = self.query(category, difficulty)
        if n >= len(matches):
            self._rng.shuffle(matches)
            return matches
        return self._rng.sample(matches, n)

    def get(self, question_id: str) -> Optional[Question]:
        for question in self._questions:
            if question.id == question_id:
                return question.model_copy(deep=True)
        return None

    def categories(self) -> Dict[str, CategoryInfo]:
        return dict(self._categories)

    def statistics(self) -> CorpusStatistics:
        by_category: Dict[str, int] = {}
        by_difficulty: Dict[str, int] = {}
        for question in self._questions:
            by_category[question.category] = by_category.get(question.category, 0) + 1
            by_difficulty[question.difficulty] = by_difficulty.get(question.difficulty, 0) + 1
        return CorpusStatistics(
            total_questions=len(self._questions),
            categories=len(self._categories) or len(by_category),
            by_category=by_category,
            by_difficulty=by_difficulty,
        )

    def __len__(self) -> int:
        return len(self._questions)


__all__ = ["QuestionCorpus", "QuestionBank", "CategoryInfo", "CorpusStatistics", "TIME_LIMITS", "time_limit_for"]
