"""Interview state aggregate and the legal transition table."""
from __future__ import annotations

import time
import uuid
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from agents.types import Answer, Difficulty, Evaluation, Question

StateTag = Literal[
    "idle",
    "intro",
    "asking_questions",
    "collecting_answers",
    "evaluating",
    "summary",
    "completed",
    "error",
]

STATE_TRANSITIONS: Dict[str, tuple[str, ...]] = {
    "idle": ("intro", "error"),
    "intro": ("asking_questions", "error"),
    "asking_questions": ("collecting_answers", "evaluating", "summary", "error"),
    "collecting_answers": ("asking_questions", "evaluating", "error"),
    "evaluating": ("asking_questions", "summary", "error"),
    "summary": ("completed", "error"),
    "completed": (),
    "error": ("idle", "intro"),
}


def can_transition_to(current: str, target: str) -> bool:
    """Staying put is always legal so handlers can be replayed."""
    if current == target:
        return current in STATE_TRANSITIONS
    return target in STATE_TRANSITIONS.get(current, ())


class SessionConfig(BaseModel):
    session_id: Optional[str] = None
    candidate_name: Optional[str] = None
    topic: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    total_questions: Optional[int] = None
    time_limit: Optional[int] = None  # minutes

    @field_validator("total_questions")
    @classmethod
    def _positive_total(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError("total_questions must be at least 1")
        return value


class Session(BaseModel):
    session_id: str
    candidate_name: Optional[str] = None
    topic: str
    difficulty: Difficulty
    total_questions: int
    time_limit: Optional[int] = None
    created_at: float
    updated_at: float

    @classmethod
    def from_config(cls, config: SessionConfig, *, topic: str, difficulty: Difficulty, total: int) -> "Session":
        now = time.time()
        return cls(
            session_id=config.session_id or f"interview_{uuid.uuid4().hex[:12]}",
            candidate_name=config.candidate_name,
            topic=config.topic or topic,
            difficulty=config.difficulty or difficulty,
            total_questions=config.total_questions or total,
            time_limit=config.time_limit,
            created_at=now,
            updated_at=now,
        )


class Progress(BaseModel):
    questions_asked: int = 0
    questions_answered: int = 0
    questions_evaluated: int = 0
    total_score: int = 0
    average_score: float = 0.0


class UiState(BaseModel):
    current_message: str = ""
    is_waiting_for_answer: bool = False
    show_summary: bool = False
    error_message: Optional[str] = None
    current_question_id: Optional[str] = None


class Metadata(BaseModel):
    start_time: float = Field(default_factory=time.time)
    end_time: Optional[float] = None
    total_duration: Optional[float] = None  # seconds
    llm_calls: int = 0
    last_activity: float = Field(default_factory=time.time)
    adaptive_reasoning: Optional[str] = None
    adaptation_level: Optional[int] = None
    spans: List[Dict[str, Any]] = Field(default_factory=list)


class InterviewState(BaseModel):
    """Aggregate root; the state machine hands back a fresh copy on every operation."""

    session: Session
    current_state: StateTag = "idle"
    current_question_index: int = 0
    questions: List[Question] = Field(default_factory=list)
    answers: List[Answer] = Field(default_factory=list)
    evaluations: List[Evaluation] = Field(default_factory=list)
    progress: Progress = Field(default_factory=Progress)
    ui: UiState = Field(default_factory=UiState)
    metadata: Metadata = Field(default_factory=Metadata)

    @property
    def session_id(self) -> str:
        return self.session.session_id

    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    def answer_for(self, question_id: str) -> Optional[Answer]:
        # Latest answer wins when a question was answered more than once.
        for answer in reversed(self.answers):
            if answer.question_id == question_id:
                return answer
        return None

    def evaluation_for(self, question_id: str) -> Optional[Evaluation]:
        for evaluation in self.evaluations:
            if evaluation.question_id == question_id:
                return evaluation
        return None

    def fork(self) -> "InterviewState":
        return self.model_copy(deep=True)


class StepAction(BaseModel):
    """Partial update merged into the state before a handler runs."""

    state: Optional[StateTag] = None
    current_question_index: Optional[int] = None
    questions: List[Question] = Field(default_factory=list)
    answers: List[Answer] = Field(default_factory=list)
    evaluations: List[Evaluation] = Field(default_factory=list)
    ui: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)


def update_progress(state: InterviewState) -> InterviewState:
    total = sum(evaluation.score for evaluation in state.evaluations)
    count = len(state.evaluations)
    state.progress = Progress(
        questions_asked=len(state.questions),
        questions_answered=len({answer.question_id for answer in state.answers}),
        questions_evaluated=count,
        total_score=total,
        average_score=(total / count) if count else 0.0,
    )
    return state


def touch(state: InterviewState) -> InterviewState:
    now = time.time()
    state.metadata.last_activity = now
    state.session.updated_at = now
    return state


__all__ = [
    "StateTag",
    "STATE_TRANSITIONS",
    "can_transition_to",
    "SessionConfig",
    "Session",
    "Progress",
    "UiState",
    "Metadata",
    "InterviewState",
    "StepAction",
    "update_progress",
    "touch",
]
