"""Interview state machine: action merging, handler dispatch and persistence."""
from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from agents.adaptive_selector import AdaptiveSelector, SessionInsights
from agents.errors import NotFoundError, RequestValidationError, ServiceUnavailableError
from agents.response_evaluator import AnswerEvaluator
from agents.types import AdaptiveSelection, Answer, Evaluation, ProfileSummary, Question
from config.routes import AppConfig
from config.rubric import DEFAULT_RUBRIC, Rubric, build_rubric
from config.settings import Settings, settings as default_settings
from llm_gateway import LlmTextGenerator, TextGenerator, resolve_generator
from observability.logger import log_event
from observability.tracing import span
from services.performance_profile import PerformanceProfile
from services.profile_store import ProfileStore
from services.question_bank import QuestionBank, QuestionCorpus
from services.reporting import SummaryWriter
from storage.sessions import SessionStore, SqliteSessionStore

from .deps import NodeDeps
from .nodes import ask_question, collect_answer, error, evaluate, intro, summary
from .state import (
    STATE_TRANSITIONS,
    InterviewState,
    Metadata,
    Session,
    SessionConfig,
    StepAction,
    UiState,
    can_transition_to,
    touch,
    update_progress,
)

logger = logging.getLogger(__name__)

Handler = Callable[[InterviewState, NodeDeps], InterviewState]

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _unchanged(state: InterviewState, deps: NodeDeps) -> InterviewState:
    return state


HANDLERS: Dict[str, Handler] = {
    "idle": intro.run,
    "intro": intro.run,
    "asking_questions": ask_question.run,
    "collecting_answers": collect_answer.run,
    "evaluating": evaluate.run,
    "summary": summary.run,
    "completed": _unchanged,
    "error": error.run,
}

if set(HANDLERS) != set(STATE_TRANSITIONS):
    raise RuntimeError("every state tag needs exactly one handler")


def _resolve_path(path: Union[str, Path]) -> Path:
    candidate = Path(path)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    return PROJECT_ROOT / candidate


class InterviewStateMachine:
    """The only entry point callers use to drive an interview session."""

    def __init__(
        self,
        *,
        generator: Optional[TextGenerator] = None,
        corpus: Optional[QuestionCorpus] = None,
        store: Optional[SessionStore] = None,
        profiles: Optional[ProfileStore] = None,
        rubric: Rubric = DEFAULT_RUBRIC,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._settings = settings or default_settings
        self._generator = generator if generator is not None else resolve_generator(self._settings)
        self._corpus = (
            corpus
            if corpus is not None
            else QuestionBank.from_file(_resolve_path(self._settings.QUESTION_BANK_PATH), rng=rng)
        )
        self._store = store
        self._profiles = profiles if profiles is not None else ProfileStore(backing=store)
        self._selector = AdaptiveSelector(self._corpus, self._profiles, self._generator, rng=rng)
        self._evaluator = AnswerEvaluator(self._generator, rubric)
        self._writer = SummaryWriter(self._generator)
        self._deps = NodeDeps(
            selector=self._selector,
            evaluator=self._evaluator,
            profiles=self._profiles,
            writer=self._writer,
            store=store,
        )
        if self._generator is None:
            logger.warning("Interview state machine created without a text generator")

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        app_config: Optional[AppConfig] = None,
        **kwargs: Any,
    ) -> "InterviewStateMachine":
        """Wire a SQLite store, and optionally a JSON route and rubric weights."""
        cfg = settings or default_settings
        store = kwargs.pop("store", None) or SqliteSessionStore(_resolve_path(cfg.DB_PATH))
        if app_config is not None:
            kwargs.setdefault("rubric", build_rubric(app_config.rubric_weights))
            if app_config.llm_route is not None:
                kwargs.setdefault("generator", LlmTextGenerator(app_config.llm_route))
        return cls(settings=cfg, store=store, **kwargs)

    @property
    def is_available(self) -> bool:
        return self._generator is not None

    @property
    def profiles(self) -> ProfileStore:
        return self._profiles

    @property
    def selector(self) -> AdaptiveSelector:
        return self._selector

    @property
    def evaluator(self) -> AnswerEvaluator:
        return self._evaluator

    # -- session lifecycle -------------------------------------------------

    def start(self, config: Union[SessionConfig, Dict[str, Any], None] = None) -> InterviewState:
        if not self.is_available:
            raise ServiceUnavailableError("Text generation service is not configured")
        try:
            parsed = config if isinstance(config, SessionConfig) else SessionConfig.model_validate(config or {})
            session = Session.from_config(
                parsed,
                topic=self._settings.DEFAULT_TOPIC,
                difficulty=self._settings.DEFAULT_DIFFICULTY,
                total=self._settings.DEFAULT_TOTAL_QUESTIONS,
            )
        except ValidationError as exc:
            raise RequestValidationError(f"Invalid session config: {exc}") from exc

        self._profiles.delete(session.session_id)
        self._profiles.get_or_create(session.session_id, session.difficulty)
        state = update_progress(InterviewState(session=session))
        log_event(
            "session.start",
            session.session_id,
            topic=session.topic,
            difficulty=session.difficulty,
            total_questions=session.total_questions,
        )
        self._persist(state)
        return state

    def step(self, state: InterviewState, action: Optional[StepAction] = None) -> InterviewState:
        """Merge ``action`` and run exactly one handler for the resulting state tag."""
        current = state.fork()
        if action is not None:
            self._merge(current, action)

        tag = current.current_state
        session_id = current.session_id
        log_event("step.start", session_id, state=tag)
        if tag == "completed":
            log_event("step.end", session_id, state=tag, outcome=tag)
            return current

        timings: List[Dict[str, Any]] = []
        node = HANDLERS[tag].__module__.rsplit(".", 1)[-1]
        try:
            with span(timings, node):
                log_event("node.start", session_id, node=node)
                result = HANDLERS[tag](current.fork(), self._deps)
            if not can_transition_to(tag, result.current_state):
                raise RuntimeError(f"Illegal transition {tag} -> {result.current_state}")
        except Exception as exc:  # noqa: BLE001
            logger.warning("Handler %s failed for session %s: %s", node, session_id, exc)
            log_event("node.error", session_id, level=logging.WARNING, node=node, error=str(exc))
            result = error.run(current, self._deps, message=str(exc))

        result.metadata.spans.extend(timings)
        update_progress(touch(result))
        log_event("node.end", session_id, node=node, outcome=result.current_state)
        log_event("step.end", session_id, state=tag, outcome=result.current_state)
        self._persist(result)
        return result

    def add_answer(
        self,
        state: InterviewState,
        question_id: str,
        text: str,
        time_spent: Optional[float] = None,
    ) -> InterviewState:
        if not question_id or not (text or "").strip():
            raise RequestValidationError("question_id and answer text are required")
        if not any(question.id == question_id for question in state.questions):
            raise RequestValidationError(f"Unknown question '{question_id}'")
        updated = state.fork()
        updated.answers.append(Answer(question_id=question_id, answer=text, time_spent=time_spent))
        update_progress(touch(updated))
        log_event("answer.added", updated.session_id, question_id=question_id)
        self._persist(updated)
        return updated

    def resume(self, session_id: str) -> InterviewState:
        """Load the last saved snapshot and make sure its profile is in memory."""
        if self._store is None:
            raise ServiceUnavailableError("No session store configured")
        state = InterviewState.model_validate(self._store.load(session_id))
        if not self._profiles.has(session_id):
            try:
                self._profiles.load(session_id)
            except NotFoundError:
                profile = self._profiles.get_or_create(session_id, state.session.difficulty)
                with self._profiles.locked(session_id):
                    for evaluation in state.evaluations:
                        profile.record(evaluation)
        log_event("session.resume", session_id, state=state.current_state)
        return state

    # -- profile operations --------------------------------------------------

    def get_profile_summary(self, session_id: str) -> ProfileSummary:
        with self._profiles.locked(session_id) as profile:
            return profile.summary()

    def record_and_adapt(
        self,
        session_id: str,
        question: Question,
        answer: Answer,
        evaluation: Evaluation,
    ) -> AdaptiveSelection:
        if answer.question_id != question.id or evaluation.question_id != question.id:
            raise RequestValidationError("question, answer and evaluation must share a question id")
        self._profiles.get_or_create(session_id, question.difficulty)
        with self._profiles.locked(session_id) as profile:
            profile.record(evaluation)
        selection = self._selector.select(session_id, evaluation, asked=[question.question])
        log_event(
            "profile.adapted",
            session_id,
            question_id=question.id,
            score=evaluation.score,
            outcome=selection.next_difficulty,
        )
        return selection

    def session_insights(self, session_id: str) -> SessionInsights:
        return self._selector.insights(session_id)

    def clear_profile(self, session_id: str) -> None:
        with self._profiles.locked(session_id) as profile:
            profile.clear()

    def active_sessions(self) -> List[str]:
        return self._profiles.list()

    def save_profile(self, session_id: str) -> None:
        if self._store is None:
            raise ServiceUnavailableError("No session store configured")
        self._profiles.save(session_id)

    def load_profile(self, session_id: str) -> PerformanceProfile:
        if self._store is None:
            raise ServiceUnavailableError("No session store configured")
        return self._profiles.load(session_id)

    # -- internals -------------------------------------------------------------

    def _merge(self, state: InterviewState, action: StepAction) -> None:
        if action.current_question_index is not None:
            if action.current_question_index < state.current_question_index:
                raise RequestValidationError(
                    f"current_question_index cannot move back from {state.current_question_index} "
                    f"to {action.current_question_index}"
                )
            state.current_question_index = action.current_question_index
        if action.state is not None:
            if not can_transition_to(state.current_state, action.state):
                raise RequestValidationError(f"Illegal transition {state.current_state} -> {action.state}")
            state.current_state = action.state

        known = {question.id for question in state.questions}
        for question in action.questions:
            if question.id not in known:
                state.questions.append(question)
                known.add(question.id)
        state.answers.extend(action.answers)
        evaluated = {evaluation.question_id for evaluation in state.evaluations}
        for evaluation in action.evaluations:
            if evaluation.question_id in evaluated:
                logger.info("Dropping duplicate evaluation for %s", evaluation.question_id)
                continue
            state.evaluations.append(evaluation)
            evaluated.add(evaluation.question_id)

        state.ui = self._merged(UiState, state.ui, action.ui, "ui")
        state.metadata = self._merged(Metadata, state.metadata, action.metadata, "metadata")
        update_progress(state)

    @staticmethod
    def _merged(model: Any, current: Any, changes: Dict[str, Any], label: str) -> Any:
        if not changes:
            return current
        unknown = sorted(set(changes) - set(model.model_fields))
        if unknown:
            raise RequestValidationError(f"Unknown {label} field(s): {', '.join(unknown)}")
        try:
            return model.model_validate({**current.model_dump(), **changes})
        except ValidationError as exc:
            raise RequestValidationError(f"Invalid {label} update: {exc}") from exc

    def _persist(self, state: InterviewState) -> None:
        if self._store is None:
            return
        session_id = state.session_id
        try:
            self._store.save(session_id, state.model_dump(mode="json"))
            if self._profiles.has(session_id):
                self._profiles.save(session_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Snapshot save failed for session %s: %s", session_id, exc)
            log_event("store.error", session_id, level=logging.WARNING, error=str(exc))


__all__ = ["InterviewStateMachine", "HANDLERS"]
