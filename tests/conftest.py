import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.registry import TEXTGEN_KEY, unbind_model
from config.settings import settings
from graph.build import InterviewStateMachine
from services.question_bank import QuestionBank
from storage.sessions import InMemorySessionStore, SqliteSessionStore
from tests.fakes import SAMPLE_QUESTIONS, ScriptedGenerator


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DB_PATH", str(tmp_path / "test.db"), raising=False)
    try:
        yield
    finally:
        unbind_model(TEXTGEN_KEY)


@pytest.fixture
def corpus():
    return QuestionBank(SAMPLE_QUESTIONS, rng=random.Random(7))


@pytest.fixture
def memory_store():
    return InMemorySessionStore()


@pytest.fixture
def sqlite_store(tmp_path):
    return SqliteSessionStore(tmp_path / "sessions.db")


@pytest.fixture
def offline_generator():
    return ScriptedGenerator(available=False)


@pytest.fixture
def make_machine(corpus):
    def _make(generator=None, store=None, **kwargs):
        return InterviewStateMachine(
            generator=generator if generator is not None else ScriptedGenerator(available=False),
            corpus=corpus,
            store=store,
            rng=random.Random(11),
            **kwargs,
        )

    return _make
