import json
import random

from services.question_bank import TIME_LIMITS, QuestionBank, time_limit_for
from tests.fakes import SAMPLE_QUESTIONS


def test_query_filters_by_category_and_difficulty(corpus):
    assert {q.id for q in corpus.query("formulas")} == {"f_beg", "f_int", "f_adv"}
    assert {q.id for q in corpus.query(difficulty="intermediate")} == {"f_int", "c_int", "c_int2"}
    assert [q.id for q in corpus.query("charts", "advanced")] == []
    assert len(corpus.query()) == len(SAMPLE_QUESTIONS)


def test_query_returns_copies(corpus):
    corpus.query("formulas", "beginner")[0].question = "mutated"
    assert corpus.get("f_beg").question == "What does SUM do?"


def test_random_sample_is_bounded(corpus):
    assert len(corpus.random_sample(2, difficulty="intermediate")) == 2
    assert len(corpus.random_sample(10, category="pivot_tables")) == 2


def test_time_limits_follow_difficulty():
    assert TIME_LIMITS == {"beginner": 180, "intermediate": 300, "advanced": 420}
    assert time_limit_for("unknown") == 300


def test_from_file_applies_default_time_limits(tmp_path):
    path = tmp_path / "bank.json"
    path.write_text(
        json.dumps(
            {
                "categories": {"formulas": {"name": "Formulas", "description": "Functions"}},
                "questions": [
                    {"id": "a", "question": "Q1", "difficulty": "advanced", "category": "formulas"},
                    {"id": "b", "question": "Q2", "difficulty": "beginner", "category": "formulas", "time_limit": 60},
                ],
            }
        ),
        encoding="utf-8",
    )
    bank = QuestionBank.from_file(path, rng=random.Random(0))
    assert bank.get("a").time_limit == 420
    assert bank.get("b").time_limit == 60
    assert bank.categories()["formulas"].name == "Formulas"
    stats = bank.statistics()
    assert stats.total_questions == 2
    assert stats.by_difficulty == {"advanced": 1, "beginner": 1}


def test_bundled_bank_loads():
    from graph.build import PROJECT_ROOT

    bank = QuestionBank.from_file(PROJECT_ROOT / "data" / "question_bank.json")
    assert len(bank) > 0
    for difficulty in ("beginner", "intermediate", "advanced"):
        assert bank.query(difficulty=difficulty)
