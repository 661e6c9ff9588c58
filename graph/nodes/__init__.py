"""State handlers for the interview state machine."""
from . import ask_question, collect_answer, error, evaluate, intro, summary

__all__ = [
    "ask_question",
    "collect_answer",
    "error",
    "evaluate",
    "intro",
    "summary",
]
