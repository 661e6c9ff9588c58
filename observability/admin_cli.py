"""Lightweight CLI helpers for inspecting stored interview sessions."""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Optional, Sequence

from agents.errors import NotFoundError
from config.settings import settings
from services.performance_profile import PerformanceProfile
from storage.sessions import SqliteSessionStore


def list_sessions(store: SqliteSessionStore, limit: int = 20) -> None:
    for row in store.list_all()[:limit]:
        print(
            f"[{row.updated_at}] {row.session_id} topic={row.topic} state={row.current_state} "
            f"evaluated={row.questions_evaluated} avg={row.average_score:.1f}"
        )


def show_profile(store: SqliteSessionStore, session_id: str) -> None:
    profile = PerformanceProfile.from_dict(store.load_profile(session_id))
    print(json.dumps(profile.summary().model_dump(mode="json"), indent=2))


def show_summary(store: SqliteSessionStore, session_id: str) -> None:
    print(store.load_summary(session_id))


def show_evaluations(store: SqliteSessionStore, session_id: str) -> None:
    for payload in store.list_evaluations(session_id):
        print(f"{payload.get('question_id')}: score={payload.get('score')} correct={payload.get('is_correct')}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Inspect stored interview sessions")
    parser.add_argument("--db", default=settings.DB_PATH, help="SQLite database path")
    parser.add_argument("--list", type=int, metavar="N", help="Show the N most recently updated sessions")
    parser.add_argument("--profile", metavar="SESSION_ID", help="Show a session's performance summary")
    parser.add_argument("--summary", metavar="SESSION_ID", help="Print a session's final report")
    parser.add_argument("--evaluations", metavar="SESSION_ID", help="List a session's evaluations")
    args = parser.parse_args(argv)

    store = SqliteSessionStore(Path(args.db))
    try:
        if args.list:
            list_sessions(store, args.list)
        if args.profile:
            show_profile(store, args.profile)
        if args.summary:
            show_summary(store, args.summary)
        if args.evaluations:
            show_evaluations(store, args.evaluations)
    except NotFoundError as exc:
        print(f"error: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
