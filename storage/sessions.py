from __future__ import annotations  # Session, evaluation, profile and summary persistence

import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel

from agents.errors import NotFoundError


class SessionSummaryRow(BaseModel):  # Listing entry for stored sessions
    session_id: str
    topic: Optional[str] = None
    candidate_name: Optional[str] = None
    current_state: Optional[str] = None
    questions_evaluated: int = 0
    average_score: float = 0.0
    updated_at: str


class SessionStore(Protocol):  # Storage capability consumed by the state machine and profile store
    def save(self, session_id: str, payload: Dict[str, Any]) -> None: ...

    def load(self, session_id: str) -> Dict[str, Any]: ...

    def list_all(self) -> List[SessionSummaryRow]: ...

    def delete(self, session_id: str) -> bool: ...

    def save_evaluation(self, session_id: str, question_id: str, payload: Dict[str, Any]) -> None: ...

    def list_evaluations(self, session_id: str) -> List[Dict[str, Any]]: ...

    def save_profile(self, session_id: str, payload: Dict[str, Any]) -> None: ...

    def load_profile(self, session_id: str) -> Dict[str, Any]: ...

    def save_summary(self, session_id: str, summary: str) -> None: ...

    def load_summary(self, session_id: str) -> str: ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _summary_row(session_id: str, payload: Dict[str, Any], updated_at: str) -> SessionSummaryRow:
    session = payload.get("session") or {}
    progress = payload.get("progress") or {}
    return SessionSummaryRow(
        session_id=session_id,
        topic=session.get("topic"),
        candidate_name=session.get("candidate_name"),
        current_state=payload.get("current_state"),
        questions_evaluated=int(progress.get("questions_evaluated", 0)),
        average_score=float(progress.get("average_score", 0.0)),
        updated_at=updated_at,
    )


class InMemorySessionStore:  # Process-local store, useful for tests and single-process hosts
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._sessions: Dict[str, tuple[Dict[str, Any], str]] = {}
        self._evaluations: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._profiles: Dict[str, Dict[str, Any]] = {}
        self._summaries: Dict[str, str] = {}

    def save(self, session_id: str, payload: Dict[str, Any]) -> None:
        with self._guard:
            self._sessions[session_id] = (json.loads(json.dumps(payload)), _now())

    def load(self, session_id: str) -> Dict[str, Any]:
        with self._guard:
            entry = self._sessions.get(session_id)
        if entry is None:
            raise NotFoundError(f"Session '{session_id}' not found")
        return json.loads(json.dumps(entry[0]))

    def list_all(self) -> List[SessionSummaryRow]:
        with self._guard:
            items = list(self._sessions.items())
        rows = [_summary_row(sid, payload, updated) for sid, (payload, updated) in items]
        return sorted(rows, key=lambda row: row.updated_at, reverse=True)

    def delete(self, session_id: str) -> bool:
        with self._guard:
            self._evaluations.pop(session_id, None)
            self._profiles.pop(session_id, None)
            self._summaries.pop(session_id, None)
            return self._sessions.pop(session_id, None) is not None

    def save_evaluation(self, session_id: str, question_id: str, payload: Dict[str, Any]) -> None:
        with self._guard:
            self._evaluations.setdefault(session_id, {})[question_id] = json.loads(json.dumps(payload))

    def list_evaluations(self, session_id: str) -> List[Dict[str, Any]]:
        with self._guard:
            return list(self._evaluations.get(session_id, {}).values())

    def save_profile(self, session_id: str, payload: Dict[str, Any]) -> None:
        with self._guard:
            self._profiles[session_id] = json.loads(json.dumps(payload))

    def load_profile(self, session_id: str) -> Dict[str, Any]:
        with self._guard:
            payload = self._profiles.get(session_id)
        if payload is None:
            raise NotFoundError(f"Profile for session '{session_id}' not found")
        return json.loads(json.dumps(payload))

    def save_summary(self, session_id: str, summary: str) -> None:
        with self._guard:
            self._summaries[session_id] = summary

    def load_summary(self, session_id: str) -> str:
        with self._guard:
            summary = self._summaries.get(session_id)
        if summary is None:
            raise NotFoundError(f"Summary for session '{session_id}' not found")
        return summary


class SqliteSessionStore:  # SQLite-backed persistence for interview sessions
    def __init__(self, path: Path) -> None:  # Initialize store with database path
        self._path = Path(path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:  # Open SQLite connection with schema settings
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _ensure_schema(self) -> None:  # Create persistence tables if missing
        conn = self._connect()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS interview_sessions (
                    session_id TEXT PRIMARY KEY,
                    payload_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS session_evaluations (
                    session_id TEXT NOT NULL,
                    question_id TEXT NOT NULL,
                    payload_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (session_id, question_id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS session_profiles (
                    session_id TEXT PRIMARY KEY,
                    payload_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS session_summaries (
                    session_id TEXT PRIMARY KEY,
                    summary TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def save(self, session_id: str, payload: Dict[str, Any]) -> None:
        now = _now()
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO interview_sessions (session_id, payload_json, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                    payload_json = excluded.payload_json,
                    updated_at = excluded.updated_at
                """,
                (session_id, json.dumps(payload, ensure_ascii=False), now, now),
            )
            conn.commit()
        finally:
            conn.close()

    def load(self, session_id: str) -> Dict[str, Any]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT payload_json FROM interview_sessions WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            raise NotFoundError(f"Session '{session_id}' not found")
        return json.loads(row["payload_json"])

    def list_all(self) -> List[SessionSummaryRow]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT session_id, payload_json, updated_at FROM interview_sessions ORDER BY updated_at DESC"
            ).fetchall()
        finally:
            conn.close()
        return [_summary_row(row["session_id"], json.loads(row["payload_json"]), row["updated_at"]) for row in rows]

    def delete(self, session_id: str) -> bool:
        conn = self._connect()
        try:
            cursor = conn.execute("DELETE FROM interview_sessions WHERE session_id = ?", (session_id,))
            for table in ("session_evaluations", "session_profiles", "session_summaries"):
                conn.execute(f"DELETE FROM {table} WHERE session_id = ?", (session_id,))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def save_evaluation(self, session_id: str, question_id: str, payload: Dict[str, Any]) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO session_evaluations (session_id, question_id, payload_json, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (session_id, question_id, json.dumps(payload, ensure_ascii=False), _now()),
            )
            conn.commit()
        finally:
            conn.close()

    def list_evaluations(self, session_id: str) -> List[Dict[str, Any]]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT payload_json FROM session_evaluations WHERE session_id = ? ORDER BY rowid",
                (session_id,),
            ).fetchall()
        finally:
            conn.close()
        return [json.loads(row["payload_json"]) for row in rows]

    def save_profile(self, session_id: str, payload: Dict[str, Any]) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO session_profiles (session_id, payload_json, updated_at) VALUES (?, ?, ?)",
                (session_id, json.dumps(payload, ensure_ascii=False), _now()),
            )
            conn.commit()
        finally:
            conn.close()

    def load_profile(self, session_id: str) -> Dict[str, Any]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT payload_json FROM session_profiles WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            raise NotFoundError(f"Profile for session '{session_id}' not found")
        return json.loads(row["payload_json"])

    def save_summary(self, session_id: str, summary: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO session_summaries (session_id, summary, created_at) VALUES (?, ?, ?)",
                (session_id, summary, _now()),
            )
            conn.commit()
        finally:
            conn.close()

    def load_summary(self, session_id: str) -> str:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT summary FROM session_summaries WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            raise NotFoundError(f"Summary for session '{session_id}' not found")
        return str(row["summary"])


__all__ = ["SessionStore", "SessionSummaryRow", "InMemorySessionStore", "SqliteSessionStore"]
