"""Explicit session -> performance profile store with per-session locking."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from agents.errors import NotFoundError
from agents.types import Difficulty
from services.performance_profile import PerformanceProfile
from storage.sessions import SessionStore


class ProfileStore:
    """Holds one profile per session id.

    Access to a single entry is serialized through ``locked``; different
    sessions never contend beyond the short map guard.
    """

    def __init__(self, backing: Optional[SessionStore] = None) -> None:
        self._profiles: Dict[str, PerformanceProfile] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()
        self._backing = backing

    def _lock_for(self, session_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[session_id] = lock
        return lock

    @contextmanager
    def locked(self, session_id: str) -> Iterator[PerformanceProfile]:
        """Yield the session's profile while holding its lock."""
        with self._lock_for(session_id):
            yield self.get(session_id)

    def get_or_create(self, session_id: str, difficulty: Difficulty = "intermediate") -> PerformanceProfile:
        with self._guard:
            profile = self._profiles.get(session_id)
            if profile is None:
                profile = PerformanceProfile.create(session_id, difficulty)
                self._profiles[session_id] = profile
        return profile

    def get(self, session_id: str) -> PerformanceProfile:
        with self._guard:
            profile = self._profiles.get(session_id)
        if profile is None:
            raise NotFoundError(f"No performance profile for session '{session_id}'")
        return profile

    def has(self, session_id: str) -> bool:
        with self._guard:
            return session_id in self._profiles

    def delete(self, session_id: str) -> bool:
        with self._guard:
            self._locks.pop(session_id, None)
            return self._profiles.pop(session_id, None) is not None

    def list(self) -> List[str]:
        with self._guard:
            return list(self._profiles)

    def save(self, session_id: str) -> None:
        if self._backing is None:
            return
        with self.locked(session_id) as profile:
            self._backing.save_profile(session_id, profile.to_dict())

    def load(self, session_id: str) -> PerformanceProfile:
        if self._backing is None:
            raise NotFoundError(f"No persisted profile for session '{session_id}'")
        profile = PerformanceProfile.from_dict(self._backing.load_profile(session_id))
        with self._guard:
            self._profiles[session_id] = profile
        return profile


__all__ = ["ProfileStore"]
