"""Session storage backends.

The tracker only talks to a :class:`SessionBackend`, so the engine logic
can run against a plain dict in tests or a different map in a host that
shares sessions between workers.
"""

from __future__ import annotations

import contextlib
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Protocol

from pygeoverify.models.session import VerificationSession


class SessionBackend(Protocol):
    """Keyed session map used by :class:`~pygeoverify.state.tracker.SessionTracker`."""

    def get(self, subject_id: str) -> VerificationSession | None: ...

    def set(self, subject_id: str, session: VerificationSession) -> None: ...

    def delete(self, subject_id: str) -> bool: ...

    def delete_if(self, subject_id: str, expected: VerificationSession) -> bool:
        """Delete *subject_id* only while it still maps to *expected*."""
        ...

    def items(self) -> list[tuple[str, VerificationSession]]:
        """Point-in-time snapshot safe to iterate while the map changes."""
        ...

    def clear(self) -> int: ...

    def __len__(self) -> int: ...


class InMemorySessionBackend:
    """Thread-safe dict-backed session map."""

    def __init__(self) -> None:
        self._sessions: dict[str, VerificationSession] = {}
        self._lock = threading.RLock()

    def get(self, subject_id: str) -> VerificationSession | None:
        with self._lock:
            return self._sessions.get(subject_id)

    def set(self, subject_id: str, session: VerificationSession) -> None:
        with self._lock:
            self._sessions[subject_id] = session

    def delete(self, subject_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(subject_id, None) is not None

    def delete_if(self, subject_id: str, expected: VerificationSession) -> bool:
        with self._lock:
            if self._sessions.get(subject_id) is not expected:
                return False
            del self._sessions[subject_id]
            return True

    def items(self) -> list[tuple[str, VerificationSession]]:
        with self._lock:
            return list(self._sessions.items())

    def clear(self) -> int:
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


@dataclass(slots=True)
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class KeyedLocks:
    """One mutex per key, dropped again once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, _KeyLock] = {}

    @contextlib.contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _KeyLock()
                self._locks[key] = entry
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
