from __future__ import annotations

import threading
from collections import deque
from datetime import UTC, datetime

from pygeoverify.models.geofence import AnchorGeofence, Coordinate
from pygeoverify.models.sample import GeoSample
from pygeoverify.models.session import VerificationSession
from pygeoverify.state.backend import InMemorySessionBackend, KeyedLocks

_NOW = datetime(2026, 1, 1, tzinfo=UTC)
_ANCHOR = AnchorGeofence(center=Coordinate(latitude=1, longitude=1), radius_meters=100)


def _session(subject_id: str) -> VerificationSession:
    sample = GeoSample(latitude=1, longitude=1, captured_at=_NOW)
    return VerificationSession(
        subject_id=subject_id,
        subject_label="",
        started_at=_NOW,
        last_sample_at=_NOW,
        anchor=_ANCHOR,
        samples=deque([sample], maxlen=5),
    )


class TestInMemorySessionBackend:
    def test_get_set_delete(self) -> None:
        backend = InMemorySessionBackend()
        session = _session("a")
        backend.set("a", session)
        assert backend.get("a") is session
        assert len(backend) == 1
        assert backend.delete("a")
        assert not backend.delete("a")
        assert backend.get("a") is None

    def test_delete_if_only_matches_same_session(self) -> None:
        backend = InMemorySessionBackend()
        old = _session("a")
        backend.set("a", old)
        replacement = _session("a")
        backend.set("a", replacement)

        assert not backend.delete_if("a", old)
        assert backend.get("a") is replacement
        assert backend.delete_if("a", replacement)
        assert len(backend) == 0

    def test_items_is_a_snapshot(self) -> None:
        backend = InMemorySessionBackend()
        backend.set("a", _session("a"))
        backend.set("b", _session("b"))
        for key, _ in backend.items():
            backend.delete(key)
        assert len(backend) == 0

    def test_clear_returns_count(self) -> None:
        backend = InMemorySessionBackend()
        backend.set("a", _session("a"))
        assert backend.clear() == 1
        assert backend.clear() == 0


class TestKeyedLocks:
    def test_entries_dropped_after_release(self) -> None:
        locks = KeyedLocks()
        with locks.hold("a"):
            assert len(locks) == 1
            with locks.hold("b"):
                assert len(locks) == 2
        assert len(locks) == 0

    def test_same_key_is_serialised(self) -> None:
        locks = KeyedLocks()
        inside = 0
        peak = 0
        counter_lock = threading.Lock()

        def _work() -> None:
            nonlocal inside, peak
            with locks.hold("shared"):
                with counter_lock:
                    inside += 1
                    peak = max(peak, inside)
                with counter_lock:
                    inside -= 1

        threads = [threading.Thread(target=_work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert peak == 1
        assert len(locks) == 0
