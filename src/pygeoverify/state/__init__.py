"""State layer.

The tracker is the single owner of mutable verification sessions; the
backend is the keyed map it stores them in.
"""

from pygeoverify.state.backend import InMemorySessionBackend, KeyedLocks, SessionBackend
from pygeoverify.state.tracker import SessionTracker

__all__ = [
    "InMemorySessionBackend",
    "KeyedLocks",
    "SessionBackend",
    "SessionTracker",
]
