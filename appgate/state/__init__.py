"""Per-session widget state."""

from .backends import InMemoryStateBackend, StateBackend
from .store import SessionStateStore, SessionStatus, run_idle_eviction

__all__ = [
    "InMemoryStateBackend",
    "SessionStateStore",
    "SessionStatus",
    "StateBackend",
    "run_idle_eviction",
]
