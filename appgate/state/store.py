"""
Session / widget state store.

Holds one opaque state value per session id. Writes to the same session are
serialized by a per-session ``asyncio.Lock`` held only around the mutation;
different sessions never contend. Values are deep-copied on the way in and
out so callers never share mutable state with the store.

Session lifecycle:
    ABSENT -> ACTIVE (first get/set/update) -> EVICTED (terminal)

EVICTED is terminal only while the id is among the last ``tombstone_limit``
evictions; an older tombstone is forgotten and the id reads as ABSENT again.
"""

import asyncio
import copy
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from enum import Enum
from typing import Any

from appgate.framework.errors import SessionEvictedError
from appgate.framework.tools._tool_async import safe_await_if_needed

from .backends import MISSING, InMemoryStateBackend, StateBackend

logger = logging.getLogger(__name__)


class SessionStatus(Enum):
    """Lifecycle state of a session id."""

    ABSENT = "absent"
    ACTIVE = "active"
    EVICTED = "evicted"


class SessionStateStore:
    """
    Partitioned-lock state store.

    Args:
        backend: Persistence backend (in-memory by default)
        default_factory: Builds the empty state returned for unset sessions
        tombstone_limit: How many evicted session ids are remembered. Once an
            id falls out of that window it is ABSENT and may be reused.
    """

    def __init__(
        self,
        backend: StateBackend | None = None,
        default_factory: Callable[[], Any] = dict,
        tombstone_limit: int = 10_000,
    ) -> None:
        self._backend = backend if backend is not None else InMemoryStateBackend()
        self._default_factory = default_factory
        self._tombstone_limit = tombstone_limit
        self._locks: dict[str, asyncio.Lock] = {}
        self._active: dict[str, float] = {}  # session_id -> last access (monotonic)
        self._evicted: OrderedDict[str, None] = OrderedDict()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        # No await between check and insert, so this is atomic on the loop
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def _ensure_not_evicted(self, session_id: str) -> None:
        if session_id in self._evicted:
            raise SessionEvictedError(session_id)

    def _touch(self, session_id: str) -> None:
        if session_id not in self._active:
            logger.debug("Session %s is now active", session_id)
        self._active[session_id] = time.monotonic()

    def status(self, session_id: str) -> SessionStatus:
        """Current lifecycle state of ``session_id``."""
        if session_id in self._evicted:
            return SessionStatus.EVICTED
        if session_id in self._active:
            return SessionStatus.ACTIVE
        return SessionStatus.ABSENT

    async def get(self, session_id: str) -> Any:
        """
        Get the state for a session.

        Returns:
            A copy of the stored state, or a fresh empty default

        Raises:
            SessionEvictedError: If the session was evicted
        """
        self._ensure_not_evicted(session_id)
        state = await self._backend.load(session_id)
        self._touch(session_id)
        if state is MISSING:
            return self._default_factory()
        return copy.deepcopy(state)

    async def set(self, session_id: str, state: Any) -> None:
        """
        Replace the state for a session (last write wins).

        Raises:
            SessionEvictedError: If the session was evicted
        """
        self._ensure_not_evicted(session_id)
        value = copy.deepcopy(state)
        async with self._lock_for(session_id):
            self._ensure_not_evicted(session_id)
            await self._backend.save(session_id, value)
            self._touch(session_id)

    async def update(self, session_id: str, fn: Callable[[Any], Any]) -> Any:
        """
        Atomically read-modify-write the state for a session.

        ``fn`` receives a copy of the current state (or the empty default) and
        returns the new state; it may be a coroutine function.

        Returns:
            A copy of the new state

        Raises:
            SessionEvictedError: If the session was evicted
        """
        self._ensure_not_evicted(session_id)
        async with self._lock_for(session_id):
            self._ensure_not_evicted(session_id)
            current = await self._backend.load(session_id)
            current = self._default_factory() if current is MISSING else copy.deepcopy(current)
            new_state = await safe_await_if_needed(fn(current))
            await self._backend.save(session_id, copy.deepcopy(new_state))
            self._touch(session_id)
        return copy.deepcopy(new_state)

    async def evict(self, session_id: str) -> bool:
        """
        Remove a session's state and mark the id as evicted.

        Returns:
            True if the session had been active
        """
        if session_id in self._evicted:
            return False

        async with self._lock_for(session_id):
            was_active = self._active.pop(session_id, None) is not None
            await self._backend.delete(session_id)
            self._evicted[session_id] = None
            while len(self._evicted) > self._tombstone_limit:
                self._evicted.popitem(last=False)
        self._locks.pop(session_id, None)

        logger.info("Evicted session %s", session_id)
        return was_active

    async def evict_idle(self, max_idle_seconds: float) -> list[str]:
        """
        Evict every active session idle for longer than ``max_idle_seconds``.

        Returns:
            Evicted session ids
        """
        cutoff = time.monotonic() - max_idle_seconds
        idle = [sid for sid, last in self._active.items() if last < cutoff]
        for session_id in idle:
            await self.evict(session_id)
        if idle:
            logger.info("Evicted %s idle session(s)", len(idle))
        return idle

    def active_sessions(self) -> list[str]:
        return list(self._active)

    def get_stats(self) -> dict[str, Any]:
        return {
            "active_sessions": len(self._active),
            "evicted_sessions": len(self._evicted),
            "locks": len(self._locks),
        }


async def run_idle_eviction(
    store: SessionStateStore, max_idle_seconds: float, interval_seconds: float | None = None
) -> None:
    """
    Periodically evict idle sessions until cancelled.

    Args:
        store: Store to sweep
        max_idle_seconds: Idle time after which a session is evicted
        interval_seconds: Sweep period (default: half of ``max_idle_seconds``)
    """
    interval = interval_seconds or max(max_idle_seconds / 2, 1.0)
    logger.info("Idle session eviction every %ss (max idle %ss)", interval, max_idle_seconds)
    while True:
        await asyncio.sleep(interval)
        await store.evict_idle(max_idle_seconds)
