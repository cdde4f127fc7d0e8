"""
Persistence backends for the session state store.

The store owns locking and lifecycle; a backend only persists values. Any
object with async ``load`` / ``save`` / ``delete`` methods can be plugged in.
"""

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

_MISSING = object()


class StateBackend(Protocol):
    """Storage interface behind ``SessionStateStore``."""

    async def load(self, session_id: str) -> Any:
        """Return the stored state, or ``MISSING`` if nothing is stored."""
        ...

    async def save(self, session_id: str, state: Any) -> None:
        ...

    async def delete(self, session_id: str) -> bool:
        """Remove stored state; return whether anything was removed."""
        ...


class InMemoryStateBackend:
    """Process-local backend; state is lost on restart."""

    MISSING = _MISSING

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    async def load(self, session_id: str) -> Any:
        return self._data.get(session_id, _MISSING)

    async def save(self, session_id: str, state: Any) -> None:
        self._data[session_id] = state

    async def delete(self, session_id: str) -> bool:
        return self._data.pop(session_id, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._data)


MISSING = _MISSING
