"""
In-memory session store.

Process-local dict. Sessions do not survive a restart and are not shared
between instances.
"""

import time
from typing import Callable, Dict, Iterable, Optional

from .base import SessionStore
from .types import Session


class InMemorySessionStore(SessionStore):
    """Dict-backed SessionStore."""

    def __init__(self, clock: Callable[[], float] = time.time):
        super().__init__(clock=clock)
        self._sessions: Dict[str, Session] = {}

    def get(self, key: str) -> Optional[Session]:
        return self._sessions.get(key)

    def set(self, key: str, session: Session) -> None:
        self._sessions[key] = session

    def delete(self, key: str) -> None:
        self._sessions.pop(key, None)

    def keys(self) -> Iterable[str]:
        return self._sessions.keys()
