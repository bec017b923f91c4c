"""
Abstract session store.

Storage backends implement four primitives (get/set/delete/keys). The
session lifecycle operations are written once on top of them, so an
in-memory table and a distributed cache behave identically.

Expiry rule: a session whose `now - last_interaction >= timeout` is treated
exactly like a missing one. The timeout is read from each session's own
config, so tenants with different timeouts coexist.
"""

import time
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, Tuple

from infra.bot_config import BotConfig

from .types import Session


class SessionStore(ABC):
    """Session lifecycle on top of a key/value backend."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def get(self, key: str) -> Optional[Session]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, session: Session) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def keys(self) -> Iterable[str]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    def get_or_create(
        self,
        key: str,
        phone_number_id: str,
        reply_to: str,
        config: BotConfig,
        now: Optional[float] = None,
    ) -> Session:
        """
        Return the live session for `key`, or store a fresh one.

        A live session is touched. An expired entry is overwritten by a new
        session with no upstream session id (greeting state).
        """
        now = self._now(now)
        existing = self.get(key)
        if existing is not None and not existing.is_expired(now):
            existing.last_interaction = now
            self.set(key, existing)
            return existing

        session = Session(
            conversation_key=key,
            phone_number_id=phone_number_id,
            reply_to=reply_to,
            last_interaction=now,
            config=config,
        )
        self.set(key, session)
        return session

    def touch(self, key: str, now: Optional[float] = None) -> None:
        session = self.get(key)
        if session is not None:
            session.last_interaction = self._now(now)
            self.set(key, session)

    def set_upstream_session_id(self, key: str, upstream_session_id: str) -> None:
        session = self.get(key)
        if session is not None:
            session.upstream_session_id = upstream_session_id
            self.set(key, session)

    def remove(self, key: str) -> None:
        self.delete(key)

    def remove_if_expired(self, key: str, session: Session, now: Optional[float] = None) -> bool:
        """
        Remove `key` only while it still holds this same expired session.

        A message arriving in the meantime replaces the entry (or touches it),
        and that live session is kept.
        """
        current = self.get(key)
        if current is not session or not current.is_expired(self._now(now)):
            return False
        self.delete(key)
        return True

    def scan_expired(self, now: Optional[float] = None) -> List[Tuple[str, Session]]:
        """Expired sessions, collected over a snapshot of the keys."""
        now = self._now(now)
        expired = []
        for key in list(self.keys()):
            session = self.get(key)
            if session is not None and session.is_expired(now):
                expired.append((key, session))
        return expired

    def __len__(self) -> int:
        return len(list(self.keys()))
