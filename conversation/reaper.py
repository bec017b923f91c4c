"""
Inactivity Reaper

Periodic sweep that expires idle sessions.

For each session past its own timeout:
- with an expiry message configured: send it, and remove the session only
  once the send succeeded (a failed send is logged and retried next sweep)
- without one: remove the session silently

One session's failure never blocks the others.
"""

import asyncio
import logging
from typing import List, Optional

from sessions.base import SessionStore
from sessions.types import Session
from transport.whatsapp.sender import WhatsAppSender

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0


class InactivityReaper:
    """Expires sessions on a fixed tick."""

    def __init__(
        self,
        sessions: SessionStore,
        sender: WhatsAppSender,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ):
        self.sessions = sessions
        self.sender = sender
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    async def _expire(self, key: str, session: Session, now: Optional[float] = None) -> bool:
        farewell = session.config.bot.expired_session_message
        if farewell:
            try:
                await self.sender.send_text(session.phone_number_id, session.reply_to, farewell, session.config.whatsapp)
            except Exception as e:
                logger.error(f"[sweep] Error sending goodbye message to {key}: {e}")
                return False

        if not self.sessions.remove_if_expired(key, session, now):
            logger.info(f"[sweep] Session {key} resumed during expiry, keeping it")
            return False
        logger.info(f"[sweep] Session expired and removed for {key}")
        return True

    async def sweep(self, now: Optional[float] = None) -> List[str]:
        """
        Expire every idle session once.

        Returns:
            Keys removed in this sweep
        """
        expired = self.sessions.scan_expired(now)
        if not expired:
            return []

        results = await asyncio.gather(
            *(self._expire(key, session, now) for key, session in expired),
            return_exceptions=True,
        )

        removed = []
        for (key, _), result in zip(expired, results):
            if isinstance(result, BaseException):
                logger.error(f"[sweep] Unexpected error expiring {key}: {result}")
            elif result:
                removed.append(key)
        return removed

    async def _run(self) -> None:
        logger.info(f"Inactivity reaper running every {self.interval_seconds}s")
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Inactivity sweep failed: {e}", exc_info=True)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
