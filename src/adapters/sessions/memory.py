"""
In-memory session store - Implements SessionStore protocol.

Wizard sessions live in process memory. A session that has not been read
or saved for ttl_seconds is dropped, so abandoned wizards (and the logo
bytes they hold) do not accumulate for the lifetime of the server.
"""

import logging
import threading
import time
from collections.abc import Callable

from src.domain.models import WizardSession

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """
    Implements SessionStore protocol with a lock-protected dict.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Expired sessions are purged on every save and on lookup.
    """

    def __init__(
        self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._sessions: dict[str, WizardSession] = {}
        self._last_seen: dict[str, float] = {}
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()

    def save(self, session: WizardSession) -> None:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._sessions[session.session_id] = session
            self._last_seen[session.session_id] = now

    def get(self, session_id: str) -> WizardSession | None:
        with self._lock:
            now = self._clock()
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if now - self._last_seen[session_id] >= self._ttl_seconds:
                self._drop(session_id)
                return None
            self._last_seen[session_id] = now
            return session

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._drop(session_id)

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired(self._clock())
            return len(self._sessions)

    def _purge_expired(self, now: float) -> None:
        expired = [
            session_id
            for session_id, seen in self._last_seen.items()
            if now - seen >= self._ttl_seconds
        ]
        for session_id in expired:
            self._drop(session_id)
        if expired:
            logger.info("Evicted %d expired wizard session(s)", len(expired))

    def _drop(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
