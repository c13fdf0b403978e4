"""
Session registry abstraction.

SessionStore is the interface injected into VoiceSessionService. The
in-memory implementation is a process-local registry;
RedisSessionStore (src.storage.redis) survives restarts and is shared
between workers.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import structlog

from src.session.models import VoiceSession

logger = structlog.get_logger("session")


class SessionStore(ABC):
    """Keyed by room name. Deleting a missing key is never an error."""

    @abstractmethod
    def get(self, room_name: str) -> Optional[VoiceSession]:
        ...

    @abstractmethod
    def put(self, session: VoiceSession) -> None:
        ...

    @abstractmethod
    def delete(self, room_name: str) -> bool:
        """Remove the entry. Returns True if something was removed."""

    @abstractmethod
    def list(self) -> List[VoiceSession]:
        ...

    def evict_older_than(self, max_age_seconds: float) -> int:
        """
        Remove sessions created more than ``max_age_seconds`` ago.

        Args:
            max_age_seconds: Age threshold in seconds.

        Returns:
            Number of evicted sessions.
        """
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=max_age_seconds)
        evicted = 0
        for session in self.list():
            if session.created_at < cutoff and self.delete(session.room_name):
                evicted += 1
        if evicted:
            logger.info("sessions_evicted", evicted=evicted, max_age_seconds=max_age_seconds)
        return evicted

    def close(self) -> None:
        """Release underlying resources."""


class InMemorySessionStore(SessionStore):
    """
    Process-local registry. Entries are lost on restart, and a client that
    never calls end-session leaves its entry behind until evicted.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._sessions: Dict[str, VoiceSession] = {}

    def get(self, room_name: str) -> Optional[VoiceSession]:
        with self._lock:
            return self._sessions.get(room_name)

    def put(self, session: VoiceSession) -> None:
        with self._lock:
            self._sessions[session.room_name] = session
        logger.debug("session_stored", room_name=session.room_name, store="memory")

    def delete(self, room_name: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(room_name, None)
        return removed is not None

    def list(self) -> List[VoiceSession]:
        with self._lock:
            return sorted(self._sessions.values(), key=lambda s: s.created_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
