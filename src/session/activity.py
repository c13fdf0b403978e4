"""
Per-app-session activity tracking.

The mobile app sends its own ``sessionId`` with start/end calls. For each
one the server keeps an interaction count, the personas used and the time
of the last interaction, so long-idle app sessions can be aged out and a
user can reset their history.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import structlog
from pydantic import BaseModel, Field

from src.session.models import Persona

logger = structlog.get_logger("session")

# Default age after which an idle app session is forgotten (30 days)
DEFAULT_ACTIVITY_MAX_AGE_SECONDS = 30 * 24 * 3600


class UserActivity(BaseModel):
    """Activity of one app session across voice conversations."""

    session_id: str
    interactions: int = 0
    persona_history: List[Persona] = Field(default_factory=list)
    current_persona: Optional[Persona] = None
    last_interaction: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ActivityTracker:
    """Thread-safe in-process map of ``sessionId -> UserActivity``."""

    def __init__(self):
        self._lock = threading.RLock()
        self._activity: Dict[str, UserActivity] = {}

    def get(self, session_id: str) -> Optional[UserActivity]:
        with self._lock:
            activity = self._activity.get(session_id)
            return activity.model_copy(deep=True) if activity else None

    def record_start(self, session_id: str, persona: Persona) -> UserActivity:
        """Count a new voice conversation for an app session."""
        with self._lock:
            activity = self._activity.setdefault(session_id, UserActivity(session_id=session_id))
            activity.interactions += 1
            activity.current_persona = persona
            if persona not in activity.persona_history:
                activity.persona_history.append(persona)
            activity.last_interaction = datetime.now(timezone.utc)
            snapshot = activity.model_copy(deep=True)
        logger.info(
            "user_session_activity",
            session_id=session_id,
            interactions=snapshot.interactions,
            persona=persona.value,
        )
        return snapshot

    def record_end(self, session_id: str) -> bool:
        """Touch an app session when one of its conversations ends."""
        with self._lock:
            activity = self._activity.get(session_id)
            if activity is None:
                return False
            activity.current_persona = None
            activity.last_interaction = datetime.now(timezone.utc)
        return True

    def reset(self, session_id: str) -> bool:
        """Zero the counters of an app session. Returns False if unknown."""
        with self._lock:
            activity = self._activity.get(session_id)
            if activity is None:
                return False
            activity.interactions = 0
            activity.current_persona = None
            activity.last_interaction = datetime.now(timezone.utc)
        logger.info("user_session_reset", session_id=session_id)
        return True

    def evict_older_than(self, max_age_seconds: float) -> int:
        """Forget app sessions idle for more than ``max_age_seconds``."""
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=max_age_seconds)
        with self._lock:
            stale = [sid for sid, a in self._activity.items() if a.last_interaction < cutoff]
            for sid in stale:
                del self._activity[sid]
        if stale:
            logger.info("user_sessions_evicted", evicted=len(stale), max_age_seconds=max_age_seconds)
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._activity)
