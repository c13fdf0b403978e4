"""
Redis-backed session registry for voice sessions.
"""

from datetime import timedelta
from typing import List, Optional

import redis
import structlog
from pydantic import ValidationError

from src.session.models import VoiceSession
from src.session.store import SessionStore

logger = structlog.get_logger("storage")


class RedisSessionStore(SessionStore):
    """
    Stores VoiceSession entries as JSON under ``voice:session:{room_name}``.

    Every entry carries a TTL, so sessions whose clients never call
    end-session expire on their own.
    """

    KEY_PREFIX = "voice:session:"

    def __init__(self, host: str = "localhost", port: int = 6379,
                 password: Optional[str] = None, db: int = 0,
                 session_ttl: int = 7200, client: Optional[redis.Redis] = None):
        """
        Args:
            host: Redis host
            port: Redis port
            password: Redis password (optional)
            db: Redis database number
            session_ttl: Time-to-live for sessions in seconds (default: 2 hours)
            client: Pre-built client (used by from_url and tests)
        """
        self.host = host
        self.port = port
        self.db = db
        self.session_ttl = session_ttl

        self.client = client or redis.Redis(
            host=host,
            port=port,
            password=password,
            db=db,
            decode_responses=True,
        )

        logger.info("redis_connected", host=host, port=port, db=db)

    @classmethod
    def from_url(cls, url: str, session_ttl: int = 7200) -> "RedisSessionStore":
        """Build a store from a ``redis://`` URL."""
        client = redis.Redis.from_url(url, decode_responses=True)
        kwargs = client.connection_pool.connection_kwargs
        return cls(
            host=kwargs.get("host", "localhost"),
            port=kwargs.get("port", 6379),
            db=kwargs.get("db", 0),
            session_ttl=session_ttl,
            client=client,
        )

    def _get_key(self, room_name: str) -> str:
        """Redis key for a room"""
        return f"{self.KEY_PREFIX}{room_name}"

    def get(self, room_name: str) -> Optional[VoiceSession]:
        raw = self.client.get(self._get_key(room_name))
        if raw is None:
            return None
        try:
            return VoiceSession.model_validate_json(raw)
        except ValidationError as e:
            logger.error("session_decode_failed", room_name=room_name, error=str(e))
            return None

    def put(self, session: VoiceSession) -> None:
        self.client.setex(
            name=self._get_key(session.room_name),
            time=timedelta(seconds=self.session_ttl),
            value=session.model_dump_json(),
        )
        logger.info("session_saved", room_name=session.room_name, ttl=self.session_ttl)

    def delete(self, room_name: str) -> bool:
        deleted = self.client.delete(self._get_key(room_name))
        if deleted:
            logger.info("session_deleted", room_name=room_name)
        return bool(deleted)

    def list(self) -> List[VoiceSession]:
        sessions = []
        for key in self.client.scan_iter(match=f"{self.KEY_PREFIX}*"):
            room_name = key[len(self.KEY_PREFIX):]
            session = self.get(room_name)
            if session is not None:
                sessions.append(session)
        return sorted(sessions, key=lambda s: s.created_at)

    def health_check(self) -> bool:
        """Check the Redis connection"""
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.error("redis_health_check_failed", error=str(e))
            return False

    def close(self) -> None:
        self.client.close()
        logger.info("redis_connection_closed")
