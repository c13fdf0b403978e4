"""
Voice session service: start-session, issue-token, end-session.

Owns the session lifecycle on the server. The registry is injected as a
SessionStore; LiveKit credentials come from the startup Settings and are
required only when a token is actually signed. Activity of the app
sessions behind the voice sessions is tracked alongside.
"""

import time
from typing import Callable, List, Optional, Tuple

import structlog

from src.config.settings import Settings
from src.session.activity import ActivityTracker
from src.session.exceptions import InvalidArgument
from src.session.models import AccessCredential, Persona, VALID_PERSONAS, VoiceSession
from src.session.store import SessionStore
from src.voice.livekit_client import LiveKitTokenIssuer
from src.voice.rooms import LiveKitRoomAdmin

logger = structlog.get_logger("session")
livekit_log = structlog.get_logger("livekit")


def parse_persona(persona: Optional[str]) -> Persona:
    """
    Validate a persona value from a request.

    Raises:
        InvalidArgument: Missing or unrecognized persona
    """
    if not persona:
        raise InvalidArgument("Persona is required")
    value = persona.strip().lower()
    if value not in VALID_PERSONAS:
        raise InvalidArgument(
            f"Unknown persona '{persona}'. Valid: {sorted(VALID_PERSONAS)}"
        )
    return Persona(value)


def generate_room_name(persona: Persona, now: float) -> str:
    """Room name for a new session: ``voice-{persona}-{millis}``."""
    return f"voice-{persona.value}-{int(now * 1000)}"


class VoiceSessionService:
    """
    Session lifecycle for voice conversations.

    Usage:
        service = VoiceSessionService(Settings.from_env(), InMemorySessionStore())
        session = service.start_session("adina")
        credential, url = service.issue_token(session.room_name, "user-1")
        await service.end_session(session.room_name)
    """

    def __init__(
        self,
        settings: Settings,
        store: SessionStore,
        room_admin: Optional[LiveKitRoomAdmin] = None,
        clock: Callable[[], float] = time.time,
        activity: Optional[ActivityTracker] = None,
    ):
        self.settings = settings
        self.store = store
        self.activity = activity or ActivityTracker()
        self._room_admin = room_admin
        self._clock = clock
        self._issuer: Optional[LiveKitTokenIssuer] = None

    def _get_issuer(self) -> LiveKitTokenIssuer:
        if self._issuer is None:
            self._issuer = LiveKitTokenIssuer(self.settings.require_livekit())
        return self._issuer

    def start_session(
        self,
        persona: Optional[str],
        participant_id: Optional[str] = None,
        client_session_id: Optional[str] = None,
    ) -> VoiceSession:
        """
        Register a new voice session and generate its room name.

        Args:
            persona: Persona value ("adina" or "rafa")
            participant_id: Identity the client intends to join as
            client_session_id: App-side session id

        Returns:
            The stored VoiceSession

        Raises:
            InvalidArgument: Missing or unknown persona
        """
        parsed = parse_persona(persona)
        session = VoiceSession(
            room_name=generate_room_name(parsed, self._clock()),
            persona=parsed,
            participant_identity=participant_id or None,
            client_session_id=client_session_id or None,
        )
        self.store.put(session)
        if session.client_session_id:
            self.activity.record_start(session.client_session_id, parsed)
        logger.info(
            "session_started",
            room_name=session.room_name,
            persona=parsed.value,
            client_session_id=session.client_session_id,
        )
        return session

    def issue_token(
        self,
        room_name: Optional[str],
        participant_identity: Optional[str],
        persona: Optional[str] = None,
    ) -> Tuple[AccessCredential, str]:
        """
        Mint an access token for a room.

        Args:
            room_name: Room to scope the token to
            participant_identity: Identity to issue the token to
            persona: Persona for participant metadata; falls back to the
                registered session's persona

        Returns:
            (credential, realtime server URL)

        Raises:
            InvalidArgument: Missing room name or participant identity,
                or unknown persona
            ConfigurationError: LiveKit credentials absent
        """
        if not room_name or not participant_identity:
            raise InvalidArgument("Room name and participant ID are required")
        if persona:
            persona = parse_persona(persona).value

        issuer = self._get_issuer()

        if not persona:
            session = self.store.get(room_name)
            persona = session.persona.value if session is not None else None

        credential = issuer.create_token(room_name, participant_identity, persona=persona)
        return credential, issuer.url

    async def end_session(
        self,
        room_name: Optional[str],
        client_session_id: Optional[str] = None,
    ) -> bool:
        """
        End a session. Idempotent: unknown or already ended rooms succeed.

        Args:
            room_name: Room of the session to end
            client_session_id: App session to touch; defaults to the one
                recorded at start

        Returns:
            True if a registered session was removed
        """
        if not room_name:
            logger.info("session_end_without_room")
            if client_session_id:
                self.activity.record_end(client_session_id)
            return False

        session = self.store.get(room_name)
        removed = self.store.delete(room_name)
        if not client_session_id and session is not None:
            client_session_id = session.client_session_id
        if client_session_id:
            self.activity.record_end(client_session_id)
        logger.info("session_ended", room_name=room_name, existed=removed)

        if self.settings.delete_room_on_end and self._room_admin is not None:
            await self._room_admin.delete_room(room_name)

        return removed

    def test_connection(self) -> dict:
        """
        Check LiveKit configuration by signing a throwaway token.

        Returns:
            Presence flags and the server URL

        Raises:
            ConfigurationError: Incomplete configuration
        """
        livekit = self.settings.require_livekit()
        self._get_issuer().self_check()
        livekit_log.info("livekit_config_valid", url=livekit.url)
        return {
            "wsUrl": livekit.url,
            **self.settings.config_flags(),
        }

    def list_sessions(self) -> List[VoiceSession]:
        return self.store.list()

    def reset_activity(self, client_session_id: str) -> bool:
        """Zero the interaction history of an app session."""
        return self.activity.reset(client_session_id)

    def evict_stale(self) -> int:
        """
        Drop sessions older than SESSION_MAX_AGE_SECONDS and app-session
        activity idle longer than MEMORY_MAX_AGE_SECONDS (0 disables each).

        Returns:
            Number of voice sessions evicted
        """
        memory_max_age = self.settings.memory_max_age_seconds
        if memory_max_age:
            self.activity.evict_older_than(memory_max_age)

        max_age = self.settings.session_max_age_seconds
        if not max_age:
            return 0
        return self.store.evict_older_than(max_age)

