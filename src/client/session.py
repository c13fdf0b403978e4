"""
Voice session client.

Owns a single real-time room handle and runs the connection state machine:

    DISCONNECTED --connect()--> CONNECTING --joined--> CONNECTED
         ^                          |                      |
         +------ failure / disconnect() / dropped ---------+

Observers register listeners and receive a ClientSnapshot on every change;
nothing outside this class touches the room handle.
"""

import asyncio
import uuid
from typing import Callable, List, Optional

import structlog

from src.client.api import VoiceApiClient
from src.client.room import RoomConnection, RoomEventType
from src.session.exceptions import (
    InvalidArgument,
    InvalidState,
    NetworkError,
    UpstreamError,
    VoiceSessionError,
)
from src.session.models import ClientSnapshot, ConnectionState, Persona, VALID_PERSONAS
from src.session.status import is_busy, validate_transition

logger = structlog.get_logger("client")

Listener = Callable[[ClientSnapshot], None]


class SessionClient:
    """
    Connect/disconnect/toggle-audio for one voice conversation at a time.

    A connect() while CONNECTING or CONNECTED is rejected with InvalidState.
    disconnect() during CONNECTING aborts the attempt: a join that completes
    afterwards is torn down and never reported as CONNECTED.

    Usage:
        client = SessionClient(VoiceApiClient(url), LiveKitRoomConnection)
        await client.connect("adina")
        await client.toggle_audio()
        await client.disconnect()
    """

    def __init__(
        self,
        api: VoiceApiClient,
        room_factory: Callable[[], RoomConnection],
        participant_id: Optional[str] = None,
        connect_timeout: Optional[float] = None,
    ):
        """
        Args:
            api: Client for the voice session API
            room_factory: Creates a fresh RoomConnection per connect attempt
            participant_id: Identity to join as (generated when omitted)
            connect_timeout: Seconds before CONNECTING fails; None waits forever
        """
        self._api = api
        self._room_factory = room_factory
        self.participant_id = participant_id or f"user-{uuid.uuid4().hex[:8]}"
        self.connect_timeout = connect_timeout

        self._snapshot = ClientSnapshot()
        self._listeners: List[Listener] = []
        self._room: Optional[RoomConnection] = None
        self._room_name: Optional[str] = None
        self._events_task: Optional[asyncio.Task] = None
        # Bumped on every connect and teardown; stale attempts compare unequal
        self._attempt = 0

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> ClientSnapshot:
        return self._snapshot

    @property
    def state(self) -> ConnectionState:
        return self._snapshot.state

    @property
    def audio_enabled(self) -> bool:
        return self._snapshot.audio_enabled

    @property
    def last_error(self) -> Optional[str]:
        return self._snapshot.last_error

    @property
    def has_room(self) -> bool:
        return self._room is not None

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _update(self, **changes) -> None:
        new_state = changes.get("state")
        if new_state is not None and new_state != self._snapshot.state:
            validate_transition(self._snapshot.state, new_state)
            logger.info(
                "client_state_changed",
                from_state=self._snapshot.state.value,
                to_state=new_state.value,
                participant=self.participant_id,
            )
        snapshot = self._snapshot.model_copy(update=changes)
        if snapshot == self._snapshot:
            return
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def connect(self, persona: str) -> bool:
        """
        Start a session on the server, fetch a token and join the room.

        Returns:
            True once CONNECTED; False if disconnect() aborted the attempt

        Raises:
            InvalidState: Already CONNECTING or CONNECTED (state unchanged)
            InvalidArgument: Unknown persona
            NetworkError, UpstreamError, ConfigurationError: Connect failed;
                the client is DISCONNECTED with last_error set
        """
        if is_busy(self.state):
            raise InvalidState(f"Cannot connect while {self.state.value}")

        if persona not in VALID_PERSONAS:
            err = InvalidArgument(f"Unknown persona: {persona}")
            self._update(last_error=err.message)
            raise err

        self._attempt += 1
        attempt = self._attempt
        self._update(
            state=ConnectionState.CONNECTING,
            persona=Persona(persona),
            audio_enabled=False,
            last_error=None,
            room_name=None,
        )

        room = None
        error: Optional[VoiceSessionError] = None
        try:
            if self.connect_timeout is not None:
                room = await asyncio.wait_for(self._establish(attempt, persona), self.connect_timeout)
            else:
                room = await self._establish(attempt, persona)
        except asyncio.TimeoutError:
            error = NetworkError(f"Timed out connecting after {self.connect_timeout}s")
        except VoiceSessionError as e:
            error = e
        except Exception as e:
            error = UpstreamError(f"Connect failed: {e}")
            error.__cause__ = e

        if error is not None and attempt == self._attempt:
            await self._fail_attempt(error)
            raise error

        if room is None:
            logger.info("connect_aborted", participant=self.participant_id)
            return False

        self._room = room
        self._update(state=ConnectionState.CONNECTED, room_name=self._room_name)
        self._events_task = asyncio.create_task(self._consume_events(room, attempt))
        return True

    async def _establish(self, attempt: int, persona: str) -> Optional[RoomConnection]:
        room_name = await self._api.start_session(persona, participant_id=self.participant_id)
        if attempt != self._attempt:
            await self._notify_end(room_name)
            return None
        self._room_name = room_name

        token, url = await self._api.get_token(room_name, self.participant_id, persona=persona)
        if attempt != self._attempt:
            return None

        room = self._room_factory()
        try:
            await room.connect(url, token)
        except BaseException:
            await self._close_room(room)
            raise
        if attempt != self._attempt:
            await self._close_room(room)
            return None
        return room

    async def _fail_attempt(self, error: VoiceSessionError) -> None:
        logger.error(
            "connect_failed",
            error=error.message,
            error_type=type(error).__name__,
            participant=self.participant_id,
        )
        self._attempt += 1
        self._update(
            state=ConnectionState.DISCONNECTED,
            audio_enabled=False,
            last_error=error.message,
            room_name=None,
        )
        await self._end_current_session()

    async def toggle_audio(self) -> bool:
        """
        Flip the microphone.

        Returns:
            The new audio_enabled value

        Raises:
            InvalidState: Not CONNECTED
            PermissionDenied: Microphone refused; audio stays disabled
        """
        room = self._room
        if self.state != ConnectionState.CONNECTED or room is None:
            err = InvalidState(f"Cannot toggle audio while {self.state.value}")
            self._update(last_error=err.message)
            raise err

        target = not self.audio_enabled
        try:
            await room.set_microphone_enabled(target)
        except VoiceSessionError as e:
            logger.warning("toggle_audio_failed", error=e.message, error_type=type(e).__name__)
            if self._room is room:
                self._update(last_error=e.message)
            raise

        if self._room is not room:
            return self.audio_enabled
        self._update(audio_enabled=target, last_error=None)
        return target

    async def disconnect(self) -> None:
        """
        Close the room and notify the server. Safe from any state.

        A failed end-session notification is logged and dropped.
        """
        if self.state == ConnectionState.DISCONNECTED:
            return

        self._attempt += 1
        room, self._room = self._room, None
        self._stop_events()

        teardown_error = None
        if room is not None:
            try:
                await room.disconnect()
            except Exception as e:
                teardown_error = f"Room teardown failed: {e}"
                logger.warning("room_teardown_failed", error=str(e))

        self._update(
            state=ConnectionState.DISCONNECTED,
            audio_enabled=False,
            room_name=None,
            last_error=teardown_error,
        )
        await self._end_current_session()

    async def aclose(self) -> None:
        await self.disconnect()

    async def __aenter__(self) -> "SessionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Room events
    # ------------------------------------------------------------------

    async def _consume_events(self, room: RoomConnection, attempt: int) -> None:
        while True:
            event = await room.events.get()
            if attempt != self._attempt or self._room is not room:
                return
            if event.type == RoomEventType.DISCONNECTED:
                await self._handle_dropped(event.reason)
                return
            logger.info(
                "room_event",
                event=event.type.value,
                participant=event.participant,
                room_name=self._room_name,
            )

    async def _handle_dropped(self, reason: Optional[str]) -> None:
        message = f"Connection lost: {reason or 'unknown reason'}"
        logger.error("room_connection_lost", reason=reason, room_name=self._room_name)
        self._attempt += 1
        room, self._room = self._room, None
        self._events_task = None
        if room is not None:
            await self._close_room(room)
        self._update(
            state=ConnectionState.DISCONNECTED,
            audio_enabled=False,
            room_name=None,
            last_error=message,
        )
        await self._end_current_session()

    async def _close_room(self, room: RoomConnection) -> None:
        """Release a room that is no longer wanted; failures are only logged."""
        try:
            await room.disconnect()
        except Exception as e:
            logger.warning("room_teardown_failed", error=str(e))

    def _stop_events(self) -> None:
        task, self._events_task = self._events_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    # ------------------------------------------------------------------
    # Server notification
    # ------------------------------------------------------------------

    async def _end_current_session(self) -> None:
        room_name, self._room_name = self._room_name, None
        if room_name:
            await self._notify_end(room_name)

    async def _notify_end(self, room_name: str) -> None:
        try:
            await self._api.end_session(room_name)
            logger.info("end_session_notified", room_name=room_name)
        except VoiceSessionError as e:
            logger.warning("end_session_notify_failed", room_name=room_name, error=e.message)
