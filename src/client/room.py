"""
Real-time room handle used by the session client.

Room callbacks are turned into a typed event stream: every connection
change is pushed as a RoomEvent onto ``events``, and the session client
consumes that queue in a single task.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import structlog
from livekit import rtc

from src.session.exceptions import NetworkError, PermissionDenied, UpstreamError

logger = structlog.get_logger("livekit")


class RoomEventType(str, Enum):
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"
    RECONNECTED = "reconnected"
    PARTICIPANT_JOINED = "participant_joined"
    PARTICIPANT_LEFT = "participant_left"


@dataclass(frozen=True)
class RoomEvent:
    type: RoomEventType
    reason: Optional[str] = None
    participant: Optional[str] = None


class Microphone(Protocol):
    async def open(self) -> rtc.AudioSource: ...

    async def close(self) -> None: ...


class RoomConnection(ABC):
    """One real-time room. Owned exclusively by a SessionClient."""

    def __init__(self):
        self.events: asyncio.Queue[RoomEvent] = asyncio.Queue()

    def emit(self, event: RoomEvent) -> None:
        self.events.put_nowait(event)

    @abstractmethod
    async def connect(self, url: str, token: str) -> None:
        """
        Join the room.

        Raises:
            NetworkError: Server unreachable
            UpstreamError: Join rejected
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Leave the room. Safe to call more than once."""

    @abstractmethod
    async def set_microphone_enabled(self, enabled: bool) -> None:
        """
        Publish or unpublish the local microphone.

        Raises:
            PermissionDenied: Microphone refused or unavailable
        """


class LiveKitRoomConnection(RoomConnection):
    """RoomConnection backed by ``livekit.rtc.Room``."""

    def __init__(self, microphone: Optional[Microphone] = None):
        super().__init__()
        self._room: Optional[rtc.Room] = None
        self._microphone = microphone
        self._publication = None
        self._closing = False

    def _bind_events(self, room: rtc.Room) -> None:
        def on_disconnected(reason=None):
            if self._closing:
                return
            self.emit(RoomEvent(RoomEventType.DISCONNECTED, reason=str(reason) if reason is not None else None))

        def on_reconnecting():
            self.emit(RoomEvent(RoomEventType.RECONNECTING))

        def on_reconnected():
            self.emit(RoomEvent(RoomEventType.RECONNECTED))

        def on_participant_connected(participant: rtc.RemoteParticipant):
            self.emit(RoomEvent(RoomEventType.PARTICIPANT_JOINED, participant=participant.identity))

        def on_participant_disconnected(participant: rtc.RemoteParticipant):
            self.emit(RoomEvent(RoomEventType.PARTICIPANT_LEFT, participant=participant.identity))

        room.on("disconnected", on_disconnected)
        room.on("reconnecting", on_reconnecting)
        room.on("reconnected", on_reconnected)
        room.on("participant_connected", on_participant_connected)
        room.on("participant_disconnected", on_participant_disconnected)

    async def connect(self, url: str, token: str) -> None:
        room = rtc.Room()
        self._bind_events(room)
        try:
            await room.connect(url, token, options=rtc.RoomOptions(auto_subscribe=True))
        except rtc.ConnectError as e:
            logger.error("room_join_rejected", url=url, error=str(e))
            await self._discard(room)
            raise UpstreamError(f"Room join rejected: {e}") from e
        except (OSError, asyncio.TimeoutError) as e:
            logger.error("room_join_failed", url=url, error=str(e))
            await self._discard(room)
            raise NetworkError(f"Could not reach realtime server: {e}") from e
        except BaseException:
            await self._discard(room)
            raise
        self._room = room
        logger.info("room_joined", room=room.name, identity=room.local_participant.identity)

    async def _discard(self, room: rtc.Room) -> None:
        """Disconnect a room whose join did not complete."""
        self._closing = True
        try:
            await room.disconnect()
        except Exception as e:
            logger.warning("room_discard_failed", error=str(e))

    async def disconnect(self) -> None:
        if self._room is None:
            return
        self._closing = True
        room, self._room = self._room, None
        try:
            await self._release_microphone(room)
            await room.disconnect()
        finally:
            logger.info("room_left", room=room.name)

    async def set_microphone_enabled(self, enabled: bool) -> None:
        if self._room is None:
            raise NetworkError("Not connected to a room")
        if enabled:
            if self._publication is not None:
                return
            if self._microphone is None:
                raise PermissionDenied("No microphone available")
            source = await self._microphone.open()
            track = rtc.LocalAudioTrack.create_audio_track("microphone", source)
            try:
                self._publication = await self._room.local_participant.publish_track(
                    track,
                    rtc.TrackPublishOptions(source=rtc.TrackSource.SOURCE_MICROPHONE),
                )
            except Exception as e:
                await self._microphone.close()
                raise UpstreamError(f"Failed to publish microphone: {e}") from e
            logger.info("microphone_published", room=self._room.name)
        else:
            await self._release_microphone(self._room)

    async def _release_microphone(self, room: rtc.Room) -> None:
        if self._publication is None:
            return
        publication, self._publication = self._publication, None
        try:
            await room.local_participant.unpublish_track(publication.sid)
        finally:
            if self._microphone is not None:
                await self._microphone.close()
        logger.info("microphone_unpublished", room=room.name)
