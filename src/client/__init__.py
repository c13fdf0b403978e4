"""
Voice session client.

    from src.client import SessionClient, VoiceApiClient, LiveKitRoomConnection

- VoiceApiClient: httpx client for /api/voice/*
- LiveKitRoomConnection: livekit.rtc room with a typed event stream
- SessionClient: connect / toggle_audio / disconnect state machine
"""

from src.client.api import VoiceApiClient
from src.client.room import LiveKitRoomConnection, RoomConnection, RoomEvent, RoomEventType
from src.client.session import SessionClient

__all__ = [
    "VoiceApiClient",
    "LiveKitRoomConnection",
    "RoomConnection",
    "RoomEvent",
    "RoomEventType",
    "SessionClient",
]
