"""
Voice session server components.

    from src.voice import VoiceSessionService, LiveKitTokenIssuer

- LiveKitTokenIssuer: signs room access tokens (PyJWT)
- LiveKitRoomAdmin: deletes/lists rooms via the LiveKit server API
- VoiceSessionService: start-session / issue-token / end-session
"""

from src.voice.livekit_client import LiveKitTokenIssuer
from src.voice.rooms import LiveKitRoomAdmin
from src.voice.service import VoiceSessionService, parse_persona, generate_room_name

__all__ = [
    "LiveKitTokenIssuer",
    "LiveKitRoomAdmin",
    "VoiceSessionService",
    "parse_persona",
    "generate_room_name",
]
