"""
Pydantic models for voice sessions.

VoiceSession is the server-side registry entry created by start-session.
AccessCredential describes a minted room token. ClientSnapshot is the
read-only view of the session client's state handed to observers.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Persona(str, Enum):
    """Selectable AI conversational identity."""
    ADINA = "adina"
    RAFA = "rafa"


# Recognized persona values, as accepted on the wire
VALID_PERSONAS = {p.value for p in Persona}


class ConnectionState(str, Enum):
    """
    Connection states of the session client (in-memory only).
    """
    DISCONNECTED = "disconnected"  # No room handle
    CONNECTING = "connecting"      # start-session / token / join in flight
    CONNECTED = "connected"        # Room join acknowledged


class VoiceGrants(BaseModel):
    """Capability set carried in the token's ``video`` claim."""
    room: str
    roomJoin: bool = True
    canPublish: bool = True
    canSubscribe: bool = True
    canPublishData: bool = True


class VoiceSession(BaseModel):
    """
    Represents a single voice conversation registered on the server.

    Created by start-session and removed by end-session. The default store
    keeps it in process memory only.
    """

    room_name: str = Field(..., description="voice-{persona}-{millis}")
    persona: Persona = Field(..., description="Persona driving the conversation")
    participant_identity: Optional[str] = Field(default=None, description="Identity the client joins as")
    client_session_id: Optional[str] = Field(default=None, description="App-side session id, for correlating repeat chats")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp",
    )


class AccessCredential(BaseModel):
    """A freshly minted room token. Never stored."""

    token: str
    issued_to: str
    room: str
    grants: VoiceGrants
    expires_at: datetime


class ClientSnapshot(BaseModel):
    """Immutable view of the session client, published on every transition."""

    model_config = {"frozen": True}

    state: ConnectionState = ConnectionState.DISCONNECTED
    audio_enabled: bool = False
    last_error: Optional[str] = None
    room_name: Optional[str] = None
    persona: Optional[Persona] = None
