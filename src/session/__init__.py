"""
Session module for voice conversations.

Provides the server-side session registry (SessionStore) and the shared
models, state machine and error taxonomy used by server and client.

Usage:
    from src.session import InMemorySessionStore, VoiceSession, Persona

    store = InMemorySessionStore()
    store.put(VoiceSession(room_name="voice-adina-1700000000000", persona=Persona.ADINA))
"""

from src.session.models import (
    AccessCredential,
    ClientSnapshot,
    ConnectionState,
    Persona,
    VALID_PERSONAS,
    VoiceGrants,
    VoiceSession,
)
from src.session.store import SessionStore, InMemorySessionStore
from src.session.activity import ActivityTracker, UserActivity

__all__ = [
    "AccessCredential",
    "ClientSnapshot",
    "ConnectionState",
    "Persona",
    "VALID_PERSONAS",
    "VoiceGrants",
    "VoiceSession",
    "SessionStore",
    "InMemorySessionStore",
    "ActivityTracker",
    "UserActivity",
]
