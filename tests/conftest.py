"""
Shared fixtures for HeavenlyHub voice tests
"""

import pytest
import sys
import os
from unittest.mock import MagicMock, patch

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.config.settings import Settings
from src.session.models import Persona, VoiceSession
from src.session.store import InMemorySessionStore
from src.voice.service import VoiceSessionService


# ============ CONFIGURATION FIXTURES ============

@pytest.fixture
def livekit_env():
    """Environment with complete LiveKit credentials."""
    return {
        "LIVEKIT_API_KEY": "APItestkey",
        "LIVEKIT_API_SECRET": "test-secret-with-enough-length-for-hs256",
        "LIVEKIT_URL": "wss://heavenlyhub-test.livekit.cloud",
    }


@pytest.fixture
def settings(livekit_env):
    """Settings with LiveKit configured."""
    return Settings.from_env(livekit_env)


@pytest.fixture
def empty_settings():
    """Settings with no LiveKit credentials at all."""
    return Settings.from_env({})


# ============ SESSION FIXTURES ============

@pytest.fixture
def store():
    """Fresh in-memory session store."""
    return InMemorySessionStore()


@pytest.fixture
def voice_service(settings, store):
    """VoiceSessionService with a fixed clock."""
    return VoiceSessionService(settings, store, clock=lambda: 1700000000.5)


@pytest.fixture
def sample_session():
    """A registered voice session for persona Adina."""
    return VoiceSession(
        room_name="voice-adina-1700000000500",
        persona=Persona.ADINA,
        participant_identity="user-1",
        client_session_id="app-session-1",
    )


# ============ MOCK REDIS CLIENT ============

@pytest.fixture
def mock_redis_client():
    """Create a mock Redis client."""
    client = MagicMock()
    client.ping.return_value = True
    client.setex.return_value = True
    client.get.return_value = None
    client.delete.return_value = 1
    client.scan_iter.return_value = iter([])
    return client


@pytest.fixture
def redis_store(mock_redis_client):
    """Create a RedisSessionStore with mocked client."""
    with patch('redis.Redis', return_value=mock_redis_client):
        from src.storage.redis import RedisSessionStore
        return RedisSessionStore(
            host="localhost",
            port=6379,
            password=None,
            db=0,
            session_ttl=7200,
        )
