"""
Configuration: validated process settings and persona profiles.
"""

from src.config.settings import Settings, LiveKitSettings, LIVEKIT_REQUIRED
from src.config.persona_loader import PersonaLoader, PersonaProfile, get_persona_loader

__all__ = [
    "Settings",
    "LiveKitSettings",
    "LIVEKIT_REQUIRED",
    "PersonaLoader",
    "PersonaProfile",
    "get_persona_loader",
]
