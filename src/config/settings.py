"""
Process configuration.

Settings are read from the environment exactly once (``Settings.from_env``)
and passed to every component that needs them; no other module reads
``os.environ``. LiveKit credentials are validated into ``LiveKitSettings``.
When any of them is absent the gap is recorded and raised as
``ConfigurationError`` the moment a token is requested, or at startup when
``STRICT_CONFIG`` is set.
"""

import os
from typing import List, Literal, Mapping, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from src.session.exceptions import ConfigurationError

logger = structlog.get_logger("config")

# Env var -> human label, in the order they are reported
LIVEKIT_REQUIRED = {
    "LIVEKIT_API_KEY": "signing key",
    "LIVEKIT_API_SECRET": "signing secret",
    "LIVEKIT_URL": "realtime server URL",
}

_TRUTHY = {"1", "true", "yes", "on"}


class LiveKitSettings(BaseModel):
    """Validated LiveKit credentials. Only exists when all three are present."""

    model_config = {"frozen": True}

    api_key: str = Field(..., min_length=1)
    api_secret: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    token_ttl_seconds: int = Field(default=3600, ge=60, le=86400)


class Settings(BaseModel):
    """Single validated configuration object built at startup."""

    model_config = {"frozen": True}

    livekit: Optional[LiveKitSettings] = None
    livekit_missing: List[str] = Field(default_factory=list)
    has_api_key: bool = False
    has_api_secret: bool = False
    has_ws_url: bool = False

    session_store: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    session_ttl_seconds: int = Field(default=7200, ge=60)
    # 0 disables the background sweep of abandoned sessions
    session_max_age_seconds: int = Field(default=0, ge=0)
    # Idle app-session activity and chat memory are forgotten after this; 0 keeps them
    memory_max_age_seconds: int = Field(default=30 * 24 * 3600, ge=0)
    delete_room_on_end: bool = False

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-3.5-turbo"
    openai_base_url: str = "https://api.openai.com/v1"

    log_level: str = "INFO"
    logs_dir: Optional[str] = None
    port: int = 4000
    strict_config: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            Frozen Settings instance.

        Raises:
            ConfigurationError: If a value is present but malformed, or if
                ``STRICT_CONFIG`` is set and LiveKit credentials are missing.
        """
        if env is None:
            env = os.environ

        def _get(name: str, default: Optional[str] = None) -> Optional[str]:
            value = env.get(name)
            if value is None:
                return default
            value = value.strip()
            return value or default

        api_key = _get("LIVEKIT_API_KEY")
        api_secret = _get("LIVEKIT_API_SECRET")
        # LIVEKIT_WS_URL is the older name; both are accepted
        url = _get("LIVEKIT_URL") or _get("LIVEKIT_WS_URL")

        present = {
            "LIVEKIT_API_KEY": api_key,
            "LIVEKIT_API_SECRET": api_secret,
            "LIVEKIT_URL": url,
        }
        missing = [name for name in LIVEKIT_REQUIRED if not present[name]]

        raw = {
            "livekit_missing": missing,
            "has_api_key": bool(api_key),
            "has_api_secret": bool(api_secret),
            "has_ws_url": bool(url),
            "session_store": _get("SESSION_STORE", "memory"),
            "redis_url": _get("REDIS_URL", "redis://localhost:6379/0"),
            "session_ttl_seconds": _get("SESSION_TTL_SECONDS", "7200"),
            "session_max_age_seconds": _get("SESSION_MAX_AGE_SECONDS", "0"),
            "memory_max_age_seconds": _get("MEMORY_MAX_AGE_SECONDS", str(30 * 24 * 3600)),
            "delete_room_on_end": (_get("LIVEKIT_DELETE_ROOM_ON_END", "") or "").lower() in _TRUTHY,
            "openai_api_key": _get("OPENAI_API_KEY"),
            "openai_model": _get("OPENAI_MODEL", "gpt-3.5-turbo"),
            "openai_base_url": _get("OPENAI_BASE_URL", "https://api.openai.com/v1"),
            "log_level": (_get("LOG_LEVEL", "INFO") or "INFO").upper(),
            "logs_dir": _get("LOGS_DIR"),
            "port": _get("PORT", "4000"),
            "strict_config": (_get("STRICT_CONFIG", "") or "").lower() in _TRUTHY,
        }

        try:
            if not missing:
                raw["livekit"] = LiveKitSettings(
                    api_key=api_key,
                    api_secret=api_secret,
                    url=url,
                    token_ttl_seconds=_get("LIVEKIT_TOKEN_TTL_SECONDS", "3600"),
                )
            settings = cls(**raw)
        except ValidationError as e:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
            raise ConfigurationError(
                f"Invalid configuration values: {', '.join(fields)}"
            ) from e

        if missing:
            logger.warning("livekit_config_incomplete", missing=missing)
            if settings.strict_config:
                raise ConfigurationError(
                    f"LiveKit configuration incomplete: {', '.join(missing)}",
                    missing=missing,
                )

        return settings

    def require_livekit(self) -> LiveKitSettings:
        """
        Return LiveKit credentials or fail.

        Raises:
            ConfigurationError: Naming every missing variable.
        """
        if self.livekit is None:
            raise ConfigurationError(
                f"LiveKit configuration incomplete: {', '.join(self.livekit_missing)}",
                missing=self.livekit_missing,
            )
        return self.livekit

    def config_flags(self) -> dict:
        """Presence flags reported by the test-connection endpoint."""
        return {
            "hasApiKey": self.has_api_key,
            "hasApiSecret": self.has_api_secret,
            "hasWsUrl": self.has_ws_url,
        }
