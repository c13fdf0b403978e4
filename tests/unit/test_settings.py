"""
Unit tests for Settings.from_env (src/config/settings.py).
"""

import pytest

from src.config.settings import LIVEKIT_REQUIRED, Settings
from src.session.exceptions import ConfigurationError


class TestLiveKitCredentials:

    def test_complete_credentials(self, settings):
        assert settings.livekit is not None
        assert settings.livekit.api_key == "APItestkey"
        assert settings.livekit.url == "wss://heavenlyhub-test.livekit.cloud"
        assert settings.livekit.token_ttl_seconds == 3600
        assert settings.livekit_missing == []

    def test_ws_url_alias(self, livekit_env):
        env = dict(livekit_env)
        url = env.pop("LIVEKIT_URL")
        env["LIVEKIT_WS_URL"] = url
        settings = Settings.from_env(env)
        assert settings.livekit.url == url
        assert settings.has_ws_url is True

    def test_missing_credentials_are_recorded(self):
        settings = Settings.from_env({"LIVEKIT_API_KEY": "key"})
        assert settings.livekit is None
        assert settings.livekit_missing == ["LIVEKIT_API_SECRET", "LIVEKIT_URL"]

    def test_blank_values_count_as_missing(self, livekit_env):
        env = dict(livekit_env, LIVEKIT_API_SECRET="   ")
        settings = Settings.from_env(env)
        assert settings.livekit is None
        assert settings.livekit_missing == ["LIVEKIT_API_SECRET"]

    def test_require_livekit_names_every_missing_var(self, empty_settings):
        with pytest.raises(ConfigurationError) as exc_info:
            empty_settings.require_livekit()
        assert exc_info.value.missing == list(LIVEKIT_REQUIRED)
        for name in LIVEKIT_REQUIRED:
            assert name in exc_info.value.message

    def test_require_livekit_returns_credentials(self, settings):
        assert settings.require_livekit() is settings.livekit

    def test_strict_config_fails_at_startup(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings.from_env({"STRICT_CONFIG": "1"})
        assert exc_info.value.missing == list(LIVEKIT_REQUIRED)

    def test_strict_config_with_credentials(self, livekit_env):
        settings = Settings.from_env(dict(livekit_env, STRICT_CONFIG="true"))
        assert settings.strict_config is True


class TestConfigFlags:

    def test_all_present(self, settings):
        assert settings.config_flags() == {
            "hasApiKey": True,
            "hasApiSecret": True,
            "hasWsUrl": True,
        }

    def test_none_present(self, empty_settings):
        assert empty_settings.config_flags() == {
            "hasApiKey": False,
            "hasApiSecret": False,
            "hasWsUrl": False,
        }


class TestMalformedValues:

    def test_token_ttl_too_short(self, livekit_env):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings.from_env(dict(livekit_env, LIVEKIT_TOKEN_TTL_SECONDS="10"))
        assert "token_ttl_seconds" in exc_info.value.message

    def test_unknown_session_store(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings.from_env({"SESSION_STORE": "sqlite"})
        assert "session_store" in exc_info.value.message

    def test_non_numeric_port(self):
        with pytest.raises(ConfigurationError):
            Settings.from_env({"PORT": "four-thousand"})


class TestDefaults:

    def test_defaults(self, empty_settings):
        assert empty_settings.session_store == "memory"
        assert empty_settings.session_max_age_seconds == 0
        assert empty_settings.delete_room_on_end is False
        assert empty_settings.port == 4000
        assert empty_settings.log_level == "INFO"
        assert empty_settings.openai_api_key is None

    def test_memory_max_age(self, empty_settings):
        assert empty_settings.memory_max_age_seconds == 30 * 24 * 3600
        assert Settings.from_env({"MEMORY_MAX_AGE_SECONDS": "0"}).memory_max_age_seconds == 0

    def test_negative_memory_max_age_rejected(self):
        with pytest.raises(ConfigurationError):
            Settings.from_env({"MEMORY_MAX_AGE_SECONDS": "-1"})

    def test_overrides(self, livekit_env):
        settings = Settings.from_env(dict(
            livekit_env,
            SESSION_STORE="redis",
            SESSION_MAX_AGE_SECONDS="3600",
            LIVEKIT_DELETE_ROOM_ON_END="yes",
            LIVEKIT_TOKEN_TTL_SECONDS="600",
            LOG_LEVEL="debug",
        ))
        assert settings.session_store == "redis"
        assert settings.session_max_age_seconds == 3600
        assert settings.delete_room_on_end is True
        assert settings.livekit.token_ttl_seconds == 600
        assert settings.log_level == "DEBUG"

    def test_settings_are_frozen(self, settings):
        with pytest.raises(Exception):
            settings.port = 5000
