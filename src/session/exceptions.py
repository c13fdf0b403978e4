"""
Error taxonomy for voice sessions.

Every error carries the HTTP status the server answers with, so route
handlers never map exceptions by hand. The same classes are raised on the
client side, where they are stored in the client's ``last_error``.
"""


class VoiceSessionError(Exception):
    """Base class for all voice-session failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgument(VoiceSessionError):
    """Raised for bad or missing request fields."""

    status_code = 400


class ConfigurationError(VoiceSessionError):
    """
    Raised when required secrets or URLs are absent.

    Example:
        >>> from src.config.settings import Settings
        >>> Settings.from_env({}).require_livekit()
        ConfigurationError: LiveKit configuration incomplete: LIVEKIT_API_KEY, ...
    """

    status_code = 500

    def __init__(self, message: str, missing=None):
        super().__init__(message)
        self.missing = list(missing or [])


class NetworkError(VoiceSessionError):
    """Raised when a fetch or a room join fails at the transport level."""

    status_code = 503


class PermissionDenied(VoiceSessionError):
    """Raised when microphone access is refused or unavailable."""

    status_code = 403


class UpstreamError(VoiceSessionError):
    """Wraps a failure reported by the media service, the LLM or the server."""

    status_code = 502


class InvalidState(VoiceSessionError):
    """
    Raised when a client operation is not allowed in its current state.

    Example:
        >>> client.state
        <ConnectionState.DISCONNECTED: 'disconnected'>
        >>> await client.toggle_audio()
        InvalidState: Cannot toggle audio while disconnected
    """

    status_code = 409
