"""
Client connection state machine.

Defines allowed connection-state transitions and validation logic.
"""

from typing import Set

from .models import ConnectionState
from .exceptions import InvalidState


# State machine: allowed transitions from each state
ALLOWED_TRANSITIONS: dict[ConnectionState, Set[ConnectionState]] = {
    ConnectionState.DISCONNECTED: {
        ConnectionState.CONNECTING,
    },
    ConnectionState.CONNECTING: {
        ConnectionState.CONNECTED,
        ConnectionState.DISCONNECTED,
    },
    ConnectionState.CONNECTED: {
        ConnectionState.DISCONNECTED,
    },
}


def validate_transition(from_state: ConnectionState, to_state: ConnectionState) -> None:
    """
    Validate that a state transition is allowed by the state machine.

    Args:
        from_state: Current state
        to_state: Target state

    Raises:
        InvalidState: If transition is not allowed

    Example:
        >>> validate_transition(ConnectionState.DISCONNECTED, ConnectionState.CONNECTING)  # OK
        >>> validate_transition(ConnectionState.CONNECTED, ConnectionState.CONNECTING)  # Raises
    """
    allowed = ALLOWED_TRANSITIONS.get(from_state, set())
    if to_state not in allowed:
        raise InvalidState(
            f"Invalid transition: {from_state.value} -> {to_state.value}"
        )


def is_busy(state: ConnectionState) -> bool:
    """
    Check if a state already owns (or is acquiring) a room connection.

    Args:
        state: State to check

    Returns:
        True for CONNECTING and CONNECTED
    """
    return state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED)
