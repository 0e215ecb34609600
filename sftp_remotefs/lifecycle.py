"""
Connection lifecycle state machine.

States only ever move forward: a transition is legal when the new state's
rank is strictly greater than the current one, and never out of a terminal
state. Every remote operation is gated on the CONNECTED state.
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType

from .errors import InvalidStateTransition, NotConnectedError

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    CONSTRUCTED = "constructed"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ENDED = "ended"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        return ConnectionLifecycle.RANKS[self]

    def __str__(self) -> str:
        return self.value


class ConnectionLifecycle:
    """Monotonic state holder for one client."""

    RANKS = MappingProxyType(
        {
            ConnectionState.CONSTRUCTED: 100,
            ConnectionState.CONNECTING: 200,
            ConnectionState.CONNECTED: 300,
            ConnectionState.ENDED: 800,
            ConnectionState.FAILED: 900,
        }
    )
    TERMINAL_STATES = frozenset({ConnectionState.ENDED, ConnectionState.FAILED})

    def __init__(self):
        self._state = ConnectionState.CONSTRUCTED

    @property
    def state(self) -> ConnectionState:
        return self._state

    def transition(self, new_state: ConnectionState | str) -> None:
        """
        Move to new_state.

        Args:
            new_state: A ConnectionState or its name, e.g. "connected".

        Raises:
            InvalidStateTransition: If the state is unknown, ranks at or below
                the current state, or the current state is terminal.
        """
        if not isinstance(new_state, ConnectionState):
            try:
                new_state = ConnectionState(str(new_state).lower())
            except ValueError:
                raise InvalidStateTransition(
                    f"Cannot set unknown status '{new_state}'!"
                ) from None

        if self._state in self.TERMINAL_STATES or new_state.rank <= self._state.rank:
            raise InvalidStateTransition(
                f"Cannot set status '{new_state}' when the current status is '{self._state}'!"
            )

        logger.debug("Connection state %s -> %s", self._state, new_state)
        self._state = new_state

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def require_connected(self, action: str) -> None:
        """
        Raise NotConnectedError naming the action unless connected.

        Raises:
            NotConnectedError: If the current state is not CONNECTED.
        """
        if not self.is_connected():
            err = NotConnectedError(
                f"Cannot execute the '{action}' action, "
                f"the client has an invalid status '{self._state}'!",
                action=action,
            )
            logger.error("%s", err)
            raise err
