"""
Message, command and connection-state types.

The irrisync.types package provides:

1. Controller-client messages
    - Inbound `StateMessage`, `CommandAckMessage`, `ErrorMessage`
    - Outbound `OpenValveCommand`, `CloseValveCommand`, `OpenValvesCommand`
    - (De)serialisation via mashumaro, JSON over WebSocket

2. Connection state
    - `ConnectionState` for the connection manager state machine
    - `TransportState` / `CloseEvent` for the underlying transport

3. Exceptions

Examples
--------
Building and serialising a command:
```python
from irrisync.types import OpenValveCommand
OpenValveCommand(device_id="D1", valve=2).to_json()
# '{"deviceId": "D1", "command": "OPEN_VALVE", "valve": 2}'
```

See Also
--------
irrisync.client : Connection handling and decoding
irrisync.types.messages : Message class definitions
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .commands import CONSTS
from .messages import (
    CloseValveCommand,
    Command,
    CommandAckMessage,
    ErrorMessage,
    IncomingMessage,
    Message,
    OpenValveCommand,
    OpenValvesCommand,
    StateMessage,
    build_command,
)


class ConnectionState(Enum):
    """States of the connection manager."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED_CLEAN = "closed_clean"
    CLOSED_UNCLEAN = "closed_unclean"
    RECONNECT_SCHEDULED = "reconnect_scheduled"


class TransportState(Enum):
    """Ready states of a single transport (one socket)."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(frozen=True)
class CloseEvent:
    """How a transport closed."""

    code: int
    reason: str = ""
    was_clean: bool = False

    @property
    def is_intentional(self) -> bool:
        """True for the close performed by an explicit client disconnect."""
        return self.was_clean and self.code == CONSTS.CLOSE.NORMAL


class DecodeOutcome(Enum):
    """Non-message result of decoding a payload."""

    DISCARD = "discard"


# Exceptions
class CommsError(Exception):
    """Base exception for communication errors."""

    pass


class DecodeError(CommsError):
    """Raised when a payload is malformed or of an unknown type.

    Never escapes the codec: it is logged and the payload discarded.
    """

    pass


class TransportError(CommsError):
    """An underlying connection fault, as reported to consumers."""

    pass


__all__ = [
    "CONSTS",
    "CloseEvent",
    "CloseValveCommand",
    "Command",
    "CommandAckMessage",
    "CommsError",
    "ConnectionState",
    "DecodeError",
    "DecodeOutcome",
    "ErrorMessage",
    "IncomingMessage",
    "Message",
    "OpenValveCommand",
    "OpenValvesCommand",
    "StateMessage",
    "TransportError",
    "TransportState",
    "build_command",
]
