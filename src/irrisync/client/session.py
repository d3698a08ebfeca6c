"""
Session facade: the one object consumers (dashboards, the cli) talk to.

It wires a `ConnectionManager` to a `HistoryBuffer` and keeps the last state
seen. Consumers subscribe with `start` and get

- `on_state(StateMessage)` for every telemetry snapshot (already in history),
- `on_ack(CommandAckMessage)` for command acknowledgements,
- `on_error(ErrorMessage)` for server-reported errors and transport faults.

Everything handed out is immutable or a copy: messages are frozen dataclasses,
`snapshot()` returns a tuple and `times()` / `series()` build fresh arrays.
The history buffer itself stays private.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

import numpy as np
from loguru import logger

from irrisync.client.connection_manager import ConnectionManager
from irrisync.types import (
    Command,
    CommandAckMessage,
    ConnectionState,
    ErrorMessage,
    IncomingMessage,
    StateMessage,
)
from irrisync.util.defaults import DEFAULT_WS_URL, MAX_HISTORY_POINTS
from irrisync.util.history import HistoryBuffer


class Session:
    def __init__(
        self,
        url: str = DEFAULT_WS_URL,
        history_size: int = MAX_HISTORY_POINTS,
        manager: Optional[ConnectionManager] = None,
    ):
        self._manager = manager if manager is not None else ConnectionManager(url)
        self._history = HistoryBuffer(history_size)
        self._last_state: Optional[StateMessage] = None
        self._on_state: Optional[Callable[[StateMessage], Any]] = None
        self._on_ack: Optional[Callable[[CommandAckMessage], Any]] = None
        self._on_error: Optional[Callable[[ErrorMessage], Any]] = None
        self._on_open: Optional[Callable[[], Any]] = None

    @property
    def manager(self) -> ConnectionManager:
        return self._manager

    @property
    def connection_state(self) -> ConnectionState:
        return self._manager.state

    @property
    def last_state(self) -> Optional[StateMessage]:
        return self._last_state

    @property
    def history_size(self) -> int:
        return self._history.maxlen

    def snapshot(self) -> tuple[StateMessage, ...]:
        return self._history.snapshot()

    def times(self) -> np.ndarray:
        """Absolute timestamps of the history, oldest first."""
        return self._history.times()

    def series(self, field: str, index: int) -> np.ndarray:
        """One sensor's values across the history, see `HistoryBuffer.series`."""
        return self._history.series(field, index)

    def start(
        self,
        on_state: Optional[Callable[[StateMessage], Any]] = None,
        on_ack: Optional[Callable[[CommandAckMessage], Any]] = None,
        on_error: Optional[Callable[[ErrorMessage], Any]] = None,
        on_open: Optional[Callable[[], Any]] = None,
    ) -> None:
        """Subscribe the consumer callbacks and connect."""
        self._on_state = on_state
        self._on_ack = on_ack
        self._on_error = on_error
        self._on_open = on_open
        self._manager.connect(self._handle_message, self._handle_error, self._handle_open)

    def send_command(self, command: Command) -> None:
        self._manager.send_command(command)

    def stop(self) -> None:
        self._manager.disconnect()

    def _handle_open(self) -> None:
        if self._on_open is not None:
            self._on_open()

    def _handle_message(self, message: IncomingMessage) -> None:
        if isinstance(message, StateMessage):
            self._last_state = message
            self._history.append(message)
            if self._on_state is not None:
                self._on_state(message)
        elif isinstance(message, CommandAckMessage):
            logger.info("Command ACK from {} for: {}", message.device_id, message.command)
            if self._on_ack is not None:
                self._on_ack(message)
        elif isinstance(message, ErrorMessage):
            self._emit_error(message)
        else:
            logger.warning("Unhandled message type: {}", type(message).__name__)

    def _handle_error(self, error: Exception) -> None:
        self._emit_error(ErrorMessage(message=f"WebSocket connection error: {error}"))

    def _emit_error(self, error: ErrorMessage) -> None:
        logger.warning("Controller error: {}", error.message)
        if self._on_error is not None:
            self._on_error(error)
