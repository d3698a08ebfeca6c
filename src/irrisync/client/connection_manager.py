"""
Connection manager for the controller's telemetry/control WebSocket.

This class owns the transport and the reconnect timer and runs the connection
state machine:

    IDLE -> CONNECTING -> OPEN -> CLOSED_CLEAN
                               -> CLOSED_UNCLEAN -> RECONNECT_SCHEDULED -> CONNECTING ...

Unclean closes are retried forever with a fixed delay. A clean close (the
normal-closure code sent by `disconnect`) never is. All callbacks run on the
event loop, one at a time.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

from loguru import logger

from irrisync.client import codec
from irrisync.client.transport import (
    ReconnectTimer,
    Transport,
    TransportFactory,
    websocket_transport_factory,
)
from irrisync.types import (
    CONSTS,
    CloseEvent,
    Command,
    ConnectionState,
    DecodeOutcome,
    IncomingMessage,
    TransportState,
)
from irrisync.util.defaults import DEFAULT_WS_URL, RECONNECT_DELAY

MessageCallback = Callable[[IncomingMessage], Any]
ErrorCallback = Callable[[Exception], Any]
OpenCallback = Callable[[], Any]


class _Listener:
    """Routes one transport's events back to the manager, tagged by generation."""

    def __init__(self, manager: ConnectionManager, generation: int):
        self._manager = manager
        self._generation = generation

    def on_open(self) -> None:
        self._manager._handle_open(self._generation)

    def on_message(self, payload: str) -> None:
        self._manager._handle_message(self._generation, payload)

    def on_error(self, error: Exception) -> None:
        self._manager._handle_error(self._generation, error)

    def on_close(self, event: CloseEvent) -> None:
        self._manager._handle_close(self._generation, event)


class ConnectionManager:
    """
    Manages the single connection to the controller.

    Construct once per session. The transport handle and the reconnect timer
    are private; everything else goes through `connect`, `disconnect` and
    `send_command`.
    """

    def __init__(
        self,
        url: str = DEFAULT_WS_URL,
        reconnect_delay: float = RECONNECT_DELAY,
        transport_factory: Optional[TransportFactory] = None,
        loop=None,
    ):
        self._url = url
        self._reconnect_delay = reconnect_delay
        self._transport_factory = transport_factory or websocket_transport_factory()
        self._timer = ReconnectTimer(loop)
        self._transport: Optional[Transport] = None
        self._state = ConnectionState.IDLE
        self._generation = 0
        self._on_message: Optional[MessageCallback] = None
        self._on_error: Optional[ErrorCallback] = None
        self._on_open: Optional[OpenCallback] = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_pending(self) -> bool:
        return self._timer.armed

    def is_connected(self) -> bool:
        return self._state is ConnectionState.OPEN

    def connect(
        self,
        on_message: MessageCallback,
        on_error: ErrorCallback,
        on_open: OpenCallback,
    ) -> None:
        """Open a transport unless one is already open or opening."""
        if self._state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            logger.debug("Already {}, ignoring connect.", self._state.value)
            return

        self._timer.cancel()
        self._on_message, self._on_error, self._on_open = on_message, on_error, on_open
        self._generation += 1
        self._state = ConnectionState.CONNECTING
        logger.info("Connecting to {}", self._url)
        try:
            self._transport = self._transport_factory(
                self._url, _Listener(self, self._generation)
            )
            self._transport.open()
        except Exception as e:
            # ensure these aren't set if opening fails
            self._transport = None
            self._state = ConnectionState.IDLE
            raise e

    def disconnect(self) -> None:
        """Close cleanly and stop reconnecting. Safe to call when idle."""
        transport = self._transport
        # events from the old transport (incl. its close) are now stale
        self._generation += 1
        self._transport = None
        self._timer.cancel()
        if transport is not None and transport.state in (
            TransportState.CONNECTING,
            TransportState.OPEN,
        ):
            logger.info("Disconnecting from {}", self._url)
            transport.close(CONSTS.CLOSE.NORMAL, CONSTS.CLOSE.DISCONNECT_REASON)
        self._state = ConnectionState.IDLE

    def send_command(self, command: Command) -> None:
        """Send `command` if open, else log and drop it. No queueing, no retry."""
        if self._state is not ConnectionState.OPEN or self._transport is None:
            logger.warning("Connection is not open. Command not sent: {}", command)
            return
        payload = command.to_json()
        logger.debug("*COMMAND* (client->): {}", payload)
        self._transport.send(payload)

    # ========================================================================
    # transport events
    # ========================================================================

    def _is_stale(self, generation: int, event: str) -> bool:
        if generation != self._generation:
            logger.trace("Ignoring {} from a superseded transport.", event)
            return True
        return False

    def _handle_open(self, generation: int) -> None:
        if self._is_stale(generation, "open"):
            return
        self._state = ConnectionState.OPEN
        logger.info("Websocket connected to {}", self._url)
        self._notify(self._on_open)

    def _handle_message(self, generation: int, payload: str) -> None:
        if self._is_stale(generation, "message"):
            return
        logger.trace("*MESSAGE* (client<-): {}", payload)
        message = codec.decode(payload)
        if message is DecodeOutcome.DISCARD:
            return
        self._notify(self._on_message, message)

    def _handle_error(self, generation: int, error: Exception) -> None:
        if self._is_stale(generation, "error"):
            return
        logger.error("Websocket error: {}", error)
        self._notify(self._on_error, error)
        # force the close path, which owns reconnection
        if self._transport is not None and self._transport.state is not TransportState.CLOSED:
            self._transport.close(CONSTS.CLOSE.INTERNAL_ERROR, CONSTS.CLOSE.ERROR_REASON)

    def _handle_close(self, generation: int, event: CloseEvent) -> None:
        if self._is_stale(generation, "close"):
            return
        logger.info("Websocket disconnected {} {}", event.code, event.reason)
        # nothing further from this transport is acted on
        self._generation += 1
        self._transport = None
        if event.is_intentional:
            self._state = ConnectionState.CLOSED_CLEAN
            return
        self._state = ConnectionState.CLOSED_UNCLEAN
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        logger.info("Reconnecting in {} s", self._reconnect_delay)
        self._timer.arm(self._reconnect_delay, self._reconnect)
        self._state = ConnectionState.RECONNECT_SCHEDULED

    def _reconnect(self) -> None:
        # timer callback: an escaping error would end the retry loop
        try:
            self.connect(self._on_message, self._on_error, self._on_open)
        except Exception:
            logger.exception("Reconnect to {} failed.", self._url)
            self._schedule_reconnect()

    def _notify(self, callback, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Error in connection callback.")

    def __repr__(self):
        return f"{self.__class__.__name__}(url={self._url!r}, state={self._state.value})"
