"""
Transports and the reconnect timer used by the connection manager.

A transport is one socket's worth of connection: it is opened once, reports
`on_open` / `on_message` / `on_error` / `on_close` to its listener, and is
thrown away after it closes. Every event runs on the asyncio event loop, so
listener callbacks never run concurrently with each other.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Optional, Protocol, runtime_checkable

from loguru import logger
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError

from irrisync.types import CONSTS, CloseEvent, TransportError, TransportState
from irrisync.util.defaults import DEFAULT_OPEN_TIMEOUT


@runtime_checkable
class TransportListener(Protocol):
    """Receiver of transport events."""

    def on_open(self) -> None: ...

    def on_message(self, payload: str) -> None: ...

    def on_error(self, error: Exception) -> None: ...

    def on_close(self, event: CloseEvent) -> None: ...


@runtime_checkable
class Transport(Protocol):
    """One connection attempt to the controller."""

    @property
    def state(self) -> TransportState: ...

    def open(self) -> None: ...

    def send(self, payload: str) -> None: ...

    def close(self, code: int = CONSTS.CLOSE.NORMAL, reason: str = "") -> None: ...


TransportFactory = Callable[[str, TransportListener], Transport]


class WebSocketTransport:
    """`Transport` over a `websockets` client connection.

    Emits exactly one `on_close` per transport, after which it is inert. A
    failed handshake or socket error is reported as `on_error` followed by an
    unclean `on_close` (code 1006).
    """

    def __init__(
        self,
        url: str,
        listener: TransportListener,
        open_timeout: float = DEFAULT_OPEN_TIMEOUT,
    ):
        self._url = url
        self._listener = listener
        self._open_timeout = open_timeout
        self._state = TransportState.CONNECTING
        self._ws: Optional[ClientConnection] = None
        self._task: Optional[asyncio.Task] = None
        self._close_request: Optional[tuple[int, str]] = None
        self._pending: set[asyncio.Task] = set()

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def url(self) -> str:
        return self._url

    def open(self) -> None:
        if self._task is not None:
            raise RuntimeError("Transport already opened, create a new one")
        self._task = asyncio.get_running_loop().create_task(self._run())

    def send(self, payload: str) -> None:
        if self._state is not TransportState.OPEN or self._ws is None:
            raise TransportError(f"Cannot send, transport is {self._state.value}")
        self._spawn(self._ws.send(payload), "send")

    def close(self, code: int = CONSTS.CLOSE.NORMAL, reason: str = "") -> None:
        if self._state in (TransportState.CLOSING, TransportState.CLOSED):
            return
        self._state = TransportState.CLOSING
        if self._ws is None:
            # still handshaking: applied as soon as the connection is up
            self._close_request = (code, reason)
        else:
            self._spawn(self._ws.close(code, reason), "close")

    def _spawn(self, coro, what: str) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(lambda t: self._finish(t, what))

    def _finish(self, task: asyncio.Task, what: str) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if isinstance(exc, ConnectionClosed):
            logger.debug("Websocket {} skipped, connection already closed.", what)
        elif exc is not None:
            logger.error("Websocket {} failed: {}", what, exc)

    async def _run(self) -> None:
        event = CloseEvent(CONSTS.CLOSE.ABNORMAL, "", False)
        try:
            async with connect(self._url, open_timeout=self._open_timeout) as ws:
                self._ws = ws
                if self._close_request is not None:
                    await ws.close(*self._close_request)
                else:
                    self._state = TransportState.OPEN
                    self._listener.on_open()
                    try:
                        async for payload in ws:
                            if isinstance(payload, bytes):
                                payload = payload.decode("utf-8", errors="replace")
                            self._listener.on_message(payload)
                    except ConnectionClosedError:
                        logger.debug("Websocket connection closed with an error.")
                await ws.wait_closed()
                event = _close_event(ws)
        except ConnectionClosed as e:
            logger.debug("Websocket closed during handshake: {}", e)
        except Exception as e:  # OSError, TimeoutError, InvalidHandshake, InvalidURI...
            self._report_error(e)
        finally:
            self._ws = None
            self._state = TransportState.CLOSED
        self._listener.on_close(event)

    def _report_error(self, exc: Exception) -> None:
        err = TransportError(f"{type(exc).__name__}: {exc}")
        err.__cause__ = exc
        self._listener.on_error(err)


def _close_event(ws: ClientConnection) -> CloseEvent:
    code = ws.close_code
    if code is None or code == CONSTS.CLOSE.ABNORMAL:
        return CloseEvent(CONSTS.CLOSE.ABNORMAL, "", False)
    return CloseEvent(code, ws.close_reason or "", True)


def websocket_transport_factory(open_timeout: float = DEFAULT_OPEN_TIMEOUT) -> TransportFactory:
    def factory(url: str, listener: TransportListener) -> Transport:
        return WebSocketTransport(url, listener, open_timeout=open_timeout)

    return factory


class ReconnectTimer:
    """An owned, cancellable one-shot timer.

    `arm` cancels whatever was armed before, so at most one callback is ever
    pending.
    """

    def __init__(self, loop=None):
        # anything with asyncio's call_later(delay, callback) -> handle.cancel()
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        self.cancel()
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._fire, callback)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()
