"""Fakes that drive the connection state machine without a network."""

import json

import pytest
from loguru import logger

import irrisync.util
from irrisync.client.connection_manager import ConnectionManager
from irrisync.client.session import Session
from irrisync.types import CONSTS, CloseEvent, TransportError, TransportState
from irrisync.util import TEST_LOGLEVEL

URL = "ws://controller.test:8080/ws"


class FakeTransport:
    """Records what the manager does to it; tests play the controller's side."""

    def __init__(self, url, listener):
        self.url = url
        self.listener = listener
        self.state = TransportState.CONNECTING
        self.opened = False
        self.sent = []
        self.close_calls = []

    def open(self):
        self.opened = True

    def send(self, payload):
        self.sent.append(payload)

    def close(self, code=CONSTS.CLOSE.NORMAL, reason=""):
        self.close_calls.append((code, reason))
        if self.state in (TransportState.CLOSING, TransportState.CLOSED):
            return
        self.state = TransportState.CLOSING

    # controller side
    def accept(self):
        self.state = TransportState.OPEN
        self.listener.on_open()

    def push(self, message):
        if not isinstance(message, (str, bytes)):
            message = json.dumps(message)
        self.listener.on_message(message)

    def fail(self, error=None):
        self.listener.on_error(error or TransportError("OSError: connection reset"))

    def drop(self, code=CONSTS.CLOSE.ABNORMAL, reason="", was_clean=False):
        self.state = TransportState.CLOSED
        self.listener.on_close(CloseEvent(code, reason, was_clean))

    def finish_close(self):
        """Complete a close the client started, echoing its code."""
        code, reason = self.close_calls[-1]
        self.drop(code, reason, was_clean=True)


class FakeHandle:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Just enough of asyncio's loop for `call_later`, with a manual clock."""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(self.now + delay, callback, args)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds):
        self.now += seconds
        for handle in sorted(self.pending, key=lambda h: h.when):
            if handle.when <= self.now and not handle.cancelled:
                self.handles.remove(handle)
                handle.callback(*handle.args)


@pytest.fixture(autouse=True, scope="session")
def client_log():
    irrisync.util.start_client_log(
        log_level=TEST_LOGLEVEL, log_to_stdout=True, log_to_file=False
    )
    yield
    irrisync.util.shutdown_client_log()


@pytest.fixture
def log_messages():
    """Messages logged at WARNING and above during the test."""
    messages = []
    sink_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(sink_id)


@pytest.fixture
def loop():
    return FakeLoop()


@pytest.fixture
def transports():
    return []


@pytest.fixture
def factory(transports):
    def make(url, listener):
        transport = FakeTransport(url, listener)
        transports.append(transport)
        return transport

    return make


@pytest.fixture
def manager(factory, loop):
    return ConnectionManager(URL, transport_factory=factory, loop=loop)


@pytest.fixture
def session(manager):
    session = Session(manager=manager)
    yield session
    session.stop()
