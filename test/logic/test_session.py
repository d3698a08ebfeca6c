"""Tests for the session facade."""

import json

import pytest

from irrisync.client.session import Session
from irrisync.types import (
    CONSTS,
    CommandAckMessage,
    ConnectionState,
    ErrorMessage,
    OpenValveCommand,
    StateMessage,
    TransportError,
)

STATE = {
    "type": "state",
    "time": 100,
    "start_time": 1000,
    "deviceId": "D1",
    "valves": [1, 0],
    "flows": [396, 0],
    "moists": [50],
}


class Consumer:
    def __init__(self):
        self.states = []
        self.acks = []
        self.errors = []
        self.opens = 0

    def start(self, session):
        session.start(
            on_state=self.states.append,
            on_ack=self.acks.append,
            on_error=self.errors.append,
            on_open=self.on_open,
        )

    def on_open(self):
        self.opens += 1


@pytest.fixture
def consumer():
    return Consumer()


@pytest.fixture
def live(session, consumer, transports):
    consumer.start(session)
    transports[0].accept()
    return transports[0]


def test_initial_state(session):
    assert session.connection_state is ConnectionState.IDLE
    assert session.last_state is None
    assert session.snapshot() == ()


def test_start_connects(live, session, consumer):
    assert session.connection_state is ConnectionState.OPEN
    assert consumer.opens == 1


def test_state_updates_last_state_and_history(live, session, consumer):
    live.push(STATE)
    assert len(consumer.states) == 1
    msg = consumer.states[0]
    assert isinstance(msg, StateMessage)
    assert msg.time == 1100
    assert msg.volumes == (1.0, 0.0)
    assert session.last_state is msg
    assert session.snapshot() == (msg,)


def test_history_is_bounded(factory, loop, transports):
    from irrisync.client.connection_manager import ConnectionManager

    manager = ConnectionManager(transport_factory=factory, loop=loop)
    session = Session(history_size=3, manager=manager)
    session.start()
    transports[0].accept()
    for t in range(10):
        transports[0].push({**STATE, "time": t})
    assert [s.time for s in session.snapshot()] == [1007, 1008, 1009]
    assert session.last_state.time == 1009


def test_default_history_capacity(session):
    assert session.history_size == CONSTS.MAX_HISTORY_POINTS == 500


def test_history_is_only_exposed_as_copies(live, session):
    live.push(STATE)
    live.push({**STATE, "time": 200, "flows": [792]})
    assert not hasattr(session, "history")

    times = session.times()
    volumes = session.series("volumes", 0)
    assert times.tolist() == [1100.0, 1200.0]
    assert volumes.tolist() == [1.0, 2.0]

    times[:] = 0
    volumes[:] = 0
    assert session.times().tolist() == [1100.0, 1200.0]
    assert session.series("volumes", 0).tolist() == [1.0, 2.0]
    assert session.series("volumes", 1).tolist()[0] == 0.0
    assert len(session.snapshot()) == 2


def test_ack_forwarded(live, consumer, session):
    live.push({"type": "command_ack", "deviceId": "D1", "command": "OPEN_VALVE"})
    assert consumer.acks == [CommandAckMessage(device_id="D1", command="OPEN_VALVE")]
    assert consumer.states == []
    assert session.snapshot() == ()


def test_server_error_forwarded(live, consumer):
    live.push({"type": "error", "message": json.dumps({"error": "Valve 9 not found"})})
    assert consumer.errors == [ErrorMessage(message="Valve 9 not found")]


def test_unparseable_server_error_forwarded_raw(live, consumer):
    live.push({"type": "error", "message": "not json"})
    assert consumer.errors == [ErrorMessage(message="not json")]


def test_server_error_without_error_field_not_forwarded(live, consumer):
    live.push({"type": "error", "message": json.dumps({"detail": "?"})})
    assert consumer.errors == []


def test_transport_error_normalised(live, consumer):
    live.fail(TransportError("OSError: connection reset"))
    assert consumer.errors == [
        ErrorMessage(message="WebSocket connection error: OSError: connection reset")
    ]


def test_messages_survive_reconnect(live, session, consumer, transports, loop):
    live.push(STATE)
    live.drop()
    assert session.connection_state is ConnectionState.RECONNECT_SCHEDULED
    assert session.last_state is consumer.states[0]

    loop.advance(5.0)
    transports[1].accept()
    transports[1].push({**STATE, "time": 200})
    assert [s.time for s in session.snapshot()] == [1100, 1200]
    assert consumer.opens == 2


def test_send_command(live, session):
    session.send_command(OpenValveCommand(device_id="D1", valve=3))
    assert json.loads(live.sent[0]) == {
        "deviceId": "D1",
        "command": "OPEN_VALVE",
        "valve": 3,
    }


def test_send_command_when_stopped(session, transports):
    session.send_command(OpenValveCommand(device_id="D1", valve=3))
    assert transports == []


def test_stop(live, session, loop):
    session.stop()
    assert live.close_calls == [(1000, "Client initiated disconnect")]
    assert session.connection_state is ConnectionState.IDLE
    live.finish_close()
    assert loop.pending == []


def test_start_without_callbacks(session, transports):
    session.start()
    transports[0].accept()
    transports[0].push(STATE)
    transports[0].push({"type": "command_ack", "deviceId": "D1", "command": "x"})
    transports[0].push({"type": "error", "message": "boom"})
    assert len(session.snapshot()) == 1
