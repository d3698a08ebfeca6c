"""Wire-level constants shared by the codec, the connection manager and the cli."""

from irrisync.util.defaults import MAX_HISTORY_POINTS, PULSES_PER_LITER


class _MsgTypes:
    """Values of the inbound `type` discriminator."""

    STATE = "state"
    COMMAND_ACK = "command_ack"
    ERROR = "error"


class _CommandTags:
    """Values of the outbound `command` field."""

    OPEN_VALVE = "OPEN_VALVE"
    CLOSE_VALVE = "CLOSE_VALVE"
    OPEN_VALVES = "OPEN_VALVES"


class _CloseCodes:
    """WebSocket close codes (RFC 6455 section 7.4.1)."""

    NORMAL = 1000  # explicit client disconnect, the only clean close
    ABNORMAL = 1006  # reported locally when no close frame was received
    INTERNAL_ERROR = 1011  # forced close after a transport error
    DISCONNECT_REASON = "Client initiated disconnect"
    ERROR_REASON = "Transport error"


class CONSTS:
    MSG = _MsgTypes
    CMD = _CommandTags
    CLOSE = _CloseCodes
    PULSES_PER_LITER = PULSES_PER_LITER
    MAX_HISTORY_POINTS = MAX_HISTORY_POINTS
