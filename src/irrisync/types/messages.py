"""Message and command types for controller-client communication.

Inbound messages (controller -> client) are frozen dataclasses; sequences are
stored as tuples so a decoded snapshot can be handed to any consumer without
copying. Outbound commands serialise to the controller's JSON shapes via
`to_json()`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
from mashumaro.mixins.json import DataClassJSONMixin

from .commands import CONSTS


@dataclass(frozen=True, kw_only=True)
class Message(DataClassDictMixin):
    """Base class for all inbound messages."""

    type: str  # subclass to define

    class Config(BaseConfig):
        serialize_by_alias = True


@dataclass(frozen=True, kw_only=True)
class StateMessage(Message):
    """One telemetry snapshot.

    `time` is absolute: the device's relative time plus its `start_time`
    offset. `volumes` holds one derived value (litres) per flow meter.
    """

    type: str = CONSTS.MSG.STATE
    time: float
    start_time: float = 0
    device_id: str = field(metadata=field_options(alias="deviceId"))
    valves: tuple[int, ...] = ()
    flows: tuple[float, ...] = ()
    moists: tuple[float, ...] = ()
    volumes: tuple[float, ...] = ()

    def __post_init__(self):
        if len(self.volumes) != len(self.flows):
            raise ValueError(
                f"Got {len(self.volumes)} volumes for {len(self.flows)} flow readings"
            )


@dataclass(frozen=True, kw_only=True)
class CommandAckMessage(Message):
    type: str = CONSTS.MSG.COMMAND_ACK
    device_id: str = field(metadata=field_options(alias="deviceId"))
    command: str  # echo of the acknowledged command, opaque


@dataclass(frozen=True, kw_only=True)
class ErrorMessage(Message):
    type: str = CONSTS.MSG.ERROR
    message: str


IncomingMessage = Union[StateMessage, CommandAckMessage, ErrorMessage]


@dataclass(frozen=True, kw_only=True)
class Command(DataClassJSONMixin):
    """Base class for outbound valve commands. Fire-and-forget."""

    device_id: str = field(metadata=field_options(alias="deviceId"))
    command: str  # subclass to define

    class Config(BaseConfig):
        serialize_by_alias = True


@dataclass(frozen=True, kw_only=True)
class OpenValveCommand(Command):
    command: str = CONSTS.CMD.OPEN_VALVE
    valve: int


@dataclass(frozen=True, kw_only=True)
class CloseValveCommand(Command):
    command: str = CONSTS.CMD.CLOSE_VALVE
    valve: int


@dataclass(frozen=True, kw_only=True)
class OpenValvesCommand(Command):
    command: str = CONSTS.CMD.OPEN_VALVES
    valves: tuple[int, ...]


def build_command(action: str, device_id: str, valves) -> Command:
    """Build the command for opening/closing `valves` on `device_id`.

    A single valve gives OPEN_VALVE / CLOSE_VALVE, several valves (or action
    "open-many") give OPEN_VALVES. There is no wire command for closing
    several valves at once.
    """
    valves = tuple(int(v) for v in valves)
    if not valves:
        raise ValueError("At least one valve index is required.")
    if any(v < 0 for v in valves):
        raise ValueError(f"Valve indices must be non-negative, got {valves}")
    match action:
        case "open" if len(valves) == 1:
            return OpenValveCommand(device_id=device_id, valve=valves[0])
        case "open" | "open-many":
            return OpenValvesCommand(device_id=device_id, valves=valves)
        case "close" if len(valves) == 1:
            return CloseValveCommand(device_id=device_id, valve=valves[0])
        case "close":
            raise ValueError("Valves can only be closed one at a time.")
        case _:
            raise ValueError(
                f"Unknown valve action '{action}', use 'open', 'open-many' or 'close'"
            )
