"""
Decoding of raw controller payloads into typed messages.

`decode` never raises: anything malformed or of an unknown type is logged and
reported as `DecodeOutcome.DISCARD`. The one exception to "log and drop" is an
error envelope whose inner payload is not JSON, which is surfaced with the raw
text so the user still sees that something went wrong.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import simplejson as json
from loguru import logger
from mashumaro.exceptions import InvalidFieldValue, MissingField

from irrisync.types import (
    CONSTS,
    CommandAckMessage,
    DecodeError,
    DecodeOutcome,
    ErrorMessage,
    IncomingMessage,
    StateMessage,
)
from irrisync.util.derived import compute_volumes


def decode(raw: str | bytes) -> IncomingMessage | DecodeOutcome:
    """Decode one transport payload.

    Returns
    -------
    StateMessage | CommandAckMessage | ErrorMessage
        The decoded message.
    DecodeOutcome.DISCARD
        If the payload was unusable (already logged).
    """
    try:
        payload = _parse_envelope(raw)
        msg_type = payload.get("type")
        match msg_type:
            case CONSTS.MSG.STATE:
                return decode_state(payload)
            case CONSTS.MSG.COMMAND_ACK:
                return decode_command_ack(payload)
            case CONSTS.MSG.ERROR:
                return decode_error(payload)
            case _:
                raise DecodeError(f"Unknown message type: {msg_type!r}")
    except DecodeError as e:
        logger.warning("Discarding message: {} (payload: {!r})", e, raw)
        return DecodeOutcome.DISCARD


def _parse_envelope(raw: str | bytes) -> dict[str, Any]:
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:  # JSONDecodeError, UnicodeDecodeError, digit limit
        raise DecodeError(f"Payload is not valid JSON ({e})") from e
    if not isinstance(payload, dict):
        raise DecodeError(f"Expected a JSON object, got {type(payload).__name__}")
    return payload


def _sequence(payload: Mapping[str, Any], key: str) -> list:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError(f"'{key}' must be an array, got {type(value).__name__}")
    return value


def _number(payload: Mapping[str, Any], key: str, default=None):
    value = payload.get(key, default)
    # bool is an int subclass but never a valid timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"'{key}' must be a number, got {value!r}")
    return value


def decode_state(payload: Mapping[str, Any]) -> StateMessage:
    flows = _sequence(payload, "flows")
    try:
        volumes = compute_volumes(flows)
    except (TypeError, ValueError, OverflowError) as e:
        raise DecodeError(f"Bad flow readings {flows!r} ({e})") from e

    start_time = _number(payload, "start_time", 0)
    data = {
        **payload,
        "time": _number(payload, "time") + start_time,
        "start_time": start_time,
        "valves": _sequence(payload, "valves"),
        "flows": flows,
        "moists": _sequence(payload, "moists"),
        "volumes": volumes,
    }
    try:
        return StateMessage.from_dict(data)
    except (MissingField, InvalidFieldValue, ValueError) as e:
        raise DecodeError(f"Bad state message ({e})") from e


def decode_command_ack(payload: Mapping[str, Any]) -> CommandAckMessage:
    data = dict(payload)
    command = data.get("command")
    if command is not None and not isinstance(command, str):
        # echo is opaque; keep it as the JSON text the controller sent
        data["command"] = json.dumps(command)
    try:
        return CommandAckMessage.from_dict(data)
    except (MissingField, InvalidFieldValue) as e:
        raise DecodeError(f"Bad command_ack message ({e})") from e


def decode_error(payload: Mapping[str, Any]) -> ErrorMessage:
    """Unwrap a server error envelope.

    The outer `message` is itself JSON carrying an `error` field. An inner
    payload that parses but has no `error` is dropped; one that does not parse
    at all is reported verbatim.
    """
    outer = payload.get("message")
    if not isinstance(outer, str):
        raise DecodeError(f"Error message without text: {outer!r}")
    try:
        inner = json.loads(outer)
    except ValueError as e:  # JSONDecodeError or an integer past the digit limit
        logger.warning("Could not parse error envelope ({}), reporting raw text.", e)
        return ErrorMessage(message=outer)

    error = inner.get("error") if isinstance(inner, dict) else None
    if not error:
        raise DecodeError(f"Unknown error message format: {outer!r}")
    return ErrorMessage(message=error if isinstance(error, str) else str(error))
