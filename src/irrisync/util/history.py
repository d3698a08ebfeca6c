# -*- coding: utf-8 -*-
"""
Bounded rolling history of decoded state messages.

The buffer is append-only from the session's point of view: consumers only
ever receive tuples (`snapshot`) or freshly built arrays (`times`, `series`),
never the underlying container.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

import numpy as np

from .defaults import MAX_HISTORY_POINTS

if TYPE_CHECKING:
    from irrisync.types import StateMessage

SERIES_FIELDS = ("valves", "flows", "moists", "volumes")


class HistoryBuffer:
    """FIFO of the most recent `maxlen` state snapshots, oldest first."""

    def __init__(self, maxlen: int = MAX_HISTORY_POINTS):
        if maxlen < 1:
            raise ValueError(f"History capacity must be positive, got {maxlen}")
        self._entries: deque[StateMessage] = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._entries.maxlen

    @property
    def latest(self) -> StateMessage | None:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: StateMessage) -> None:
        # deque with maxlen drops from the left once full
        self._entries.append(entry)

    def snapshot(self) -> tuple[StateMessage, ...]:
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def times(self) -> np.ndarray:
        """Absolute timestamps of the history, oldest first."""
        return np.array([entry.time for entry in self._entries], dtype=float)

    def series(self, field: str, index: int) -> np.ndarray:
        """Values of one sensor (e.g. `series("volumes", 0)`) across the history.

        Snapshots that report fewer than `index + 1` sensors contribute `nan`.
        """
        if field not in SERIES_FIELDS:
            raise ValueError(f"Unknown series field '{field}', use one of {SERIES_FIELDS}")
        if index < 0:
            raise IndexError(f"Sensor index must be non-negative, got {index}")
        out = np.full(len(self._entries), np.nan)
        for i, entry in enumerate(self._entries):
            values = getattr(entry, field)
            if index < len(values):
                out[i] = values[index]
        return out
