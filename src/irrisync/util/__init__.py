# -*- coding: utf-8 -*-
"""
Utility functions and constants for irrisync.

- Defaults (endpoint, reconnect delay, history size, calibration)
- Logging configuration and management
- Derived fields computed from raw telemetry
- The bounded history buffer

Examples
--------
Converting flow meter pulses to litres:
```python
from irrisync.util import compute_volumes
compute_volumes([396, 792])  # (1.0, 2.0)
```
"""

from .defaults import (
    DEFAULT_ACK_TIMEOUT,
    DEFAULT_HOST_ADDR,
    DEFAULT_LOGLEVEL,
    DEFAULT_OPEN_TIMEOUT,
    DEFAULT_PORT,
    DEFAULT_WS_PATH,
    DEFAULT_WS_URL,
    MAX_HISTORY_POINTS,
    PULSES_PER_LITER,
    RECONNECT_DELAY,
    TEST_LOGLEVEL,
)
from .derived import compute_volumes
from .history import HistoryBuffer
from .logging import (
    clear_log,
    get_log_filename,
    log_default_path_client,
    shutdown_client_log,
    start_client_log,
)

__all__ = [
    "DEFAULT_ACK_TIMEOUT",
    "DEFAULT_HOST_ADDR",
    "DEFAULT_LOGLEVEL",
    "DEFAULT_OPEN_TIMEOUT",
    "DEFAULT_PORT",
    "DEFAULT_WS_PATH",
    "DEFAULT_WS_URL",
    "MAX_HISTORY_POINTS",
    "PULSES_PER_LITER",
    "RECONNECT_DELAY",
    "TEST_LOGLEVEL",
    "clear_log",
    "compute_volumes",
    "get_log_filename",
    "HistoryBuffer",
    "log_default_path_client",
    "shutdown_client_log",
    "start_client_log",
]
