# -*- coding: utf-8 -*-

DEFAULT_HOST_ADDR = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_WS_PATH = "/ws"
DEFAULT_WS_URL = f"ws://{DEFAULT_HOST_ADDR}:{DEFAULT_PORT}{DEFAULT_WS_PATH}"
RECONNECT_DELAY = 5.0  # seconds, fixed (no backoff growth)
DEFAULT_OPEN_TIMEOUT = 10.0  # seconds, websocket opening handshake
DEFAULT_ACK_TIMEOUT = 10.0  # seconds, cli waits this long for a command_ack
MAX_HISTORY_POINTS = 500
PULSES_PER_LITER = 396.0  # flow meter calibration
DEFAULT_LOGLEVEL = "INFO"
TEST_LOGLEVEL = "TRACE"
