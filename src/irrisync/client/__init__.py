"""
Client side of the controller connection.

- `codec` : raw payload -> typed message
- `transport` : websocket transport and reconnect timer
- `connection_manager` : connection state machine with fixed-delay reconnect
- `session` : facade combining the above with the history buffer

Examples
--------
```python
import asyncio
from irrisync.client import Session
from irrisync.types import OpenValveCommand

async def main():
    session = Session("ws://192.168.0.17:8080/ws")
    session.start(on_state=print, on_ack=print, on_error=print)
    await asyncio.sleep(10)
    session.send_command(OpenValveCommand(device_id="D1", valve=0))
    await asyncio.sleep(10)
    session.stop()

asyncio.run(main())
```
"""

from .codec import decode
from .connection_manager import ConnectionManager
from .session import Session
from .transport import ReconnectTimer, Transport, TransportListener, WebSocketTransport

__all__ = [
    "ConnectionManager",
    "decode",
    "ReconnectTimer",
    "Session",
    "Transport",
    "TransportListener",
    "WebSocketTransport",
]
