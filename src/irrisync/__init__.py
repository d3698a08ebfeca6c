# -*- coding: utf-8 -*-
"""# irrisync

`Irrigation state synchronisation client`

A (python) library for following a smart-irrigation controller in real time.
It keeps one long-lived WebSocket connection to the controller's telemetry
endpoint, decodes the state/acknowledgement/error messages it pushes, derives
flow volumes from raw pulse counts and keeps a bounded rolling history for
plotting. Valve commands are sent back over the same connection.

- [irrisync.client](client/index.html): connection manager, codec and the
  session facade consumers use.
- [irrisync.types](types/index.html): message, command and state types.
- [irrisync.util](util/index.html): defaults, logging, derived fields and the
  history buffer.
- [irrisync.cli](cli/index.html): the `irrisync` command-line tool.
"""

from ._version import __version__
