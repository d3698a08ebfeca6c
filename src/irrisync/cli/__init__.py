"""
Command-line interface for irrisync.

Built on Click. Follows a controller's live telemetry and sends valve
commands.

Examples
--------
Watching a controller:
```bash
$ irrisync monitor --url ws://192.168.0.17:8080/ws
```

Opening valves 0 and 2 on device D1:
```bash
$ irrisync open-valves D1 0 2
```

CLI Tree
--------

```
$ irrisync --tree
cli
└── close-valve
└── monitor
└── open-valve
└── open-valves
```
"""

from .base import cli, tree_option

__all__ = ["cli", "tree_option"]
