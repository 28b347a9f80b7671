"""Dev-loop observability — one event model for build and reload activity.

Aggregates events from:
- **Build pipeline**: rendered and skipped pages, copied assets
- **Watcher / scheduler**: watched directories, watcher errors, rebuilds
- **Reload hub**: client membership and broadcasts

All events are frozen dataclasses with nanosecond timestamps, safe to
record from the scheduler thread and request handlers concurrently.

Quick Start:
    >>> from loom.observability import DevCollector, EventLog
    >>> log = EventLog()
    >>> collector = DevCollector(log)
    >>> collector.record_reload(clients_notified=2)

"""

from loom.observability.collector import DevCollector
from loom.observability.events import (
    AssetCopied,
    ClientEvent,
    DevEvent,
    PageRendered,
    PageSkipped,
    RebuildEvent,
    ReloadEvent,
    WatchEvent,
    now_ns,
)
from loom.observability.log import EventLog

__all__ = [
    "AssetCopied",
    "ClientEvent",
    "DevCollector",
    "DevEvent",
    "EventLog",
    "PageRendered",
    "PageSkipped",
    "RebuildEvent",
    "ReloadEvent",
    "WatchEvent",
    "now_ns",
]
