"""Event log — bounded store for build and reload events.

Keeps the most recent ``DevEvent`` records of a run so that tests and
debug tooling can ask what the builder, watcher, scheduler, and hub did.
Older events fall off the front once the buffer is full.

Thread Safety:
    A single ``threading.Lock`` guards the buffer.  The scheduler thread,
    the request handlers, and the watcher append concurrently.

"""

import threading
from collections import Counter, deque
from typing import Any

from loom.observability.events import (
    AssetCopied,
    DevEvent,
    PageRendered,
    PageSkipped,
    RebuildEvent,
    ReloadEvent,
    WatchEvent,
)


def _event_path(event: DevEvent) -> str:
    """The file or directory an event is about, or ``""``."""
    match event:
        case PageRendered() | PageSkipped() | AssetCopied() | WatchEvent():
            return event.path
        case RebuildEvent():
            return event.trigger_path
        case _:
            return ""


class EventLog:
    """Ring buffer of dev-loop events.

    Args:
        max_events: Capacity; the oldest events are discarded beyond it.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[DevEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: DevEvent) -> None:
        with self._lock:
            self._events.append(event)

    def _snapshot(self) -> list[DevEvent]:
        with self._lock:
            return list(self._events)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        limit: int = 100,
    ) -> list[DevEvent]:
        """Matching events, newest first.

        Args:
            event_type: Keep only instances of this event class.
            since_ns: Keep only events stamped at or after this time.
            path: Keep only events whose file path (or rebuild trigger)
                contains this substring.
            limit: Maximum number of events returned.

        """
        matches: list[DevEvent] = []
        for event in reversed(self._snapshot()):
            if len(matches) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if event.timestamp_ns < since_ns:
                continue
            if path is not None and path not in _event_path(event):
                continue
            matches.append(event)
        return matches

    def recent(self, n: int = 20) -> list[DevEvent]:
        """The last *n* events in the order they were recorded."""
        return self._snapshot()[-n:]

    def clear(self) -> int:
        """Drop every event; returns how many were dropped."""
        with self._lock:
            dropped = len(self._events)
            self._events.clear()
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Counts per event type plus rebuild and reload totals."""
        events = self._snapshot()
        rebuilds = [e for e in events if isinstance(e, RebuildEvent)]
        reloads = [e for e in events if isinstance(e, ReloadEvent)]
        return {
            "total": len(events),
            "max_events": self._max_events,
            "by_type": dict(Counter(type(e).__name__ for e in events)),
            "rebuilds": {
                "succeeded": sum(1 for e in rebuilds if e.success),
                "failed": sum(1 for e in rebuilds if not e.success),
            },
            "reloads": {
                "clients_notified": sum(e.clients_notified for e in reloads),
                "clients_dropped": sum(e.clients_dropped for e in reloads),
            },
        }
