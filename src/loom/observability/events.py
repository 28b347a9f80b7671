"""Unified event model for dev-loop observability.

Defines event types for the build pipeline, the rebuild scheduler, the
watcher, and the reload hub.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal


# ---------------------------------------------------------------------------
# Build pipeline events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PageRendered:
    """A content file was rendered and written.

    Attributes:
        path: Content file path relative to the content root.
        output: Written output file path.
        duration_ms: Time taken to render and write the page.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    output: str
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class PageSkipped:
    """A content file produced no output.

    Attributes:
        path: Content file path relative to the content root.
        reason: Why the page was not written.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    reason: Literal["draft"]
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class AssetCopied:
    """A static asset was copied into the output tree.

    Attributes:
        path: Asset path relative to the static root.
        size_bytes: Size of the copied file.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    size_bytes: int
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Dev loop events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RebuildEvent:
    """A watcher-triggered rebuild finished.

    Attributes:
        trigger_path: File whose change triggered the rebuild.
        success: Whether the build completed.
        pages: Pages written (0 on failure).
        error: Failure message, empty on success.
        duration_ms: Wall-clock build time.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    trigger_path: str
    success: bool
    pages: int
    error: str
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ReloadEvent:
    """A reload token was broadcast.

    Attributes:
        clients_notified: Clients that accepted the payload.
        clients_dropped: Clients removed because their send failed.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    clients_notified: int
    clients_dropped: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ClientEvent:
    """A reload client joined or left the hub."""

    kind: Literal["connected", "disconnected"]
    clients: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class WatchEvent:
    """Watcher activity outside of normal change notifications.

    Attributes:
        kind: ``"watching"`` when a directory is registered, ``"error"``
            when the underlying watcher failed.
        path: Directory concerned (empty for errors).
        message: Error detail (empty for registrations).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    kind: Literal["watching", "error"]
    path: str
    message: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type DevEvent = (
    PageRendered
    | PageSkipped
    | AssetCopied
    | RebuildEvent
    | ReloadEvent
    | ClientEvent
    | WatchEvent
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
