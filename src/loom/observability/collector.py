"""Dev collector — records build and dev-loop events into an EventLog.

One collector is created per ``dev()`` / ``build()`` run and handed to
every component that reports activity: the build pipeline, the reload
hub, the watcher, and the rebuild scheduler.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.
    Safe for concurrent use from the scheduler thread and request handlers.

"""

from __future__ import annotations

from typing import Literal

from loom.observability.events import (
    AssetCopied,
    ClientEvent,
    PageRendered,
    PageSkipped,
    RebuildEvent,
    ReloadEvent,
    WatchEvent,
    now_ns,
)
from loom.observability.log import EventLog


class DevCollector:
    """Unified event collector for the build pipeline and dev loop.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Build events -----

    def record_page(self, path: str, output: str, *, duration_ms: float = 0.0) -> None:
        """Record a rendered page."""
        self._log.append(
            PageRendered(
                path=path,
                output=output,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_skip(self, path: str, *, reason: Literal["draft"] = "draft") -> None:
        """Record a content file that produced no output."""
        self._log.append(PageSkipped(path=path, reason=reason, timestamp_ns=now_ns()))

    def record_asset(self, path: str, *, size_bytes: int = 0) -> None:
        """Record a copied static asset."""
        self._log.append(AssetCopied(path=path, size_bytes=size_bytes, timestamp_ns=now_ns()))

    # ----- Dev loop events -----

    def record_rebuild(
        self,
        trigger_path: str,
        *,
        success: bool,
        pages: int = 0,
        error: str = "",
        duration_ms: float = 0.0,
    ) -> None:
        """Record the outcome of a watcher-triggered rebuild."""
        self._log.append(
            RebuildEvent(
                trigger_path=trigger_path,
                success=success,
                pages=pages,
                error=error,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_reload(self, *, clients_notified: int, clients_dropped: int = 0) -> None:
        """Record a reload broadcast."""
        self._log.append(
            ReloadEvent(
                clients_notified=clients_notified,
                clients_dropped=clients_dropped,
                timestamp_ns=now_ns(),
            )
        )

    def record_client(self, kind: Literal["connected", "disconnected"], *, clients: int) -> None:
        """Record a reload client joining or leaving."""
        self._log.append(ClientEvent(kind=kind, clients=clients, timestamp_ns=now_ns()))

    def record_watch(
        self,
        kind: Literal["watching", "error"],
        *,
        path: str = "",
        message: str = "",
    ) -> None:
        """Record a watcher registration or failure."""
        self._log.append(
            WatchEvent(kind=kind, path=path, message=message, timestamp_ns=now_ns())
        )
