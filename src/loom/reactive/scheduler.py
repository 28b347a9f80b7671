"""Rebuild scheduler — coalesces change events into serialized rebuilds.

A single loop consumes the watcher's event stream.  A change triggers a
rebuild only when more than ``debounce`` seconds have passed since the
previous rebuild finished; once triggered, the loop waits a further
``settle`` seconds so multi-step editor saves land before the build reads
the tree.  Because there is exactly one loop, builds never overlap.

Flow:
    change event -> debounce gate -> settle delay -> rebuild()
    success      -> hub.broadcast("reload")
    failure      -> logged; last good output keeps being served
    broadcast error -> logged; the loop keeps consuming events
"""

from __future__ import annotations

import sys
import threading
import time
import traceback
from typing import TYPE_CHECKING, Protocol

from loom.reactive.hub import RELOAD

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from loom._types import RebuildFunc
    from loom.content.watcher import ChangeEvent
    from loom.observability import DevCollector
    from loom.reactive.hub import ReloadHub

DEBOUNCE_INTERVAL = 0.5
SETTLE_DELAY = 0.1


class EventSource(Protocol):
    """A blocking stream of change events that can be closed."""

    def __iter__(self) -> Iterator[ChangeEvent]: ...

    def stop(self) -> None: ...


class RebuildScheduler:
    """Drives rebuilds from filesystem changes and notifies the hub.

    Args:
        source: Event stream, usually a :class:`~loom.content.watcher.WatchSource`.
        rebuild: Runs a full build and returns the page count; raises on
            failure.
        hub: Receives one broadcast per successful rebuild.
        debounce: Minimum seconds between the end of one rebuild and the
            next trigger.
        settle: Seconds to wait between a trigger and the rebuild.
        collector: Optional event collector.
        debug: Print tracebacks for failed rebuilds.
        clock: Monotonic clock (tests).
        sleep: Sleep function (tests).

    """

    def __init__(
        self,
        source: EventSource,
        rebuild: RebuildFunc,
        hub: ReloadHub,
        *,
        debounce: float = DEBOUNCE_INTERVAL,
        settle: float = SETTLE_DELAY,
        collector: DevCollector | None = None,
        debug: bool = False,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._source = source
        self._rebuild = rebuild
        self._hub = hub
        self._debounce = debounce
        self._settle = settle
        self._collector = collector
        self._debug = debug
        self._clock = clock
        self._sleep = sleep
        self._last_build: float | None = None
        self._rebuilds = 0
        self._thread: threading.Thread | None = None

    @property
    def rebuild_count(self) -> int:
        """Rebuilds attempted so far (successful or not)."""
        return self._rebuilds

    @property
    def is_running(self) -> bool:
        """Whether the scheduler thread is active."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Run the loop in a background daemon thread."""
        if self.is_running:
            return
        self._thread = threading.Thread(target=self.run, name="loom-rebuild", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Close the event source and wait for the loop to finish."""
        self._source.stop()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def run(self) -> None:
        """Consume events until the source is exhausted."""
        for event in self._source:
            self.handle(event)

    def handle(self, event: ChangeEvent) -> bool:
        """Process one change event.

        Returns:
            True if the event triggered a rebuild.

        """
        if self._last_build is not None and self._clock() - self._last_build <= self._debounce:
            return False

        self._sleep(self._settle)
        print(f"  Change detected in {event.path}, rebuilding...", file=sys.stderr)

        t0 = time.perf_counter()
        try:
            pages = self._rebuild()
        except Exception as exc:  # a failed rebuild must not stop the loop
            elapsed = (time.perf_counter() - t0) * 1000
            print(f"  Error rebuilding site: {exc}", file=sys.stderr)
            if self._debug:
                traceback.print_exc(file=sys.stderr)
            if self._collector is not None:
                self._collector.record_rebuild(
                    str(event.path), success=False, error=str(exc), duration_ms=elapsed,
                )
        else:
            elapsed = (time.perf_counter() - t0) * 1000
            print(
                f"  Site rebuilt ({pages} pages in {elapsed:.0f}ms). Triggering reload...",
                file=sys.stderr,
            )
            if self._collector is not None:
                self._collector.record_rebuild(
                    str(event.path), success=True, pages=pages, duration_ms=elapsed,
                )
            try:
                self._hub.broadcast(RELOAD)
            except Exception as exc:  # the output is built; only this reload is lost
                print(f"  Error broadcasting reload: {exc}", file=sys.stderr)
                if self._debug:
                    traceback.print_exc(file=sys.stderr)
        finally:
            self._rebuilds += 1
            self._last_build = self._clock()

        return True
