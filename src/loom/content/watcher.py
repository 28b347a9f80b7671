"""File watcher — turns filesystem activity under the project into change events.

Watches a fixed set of source roots: the content, templates, and static
trees (every directory in them) and individual files such as
``site.yaml`` and ``site.biff``.  A single file is watched through its
parent directory: editors commonly save by writing a temporary file and
renaming it over the original, which a watch on the file itself would
lose track of.

Directories are watched non-recursively, one registration each, so the
parent directory of a root-level file does not pull the output tree into
the watch.

A "modified" report whose file keeps its modification time and size
(a chmod, an ownership or xattr change) is dropped: only content changes
reach the rebuild scheduler.
"""

from __future__ import annotations

import os
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from watchfiles import Change, watch

from loom._errors import ServerError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from loom.observability import DevCollector


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A file change detected by the watcher.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.

    """

    path: Path
    kind: Literal["created", "modified", "deleted"]


# Mapping from watchfiles Change enum to our kind literals.  watchfiles
# reports a rename as a deletion plus a creation.
_CHANGE_KIND_MAP: dict[Change, Literal["created", "modified", "deleted"]] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


def build_watch_set(roots: Iterable[Path]) -> tuple[Path, ...]:
    """Compute the directories to register for *roots*.

    Directory roots contribute themselves and every subdirectory; file
    roots contribute their parent directory.  Missing roots are skipped.
    Each directory appears once, in first-seen order.

    Raises:
        ServerError: If a root exists but can't be inspected or walked.

    """
    watch_set: dict[Path, None] = {}

    for root in roots:
        try:
            is_dir = root.is_dir()
            exists = is_dir or root.exists()
        except OSError as exc:
            msg = f"could not stat path {root}: {exc}"
            raise ServerError(msg) from exc
        if not exists:
            continue

        if not is_dir:
            watch_set.setdefault(Path(os.path.normpath(root.absolute().parent)), None)
            continue

        def _walk_error(exc: OSError, root: Path = root) -> None:
            msg = f"failed to watch directory {root}: {exc}"
            raise ServerError(msg) from exc

        for dirpath, _dirnames, _filenames in os.walk(root, onerror=_walk_error):
            watch_set.setdefault(Path(os.path.normpath(Path(dirpath).absolute())), None)

    return tuple(watch_set)


class WatchSource:
    """Iterable of :class:`ChangeEvent` for a fixed set of directories.

    Iteration blocks until changes arrive and ends once :meth:`stop` is
    called.  If the underlying watcher fails, the error is reported and
    watching resumes on the directories that still exist; iteration only
    ends early when none are left.

    Args:
        directories: The WatchSet, from :func:`build_watch_set`.
        collector: Optional event collector.
        retry_delay: Seconds to wait before resuming after a watcher error.
        watcher: Replacement for :func:`watchfiles.watch` (tests).

    """

    def __init__(
        self,
        directories: Iterable[Path],
        *,
        collector: DevCollector | None = None,
        retry_delay: float = 1.0,
        watcher: Callable[..., Iterable[set[tuple[Change, str]]]] = watch,
    ) -> None:
        self._directories = tuple(directories)
        self._collector = collector
        self._retry_delay = retry_delay
        self._watch = watcher
        self._stop_event = threading.Event()
        # Last seen (st_mtime_ns, st_size) per file; a "modified" report
        # that leaves both unchanged is an attribute-only change.
        self._stats: dict[Path, tuple[int, int]] = {}

    @property
    def directories(self) -> tuple[Path, ...]:
        """Directories currently registered."""
        return self._directories

    def stop(self) -> None:
        """Close the event stream."""
        self._stop_event.set()

    def _seed_stats(self) -> None:
        for directory in self._directories:
            try:
                entries = list(os.scandir(directory))
            except OSError:
                continue
            for entry in entries:
                try:
                    if entry.is_file():
                        stat = entry.stat()
                        self._stats[Path(entry.path)] = (stat.st_mtime_ns, stat.st_size)
                except OSError:
                    continue

    def _is_content_change(self, change: Change, path: Path) -> bool:
        if change is Change.deleted:
            self._stats.pop(path, None)
            return True
        try:
            stat = path.stat()
        except OSError:
            self._stats.pop(path, None)
            return True
        signature = (stat.st_mtime_ns, stat.st_size)
        previous = self._stats.get(path)
        self._stats[path] = signature
        return change is Change.added or previous != signature

    def __iter__(self) -> Iterator[ChangeEvent]:
        self._seed_stats()
        if self._collector is not None:
            for directory in self._directories:
                self._collector.record_watch("watching", path=str(directory))

        while self._directories and not self._stop_event.is_set():
            try:
                for raw_changes in self._watch(
                    *self._directories,
                    recursive=False,
                    stop_event=self._stop_event,
                    debounce=50,
                    step=25,
                    raise_interrupt=False,
                ):
                    for change_type, path_str in sorted(raw_changes, key=lambda c: c[1]):
                        kind = _CHANGE_KIND_MAP.get(change_type)
                        path = Path(path_str)
                        if kind is not None and self._is_content_change(change_type, path):
                            yield ChangeEvent(path=path, kind=kind)
                return
            except (OSError, RuntimeError) as exc:
                print(f"  Watcher error: {exc}", file=sys.stderr)
                if self._collector is not None:
                    self._collector.record_watch("error", message=str(exc))
                if self._stop_event.wait(self._retry_delay):
                    return
                self._directories = tuple(d for d in self._directories if d.is_dir())
