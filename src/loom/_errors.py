"""Loom error hierarchy.

All loom-specific errors inherit from LoomError for easy catching.
"""

from __future__ import annotations

from pathlib import Path


class LoomError(Exception):
    """Base error for all loom operations."""


class ConfigError(LoomError):
    """Invalid or missing configuration (site.yaml, templates)."""


class ContentError(LoomError):
    """A content file could not be decoded, parsed, or rendered.

    Attributes:
        path: The offending content file, when known.

    """

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class BuildError(LoomError):
    """A build run failed.

    Attributes:
        path: The file that stopped the run, when one is to blame.

    """

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class StoryError(LoomError):
    """Narrative source compilation failed."""


class ReactiveError(LoomError):
    """Error in the live-reload machinery (hub, clients)."""


class ClientGoneError(ReactiveError):
    """A reload client could not be written to and should be dropped."""


class ServerError(LoomError):
    """The dev server could not start (watcher, listener)."""
