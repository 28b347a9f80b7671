"""Reactive layer — from a saved file to a reloaded browser tab.

Connects filesystem changes to rebuilds (scheduler), rebuilds to
connected browsers (hub), and served pages to the reload client (hmr).
"""

from loom.reactive.hmr import LiveReloadMiddleware, ResponseBuffer, inject_reload_script
from loom.reactive.hub import RELOAD, ReloadClient, ReloadHub
from loom.reactive.scheduler import RebuildScheduler

__all__ = [
    "RELOAD",
    "LiveReloadMiddleware",
    "RebuildScheduler",
    "ReloadClient",
    "ReloadHub",
    "ResponseBuffer",
    "inject_reload_script",
]
