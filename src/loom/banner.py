"""Status summary printed after the initial build of each command.

A labelled block on stderr: what was generated, where it went, and in
``dev`` mode where the site is served.  Colour is decided per call from
``NO_COLOR`` / ``TERM`` and whether stderr is a terminal.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loom._types import LoomMode
    from loom.config import LoomConfig

# SGR codes per role.
_STYLES = {
    "title": "1",
    "muted": "2",
    "url": "1;36",
    "warn": "33",
    "dev": "32",
    "build": "33",
    "story": "35",
}


def _color_enabled() -> bool:
    if os.environ.get("NO_COLOR") or os.environ.get("TERM") == "dumb":
        return False
    return sys.stderr.isatty()


def _plural(count: int, word: str, plural: str | None = None) -> str:
    return f"{count} {word if count == 1 else plural or word + 's'}"


def _summary_rows(
    config: LoomConfig,
    page_count: int,
    mode: LoomMode,
    asset_count: int,
    watching: int,
    load_ms: float,
) -> list[tuple[str, str]]:
    pages = f"{_plural(page_count, 'page')} generated"
    if load_ms > 0:
        pages += f" in {load_ms:.0f}ms"
    rows = [("pages", pages)]
    if asset_count > 0:
        rows.append(("assets", f"{_plural(asset_count, 'asset')} copied"))
    rows.append(("templates", str(config.templates_path)))
    rows.append(("output", str(config.output_path)))
    if mode == "dev":
        rows.append(
            ("reload", f"/ws, {_plural(watching, 'directory', 'directories')} watched")
        )
    return rows


def print_banner(
    config: LoomConfig,
    page_count: int,
    mode: LoomMode,
    *,
    asset_count: int = 0,
    watching: int = 0,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the status summary for *mode* to stderr.

    Args:
        config: Resolved LoomConfig.
        page_count: Number of pages written.
        mode: One of ``"dev"``, ``"build"``, ``"story"``.
        asset_count: Number of static assets copied.
        watching: Number of directories registered with the watcher.
        load_ms: Time spent on the initial build in milliseconds.
        warnings: Optional list of warning messages to display.

    """
    from loom import __version__

    color = _color_enabled()

    def paint(text: str, role: str) -> str:
        return f"\033[{_STYLES[role]}m{text}\033[0m" if color else text

    rows = _summary_rows(config, page_count, mode, asset_count, watching, load_ms)
    width = max(len(label) for label, _ in rows)

    lines = ["", f"  {paint('Loom', 'title')} {paint(__version__, 'muted')} "
                 f"{paint(f'[{mode}]', mode)}"]
    lines.extend(f"    {paint(label.ljust(width), 'muted')}  {value}" for label, value in rows)
    if config.unsafe:
        lines.append(f"    {paint('sanitization disabled', 'warn')}")

    if mode == "dev":
        url = f"http://{config.host}:{config.port}"
        lines += ["", f"  {paint(url, 'url')}", ""]
        lines.append(f"  {paint('Watching for changes... Press Ctrl+C to stop', 'muted')}")

    for warning in warnings or ():
        lines.append(f"  {paint('!', 'warn')} {warning}")

    lines.append("")
    print("\n".join(lines), file=sys.stderr)
