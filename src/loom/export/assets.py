"""Asset handling — copy allow-listed static files into the output tree.

Copies files from the site's ``static/`` directory into the output root,
preserving directory structure.  Only extensions on the allow-list are
copied; everything else under ``static/`` is ignored.
"""

from __future__ import annotations

import shutil
import time
from pathlib import Path
from typing import TYPE_CHECKING

from loom.export.static import BuiltFile

if TYPE_CHECKING:
    from loom.observability import DevCollector

ALLOWED_EXTENSIONS = frozenset({
    ".css", ".js", ".txt", ".svg",
    ".png", ".jpg", ".jpeg", ".gif",
})


def copy_static_assets(
    static_dir: Path,
    output_dir: Path,
    collector: DevCollector | None = None,
) -> tuple[BuiltFile, ...]:
    """Recursively copy allow-listed assets from *static_dir* to *output_dir*.

    ``static/css/site.css`` lands at ``<output>/css/site.css``.  A missing
    static directory copies nothing.

    Args:
        static_dir: Source directory (e.g., ``root/static/``).
        output_dir: Root output directory.
        collector: Optional event collector.

    Returns:
        Tuple of :class:`BuiltFile` entries, one per copied file.

    """
    if not static_dir.is_dir():
        return ()

    results: list[BuiltFile] = []

    for src_file in sorted(static_dir.rglob("*")):
        if not src_file.is_file():
            continue
        if src_file.suffix.lower() not in ALLOWED_EXTENSIONS:
            continue

        t0 = time.perf_counter()

        relative = src_file.relative_to(static_dir)
        dest_file = output_dir / relative
        dest_file.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src_file, dest_file)

        size = dest_file.stat().st_size
        elapsed = (time.perf_counter() - t0) * 1000

        if collector is not None:
            collector.record_asset(relative.as_posix(), size_bytes=size)

        results.append(BuiltFile(
            source_path=relative.as_posix(),
            output_path=dest_file,
            source_type="asset",
            size_bytes=size,
            duration_ms=elapsed,
        ))

    return tuple(results)
