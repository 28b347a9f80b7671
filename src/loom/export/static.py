"""Static build — render the content tree into an output tree of HTML files.

Walks the content directory, renders every ``.md`` / ``.html`` document
through front-matter extraction, Markdown, sanitization and the theme,
and writes one page per non-draft document at the mirrored path.  Static
assets are copied afterwards.

Every run processes the whole tree; nothing is cached between runs.
"""

from __future__ import annotations

import shutil
import sys
import time
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, Literal

from loom._errors import BuildError, ContentError
from loom.content.frontmatter import PageMeta, parse_front_matter
from loom.content.markdown import render_body
from loom.export.templates import PageData

if TYPE_CHECKING:
    from loom.config import SiteConfig
    from loom.export.templates import TemplateSet
    from loom.observability import DevCollector

CONTENT_EXTENSIONS = frozenset({".md", ".html"})
PAGE_EXTENSION = ".html"

# Slugs written even when their front matter marks them as drafts.
ALWAYS_EMIT = frozenset({"index", "about", "menu"})


@dataclass(frozen=True, slots=True)
class BuildOptions:
    """Per-call build switches.

    Attributes:
        clean: Empty the output directory before rendering.  Only the
            initial build of a run may set this; watcher rebuilds never do.
        unsafe: Skip HTML sanitization.
        debug: Print per-page diagnostics.

    """

    clean: bool = False
    unsafe: bool = False
    debug: bool = False


@dataclass(frozen=True, slots=True)
class BuiltFile:
    """Record of a single file written during a build.

    Attributes:
        source_path: Source path relative to its root (``posts/a.md``).
        output_path: Absolute filesystem path of the written file.
        source_type: Category of the written file.
        size_bytes: Size of the written file in bytes.
        duration_ms: Time taken to produce this file.

    """

    source_path: str
    output_path: Path
    source_type: Literal["page", "asset"]
    size_bytes: int
    duration_ms: float


@dataclass(frozen=True, slots=True)
class Page:
    """One rendered document.

    Attributes:
        source: Path relative to the content root.
        meta: Parsed front matter.
        html: Rendered body.
        output_path: Destination file.
        base_href: Prefix from the page back to the output root.

    """

    source: PurePath
    meta: PageMeta
    html: str
    output_path: Path
    base_href: str

    @property
    def slug(self) -> str:
        """Relative path without extension, ``/``-separated."""
        return self.source.with_suffix("").as_posix()


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Aggregate result of a build run.

    Attributes:
        pages: Pages written (drafts excluded).
        assets: Static assets copied.
        duration_ms: Total wall-clock time for the build.
        output_dir: Absolute path to the output directory.

    """

    pages: tuple[BuiltFile, ...]
    assets: tuple[BuiltFile, ...]
    duration_ms: float
    output_dir: Path

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def total_assets(self) -> int:
        return len(self.assets)


def compute_base_href(rel_path: PurePath | str) -> str:
    """Relative prefix from a page back to the output root.

    ``index.md`` -> ``""``, ``posts/a.md`` -> ``"../"``,
    ``posts/2024/a.md`` -> ``"../../"``.
    """
    depth = len(PurePath(rel_path).parts) - 1
    return "../" * depth


def is_always_emitted(slug: str) -> bool:
    """Whether *slug* is written regardless of its draft flag."""
    return slug in ALWAYS_EMIT


def load_page(path: Path, content_dir: Path, output_dir: Path, *, unsafe: bool = False) -> Page:
    """Read, parse, and render one content file.

    Raises:
        BuildError: If the file can't be read or is not valid UTF-8.
        ContentError: If the front matter or body can't be processed.

    """
    try:
        raw = path.read_bytes()
    except OSError as exc:
        msg = f"failed to read file {path}: {exc}"
        raise BuildError(msg, path=path) from exc
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        msg = f"content file is not valid UTF-8: {path}"
        raise BuildError(msg, path=path) from exc

    meta, body = parse_front_matter(text)
    html = render_body(body, unsafe=unsafe)

    rel = path.relative_to(content_dir)
    return Page(
        source=PurePath(rel.as_posix()),
        meta=meta,
        html=html,
        output_path=output_dir / rel.with_suffix(PAGE_EXTENSION),
        base_href=compute_base_href(rel),
    )


def page_data(page: Page, site: SiteConfig) -> PageData:
    """Build the template context for *page*, applying site fallbacks."""
    meta = page.meta
    return PageData(
        content=page.html,
        title=meta.title,
        base_href=page.base_href,
        author=meta.story_author or meta.author or site.author,
        description=meta.description or site.description,
        site=site,
        show_editml=meta.show_editml,
        story_title=meta.story_title,
        params=meta.params,
    )


def clean_output(output_dir: Path) -> None:
    """Remove every entry directly under *output_dir*, keeping the directory."""
    for entry in output_dir.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def build_site(
    output_dir: Path,
    content_dir: Path,
    static_dir: Path,
    site: SiteConfig,
    templates: TemplateSet,
    options: BuildOptions,
    collector: DevCollector | None = None,
) -> BuildResult:
    """Run the full build and return the result.

    Pipeline order:
        1. Create (and, if requested, clean) the output directory
        2. Render every content file, skipping drafts
        3. Copy static assets

    Raises:
        BuildError: On the first file that fails; the run stops there.

    """
    from loom.export.assets import copy_static_assets

    start = time.perf_counter()

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        if options.clean:
            if options.debug:
                print(f"  cleaning {output_dir}", file=sys.stderr)
            clean_output(output_dir)
    except OSError as exc:
        msg = f"failed to prepare output directory {output_dir}: {exc}"
        raise BuildError(msg, path=output_dir) from exc

    if not content_dir.is_dir():
        msg = f"content directory not found: {content_dir}"
        raise BuildError(msg, path=content_dir)

    pages: list[BuiltFile] = []
    for path in sorted(content_dir.rglob("*")):
        if not path.is_file() or path.suffix not in CONTENT_EXTENSIONS:
            continue
        built = _build_page(path, content_dir, output_dir, site, templates, options, collector)
        if built is not None:
            pages.append(built)

    try:
        assets = copy_static_assets(static_dir, output_dir, collector)
    except OSError as exc:
        msg = f"failed to copy static assets from {static_dir}: {exc}"
        raise BuildError(msg, path=static_dir) from exc

    return BuildResult(
        pages=tuple(pages),
        assets=assets,
        duration_ms=(time.perf_counter() - start) * 1000,
        output_dir=output_dir,
    )


def _build_page(
    path: Path,
    content_dir: Path,
    output_dir: Path,
    site: SiteConfig,
    templates: TemplateSet,
    options: BuildOptions,
    collector: DevCollector | None,
) -> BuiltFile | None:
    t0 = time.perf_counter()
    try:
        page = load_page(path, content_dir, output_dir, unsafe=options.unsafe)
    except ContentError as exc:
        msg = f"failed to process content for {path}: {exc}"
        raise BuildError(msg, path=path) from exc

    if page.meta.draft and not is_always_emitted(page.slug):
        if collector is not None:
            collector.record_skip(page.source.as_posix())
        if options.debug:
            print(f"  skipped draft {page.source}", file=sys.stderr)
        return None

    try:
        html = templates.render(page_data(page, site))
        page.output_path.parent.mkdir(parents=True, exist_ok=True)
        page.output_path.write_text(html, encoding="utf-8")
    except (ContentError, OSError) as exc:
        msg = f"failed to render page {path}: {exc}"
        raise BuildError(msg, path=path) from exc

    elapsed = (time.perf_counter() - t0) * 1000
    if collector is not None:
        collector.record_page(
            page.source.as_posix(), str(page.output_path), duration_ms=elapsed,
        )
    if options.debug:
        print(f"  rendered {page.source} -> {page.output_path}", file=sys.stderr)

    return BuiltFile(
        source_path=page.source.as_posix(),
        output_path=page.output_path,
        source_type="page",
        size_bytes=page.output_path.stat().st_size,
        duration_ms=elapsed,
    )
