"""Loom application — build pipeline and dev loop wiring.

The three public functions (build, dev, story) are the primary entry
points; the CLI is a thin layer over them.
"""

import sys
import time
from dataclasses import replace
from pathlib import Path

from loom.config import LoomConfig
from loom.config_loader import load_config, load_site_config
from loom.content.story import StoryResult, compile_story
from loom.export.static import BuildOptions, BuildResult, build_site
from loom.export.templates import load_templates
from loom.observability import DevCollector


def run_build(
    config: LoomConfig,
    options: BuildOptions,
    collector: DevCollector | None = None,
    *,
    with_story: bool = False,
) -> BuildResult:
    """Run one complete build.

    Steps:
        1. Compile the narrative source into content pages (only when
           *with_story* is set and a compiler is configured)
        2. Re-read ``site.yaml`` and load the theme
        3. Render the content tree and copy static assets

    Raises:
        LoomError: Any failure; nothing is retried.

    """
    if with_story:
        _report_story(compile_story(config), config)

    site = load_site_config(config.config_path)
    templates = load_templates(config.templates_path, site.template)
    return build_site(
        config.output_path,
        config.content_path,
        config.static_path,
        site,
        templates,
        options,
        collector,
    )


def _report_story(result: StoryResult, config: LoomConfig) -> None:
    if result.skipped:
        if config.debug:
            print(f"  Story: {result.skipped}, skipping compilation.", file=sys.stderr)
        return
    print(f"  Story: {len(result.pages)} knots processed.", file=sys.stderr)


def _watch_roots(config: LoomConfig) -> list[Path]:
    """Trees and individual files the dev loop rebuilds on."""
    return [
        config.content_path,
        config.templates_path,
        config.static_path,
        config.config_path,
        config.story_path,
    ]


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def build(root: str | Path = ".", **kwargs: object) -> BuildResult:
    """Generate the site into the output directory.

    Cleans the output directory first.  The narrative source is not
    compiled; pages already under ``content/`` are built as they are.

    Args:
        root: Path to the project root directory.
        **kwargs: Override LoomConfig fields.

    """
    from loom.banner import print_banner

    config = load_config(Path(root), **kwargs)
    options = BuildOptions(clean=True, unsafe=config.unsafe, debug=config.debug)

    result = run_build(config, options, DevCollector())

    print_banner(
        config, result.total_pages, mode="build",
        asset_count=result.total_assets,
        load_ms=result.duration_ms,
    )
    return result


def story(
    root: str | Path = ".",
    *,
    source: str | Path | None = None,
    output: str | Path | None = None,
    content_only: bool = False,
    **kwargs: object,
) -> StoryResult:
    """Compile a narrative source into content pages, then build the site.

    The default source compiles into the content root; any other source
    compiles into ``content/<source stem>/`` unless *output* is given.

    Args:
        root: Path to the project root directory.
        source: Narrative source file (defaults to ``site.biff``).
        output: Directory for the generated content pages.
        content_only: Stop after writing content pages.
        **kwargs: Override LoomConfig fields.

    Raises:
        StoryError: If the source is missing or fails to compile.

    """
    from loom._errors import StoryError
    from loom.banner import print_banner

    config = load_config(Path(root), **kwargs)
    source_path = config.root / source if source is not None else config.story_path
    if output is not None:
        out_dir = config.root / output
    elif source_path == config.story_path:
        out_dir = config.content_path
    else:
        out_dir = config.content_path / source_path.stem

    if not source_path.is_file():
        msg = f"story file '{source_path}' not found"
        raise StoryError(msg)

    result = compile_story(config, source_path=source_path, out_dir=out_dir)
    if result.skipped:
        raise StoryError(result.skipped)
    print(f"  Story: {len(result.pages)} knots processed into {out_dir}.", file=sys.stderr)

    if content_only:
        return result

    options = BuildOptions(clean=True, unsafe=config.unsafe, debug=config.debug)
    site = load_site_config(config.config_path)
    templates = load_templates(config.templates_path, site.template)
    built = build_site(
        config.output_path, config.content_path, config.static_path, site, templates, options,
    )
    print_banner(
        config, built.total_pages, mode="story",
        asset_count=built.total_assets,
        load_ms=built.duration_ms,
    )
    return result


def dev(root: str | Path = ".", **kwargs: object) -> None:
    """Build the site, then serve it with watch-and-reload.

    Startup order: story compilation and clean build, watcher + rebuild
    scheduler, HTTP server.
    Any failure before serving begins is fatal.

    Args:
        root: Path to the project root directory.
        **kwargs: Override LoomConfig fields.

    """
    from loom.banner import print_banner
    from loom.content.watcher import WatchSource, build_watch_set
    from loom.reactive.hub import ReloadHub
    from loom.reactive.scheduler import RebuildScheduler
    from loom.server import create_app, serve

    config = load_config(Path(root), **kwargs)
    collector = DevCollector()
    t0 = time.perf_counter()

    options = BuildOptions(clean=True, unsafe=config.unsafe, debug=config.debug)
    result = run_build(config, options, collector, with_story=True)

    hub = ReloadHub(collector)
    watch_set = build_watch_set(_watch_roots(config))
    if config.debug:
        for directory in watch_set:
            print(f"  Watching directory: {directory}", file=sys.stderr)

    # Rebuilds share the output tree with in-flight requests; never clean.
    rebuild_options = replace(options, clean=False)

    def rebuild() -> int:
        return run_build(config, rebuild_options, collector, with_story=True).total_pages

    scheduler = RebuildScheduler(
        WatchSource(watch_set, collector=collector),
        rebuild,
        hub,
        collector=collector,
        debug=config.debug,
    )
    app = create_app(config.output_path, hub)

    load_ms = (time.perf_counter() - t0) * 1000
    print_banner(
        config, result.total_pages, mode="dev",
        asset_count=result.total_assets,
        watching=len(watch_set),
        load_ms=load_ms,
    )

    scheduler.start()
    try:
        serve(app, config.host, config.port, debug=config.debug)
    finally:
        scheduler.stop()
        if config.debug:
            rebuilds = collector.log.stats()["rebuilds"]
            print(
                f"  Rebuilds: {rebuilds['succeeded']} succeeded, {rebuilds['failed']} failed",
                file=sys.stderr,
            )
