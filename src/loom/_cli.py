"""Loom CLI — loom build / loom dev / loom story.

Entry point for the ``loom`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys


def _add_build_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("root", nargs="?", default=".", help="Project root directory")
    parser.add_argument(
        "--unsafe",
        action="store_true",
        default=None,
        help="Disable HTML sanitization (allows all raw HTML)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Verbose per-page output and full tracebacks",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the loom CLI."""
    parser = argparse.ArgumentParser(
        prog="loom",
        description="A quiet static site generator for interactive fiction.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # loom build
    build_parser = subparsers.add_parser(
        "build",
        help="Generate the site from existing content",
    )
    _add_build_flags(build_parser)

    # loom dev
    dev_parser = subparsers.add_parser(
        "dev",
        help="Run a local dev server with auto-rebuild and live reload",
    )
    _add_build_flags(dev_parser)
    dev_parser.add_argument("--host", default=None, help="Bind address (default 127.0.0.1)")
    dev_parser.add_argument("--port", type=int, default=None, help="Bind port (default 1313)")

    # loom story
    story_parser = subparsers.add_parser(
        "story",
        help="Compile a .biff file into content pages and build the site",
    )
    _add_build_flags(story_parser)
    story_parser.add_argument(
        "-i", "--input", dest="source", default=None,
        help="Input story file (default site.biff)",
    )
    story_parser.add_argument(
        "-o", "--output", default=None,
        help="Output directory for generated content "
             "(default content/, or content/<name>/ for other input files)",
    )
    story_parser.add_argument(
        "--content-only",
        action="store_true",
        help="Generate content pages only, do not build the site",
    )

    return parser


def _get_version() -> str:
    """Get the package version."""
    from loom import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from loom._errors import LoomError
    from loom.app import build, dev, story

    flags = {"unsafe": args.unsafe, "debug": args.debug}
    try:
        if args.command == "build":
            build(root=args.root, **flags)
        elif args.command == "dev":
            dev(root=args.root, host=args.host, port=args.port, **flags)
        elif args.command == "story":
            story(
                root=args.root,
                source=args.source,
                output=args.output,
                content_only=args.content_only,
                **flags,
            )
    except LoomError as exc:
        print(f"Operation failed: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
