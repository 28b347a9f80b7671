"""Content layer — front matter, Markdown rendering, narrative pages, watching."""

from loom.content.frontmatter import PageMeta, parse_front_matter, split_front_matter
from loom.content.markdown import render_body, render_markdown, sanitize_html
from loom.content.watcher import ChangeEvent, WatchSource, build_watch_set

__all__ = [
    "ChangeEvent",
    "PageMeta",
    "WatchSource",
    "build_watch_set",
    "parse_front_matter",
    "render_body",
    "render_markdown",
    "sanitize_html",
    "split_front_matter",
]
