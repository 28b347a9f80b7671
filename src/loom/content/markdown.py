"""Markdown rendering and HTML sanitization.

Content bodies go through Python-Markdown and then, unless the build runs
unsafe, through nh3.  Links to other content files (``other.md``) are
rewritten to the rendered page (``other.html``) while the document tree
is still being built.
"""

from __future__ import annotations

import xml.etree.ElementTree as etree

import markdown
import nh3
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

SOURCE_SUFFIX = ".md"
PAGE_SUFFIX = ".html"

_EXTENSIONS = ("extra", "toc", "sane_lists")

# Attributes allowed on every element on top of nh3's defaults.  ``id``
# keeps heading anchors from the toc extension working.
_GLOBAL_ATTRIBUTES = {"id", "class", "title", "lang", "dir"}


def rewrite_content_link(href: str) -> str:
    """Point a link at a content file to its rendered page.

    The query string and fragment are preserved:
    ``chapter.md#start`` -> ``chapter.html#start``.
    """
    cut = len(href)
    for marker in ("?", "#"):
        pos = href.find(marker)
        if pos != -1:
            cut = min(cut, pos)
    target, rest = href[:cut], href[cut:]
    if not target.endswith(SOURCE_SUFFIX):
        return href
    return target[: -len(SOURCE_SUFFIX)] + PAGE_SUFFIX + rest


class ContentLinkProcessor(Treeprocessor):
    """Rewrite ``<a href>`` targets ending in the content extension."""

    def run(self, root: etree.Element) -> None:
        for anchor in root.iter("a"):
            href = anchor.get("href")
            if href:
                anchor.set("href", rewrite_content_link(href))


class ContentLinkExtension(Extension):
    """Python-Markdown extension registering :class:`ContentLinkProcessor`."""

    def extendMarkdown(self, md: markdown.Markdown) -> None:  # noqa: N802
        # Below the inline processor (priority 20) so links already exist.
        md.treeprocessors.register(ContentLinkProcessor(md), "loom_content_links", 15)


def render_markdown(text: str) -> str:
    """Render Markdown to HTML.

    A fresh converter is used per call; Python-Markdown instances carry
    per-document state (footnotes, toc) and are not thread-safe.
    """
    md = markdown.Markdown(extensions=[*_EXTENSIONS, ContentLinkExtension()])
    return md.convert(text)


def sanitize_html(html: str) -> str:
    """Strip unsafe markup from rendered HTML."""
    attributes = {tag: set(attrs) for tag, attrs in nh3.ALLOWED_ATTRIBUTES.items()}
    attributes.setdefault("*", set()).update(_GLOBAL_ATTRIBUTES)
    return nh3.clean(html, attributes=attributes)


def render_body(text: str, *, unsafe: bool = False) -> str:
    """Render a content body, sanitizing the result unless *unsafe*."""
    html = render_markdown(text)
    if unsafe:
        return html
    return sanitize_html(html)
