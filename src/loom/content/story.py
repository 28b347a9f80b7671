"""Narrative pages — turn a compiled story graph into content files.

A ``site.biff`` source is compiled by an external narrative compiler into
a graph of named nodes (knots).  Each node becomes one Markdown page under
the content tree, with YAML front matter the build pipeline understands
(``story_title``, ``story_author``, per-knot metadata) and a list of
choice links pointing at the pages of the node's outgoing edges.

The compiler and the edit-markup clean-view transform are plugged in as
``module:attr`` references from the project configuration.
"""

from __future__ import annotations

import importlib.util
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loom._errors import StoryError

if TYPE_CHECKING:
    from collections.abc import Callable

    from loom._types import MarkupTransform, StoryCompiler
    from loom.config import LoomConfig

_KNOT_HEADER = re.compile(r"^\s*===\s*([\w-]+)\s*===\s*$")
_UNSAFE_CHARS = re.compile(r"[^\w\- ]+")
_DASH_RUNS = re.compile(r"-+")


@dataclass(frozen=True, slots=True)
class StoryEdge:
    """An outgoing choice from a node."""

    text: str
    target: str


@dataclass(frozen=True, slots=True)
class StoryNode:
    """One compiled node of the story graph.

    Attributes:
        knot_name: Knot the node was compiled from.
        scene: ``/``-separated scene path, empty for top-level knots.
        content: Node body, possibly carrying edit markup.
        edges: Outgoing choices.
        state: Boolean state flags active at this node.

    """

    knot_name: str
    scene: str = ""
    content: str = ""
    edges: tuple[StoryEdge, ...] = ()
    state: dict[str, bool] = field(default_factory=dict, hash=False)


@dataclass(frozen=True, slots=True)
class StoryGraph:
    """Compiler output: story-level metadata plus nodes keyed by id."""

    metadata: dict[str, str] = field(default_factory=dict)
    nodes: dict[str, StoryNode] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class StoryResult:
    """Outcome of :func:`compile_story`.

    Attributes:
        pages: Content files written, empty when compilation was skipped.
        skipped: Why compilation did not run, empty when it did.

    """

    pages: tuple[Path, ...] = ()
    skipped: str = ""


def preparse_knot_meta(source: str) -> dict[str, dict[str, str]]:
    """Collect ``// key: value`` comments that follow each knot header.

    Keys are lower-cased; values are stripped.  Comments before the first
    knot belong to the story itself and are ignored here.
    """
    meta: dict[str, dict[str, str]] = {}
    current: str | None = None
    for line in source.splitlines():
        stripped = line.strip()
        match = _KNOT_HEADER.match(stripped)
        if match:
            current = match.group(1)
            meta.setdefault(current, {})
            continue
        if current is None or not stripped.startswith("//"):
            continue
        key, sep, value = stripped[2:].strip().partition(":")
        if sep:
            meta[current][key.strip().lower()] = value.strip()
    return meta


def extract_title(knot_name: str, content: str, knot_meta: dict[str, str]) -> tuple[str, str]:
    """Pick the display title and strip ``# `` headings from the body.

    Precedence: knot metadata ``title``, the first ``# `` heading, then the
    knot name with underscores as spaces, title-cased.
    """
    heading = ""
    kept: list[str] = []
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("# "):
            if not heading:
                heading = stripped[1:].strip()
        else:
            kept.append(line)

    title = knot_meta.get("title", "") or heading
    if not title:
        title = knot_name.replace("_", " ").title()
    return title, "\n".join(kept).strip()


def slugify(value: str) -> str:
    """Lower-case *value* and reduce it to word characters and dashes."""
    value = _UNSAFE_CHARS.sub("", value.lower())
    return _DASH_RUNS.sub("-", value.replace(" ", "-"))


def node_paths(nodes: dict[str, StoryNode], out_dir: Path) -> dict[str, Path]:
    """Compute the content file for every node.

    ``<out_dir>/<scene segments>/<knot>[-<flag>...].md`` where the flags
    are the node's true state flags in sorted order.
    """
    paths: dict[str, Path] = {}
    for node_id, node in nodes.items():
        directory = out_dir
        if node.scene:
            for segment in node.scene.split("/"):
                directory = directory / slugify(segment)
        flags = sorted(slugify(name) for name, on in node.state.items() if on)
        stem = "-".join([slugify(node.knot_name), *flags])
        paths[node_id] = directory / f"{stem}.md"
    return paths


def write_story(
    graph: StoryGraph,
    source: str,
    out_dir: Path,
    transform: MarkupTransform | None = None,
) -> tuple[Path, ...]:
    """Write one Markdown page per node of *graph* under *out_dir*.

    Raises:
        StoryError: If the markup transform rejects a node's body, an edge
            names an unknown node, or a page can't be written.

    """
    knot_meta = preparse_knot_meta(source)
    paths = node_paths(graph.nodes, out_dir)
    written: list[Path] = []

    for node_id, node in graph.nodes.items():
        meta = knot_meta.get(node.knot_name, {})
        title, body = extract_title(node.knot_name, node.content, meta)
        if transform is not None:
            try:
                body = transform(body)
            except Exception as exc:
                msg = f"failed to process content for knot {node.knot_name}: {exc}"
                raise StoryError(msg) from exc

        target = paths[node_id]
        lines = [_front_matter(graph.metadata, title, meta), f"## {title}\n\n", f"{body}\n\n"]
        for edge in node.edges:
            if edge.target not in paths:
                msg = f"knot {node.knot_name} links to unknown node {edge.target!r}"
                raise StoryError(msg)
            rel = Path(os.path.relpath(paths[edge.target], target.parent)).as_posix()
            lines.append(f"* [{edge.text}]({rel})\n")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text("".join(lines), encoding="utf-8")
        except OSError as exc:
            msg = f"failed to write story page {target}: {exc}"
            raise StoryError(msg) from exc
        written.append(target)

    return tuple(written)


def compile_story(
    config: LoomConfig,
    *,
    source_path: Path | None = None,
    out_dir: Path | None = None,
) -> StoryResult:
    """Compile the narrative source into content pages.

    Skips (without error) when the source file does not exist or no
    compiler is configured.

    Raises:
        StoryError: If the source can't be read as UTF-8 text, the compiler
            or transform cannot be loaded, or the compiler rejects the
            source.

    """
    source_path = source_path or config.story_path
    out_dir = out_dir or config.content_path

    if not source_path.is_file():
        return StoryResult(skipped=f"no {source_path.name} found")
    if not config.story_compiler:
        return StoryResult(skipped=f"no story_compiler configured for {source_path.name}")

    compiler: StoryCompiler = resolve_callable(config.story_compiler, config.root)
    transform: MarkupTransform | None = None
    if config.story_transform:
        transform = resolve_callable(config.story_transform, config.root)

    try:
        source = source_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"failed to read story file {source_path}: {exc}"
        raise StoryError(msg) from exc
    try:
        graph = compiler(source)
    except Exception as exc:
        msg = f"biff syntax error in {source_path}: {exc}"
        raise StoryError(msg) from exc

    return StoryResult(pages=write_story(graph, source, out_dir, transform))


def resolve_callable(reference: str, root: Path) -> Callable[..., Any]:
    """Resolve a ``module:attr`` reference to a callable.

    ``module`` is tried first as a ``.py`` file relative to *root*
    (``plugins.story:compile`` -> ``root/plugins/story.py``), then as an
    importable module.

    Raises:
        StoryError: If the reference is malformed or does not resolve to a
            callable.

    """
    module_part, _, attr = reference.partition(":")
    if not module_part or not attr:
        msg = f"{reference!r}: expected 'module:attr'"
        raise StoryError(msg)

    py_file = root.joinpath(*module_part.split(".")).with_suffix(".py")
    if py_file.is_file():
        module_name = f"loom_plugin_{module_part.replace('.', '_')}"
        spec = importlib.util.spec_from_file_location(module_name, py_file)
        if spec is None or spec.loader is None:
            msg = f"{reference!r}: failed to load {py_file}"
            raise StoryError(msg)
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            del sys.modules[module_name]
            msg = f"{reference!r}: failed to load {py_file}: {exc}"
            raise StoryError(msg) from exc
    else:
        try:
            module = importlib.import_module(module_part)
        except Exception as exc:
            msg = f"{reference!r}: cannot import {module_part}: {exc}"
            raise StoryError(msg) from exc

    target = getattr(module, attr, None)
    if not callable(target):
        msg = f"{reference!r}: {attr} is not callable"
        raise StoryError(msg)
    return target


def _front_matter(story_meta: dict[str, str], title: str, knot_meta: dict[str, str]) -> str:
    lines = ["---", f"title: {_quote(title)}"]
    if "title" in story_meta:
        lines.append(f"story_title: {_quote(story_meta['title'])}")
    if "author" in story_meta:
        lines.append(f"story_author: {_quote(story_meta['author'])}")
    lines.extend(f"{key}: {_quote(value)}" for key, value in knot_meta.items() if key != "title")
    lines.extend(["draft: false", "---", ""])
    return "\n".join(lines)


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
