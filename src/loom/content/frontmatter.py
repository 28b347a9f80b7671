"""Front matter — split and parse the YAML header of a content file.

A front-matter block is a line containing exactly ``---``, the YAML
document, and a second ``---`` line.  It must start on the first line of
the file; anything else is treated as body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import yaml

from loom._errors import ContentError

_DELIMITER = "---"

# Front-matter keys with a dedicated PageMeta field; every other key lands
# in ``params`` verbatim.
_KNOWN_KEYS = {
    "title": "title",
    "author": "author",
    "draft": "draft",
    "description": "description",
    "showEditML": "show_editml",
    "story_title": "story_title",
    "story_author": "story_author",
}


@dataclass(frozen=True, slots=True)
class PageMeta:
    """Metadata from a content file's front matter.

    Attributes:
        title: Page title.
        author: Per-page author.
        draft: Suppress output unless the page is always emitted.
        description: Page description.
        show_editml: Whether edit markup is visible on the rendered page.
        story_title: Story-level title forwarded by the narrative compiler.
        story_author: Story-level author forwarded by the narrative compiler.
        params: Every other front-matter key, passed through to templates.

    """

    title: str = ""
    author: str = ""
    draft: bool = False
    description: str = ""
    show_editml: bool = False
    story_title: str = ""
    story_author: str = ""
    params: dict[str, Any] = field(default_factory=dict)


def split_front_matter(text: str) -> tuple[str | None, str]:
    """Separate the front-matter block from the body.

    Returns:
        ``(raw_yaml, body)``; ``raw_yaml`` is None when there is no block.

    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != _DELIMITER:
        return None, text

    for index in range(1, len(lines)):
        if lines[index].strip() == _DELIMITER:
            return "".join(lines[1:index]), "".join(lines[index + 1:])

    return None, text


def parse_front_matter(text: str) -> tuple[PageMeta, str]:
    """Parse a content file into metadata and body.

    Raises:
        ContentError: If the block is not valid YAML or not a mapping.

    """
    raw, body = split_front_matter(text)
    if raw is None:
        return PageMeta(), body

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        msg = f"failed to parse front matter: {exc}"
        raise ContentError(msg) from exc

    if data is None:
        return PageMeta(), body
    if not isinstance(data, dict):
        msg = "front matter must be a mapping"
        raise ContentError(msg)

    return _to_meta(data), body


def _to_meta(data: dict[Any, Any]) -> PageMeta:
    values: dict[str, Any] = {}
    params: dict[str, Any] = {}
    for key, value in data.items():
        name = _KNOWN_KEYS.get(str(key))
        if name is None:
            params[str(key)] = value
        elif name in ("draft", "show_editml"):
            values[name] = _as_bool(value)
        else:
            values[name] = "" if value is None else str(value)
    return PageMeta(**values, params=params)


def _as_bool(value: object) -> bool:
    # The narrative compiler writes every value quoted, so "true" arrives
    # as a string.
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "on", "1"}
    return bool(value)
