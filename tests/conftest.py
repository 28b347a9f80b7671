"""Shared test fixtures for loom."""

from __future__ import annotations

from pathlib import Path

import pytest

LAYOUT = """\
<!DOCTYPE html>
<html>
<head>
<base href="{{ base_href }}">
<title>{{ title }} | {{ site.title }}</title>
<meta name="author" content="{{ author }}">
<meta name="description" content="{{ description }}">
</head>
<body>
{% include "header.html" %}
<main>{{ content }}</main>
{% if params.mood %}<p class="mood">{{ params.mood }}</p>{% endif %}
{% include "footer.html" %}
</body>
</html>
"""


@pytest.fixture
def tmp_site(tmp_path: Path) -> Path:
    """Create a minimal project for testing.

    Returns the project root with site.yaml, a ``simple`` theme, a small
    content tree (including one draft), and static assets.
    """
    (tmp_path / "site.yaml").write_text(
        "title: Test Story\n"
        "author: Site Author\n"
        "baseurl: /\n"
        "description: Site description\n"
        "template: simple\n"
    )

    theme = tmp_path / "templates" / "simple"
    theme.mkdir(parents=True)
    (theme / "layout.html").write_text(LAYOUT)
    (theme / "header.html").write_text("<header>{{ site.title }}</header>\n")
    (theme / "footer.html").write_text("<footer>{{ author }}</footer>\n")

    content = tmp_path / "content"
    content.mkdir()
    (content / "index.md").write_text(
        "---\ntitle: Home\n---\n\n# Welcome\n\nRead the [first post](posts/first.md).\n"
    )
    posts = content / "posts"
    posts.mkdir()
    (posts / "first.md").write_text(
        "---\ntitle: First\nauthor: Page Author\nmood: calm\n---\n\nHello world.\n"
    )
    (posts / "draft.md").write_text("---\ntitle: Draft\ndraft: true\n---\n\nNot yet.\n")

    static = tmp_path / "static"
    (static / "css").mkdir(parents=True)
    (static / "css" / "style.css").write_text("body { margin: 0; }\n")
    (static / "robots.txt").write_text("User-agent: *\n")
    (static / "notes.psd").write_bytes(b"\x00\x01")

    return tmp_path
