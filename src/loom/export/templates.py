"""Template set — the compiled theme every page is rendered through.

A theme is a directory under ``templates/`` holding ``layout.html`` (the
page skeleton) plus ``header.html`` and ``footer.html`` partials that the
layout includes.  All three are compiled when the set is loaded so that a
broken theme fails the build before any page is written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from markupsafe import Markup

from loom._errors import ConfigError, ContentError

if TYPE_CHECKING:
    from jinja2 import Template

    from loom.config import SiteConfig

LAYOUT = "layout.html"
PARTIALS = ("header.html", "footer.html")


@dataclass(frozen=True, slots=True)
class PageData:
    """Context handed to the layout for one page.

    Attributes:
        content: Rendered (and usually sanitized) page body.
        title: Title of this page.
        base_href: Relative prefix from the page back to the output root.
        author: Author after precedence (story, page, site).
        description: Page description, falling back to the site's.
        site: Site configuration.
        show_editml: Whether edit markup is visible.
        story_title: Story-level title, when the page came from a story.
        params: Arbitrary front-matter keys.

    """

    content: str
    title: str
    base_href: str
    author: str
    description: str
    site: SiteConfig
    show_editml: bool = False
    story_title: str = ""
    params: dict[str, Any] = field(default_factory=dict)

    def context(self) -> dict[str, Any]:
        """Template variables for this page."""
        return {
            "content": Markup(self.content),
            "title": self.title,
            "base_href": self.base_href,
            "author": self.author,
            "description": self.description,
            "site": self.site,
            "show_editml": self.show_editml,
            "story_title": self.story_title,
            "params": self.params,
        }


class TemplateSet:
    """A loaded theme.

    Args:
        env: Jinja environment rooted at the theme directory.
        layout: The compiled layout template.

    """

    def __init__(self, env: Environment, layout: Template) -> None:
        self._env = env
        self._layout = layout

    @property
    def env(self) -> Environment:
        """The Jinja environment backing this set."""
        return self._env

    def render(self, page: PageData) -> str:
        """Render *page* through the layout.

        Raises:
            ContentError: If the template fails while rendering.

        """
        try:
            return self._layout.render(page.context())
        except TemplateError as exc:
            msg = f"template error: {exc}"
            raise ContentError(msg) from exc


def load_templates(templates_path: Path, name: str) -> TemplateSet:
    """Load and compile the theme *name* from *templates_path*.

    Args:
        templates_path: The ``templates/`` directory.
        name: Theme directory (``site.yaml``'s ``template`` key).

    Raises:
        ConfigError: If the theme is missing a file or fails to compile.

    """
    theme_dir = templates_path / name
    missing = [n for n in (LAYOUT, *PARTIALS) if not (theme_dir / n).is_file()]
    if missing:
        msg = f"failed to load templates: {theme_dir} is missing {', '.join(missing)}"
        raise ConfigError(msg)

    env = Environment(
        loader=FileSystemLoader(theme_dir),
        autoescape=select_autoescape(["html"]),
    )
    try:
        for partial in PARTIALS:
            env.get_template(partial)
        layout = env.get_template(LAYOUT)
    except TemplateError as exc:
        msg = f"failed to load templates from {theme_dir}: {exc}"
        raise ConfigError(msg) from exc

    return TemplateSet(env, layout)
