"""Loom configuration.

LoomConfig holds project-level settings (paths, dev server, build flags).
SiteConfig mirrors ``site.yaml`` and is handed to templates.  Both are
frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class LoomConfig:
    """Configuration for a Loom project.

    Attributes:
        root: Path to the project root (contains content/, templates/, etc.).
              Always resolved to an absolute path on construction.
        host: Bind address for the dev server.
        port: Bind port for the dev server.
        output: Output directory for generated pages.
        content_dir: Directory containing Markdown content.
        templates_dir: Directory containing template themes.
        static_dir: Directory containing static assets.
        config_file: Site configuration file name.
        story_file: Narrative source file name.
        unsafe: Disable HTML sanitization of rendered content.
        debug: Print per-page diagnostics and full tracebacks.
        story_compiler: ``module:attr`` reference to the narrative compiler.
        story_transform: ``module:attr`` reference to the edit-markup
            clean-view transform.

    """

    root: Path = field(default_factory=Path.cwd)
    host: str = "127.0.0.1"
    port: int = 1313
    output: Path = field(default_factory=lambda: Path("public"))
    content_dir: str = "content"
    templates_dir: str = "templates"
    static_dir: str = "static"
    config_file: str = "site.yaml"
    story_file: str = "site.biff"
    unsafe: bool = False
    debug: bool = False
    story_compiler: str | None = None
    story_transform: str | None = None

    def __post_init__(self) -> None:
        # watchfiles reports absolute paths; keep root comparable to them.
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())

    @property
    def content_path(self) -> Path:
        """Absolute path to content directory."""
        return self.root / self.content_dir

    @property
    def templates_path(self) -> Path:
        """Absolute path to templates directory."""
        return self.root / self.templates_dir

    @property
    def static_path(self) -> Path:
        """Absolute path to static assets directory."""
        return self.root / self.static_dir

    @property
    def output_path(self) -> Path:
        """Absolute path to output directory."""
        if self.output.is_absolute():
            return self.output
        return self.root / self.output

    @property
    def config_path(self) -> Path:
        """Absolute path to ``site.yaml``."""
        return self.root / self.config_file

    @property
    def story_path(self) -> Path:
        """Absolute path to the narrative source file."""
        return self.root / self.story_file


@dataclass(frozen=True, slots=True)
class SiteConfig:
    """Site-level settings read from ``site.yaml``.

    Attributes:
        title: Site title.
        author: Default author for every page.
        baseurl: Public base URL of the site.
        description: Default page description.
        template: Theme directory name under ``templates/``.

    """

    title: str = ""
    author: str = ""
    baseurl: str = ""
    description: str = ""
    template: str = "simple"
