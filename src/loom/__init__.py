"""Loom — a quiet static site generator for interactive fiction.

Turns a tree of Markdown documents (optionally compiled from a branching
narrative) into static HTML.  During development it watches the sources,
rebuilds on change, and reloads open browser tabs.

Quick start::

    import loom

    loom.dev("my-site/")

Three modes::

    loom.build("my-site/")        # Clean build into public/
    loom.dev("my-site/")          # Build, serve, watch, live reload
    loom.story("my-site/")        # Compile site.biff, then build

"""

__version__ = "0.1.0"
__all__ = [
    "LoomConfig",
    "__version__",
    "build",
    "dev",
    "story",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import loom`` fast; the dev server stack is only imported when
    an entry point is used.
    """
    if name == "LoomConfig":
        from loom.config import LoomConfig

        return LoomConfig

    if name == "build":
        from loom.app import build

        return build

    if name == "dev":
        from loom.app import dev

        return dev

    if name == "story":
        from loom.app import story

        return story

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
