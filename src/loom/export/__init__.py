"""Export layer — static output generation.

Renders the content tree through the theme into HTML files and copies
allow-listed static assets alongside them.
"""

from loom.export.static import BuildOptions, BuildResult, BuiltFile, Page, build_site

__all__ = ["BuildOptions", "BuildResult", "BuiltFile", "Page", "build_site"]
