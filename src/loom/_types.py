"""Shared type definitions for loom."""

from collections.abc import Callable
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from loom.content.story import StoryGraph

# Mode of operation
type LoomMode = Literal["dev", "build", "story"]

# Payload pushed to reload clients
type ReloadPayload = str

# "Rebuild now" capability handed to the scheduler; raises on failure
type RebuildFunc = Callable[[], int]

# External narrative compiler: source text in, node graph out
type StoryCompiler = Callable[[str], StoryGraph]

# External edit-markup transform: annotated draft in, clean text out
type MarkupTransform = Callable[[str], str]
