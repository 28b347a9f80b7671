"""Tests for loom.content.story — narrative graph to content pages."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from loom._cli import main
from loom._errors import StoryError
from loom.config import LoomConfig
from loom.content.frontmatter import parse_front_matter
from loom.content.story import (
    StoryEdge,
    StoryGraph,
    StoryNode,
    compile_story,
    extract_title,
    node_paths,
    preparse_knot_meta,
    resolve_callable,
    slugify,
    write_story,
)

SOURCE = textwrap.dedent("""\
    // title: The Cave
    === start ===
    // title: At the Mouth
    // mood: Uneasy
    You stand at the cave mouth.
    === deeper ===
    # Into the Dark
    It is dark.
""")

# A toy compiler: every knot becomes a node, each "-> target" line an edge.
COMPILER = textwrap.dedent("""\
    import re

    from loom.content.story import StoryEdge, StoryGraph, StoryNode

    HEADER = re.compile(r"^===\\s*(\\w+)\\s*===$")


    def compile(source):
        if "SYNTAX ERROR" in source:
            raise ValueError("unexpected token")
        nodes = {}
        name = None
        lines, edges = [], []
        for line in source.splitlines() + ["=== __end__ ==="]:
            match = HEADER.match(line.strip())
            if match:
                if name is not None:
                    nodes[name] = StoryNode(
                        knot_name=name, content="\\n".join(lines), edges=tuple(edges),
                    )
                name, lines, edges = match.group(1), [], []
            elif line.startswith("-> "):
                target = line[3:].strip()
                edges.append(StoryEdge(text=f"Go {target}", target=target))
            elif name is not None and not line.startswith("//"):
                lines.append(line)
        return StoryGraph(metadata={"title": "Cave", "author": "Dee"}, nodes=nodes)


    def shout(text):
        return text.upper()
""")


@pytest.fixture
def story_root(tmp_site: Path) -> Path:
    plugins = tmp_site / "plugins"
    plugins.mkdir()
    (plugins / "biff.py").write_text(COMPILER)
    (tmp_site / "site.biff").write_text(
        "=== start ===\n// title: Opening\nThe beginning.\n-> middle\n"
        "=== middle ===\nStill going.\n-> start\n"
    )
    return tmp_site


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestPreparseKnotMeta:
    """preparse_knot_meta — per-knot comment metadata."""

    def test_collects_meta(self) -> None:
        meta = preparse_knot_meta(SOURCE)
        assert meta["start"] == {"title": "At the Mouth", "mood": "Uneasy"}
        assert meta["deeper"] == {}

    def test_story_level_comments_ignored(self) -> None:
        assert set(preparse_knot_meta(SOURCE)) == {"start", "deeper"}

    def test_keys_lowercased(self) -> None:
        meta = preparse_knot_meta("=== k ===\n// Title: X\n")
        assert meta == {"k": {"title": "X"}}


class TestExtractTitle:
    """extract_title — title precedence and heading removal."""

    def test_meta_title_wins(self) -> None:
        title, body = extract_title("k", "# Heading\nText", {"title": "Meta"})
        assert title == "Meta"
        assert body == "Text"

    def test_heading_used(self) -> None:
        title, body = extract_title("k", "# Heading\nText\n# Second", {})
        assert title == "Heading"
        assert body == "Text"

    def test_knot_name_fallback(self) -> None:
        title, body = extract_title("dark_forest", "Text", {})
        assert title == "Dark Forest"
        assert body == "Text"


class TestSlugify:
    """slugify — path-safe names."""

    def test_spaces_and_case(self) -> None:
        assert slugify("The Dark Forest") == "the-dark-forest"

    def test_punctuation_dropped(self) -> None:
        assert slugify("What's up?!") == "whats-up"


class TestNodePaths:
    """node_paths — scene directories and state flag suffixes."""

    def test_paths(self, tmp_path: Path) -> None:
        nodes = {
            "a": StoryNode(knot_name="start"),
            "b": StoryNode(knot_name="hall", scene="Act One/Castle"),
            "c": StoryNode(knot_name="hall", state={"lit": True, "armed": True, "hurt": False}),
        }
        paths = node_paths(nodes, tmp_path)
        assert paths["a"] == tmp_path / "start.md"
        assert paths["b"] == tmp_path / "act-one" / "castle" / "hall.md"
        assert paths["c"] == tmp_path / "hall-armed-lit.md"


# ---------------------------------------------------------------------------
# write_story
# ---------------------------------------------------------------------------


class TestWriteStory:
    """write_story — one page per node with choice links."""

    def test_pages_written(self, tmp_path: Path) -> None:
        graph = StoryGraph(
            metadata={"title": "Cave", "author": "Dee"},
            nodes={
                "start": StoryNode(
                    knot_name="start",
                    content="You stand at the cave mouth.",
                    edges=(StoryEdge(text="Go in", target="deeper"),),
                ),
                "deeper": StoryNode(
                    knot_name="deeper", scene="inside", content="# Into the Dark\nIt is dark.",
                ),
            },
        )
        written = write_story(graph, SOURCE, tmp_path)
        assert written == (tmp_path / "start.md", tmp_path / "inside" / "deeper.md")

        meta, body = parse_front_matter((tmp_path / "start.md").read_text())
        assert meta.title == "At the Mouth"
        assert meta.story_title == "Cave"
        assert meta.story_author == "Dee"
        assert meta.draft is False
        assert meta.params == {"mood": "Uneasy"}
        assert "## At the Mouth" in body
        assert "* [Go in](inside/deeper.md)" in body

        meta, body = parse_front_matter((tmp_path / "inside" / "deeper.md").read_text())
        assert meta.title == "Into the Dark"
        assert body.count("# Into the Dark") == 1

    def test_quotes_escaped(self, tmp_path: Path) -> None:
        graph = StoryGraph(nodes={"k": StoryNode(knot_name="k", content="Body")})
        write_story(graph, '=== k ===\n// title: Say "hi"\n', tmp_path)
        meta, _ = parse_front_matter((tmp_path / "k.md").read_text())
        assert meta.title == 'Say "hi"'

    def test_transform_applied(self, tmp_path: Path) -> None:
        graph = StoryGraph(nodes={"k": StoryNode(knot_name="k", content="quiet")})
        write_story(graph, "", tmp_path, transform=str.upper)
        assert "QUIET" in (tmp_path / "k.md").read_text()

    def test_transform_failure(self, tmp_path: Path) -> None:
        def broken(text: str) -> str:
            raise ValueError("bad markup")

        graph = StoryGraph(nodes={"k": StoryNode(knot_name="k", content="x")})
        with pytest.raises(StoryError, match="bad markup"):
            write_story(graph, "", tmp_path, transform=broken)

    def test_unknown_edge_target(self, tmp_path: Path) -> None:
        graph = StoryGraph(nodes={
            "k": StoryNode(knot_name="k", edges=(StoryEdge(text="x", target="ghost"),)),
        })
        with pytest.raises(StoryError, match="ghost"):
            write_story(graph, "", tmp_path)


# ---------------------------------------------------------------------------
# resolve_callable / compile_story
# ---------------------------------------------------------------------------


class TestResolveCallable:
    """resolve_callable — module:attr references."""

    def test_project_file(self, story_root: Path) -> None:
        func = resolve_callable("plugins.biff:shout", story_root)
        assert func("hi") == "HI"

    def test_importable_module(self, tmp_path: Path) -> None:
        assert resolve_callable("textwrap:dedent", tmp_path) is textwrap.dedent

    def test_malformed(self, tmp_path: Path) -> None:
        with pytest.raises(StoryError, match="module:attr"):
            resolve_callable("nocolon", tmp_path)

    def test_missing_module(self, tmp_path: Path) -> None:
        with pytest.raises(StoryError, match="cannot import"):
            resolve_callable("no_such_module_xyz:run", tmp_path)

    def test_not_callable(self, tmp_path: Path) -> None:
        with pytest.raises(StoryError, match="not callable"):
            resolve_callable("textwrap:nothing_here", tmp_path)


class TestCompileStory:
    """compile_story — source file to content pages."""

    def test_skips_without_source(self, tmp_site: Path) -> None:
        result = compile_story(LoomConfig(root=tmp_site, story_compiler="plugins.biff:compile"))
        assert result.pages == ()
        assert "site.biff" in result.skipped

    def test_skips_without_compiler(self, story_root: Path) -> None:
        result = compile_story(LoomConfig(root=story_root))
        assert result.pages == ()
        assert "story_compiler" in result.skipped

    def test_compiles_into_content(self, story_root: Path) -> None:
        config = LoomConfig(
            root=story_root,
            story_compiler="plugins.biff:compile",
            story_transform="plugins.biff:shout",
        )
        result = compile_story(config)
        content = story_root / "content"
        assert set(result.pages) == {content / "start.md", content / "middle.md"}
        start = (content / "start.md").read_text()
        assert 'title: "Opening"' in start
        assert "THE BEGINNING." in start
        assert "* [Go middle](middle.md)" in start

    def test_custom_out_dir(self, story_root: Path, tmp_path: Path) -> None:
        config = LoomConfig(root=story_root, story_compiler="plugins.biff:compile")
        out = tmp_path / "elsewhere"
        result = compile_story(config, out_dir=out)
        assert (out / "start.md") in result.pages

    def test_compiler_error(self, story_root: Path) -> None:
        (story_root / "site.biff").write_text("SYNTAX ERROR\n")
        config = LoomConfig(root=story_root, story_compiler="plugins.biff:compile")
        with pytest.raises(StoryError, match="unexpected token"):
            compile_story(config)


# ---------------------------------------------------------------------------
# I/O and plugin failures
# ---------------------------------------------------------------------------


class TestStoryFailures:
    """Failures surface as StoryError naming the file."""

    def test_non_utf8_source(self, story_root: Path) -> None:
        (story_root / "site.biff").write_bytes(b"\xff\xfe=== start ===\n")
        config = LoomConfig(root=story_root, story_compiler="plugins.biff:compile")
        with pytest.raises(StoryError, match="site.biff"):
            compile_story(config)

    def test_broken_plugin_module(self, tmp_path: Path) -> None:
        (tmp_path / "broken.py").write_text("raise RuntimeError('plugin exploded')\n")
        with pytest.raises(StoryError, match="plugin exploded"):
            resolve_callable("broken:compile", tmp_path)

    def test_plugin_syntax_error(self, tmp_path: Path) -> None:
        (tmp_path / "typo.py").write_text("def compile(:\n")
        with pytest.raises(StoryError, match="typo.py"):
            resolve_callable("typo:compile", tmp_path)

    def test_unwritable_output(self, tmp_path: Path) -> None:
        blocker = tmp_path / "out"
        blocker.write_text("a file where a directory should be")
        graph = StoryGraph(nodes={"k": StoryNode(knot_name="k", scene="act", content="x")})
        with pytest.raises(StoryError, match="failed to write story page"):
            write_story(graph, "", blocker)

    def test_cli_reports_bad_source(
        self, story_root: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        (story_root / "site.yaml").write_text(
            "title: T\ntemplate: simple\nloom:\n  story_compiler: plugins.biff:compile\n"
        )
        (story_root / "site.biff").write_bytes(b"\xff\xfe")
        with pytest.raises(SystemExit) as exc_info:
            main(["story", str(story_root)])
        assert exc_info.value.code == 1
        assert "Operation failed: failed to read story file" in capsys.readouterr().err
