"""
Tests for the sandboxed filesystem core.
"""

import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from docfs.filesystem import (
    DirectoryWalker,
    FileEntry,
    FileIOError,
    IgnoreMatcher,
    IgnoreMatcherRegistry,
    InvalidPathError,
    InvalidRangeError,
    MetadataCache,
    OutsideSandboxError,
    PathNotFoundError,
    PathSandbox,
    RangeReader,
    SearchMatch,
    TextSearchEngine,
    compile_name_pattern,
    compile_query,
    validate_line_range,
    validate_path,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def make_entry(path: str, size: int = 1) -> FileEntry:
    return FileEntry(
        path=path,
        name=os.path.basename(path),
        size=size,
        modified=datetime.now(timezone.utc),
        is_directory=False,
        extension="txt",
    )


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def docs_root(temp_dir):
    """
    Build a small documentation tree:

        a.txt, B.md, app.log, .hidden.txt, .gitignore ("skip", "*.log")
        skip/b.txt
        sub/c.txt, sub/e.MD, sub/deep/d.txt
    """
    root = temp_dir / "docs"
    (root / "skip").mkdir(parents=True)
    (root / "sub" / "deep").mkdir(parents=True)
    (root / "a.txt").write_text("alpha\n")
    (root / "B.md").write_text("# Bravo\n")
    (root / "app.log").write_text("log line\n")
    (root / ".hidden.txt").write_text("hidden\n")
    (root / ".gitignore").write_text("skip\n*.log\n")
    (root / "skip" / "b.txt").write_text("skipped\n")
    (root / "sub" / "c.txt").write_text("charlie\n")
    (root / "sub" / "e.MD").write_text("echo\n")
    (root / "sub" / "deep" / "d.txt").write_text("delta\n")
    return root


@pytest.fixture
def walker():
    """Create a DirectoryWalker with a fresh cache and ignore registry."""
    return DirectoryWalker(MetadataCache(), IgnoreMatcherRegistry())


class TestPathSandbox:
    """Test path validation and resolution."""

    def test_validate_inside_root(self, temp_dir):
        """Test that paths inside a root are returned canonicalized."""
        result = validate_path(temp_dir / "a" / ".." / "b.txt", [temp_dir])
        assert result == temp_dir / "b.txt"

    def test_validate_root_itself(self, temp_dir):
        """Test that the root itself is allowed."""
        assert validate_path(temp_dir, [temp_dir]) == temp_dir

    def test_validate_rejects_parent_escape(self, temp_dir):
        """Test that '..' segments cannot leave the root."""
        root = temp_dir / "root"
        root.mkdir()
        with pytest.raises(OutsideSandboxError):
            validate_path(root / ".." / "other.txt", [root])

    def test_validate_rejects_sibling_prefix(self, temp_dir):
        """Test that /root2 is not treated as inside /root."""
        root = temp_dir / "root"
        with pytest.raises(OutsideSandboxError):
            validate_path(temp_dir / "root2" / "file.txt", [root])

    def test_validate_rejects_absolute_outside(self, temp_dir):
        """Test that unrelated absolute paths are rejected."""
        with pytest.raises(OutsideSandboxError):
            validate_path("/etc/passwd", [temp_dir])

    def test_symlink_escape_blocked_when_resolving(self, temp_dir):
        """Test that a symlink pointing outside the root is rejected."""
        root = temp_dir / "root"
        outside = temp_dir / "outside"
        root.mkdir()
        outside.mkdir()
        (outside / "secret.txt").write_text("secret")
        os.symlink(outside, root / "escape")

        with pytest.raises(OutsideSandboxError):
            validate_path(root / "escape" / "secret.txt", [root], resolve_symlinks=True)

        # Pure normalization keeps the link path and accepts it
        result = validate_path(root / "escape" / "secret.txt", [root], resolve_symlinks=False)
        assert result == root / "escape" / "secret.txt"

    def test_contains_target(self, temp_dir):
        """Test that link targets are checked by their real location."""
        root = temp_dir / "root"
        outside = temp_dir / "outside"
        root.mkdir()
        outside.mkdir()
        (root / "inner.txt").write_text("inner")
        (outside / "secret.txt").write_text("secret")
        os.symlink(root / "inner.txt", root / "inner-link.txt")
        os.symlink(outside / "secret.txt", root / "secret-link.txt")

        sandbox = PathSandbox([root])
        assert sandbox.contains_target(root / "inner-link.txt")
        assert not sandbox.contains_target(root / "secret-link.txt")

    def test_walk_and_search_skip_links_leaving_roots(self, temp_dir, caplog):
        """Test that traversal never exposes a symlinked file pointing outside the roots."""
        root = temp_dir / "root"
        outside = temp_dir / "outside"
        root.mkdir()
        outside.mkdir()
        (outside / "secret.txt").write_text("password=hunter2\n")
        (root / "notes.txt").write_text("no secrets here\n")
        os.symlink(outside / "secret.txt", root / "link.txt")

        sandbox = PathSandbox([root])
        walker = DirectoryWalker(
            MetadataCache(), IgnoreMatcherRegistry(), link_filter=sandbox.contains_target
        )

        with caplog.at_level(logging.WARNING):
            names = [e.name for e in walker.walk(root)]
            matches = TextSearchEngine(walker).search([root], query="password")

        assert names == ["notes.txt"]
        assert matches == []
        assert "outside allowed directories" in caplog.text

    def test_resolve_relative_first_existing_root(self, temp_dir):
        """Test that relative paths resolve against the first root where they exist."""
        first = temp_dir / "first"
        second = temp_dir / "second"
        first.mkdir()
        second.mkdir()
        (second / "notes.md").write_text("notes")

        sandbox = PathSandbox([first, second])
        assert sandbox.resolve("notes.md") == second / "notes.md"

    def test_resolve_relative_not_found_lists_roots(self, temp_dir):
        """Test that an unresolvable relative path reports the attempted roots."""
        first = temp_dir / "first"
        second = temp_dir / "second"
        first.mkdir()
        second.mkdir()

        sandbox = PathSandbox([first, second])
        with pytest.raises(PathNotFoundError) as exc_info:
            sandbox.resolve("missing.md")

        assert exc_info.value.attempted_roots == [str(first), str(second)]
        assert str(first) in str(exc_info.value)

    def test_resolve_relative_cannot_escape(self, temp_dir):
        """Test that relative paths climbing out of every root are not found."""
        root = temp_dir / "root"
        root.mkdir()
        (temp_dir / "outside.txt").write_text("x")

        sandbox = PathSandbox([root])
        with pytest.raises(PathNotFoundError):
            sandbox.resolve("../outside.txt")

    def test_resolve_absolute_missing(self, temp_dir):
        """Test that a missing absolute path inside a root is not found."""
        sandbox = PathSandbox([temp_dir])
        with pytest.raises(PathNotFoundError):
            sandbox.resolve(str(temp_dir / "missing.txt"))

    def test_resolve_candidates_all_roots(self, temp_dir):
        """Test that a relative directory present in several roots yields all of them."""
        first = temp_dir / "first"
        second = temp_dir / "second"
        (first / "guides").mkdir(parents=True)
        (second / "guides").mkdir(parents=True)

        sandbox = PathSandbox([first, second])
        assert sandbox.resolve_candidates("guides") == [first / "guides", second / "guides"]

    def test_root_for(self, temp_dir):
        """Test finding the root that contains a path."""
        first = temp_dir / "first"
        second = temp_dir / "second"
        sandbox = PathSandbox([first, second])

        assert sandbox.root_for(second / "x" / "y.txt") == second
        with pytest.raises(OutsideSandboxError):
            sandbox.root_for(temp_dir / "third")


class TestMetadataCache:
    """Test the LRU/TTL metadata cache."""

    def test_get_missing(self):
        """Test that unknown keys are absent."""
        cache = MetadataCache(max_entries=2, ttl_seconds=10)
        assert cache.get("/nope") is None

    def test_capacity_evicts_least_recently_used(self):
        """Test that overflow evicts the least-recently-accessed entry."""
        clock = FakeClock()
        cache = MetadataCache(max_entries=2, ttl_seconds=10, clock=clock)
        cache.set("/a", make_entry("/a"))
        cache.set("/b", make_entry("/b"))

        # Touch /a so /b becomes least recently used
        assert cache.get("/a") is not None
        cache.set("/c", make_entry("/c"))

        assert len(cache) == 2
        assert cache.get("/b") is None
        assert cache.get("/a") is not None
        assert cache.get("/c") is not None

    def test_size_never_exceeds_capacity(self):
        """Test that many insertions keep the cache bounded."""
        cache = MetadataCache(max_entries=3, ttl_seconds=10)
        for i in range(20):
            cache.set(f"/f{i}", make_entry(f"/f{i}"))
            assert len(cache) <= 3

        assert cache.stats()["evictions"] == 17
        assert cache.get("/f19") is not None
        assert cache.get("/f16") is None

    def test_set_existing_key_refreshes_recency(self):
        """Test that re-setting a key makes it most-recently-used."""
        cache = MetadataCache(max_entries=2, ttl_seconds=10)
        cache.set("/a", make_entry("/a"))
        cache.set("/b", make_entry("/b"))
        cache.set("/a", make_entry("/a", size=2))
        cache.set("/c", make_entry("/c"))

        assert cache.get("/b") is None
        assert cache.get("/a").size == 2

    def test_expired_entry_not_returned(self):
        """Test that entries past their TTL are treated as absent and evicted."""
        clock = FakeClock()
        cache = MetadataCache(max_entries=10, ttl_seconds=5, clock=clock)
        cache.set("/a", make_entry("/a"))

        clock.now = 5.0
        assert cache.get("/a") is not None

        clock.now = 5.5
        assert cache.get("/a") is None
        assert len(cache) == 0

    def test_set_refreshes_expiry(self):
        """Test that set() restarts the TTL."""
        clock = FakeClock()
        cache = MetadataCache(max_entries=10, ttl_seconds=5, clock=clock)
        cache.set("/a", make_entry("/a"))

        clock.now = 4.0
        cache.set("/a", make_entry("/a"))
        clock.now = 8.0
        assert cache.get("/a") is not None

    def test_get_does_not_refresh_expiry(self):
        """Test that reads promote recency but keep the original expiry."""
        clock = FakeClock()
        cache = MetadataCache(max_entries=10, ttl_seconds=5, clock=clock)
        cache.set("/a", make_entry("/a"))

        clock.now = 4.0
        assert cache.get("/a") is not None
        clock.now = 6.0
        assert cache.get("/a") is None

    def test_clear(self):
        """Test clearing the cache."""
        cache = MetadataCache(max_entries=10, ttl_seconds=5)
        cache.set("/a", make_entry("/a"))
        cache.clear()
        assert len(cache) == 0
        assert cache.get("/a") is None

    def test_stats(self):
        """Test hit and miss counters."""
        cache = MetadataCache(max_entries=10, ttl_seconds=5)
        cache.set("/a", make_entry("/a"))
        cache.get("/a")
        cache.get("/missing")

        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["size"] == 1

    def test_invalid_capacity(self):
        """Test that a capacity below one is rejected."""
        with pytest.raises(ValueError):
            MetadataCache(max_entries=0)


class TestIgnoreMatcher:
    """Test ignore-file matching."""

    def test_no_rules_excludes_nothing(self, temp_dir):
        """Test that a root without an ignore file excludes nothing."""
        matcher = IgnoreMatcherRegistry().for_root(temp_dir)
        assert matcher.is_empty
        assert matcher.excludes("anything/at/all.txt") is False

    def test_bare_directory_name(self, temp_dir):
        """Test that a bare name excludes the directory and everything beneath it."""
        matcher = IgnoreMatcher.from_lines(temp_dir, ["dist"])
        assert matcher.excludes("dist", is_dir=True)
        assert matcher.excludes("dist/app.js")
        assert matcher.excludes("nested/dist", is_dir=True)
        assert not matcher.excludes("distribution.txt")

    def test_directory_only_pattern(self, temp_dir):
        """Test that 'build/' matches directories but not files named build."""
        matcher = IgnoreMatcher.from_lines(temp_dir, ["build/"])
        assert matcher.excludes("build", is_dir=True)
        assert not matcher.excludes("build", is_dir=False)

    def test_wildcard_and_negation(self, temp_dir):
        """Test wildcard patterns with a negated exception."""
        matcher = IgnoreMatcher.from_lines(temp_dir, ["*.log", "!keep.log"])
        assert matcher.excludes("error.log")
        assert matcher.excludes("logs/debug.log")
        assert not matcher.excludes("keep.log")
        assert not matcher.excludes("notes.txt")

    def test_anchored_pattern(self, temp_dir):
        """Test that a leading slash anchors the pattern to the root."""
        matcher = IgnoreMatcher.from_lines(temp_dir, ["/TODO.md"])
        assert matcher.excludes("TODO.md")
        assert not matcher.excludes("docs/TODO.md")

    def test_double_star(self, temp_dir):
        """Test '**' matching across directories."""
        matcher = IgnoreMatcher.from_lines(temp_dir, ["docs/**/*.tmp"])
        assert matcher.excludes("docs/a/b/c.tmp")
        assert not matcher.excludes("other/a.tmp")

    def test_comments_only(self, temp_dir):
        """Test that comments and blank lines produce an empty matcher."""
        matcher = IgnoreMatcher.from_lines(temp_dir, ["# comment", "", "   "])
        assert matcher.is_empty

    def test_registry_memoizes(self, temp_dir):
        """Test that the ignore file is loaded once per root until cleared."""
        (temp_dir / ".gitignore").write_text("first\n")
        registry = IgnoreMatcherRegistry()

        matcher = registry.for_root(temp_dir)
        assert registry.for_root(temp_dir) is matcher

        (temp_dir / ".gitignore").write_text("second\n")
        assert registry.for_root(temp_dir).excludes("first")

        registry.clear()
        reloaded = registry.for_root(temp_dir)
        assert reloaded.excludes("second")
        assert not reloaded.excludes("first")

    def test_custom_ignore_file_name(self, temp_dir):
        """Test using a different ignore file name."""
        (temp_dir / ".docfsignore").write_text("drafts\n")
        matcher = IgnoreMatcherRegistry(".docfsignore").for_root(temp_dir)
        assert matcher.excludes("drafts", is_dir=True)


class TestNamePattern:
    """Test glob compilation for file names."""

    def test_star_and_question_mark(self):
        regex = compile_name_pattern("test_?.py")
        assert regex.fullmatch("test_1.py")
        assert not regex.fullmatch("test_10.py")

    def test_case_insensitive_whole_name(self):
        regex = compile_name_pattern("*.md")
        assert regex.fullmatch("README.MD")
        assert not regex.fullmatch("notes.mdx")

    def test_literal_characters(self):
        regex = compile_name_pattern("a+b[1].txt")
        assert regex.fullmatch("a+b[1].txt")
        assert not regex.fullmatch("aab1.txt")


class TestDirectoryWalker:
    """Test flat and nested traversal."""

    def test_walk_default(self, docs_root, walker):
        """Test sorting, hidden-file skipping and ignore pruning."""
        names = [e.name for e in walker.walk(docs_root)]
        assert names == ["deep", "sub", "B.md", "a.txt", "c.txt", "d.txt", "e.MD"]

    def test_walk_entries_have_metadata(self, docs_root, walker):
        """Test that entries carry absolute paths and metadata."""
        entries = {e.name: e for e in walker.walk(docs_root)}

        a = entries["a.txt"]
        assert a.path == str(docs_root / "a.txt")
        assert a.size == len("alpha\n")
        assert a.extension == "txt"
        assert a.is_directory is False
        assert entries["sub"].is_directory is True
        assert entries["sub"].extension is None

    def test_walk_non_recursive(self, docs_root, walker):
        """Test that recursive=False lists direct children only."""
        names = [e.name for e in walker.walk(docs_root, recursive=False)]
        assert names == ["sub", "B.md", "a.txt"]

    def test_walk_max_depth(self, docs_root, walker):
        """Test that depth 0 is the root's direct children."""
        assert [e.name for e in walker.walk(docs_root, max_depth=0)] == ["sub", "B.md", "a.txt"]

        names = [e.name for e in walker.walk(docs_root, max_depth=1)]
        assert "c.txt" in names
        assert "deep" in names
        assert "d.txt" not in names

    def test_walk_name_pattern(self, docs_root, walker):
        """Test that the pattern filters files but never directories."""
        names = [e.name for e in walker.walk(docs_root, name_pattern="*.md")]
        assert names == ["deep", "sub", "B.md", "e.MD"]

    def test_walk_include_hidden(self, docs_root, walker):
        """Test including dot-files."""
        names = [e.name for e in walker.walk(docs_root, include_hidden=True)]
        assert ".hidden.txt" in names
        assert ".gitignore" in names
        assert "skip" not in names

    def test_ignored_directory_pruned_despite_pattern(self, docs_root, walker):
        """Test that ignored subtrees stay hidden even when the pattern matches inside them."""
        entries = walker.walk(docs_root, name_pattern="*.txt")
        paths = [e.path for e in entries]
        assert str(docs_root / "skip") not in paths
        assert str(docs_root / "skip" / "b.txt") not in paths
        assert str(docs_root / "sub" / "c.txt") in paths

    def test_walk_subdirectory_uses_root_ignore_rules(self, docs_root, walker):
        """Test walking below a root with that root's ignore file."""
        (docs_root / "sub" / "trace.log").write_text("x")
        names = [e.name for e in walker.walk(docs_root / "sub", ignore_root=docs_root)]
        assert "trace.log" not in names
        assert "c.txt" in names

    def test_walk_unreadable_directory_is_skipped(self, docs_root, walker, monkeypatch, caplog):
        """Test that a directory that cannot be enumerated does not hide siblings."""
        real_scandir = os.scandir
        blocked = docs_root / "sub"

        def fake_scandir(path):
            if Path(path) == blocked:
                raise PermissionError(13, "Permission denied", str(path))
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", fake_scandir)

        with caplog.at_level(logging.WARNING):
            names = [e.name for e in walker.walk(docs_root)]

        assert names == ["sub", "B.md", "a.txt"]
        assert "Failed to read directory" in caplog.text

    def test_walk_file_raises(self, docs_root, walker):
        """Test that walking a file is rejected."""
        with pytest.raises(InvalidPathError):
            walker.walk(docs_root / "a.txt")

    def test_walk_missing_root_raises(self, temp_dir, walker):
        """Test that a missing root raises FileIOError."""
        with pytest.raises(FileIOError):
            walker.walk(temp_dir / "missing")

    def test_metadata_read_through_cache(self, temp_dir, walker):
        """Test that cached metadata is served without a new stat call."""
        target = temp_dir / "a.txt"
        target.write_text("abc")

        assert walker.get_file_entry(target).size == 3
        target.write_text("abcdef")
        assert walker.get_file_entry(target).size == 3

        walker.cache.clear()
        assert walker.get_file_entry(target).size == 6

    def test_symlinked_directory_not_descended(self, docs_root, walker):
        """Test that symlinked directories are listed but not followed by default."""
        os.symlink(docs_root, docs_root / "sub" / "loop")
        entries = walker.walk(docs_root)

        paths = [e.path for e in entries]
        assert str(docs_root / "sub" / "loop") in paths
        assert not any("/loop/" in p for p in paths)

    def test_follow_symlinks_stops_cycles(self, docs_root):
        """Test that following symlinks never revisits a directory."""
        os.symlink(docs_root, docs_root / "sub" / "loop")
        walker = DirectoryWalker(MetadataCache(), IgnoreMatcherRegistry(), follow_symlinks=True)

        paths = [e.path for e in walker.walk(docs_root)]
        assert str(docs_root / "sub" / "deep" / "d.txt") in paths
        assert not any("/loop/" in p for p in paths)

    def test_follow_symlinks_stays_inside_roots(self, temp_dir, docs_root):
        """Test that a followed symlinked directory must resolve inside the roots."""
        external = temp_dir / "external"
        external.mkdir()
        (external / "private.txt").write_text("private")
        os.symlink(external, docs_root / "sub" / "ext")
        os.symlink(docs_root / "sub" / "deep", docs_root / "shortcut")

        sandbox = PathSandbox([docs_root])
        walker = DirectoryWalker(
            MetadataCache(),
            IgnoreMatcherRegistry(),
            follow_symlinks=True,
            link_filter=sandbox.contains_target,
        )

        paths = [e.path for e in walker.walk(docs_root)]
        assert str(docs_root / "sub" / "ext") not in paths
        assert not any("private.txt" in p for p in paths)
        assert str(docs_root / "shortcut") in paths

        tree = walker.tree(docs_root)
        sub = next(c for c in tree.children if c.name == "sub")
        assert "ext" not in [c.name for c in sub.children]

    def test_tree_structure(self, docs_root, walker):
        """Test nested tree ordering and pruning."""
        tree = walker.tree(docs_root)

        assert tree.path == str(docs_root)
        assert [c.name for c in tree.children] == ["sub", "B.md", "a.txt"]

        sub = tree.children[0]
        assert [c.name for c in sub.children] == ["deep", "c.txt", "e.MD"]
        assert sub.children[1].children is None
        assert [c.name for c in sub.children[0].children] == ["d.txt"]

    def test_tree_depth_exhausted(self, docs_root, walker):
        """Test that directories past max_depth carry no children."""
        tree = walker.tree(docs_root, max_depth=0)
        sub = next(c for c in tree.children if c.name == "sub")
        assert sub.children is None

        tree = walker.tree(docs_root, max_depth=1)
        sub = next(c for c in tree.children if c.name == "sub")
        deep = next(c for c in sub.children if c.name == "deep")
        assert deep.children is None

    def test_tree_of_file(self, docs_root, walker):
        """Test that a file yields a leaf node."""
        node = walker.tree(docs_root / "a.txt")
        assert node.name == "a.txt"
        assert node.children is None


class TestTextSearchEngine:
    """Test line-oriented search."""

    @pytest.fixture
    def scenario_root(self, temp_dir):
        root = temp_dir / "r"
        (root / "skip").mkdir(parents=True)
        (root / "a.txt").write_text("x\nfoo\ny")
        (root / ".gitignore").write_text("skip\n")
        (root / "skip" / "b.txt").write_text("foo")
        return root

    @pytest.fixture
    def engine(self, walker):
        return TextSearchEngine(walker)

    def test_scenario_ignored_directory(self, scenario_root, engine):
        """Test the single-match scenario with an ignored directory."""
        matches = engine.search([scenario_root], query="foo", context_lines=1)

        assert matches == [
            SearchMatch(
                file_path=str(scenario_root / "a.txt"),
                line_number=2,
                line_content="foo",
                context_before=["x"],
                context_after=["y"],
            )
        ]

    def test_context_clipped_at_file_bounds(self, temp_dir, engine):
        """Test context windows at the first and last line."""
        (temp_dir / "f.txt").write_text("hit one\nmiddle\nhit two\n")

        matches = engine.search([temp_dir], query="hit", context_lines=3)
        assert len(matches) == 2
        assert matches[0].context_before == []
        assert matches[0].context_after == ["middle", "hit two"]
        assert matches[1].context_before == ["hit one", "middle"]
        assert matches[1].context_after == []

    def test_zero_context(self, temp_dir, engine):
        (temp_dir / "f.txt").write_text("a\nfoo\nb\n")
        match = engine.search([temp_dir], query="foo", context_lines=0)[0]
        assert match.context_before == []
        assert match.context_after == []

    def test_overlapping_windows_not_merged(self, temp_dir, engine):
        """Test that adjacent matches each get their own window."""
        (temp_dir / "f.txt").write_text("foo\nfoo\nfoo")

        matches = engine.search([temp_dir], query="foo", context_lines=1)
        assert [m.line_number for m in matches] == [1, 2, 3]
        assert matches[1].context_before == ["foo"]
        assert matches[1].context_after == ["foo"]

    def test_case_sensitivity(self, temp_dir, engine):
        (temp_dir / "f.txt").write_text("Foo\nfoo\nFOO\n")

        assert len(engine.search([temp_dir], query="foo")) == 3
        matches = engine.search([temp_dir], query="foo", case_sensitive=True)
        assert [m.line_number for m in matches] == [2]

    def test_whole_word(self, temp_dir, engine):
        (temp_dir / "f.txt").write_text("foobar\nfoo bar\nbarfoo\n")

        matches = engine.search([temp_dir], query="foo", whole_word=True)
        assert [m.line_number for m in matches] == [2]

    def test_query_is_literal(self, temp_dir, engine):
        """Test that regex metacharacters in the query are matched literally."""
        (temp_dir / "f.txt").write_text("call a.b(x)\ncall axb(x)\n")

        matches = engine.search([temp_dir], query="a.b(")
        assert [m.line_number for m in matches] == [1]

    def test_crlf_lines(self, temp_dir, engine):
        (temp_dir / "f.txt").write_bytes(b"x\r\nfoo\r\ny\r\n")

        match = engine.search([temp_dir], query="foo", context_lines=1)[0]
        assert match.line_content == "foo"
        assert match.context_before == ["x"]
        assert match.context_after == ["y"]

    def test_file_pattern(self, temp_dir, engine):
        (temp_dir / "a.md").write_text("needle")
        (temp_dir / "a.txt").write_text("needle")

        matches = engine.search([temp_dir], query="needle", file_pattern="*.md")
        assert [Path(m.file_path).name for m in matches] == ["a.md"]

    def test_undecodable_file_skipped(self, temp_dir, engine, caplog):
        """Test that binary files are skipped with a warning."""
        (temp_dir / "bin.dat").write_bytes(b"\xff\xfe\x00needle\x80")
        (temp_dir / "text.txt").write_text("needle")

        with caplog.at_level(logging.WARNING):
            matches = engine.search([temp_dir], query="needle")

        assert [Path(m.file_path).name for m in matches] == ["text.txt"]
        assert "Failed to search in file" in caplog.text

    def test_root_order(self, temp_dir, engine):
        """Test that results follow root order, then file order."""
        first = temp_dir / "first"
        second = temp_dir / "second"
        first.mkdir()
        second.mkdir()
        (first / "z.txt").write_text("needle")
        (second / "a.txt").write_text("needle")

        matches = engine.search([first, second], query="needle")
        assert [m.file_path for m in matches] == [
            str(first / "z.txt"),
            str(second / "a.txt"),
        ]

    def test_missing_root_skipped(self, temp_dir, engine, caplog):
        (temp_dir / "a.txt").write_text("needle")

        with caplog.at_level(logging.WARNING):
            matches = engine.search([temp_dir / "missing", temp_dir], query="needle")

        assert len(matches) == 1
        assert "Failed to search in directory" in caplog.text

    def test_compile_query(self):
        regex = compile_query("a+b", case_sensitive=False, whole_word=True)
        assert regex.search("x A+B y")
        assert not regex.search("xa+by")


class TestRangeReader:
    """Test line-ranged reading."""

    @pytest.fixture
    def reader(self):
        return RangeReader()

    @pytest.fixture
    def lines_file(self, temp_dir):
        path = temp_dir / "lines.txt"
        path.write_text("line1\nline2\nline3\nline4\nline5\n")
        return path

    def test_read_whole_file(self, reader, lines_file):
        assert reader.read(lines_file) == "line1\nline2\nline3\nline4\nline5\n"

    def test_read_range(self, reader, lines_file):
        """Test that lines 2-3 come back joined by the line separator."""
        assert reader.read(lines_file, start_line=2, end_line=3) == "line2\nline3"

    def test_read_start_only(self, reader, lines_file):
        assert reader.read(lines_file, start_line=5) == "line5\n"

    def test_read_end_only(self, reader, lines_file):
        assert reader.read(lines_file, end_line=2) == "line1\nline2"

    def test_read_end_clamped(self, reader, lines_file):
        assert reader.read(lines_file, start_line=4, end_line=100) == "line4\nline5\n"

    def test_read_start_past_end_of_file(self, reader, lines_file):
        assert reader.read(lines_file, start_line=50, end_line=60) == ""

    def test_read_other_encoding(self, reader, temp_dir):
        path = temp_dir / "latin.txt"
        path.write_bytes("café\n".encode("latin-1"))
        assert reader.read(path, encoding="latin-1") == "café\n"

    def test_read_missing_file(self, reader, temp_dir):
        """Test that I/O failures are wrapped with the path and cause."""
        missing = temp_dir / "missing.txt"
        with pytest.raises(FileIOError) as exc_info:
            reader.read(missing)

        assert isinstance(exc_info.value.cause, FileNotFoundError)
        assert str(missing) in str(exc_info.value)

    def test_read_decode_error(self, reader, temp_dir):
        path = temp_dir / "bad.txt"
        path.write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(FileIOError) as exc_info:
            reader.read(path)
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)

    def test_read_range_crlf(self, reader, temp_dir):
        """Test that ranged reads of CRLF files carry no stray carriage returns."""
        path = temp_dir / "crlf.txt"
        path.write_bytes(b"line1\r\nline2\r\nline3\r\nline4\r\n")

        assert reader.read(path, start_line=2, end_line=3) == "line2\nline3"
        assert reader.read(path) == "line1\r\nline2\r\nline3\r\nline4\r\n"

    def test_read_unknown_encoding(self, reader, lines_file):
        with pytest.raises(FileIOError):
            reader.read(lines_file, encoding="no-such-codec")

    def test_validate_line_range(self):
        validate_line_range(3, 3)
        validate_line_range(None, 3)
        validate_line_range(5, None)
        with pytest.raises(InvalidRangeError):
            validate_line_range(5, 3)
