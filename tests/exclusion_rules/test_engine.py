"""Tests for purpose-aware exclusion decisions."""

import logging
import threading

import pytest

from ctxtree.config import StaticPatternSource
from ctxtree.exclusion_rules.engine import ExclusionEngine
from ctxtree.exclusion_rules.pattern_set import PatternSet
from ctxtree.types import EntryKind, Origin, Purpose

FILE = EntryKind.FILE
DIRECTORY = EntryKind.DIRECTORY


def make_engine(include_defaults=True):
    engine = ExclusionEngine("/project", include_defaults=include_defaults)
    engine.add_patterns(["*.md", "docs/", "assets/", "*.log", "!keep.log"], Origin.USER_CONFIG)
    engine.add_patterns(["out/"], Origin.VCS_IGNORE)
    return engine


@pytest.fixture
def engine():
    return make_engine()


class TestPrecedence:
    """Tests for the order in which exclusion checks apply."""

    def test_root_is_never_excluded(self, engine):
        for purpose in Purpose:
            assert engine.should_exclude("/project", DIRECTORY, purpose) is False

    def test_outside_root_is_excluded_and_reported(self, engine):
        assert engine.should_exclude("/elsewhere/a.py", FILE, Purpose.TREE) is True
        assert engine.errors == [("/elsewhere/a.py", "path is outside the root")]

    def test_relative_paths_resolve_against_root(self, engine):
        assert engine.should_exclude("README.md", FILE, Purpose.CONTENT) is True
        assert engine.should_exclude("src/main.py", FILE, Purpose.CONTENT) is False

    def test_system_files_always_excluded(self, engine):
        for purpose in Purpose:
            assert engine.should_exclude("/project/src/.DS_Store", FILE, purpose) is True
            assert engine.should_exclude("/project/photos/Thumbs.db", FILE, purpose) is True
            assert engine.should_exclude("/project/src/._main.py", FILE, purpose) is True

    def test_binary_files_excluded_by_extension_without_defaults(self):
        engine = ExclusionEngine("/project", include_defaults=False)
        assert engine.should_exclude("/project/tool.exe", FILE, Purpose.CONTENT) is True
        assert engine.should_exclude("/project/tool.exe", FILE, Purpose.STRICT_TREE) is True
        assert engine.should_exclude("/project/tool.exe", FILE, Purpose.TREE) is False

    def test_negation_keeps_binary_in_tree_only(self, engine):
        engine.add_patterns(["!tool.exe"], Origin.USER_CONFIG)
        assert engine.should_exclude("/project/tool.exe", FILE, Purpose.TREE) is False
        assert engine.should_exclude("/project/tool.exe", FILE, Purpose.STRICT_TREE) is True
        assert engine.should_exclude("/project/tool.exe", FILE, Purpose.CONTENT) is True

    def test_binary_files_excluded_from_trees_by_default_patterns(self):
        engine = ExclusionEngine("/project")
        assert engine.should_exclude("/project/tool.exe", FILE, Purpose.TREE) is True
        assert engine.should_exclude("/project/tool.exe", FILE, Purpose.STRICT_TREE) is True

    def test_media_excluded_from_content(self, engine):
        assert engine.should_exclude("/project/img/logo.png", FILE, Purpose.CONTENT) is True
        assert engine.should_exclude("/project/img/logo.png", FILE, Purpose.TREE) is False
        assert engine.should_exclude("/project/img/logo.png", FILE, Purpose.STRICT_TREE) is False

    def test_user_patterns(self, engine):
        assert engine.should_exclude("/project/a.md", FILE, Purpose.CONTENT) is True
        assert engine.should_exclude("/project/a.md", FILE, Purpose.TREE) is True
        assert engine.should_exclude("/project/app.log", FILE, Purpose.TREE) is True
        assert engine.should_exclude("/project/keep.log", FILE, Purpose.TREE) is False

    def test_vcs_patterns(self, engine):
        assert engine.should_exclude("/project/out", DIRECTORY, Purpose.TREE) is True
        assert engine.should_exclude("/project/out/report.txt", FILE, Purpose.TREE) is True

    def test_default_directories(self, engine):
        assert engine.should_exclude("/project/node_modules", DIRECTORY, Purpose.TREE) is True
        assert engine.should_exclude("/project/node_modules/b.js", FILE, Purpose.CONTENT) is True
        assert engine.should_exclude("/project/a/b/.git/config", FILE, Purpose.STRICT_TREE) is True

    def test_no_defaults(self):
        engine = ExclusionEngine("/project", include_defaults=False)
        assert engine.should_exclude("/project/node_modules", DIRECTORY, Purpose.TREE) is False
        # System files are not patterns and stay excluded
        assert engine.should_exclude("/project/.DS_Store", FILE, Purpose.TREE) is True

    def test_kind_is_detected_when_omitted(self, tmp_path):
        (tmp_path / "out").mkdir()
        (tmp_path / "out.txt").write_text("x")
        engine = ExclusionEngine(tmp_path)
        engine.add_patterns(["out/"], Origin.USER_CONFIG)
        assert engine.should_exclude(tmp_path / "out") is True
        assert engine.should_exclude(tmp_path / "out.txt") is False

    def test_missing_path_without_kind_is_excluded(self, tmp_path):
        engine = ExclusionEngine(tmp_path)
        assert engine.should_exclude(tmp_path / "missing.py") is True
        assert len(engine.errors) == 1
        assert engine.errors[0][0] == str(tmp_path / "missing.py")


class TestProperties:
    """Tests for the invariants every decision upholds."""

    PATHS = [
        ("a.js", FILE),
        ("a.md", FILE),
        ("keep.log", FILE),
        ("app.log", FILE),
        ("tool.exe", FILE),
        ("lib/native.so", FILE),
        ("static/app.min.js", FILE),
        ("package-lock.json", FILE),
        ("src/.DS_Store", FILE),
        ("docs/guide.txt", FILE),
        ("node_modules/pkg/index.js", FILE),
        ("out/report.txt", FILE),
        ("src", DIRECTORY),
        ("docs", DIRECTORY),
        ("node_modules", DIRECTORY),
    ]

    def test_idempotence(self, engine):
        for purpose in Purpose:
            for path, kind in self.PATHS:
                first = engine.should_exclude(path, kind, purpose)
                assert engine.should_exclude(path, kind, purpose) == first, f"{path} ({purpose.value})"

    @pytest.mark.parametrize("include_defaults", [True, False])
    def test_purpose_monotonicity(self, include_defaults):
        engine = make_engine(include_defaults)
        for path, kind in self.PATHS:
            if engine.is_media(path):
                continue
            if engine.should_exclude(path, kind, Purpose.CONTENT):
                assert engine.should_exclude(path, kind, Purpose.STRICT_TREE), path

    def test_media_override(self, engine):
        engine.add_patterns(["*.png"], Origin.USER_CONFIG)
        assert engine.should_exclude("/project/logo.png", FILE, Purpose.TREE) is False
        assert engine.should_exclude("/project/logo.png", FILE, Purpose.STRICT_TREE) is True
        assert engine.should_exclude("/project/logo.png", FILE, Purpose.CONTENT) is True

    def test_media_override_inside_excluded_directory(self, engine):
        assert engine.should_exclude("/project/assets", DIRECTORY, Purpose.TREE) is True
        assert engine.should_exclude("/project/assets/hero.jpg", FILE, Purpose.TREE) is False
        assert engine.should_exclude("/project/assets/hero.jpg", FILE, Purpose.STRICT_TREE) is True
        assert engine.should_exclude("/project/assets/notes.txt", FILE, Purpose.TREE) is True

    @pytest.mark.parametrize("purpose", list(Purpose))
    def test_ancestor_propagation(self, engine, purpose):
        engine.add_patterns(["!docs/keep.txt"], Origin.USER_CONFIG)
        assert engine.should_exclude("/project/docs", DIRECTORY, purpose) is True
        # A negation cannot reach into an excluded directory
        assert engine.should_exclude("/project/docs/keep.txt", FILE, purpose) is True
        assert engine.should_exclude("/project/docs/a/b/c.txt", FILE, purpose) is True


class TestCache:
    """Tests for decision memoization."""

    def test_decisions_are_cached(self, engine):
        engine.should_exclude("/project/src/a/b.py", FILE, Purpose.TREE)
        # The file and both ancestors
        assert engine.cache_size == 3
        engine.should_exclude("/project/src/a/b.py", FILE, Purpose.TREE)
        assert engine.cache_size == 3

    def test_cache_keyed_by_purpose_and_kind(self, engine):
        engine.should_exclude("/project/x", FILE, Purpose.TREE)
        engine.should_exclude("/project/x", DIRECTORY, Purpose.TREE)
        engine.should_exclude("/project/x", FILE, Purpose.CONTENT)
        assert engine.cache_size == 3

    def test_add_patterns_invalidates(self, engine):
        assert engine.should_exclude("/project/a.js", FILE, Purpose.TREE) is False
        engine.add_patterns(["*.js"], Origin.USER_CONFIG)
        assert engine.should_exclude("/project/a.js", FILE, Purpose.TREE) is True

    def test_direct_pattern_set_change_invalidates(self, engine):
        assert engine.should_exclude("/project/a.js", FILE, Purpose.TREE) is False
        engine.pattern_set.add_patterns(["*.js"], Origin.VCS_IGNORE)
        assert engine.should_exclude("/project/a.js", FILE, Purpose.TREE) is True

    def test_clear_errors(self, engine):
        engine.should_exclude("/elsewhere/a.py", FILE, Purpose.TREE)
        assert len(engine.errors) == 1
        engine.clear_errors()
        assert engine.errors == []

    def test_clear_cache(self, engine):
        engine.should_exclude("/project/a.js", FILE, Purpose.TREE)
        engine.clear_cache()
        assert engine.cache_size == 0

    def test_concurrent_queries_agree(self, engine):
        paths = [f"/project/pkg{i}/mod{j}.py" for i in range(10) for j in range(10)]
        results = {}

        def worker(name):
            results[name] = [engine.should_exclude(p, FILE, Purpose.CONTENT) for p in paths]

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(result == results[0] for result in results.values())
        assert not any(results[0])


class TestConstruction:
    """Tests for the ways an engine gets its patterns."""

    def test_pattern_source(self):
        source = StaticPatternSource(user_patterns=["*.md"], vcs_patterns=["*.log"])
        engine = ExclusionEngine("/project", pattern_source=source)
        assert engine.pattern_set.match("a.md", is_directory=False) == (True, Origin.USER_CONFIG)
        assert engine.pattern_set.match("a.log", is_directory=False) == (True, Origin.VCS_IGNORE)

    def test_explicit_pattern_set(self):
        patterns = PatternSet("/project")
        patterns.add_pattern("*.js")
        engine = ExclusionEngine("/project", pattern_set=patterns)
        assert engine.pattern_set is patterns
        assert engine.should_exclude("/project/a.js", FILE, Purpose.TREE) is True
        assert engine.should_exclude("/project/node_modules", DIRECTORY, Purpose.TREE) is False

    def test_injected_logger(self, caplog):
        logger = logging.getLogger("test.engine")
        engine = ExclusionEngine("/project", logger=logger)
        with caplog.at_level(logging.WARNING, logger="test.engine"):
            engine.should_exclude("/elsewhere/x", FILE, Purpose.TREE)
        assert any("outside the root" in record.getMessage() for record in caplog.records)


class TestSniffing:
    """Tests for sampling file content for binary data."""

    def test_sniffed_binary_excluded_from_content_and_strict_tree(self, tmp_path):
        (tmp_path / "blob.unknown").write_bytes(b"\x00\x01\x02binary")
        (tmp_path / "notes.unknown").write_text("plain text\n")
        engine = ExclusionEngine(tmp_path, sniff_binary_content=True)

        assert engine.should_exclude(tmp_path / "blob.unknown", FILE, Purpose.CONTENT) is True
        assert engine.should_exclude(tmp_path / "blob.unknown", FILE, Purpose.STRICT_TREE) is True
        assert engine.should_exclude(tmp_path / "blob.unknown", FILE, Purpose.TREE) is False
        assert engine.should_exclude(tmp_path / "notes.unknown", FILE, Purpose.CONTENT) is False
        assert engine.is_binary(tmp_path / "blob.unknown") is True
        assert engine.is_binary(tmp_path / "notes.unknown") is False

    def test_no_sniffing_by_default(self, tmp_path):
        (tmp_path / "blob.unknown").write_bytes(b"\x00\x01\x02binary")
        engine = ExclusionEngine(tmp_path)
        assert engine.should_exclude(tmp_path / "blob.unknown", FILE, Purpose.CONTENT) is False

    def test_unreadable_content_counts_as_binary(self, tmp_path):
        engine = ExclusionEngine(tmp_path, sniff_binary_content=True)
        assert engine.should_exclude(tmp_path / "vanished.unknown", FILE, Purpose.CONTENT) is True
        assert engine.errors and engine.errors[0][0] == str(tmp_path / "vanished.unknown")
