"""Bounded directory traversal producing trees and flat file lists.

The walker visits directories depth-first, one entry at a time, and consults an
:class:`~ctxtree.exclusion_rules.engine.ExclusionEngine` at every node. Each walk
runs under a :class:`TraversalBudget`:

- directories deeper than ``max_depth`` are not expanded
- once ``timeout_ms`` has elapsed no further directory is entered
- files larger than ``max_file_size_bytes`` are skipped

Nothing below the root aborts a walk. Unreadable directories, entries that cannot
be stat-ed, symlink loops, oversized files and timed-out directories are left out
and recorded in the :class:`SkipReport` returned with the result.

Entries are listed directories first, then files, each group sorted by name, so
results never depend on the order in which the operating system lists a
directory.
"""

import logging
import os
import re
import stat
import time
from collections import namedtuple
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union

from ctxtree.config import PatternSource
from ctxtree.exceptions import RootPathError
from ctxtree.exclusion_rules.engine import ExclusionEngine
from ctxtree.types import EntryKind, PathType, Purpose

from .budget import TraversalBudget
from .file_identifier import FileIdentifier
from .file_system_node import FileSystemNode
from .skip_report import DirectoryState, SkipReason, SkipRecorder, SkipReport

_Entry = namedtuple("_Entry", ["name", "path", "is_dir", "size", "file_id"])
_Filters = namedtuple("_Filters", ["ignore_paths", "ignore_regexes", "include_regexes", "allow_list"])

PatternSourceArg = Union[PatternSource, Callable[[Path], PatternSource]]


class _Walk:
    """State shared by every step of one walk."""

    def __init__(
        self,
        root: Path,
        budget: TraversalBudget,
        purpose: Purpose,
        engine: ExclusionEngine,
        clock: Callable[[], float],
    ) -> None:
        self.root = root
        self.budget = budget
        self.purpose = purpose
        self.engine = engine
        self.clock = clock
        self.started = clock()
        self.recorder = SkipRecorder()
        # Identities of the directories currently being expanded
        self.ancestors: Set[FileIdentifier] = set()

    def elapsed_ms(self) -> float:
        return (self.clock() - self.started) * 1000

    def out_of_time(self) -> bool:
        return self.budget.timeout_ms is not None and self.elapsed_ms() > self.budget.timeout_ms

    def finish(self) -> SkipReport:
        for pattern in self.engine.pattern_set.malformed:
            self.recorder.record(SkipReason.PATTERN_MALFORMED, str(pattern))
        return self.recorder.build()


class DirectoryWalker:
    """Walks directory structures under a traversal budget.

    One :class:`ExclusionEngine` is created per root on first use and reused by
    later walks of the same root, so cached decisions carry over as long as its
    patterns do not change.

    Attributes:
        pattern_source: Provider of VCS-ignore and user patterns. Either a
            PatternSource shared by every root, or a callable that takes a root and
            returns one (such as ``FilePatternSource``).
        include_defaults (bool): Whether engines get the built-in system patterns.
        sniff_binary_content (bool): Whether engines sample files with unknown
            extensions for binary content.

    Example:
        >>> walker = DirectoryWalker()  # doctest: +SKIP
        >>> tree, report = walker.build_tree("src")  # doctest: +SKIP
        >>> files, report = walker.find_files("src", include_patterns=[r"\\.py$"])  # doctest: +SKIP
    """

    def __init__(
        self,
        pattern_source: Optional[PatternSourceArg] = None,
        include_defaults: bool = True,
        sniff_binary_content: bool = False,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize a DirectoryWalker.

        Args:
            pattern_source: Provider of VCS-ignore and user patterns, or a callable
                building one for a root. Defaults to no extra patterns.
            include_defaults: Whether engines get the built-in system patterns.
            sniff_binary_content: Whether engines sample files with unknown
                extensions for binary content under ``Purpose.CONTENT``.
            logger: Logger for walk progress and skips. Defaults to this module's
                logger.
            clock: Monotonic clock in seconds used for the time limit.
        """
        self.pattern_source = pattern_source
        self.include_defaults = include_defaults
        self.sniff_binary_content = sniff_binary_content
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock
        self._engines: Dict[Path, ExclusionEngine] = {}

    def engine_for(self, root: PathType) -> ExclusionEngine:
        """Return the exclusion engine for a root, creating it on first use."""
        key = Path(os.path.abspath(root))
        engine = self._engines.get(key)
        if engine is None:
            source = self.pattern_source
            if source is not None and not isinstance(source, PatternSource):
                source = source(key)
            engine = ExclusionEngine(
                key,
                pattern_source=source,
                include_defaults=self.include_defaults,
                sniff_binary_content=self.sniff_binary_content,
                logger=self.logger,
            )
            self._engines[key] = engine
        return engine

    def build_tree(
        self,
        root: PathType,
        budget: Optional[TraversalBudget] = None,
        purpose: Purpose = Purpose.TREE,
    ) -> Tuple[FileSystemNode, SkipReport]:
        """Build an in-memory tree of everything under ``root`` that is not excluded.

        Directories at the depth limit appear as nodes without children. The same
        happens to directories reached after the time limit and to symlink loops.
        Binary files left out for a purpose other than TREE are listed in the
        report, as :meth:`find_files` does.

        Args:
            root: Directory to walk.
            budget: Limits for this walk. Defaults to ``TraversalBudget()``.
            purpose: Purpose passed to the exclusion engine. Defaults to TREE.

        Returns:
            The root node of the tree and the walk's skip report.

        Raises:
            RootPathError: If the root does not exist, is not a directory or cannot
                be listed.
        """
        root_path = self._check_root(root)
        walk = self._start(root_path, budget, purpose)

        tree = FileSystemNode(root_path.name or str(root_path), absolute_path=str(root_path), is_dir=True)
        self._grow(walk, tree, root_path, 0)

        report = walk.finish()
        self.logger.info("Built tree of %s (%s): %d path(s) skipped", root_path, purpose.value, report.total_skipped)
        return tree, report

    def build_trees(
        self,
        roots: Iterable[PathType],
        budget: Optional[TraversalBudget] = None,
        purpose: Purpose = Purpose.TREE,
    ) -> Tuple[List[FileSystemNode], SkipReport]:
        """Build one tree per root and merge their skip reports."""
        trees: List[FileSystemNode] = []
        reports: List[SkipReport] = []
        for root in roots:
            tree, report = self.build_tree(root, budget, purpose)
            trees.append(tree)
            reports.append(report)
        return trees, SkipReport.merge(reports)

    def find_files(
        self,
        root: PathType,
        budget: Optional[TraversalBudget] = None,
        purpose: Purpose = Purpose.CONTENT,
        ignore_paths: Sequence[str] = (),
        ignore_patterns: Sequence[str] = (),
        include_patterns: Sequence[str] = (),
    ) -> Tuple[List[str], SkipReport]:
        """List the files under ``root`` whose content may be used.

        Every entry passes through, in order: the symlink loop guard, the
        ``ignore_paths`` substring check, the ``ignore_patterns`` regular
        expressions, the exclusion engine and, for files, the ``include_patterns``
        allow-list. When any include pattern is given, a file must match at least
        one of them to be kept. Invalid regular expressions never match and are
        reported as malformed patterns.

        Args:
            root: Directory to walk.
            budget: Limits for this walk. Defaults to ``TraversalBudget()``.
            purpose: Purpose passed to the exclusion engine. Defaults to CONTENT.
            ignore_paths: Substrings; entries whose absolute path contains one are
                skipped.
            ignore_patterns: Regular expressions searched in absolute paths; matching
                entries are skipped.
            include_patterns: Regular expressions searched in absolute file paths.

        Returns:
            Sorted absolute file paths, without duplicates of the same underlying
            file (hard links included; files on filesystems without inode numbers
            are told apart by path), and the walk's skip report.

        Raises:
            RootPathError: If the root does not exist, is not a directory or cannot
                be listed.
        """
        root_path = self._check_root(root)
        walk = self._start(root_path, budget, purpose)
        filters = _Filters(
            ignore_paths=list(ignore_paths),
            ignore_regexes=self._compile_regexes(walk, ignore_patterns),
            include_regexes=self._compile_regexes(walk, include_patterns),
            allow_list=bool(include_patterns),
        )

        found: Dict[Union[FileIdentifier, str], str] = {}
        self._collect(walk, root_path, 0, filters, found)

        report = walk.finish()
        self.logger.info(
            "Found %d file(s) under %s (%s): %d path(s) skipped",
            len(found),
            root_path,
            purpose.value,
            report.total_skipped,
        )
        return sorted(found.values()), report

    def find_files_in_roots(
        self,
        roots: Iterable[PathType],
        budget: Optional[TraversalBudget] = None,
        purpose: Purpose = Purpose.CONTENT,
        ignore_paths: Sequence[str] = (),
        ignore_patterns: Sequence[str] = (),
        include_patterns: Sequence[str] = (),
    ) -> Tuple[List[str], SkipReport]:
        """Run :meth:`find_files` on several roots and merge the results.

        Each root gets its own time limit. A path found under more than one root is
        listed once, in the position of its first occurrence.
        """
        files: List[str] = []
        seen: Set[str] = set()
        reports: List[SkipReport] = []
        for root in roots:
            root_files, report = self.find_files(
                root, budget, purpose, ignore_paths, ignore_patterns, include_patterns
            )
            for path in root_files:
                if path not in seen:
                    seen.add(path)
                    files.append(path)
            reports.append(report)
        return files, SkipReport.merge(reports)

    def _start(self, root: Path, budget: Optional[TraversalBudget], purpose: Purpose) -> _Walk:
        engine = self.engine_for(root)
        engine.clear_errors()
        return _Walk(root, budget or TraversalBudget(), purpose, engine, self.clock)

    def _check_root(self, root: PathType) -> Path:
        path = Path(os.path.abspath(root))
        if not path.exists():
            raise RootPathError(os.fspath(root), "does not exist")
        if not path.is_dir():
            raise RootPathError(os.fspath(root), "is not a directory")
        return path

    def _grow(self, walk: _Walk, node: FileSystemNode, path: Path, depth: int) -> None:
        with self._visiting(walk, path, depth) as entries:
            if entries is None:
                return
            for entry in entries:
                if entry.is_dir:
                    if walk.engine.should_exclude(entry.path, EntryKind.DIRECTORY, walk.purpose):
                        continue
                    child = FileSystemNode(entry.name, parent=node, absolute_path=str(entry.path), is_dir=True)
                    self._grow(walk, child, entry.path, depth + 1)
                elif self._within_size(walk, entry) and self._keeps_file(walk, entry):
                    FileSystemNode(entry.name, parent=node, absolute_path=str(entry.path))

    def _collect(
        self,
        walk: _Walk,
        path: Path,
        depth: int,
        filters: _Filters,
        found: Dict[Union[FileIdentifier, str], str],
    ) -> None:
        with self._visiting(walk, path, depth) as entries:
            if entries is None:
                return
            for entry in entries:
                location = str(entry.path)
                if entry.is_dir:
                    if self._ignored(location, filters):
                        continue
                    if walk.engine.should_exclude(entry.path, EntryKind.DIRECTORY, walk.purpose):
                        continue
                    self._collect(walk, entry.path, depth + 1, filters, found)
                    continue

                if not self._within_size(walk, entry) or self._ignored(location, filters):
                    continue
                if not self._keeps_file(walk, entry):
                    continue
                if filters.allow_list and not any(regex.search(location) for regex in filters.include_regexes):
                    continue
                # Hard links share an identity and are listed once
                found.setdefault(entry.file_id if entry.file_id.is_known else location, location)

    @contextmanager
    def _visiting(self, walk: _Walk, path: Path, depth: int) -> Iterator[Optional[List[_Entry]]]:
        """Enter a directory and yield its entries, or None if it is not expanded."""
        key = str(path)

        if walk.out_of_time():
            self.logger.info("Time limit reached after %.0f ms, not entering %s", walk.elapsed_ms(), path)
            walk.recorder.record(SkipReason.DIRECTORY_TIMED_OUT, key)
            walk.recorder.set_state(key, DirectoryState.TIMED_OUT)
            yield None
            return

        try:
            file_id = FileIdentifier.from_stat(os.stat(path))
        except OSError as e:
            self._unreadable(walk, path, depth, e)
            yield None
            return

        if file_id.is_known and file_id in walk.ancestors:
            self.logger.info("Symlink loop detected at %s", path)
            walk.recorder.record(SkipReason.SYMLINK_LOOP_DETECTED, key)
            walk.recorder.set_state(key, DirectoryState.LOOP_DETECTED)
            yield None
            return

        if depth >= walk.budget.max_depth:
            self.logger.debug("Depth limit %d reached at %s", walk.budget.max_depth, path)
            yield None
            return

        walk.recorder.set_state(key, DirectoryState.VISITING)
        try:
            names = sorted(os.listdir(path))
        except OSError as e:
            self._unreadable(walk, path, depth, e)
            yield None
            return

        entries = self._stat_entries(walk, path, names)
        walk.ancestors.add(file_id)
        try:
            yield entries
        finally:
            walk.ancestors.discard(file_id)
        walk.recorder.set_state(key, DirectoryState.COMPLETED)

    def _stat_entries(self, walk: _Walk, path: Path, names: List[str]) -> List[_Entry]:
        entries: List[_Entry] = []
        for name in names:
            child = path / name
            try:
                st = os.stat(child)
            except OSError as e:
                self.logger.warning("Cannot stat %s: %s", child, e.strerror or e)
                walk.recorder.record(SkipReason.PATH_UNREADABLE, str(child))
                continue
            is_dir = stat.S_ISDIR(st.st_mode)
            entries.append(_Entry(name, child, is_dir, st.st_size, FileIdentifier.from_stat(st)))

        # Directories first; the sort is stable so each group stays sorted by name
        entries.sort(key=lambda entry: not entry.is_dir)
        return entries

    def _keeps_file(self, walk: _Walk, entry: _Entry) -> bool:
        if not walk.engine.should_exclude(entry.path, EntryKind.FILE, walk.purpose):
            return True
        if walk.purpose is not Purpose.TREE and self._is_binary(walk, entry.path):
            walk.recorder.record(SkipReason.BINARY_CONTENT, str(entry.path))
        return False

    def _is_binary(self, walk: _Walk, path: Path) -> bool:
        # Media counts as binary only where it is left out for being media
        if walk.engine.is_media(path):
            return walk.purpose is Purpose.CONTENT
        return walk.engine.is_binary(path)

    def _unreadable(self, walk: _Walk, path: Path, depth: int, error: OSError) -> None:
        if depth == 0:
            raise RootPathError(str(path), error.strerror or str(error)) from error
        self.logger.warning("Cannot read directory %s: %s", path, error.strerror or error)
        walk.recorder.record(SkipReason.PATH_UNREADABLE, str(path))
        walk.recorder.set_state(str(path), DirectoryState.UNREADABLE)

    def _within_size(self, walk: _Walk, entry: _Entry) -> bool:
        if walk.budget.allows_size(entry.size):
            return True
        self.logger.info("Skipping %s: %d bytes exceeds the size limit", entry.path, entry.size)
        walk.recorder.record(SkipReason.PATH_TOO_LARGE, str(entry.path))
        return False

    def _ignored(self, location: str, filters: _Filters) -> bool:
        if any(fragment in location for fragment in filters.ignore_paths):
            return True
        return any(regex.search(location) for regex in filters.ignore_regexes)

    def _compile_regexes(self, walk: _Walk, patterns: Sequence[str]) -> List["re.Pattern[str]"]:
        compiled = []
        for pattern in patterns:
            try:
                compiled.append(re.compile(pattern))
            except re.error as e:
                self.logger.warning("Invalid regular expression %r will never match: %s", pattern, e)
                walk.recorder.record(SkipReason.PATTERN_MALFORMED, pattern)
        return compiled
