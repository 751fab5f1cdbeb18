"""Purpose-aware exclusion decisions for paths under one root."""

import logging
import os
import stat
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ctxtree.config import PatternSource
from ctxtree.types import EntryKind, Origin, PathType, Purpose

from .file_classifier import is_binary_extension, is_media_file, is_system_file, looks_binary
from .pattern_set import PatternSet

DecisionKey = Tuple[Purpose, str, EntryKind]


class ExclusionEngine:
    """Decides whether a path under a root is excluded for a given purpose.

    The engine wraps a :class:`PatternSet` for one root and resolves every query with
    a single precedence:

    1. Paths outside the root are excluded; the root itself never is.
    2. A path inside an excluded directory is excluded, except that tree views
       (``Purpose.TREE``) always surface media files.
    3. OS metadata files are always excluded. Media files are excluded from
       ``Purpose.CONTENT``. Other binary files, known by extension or by sampled
       content, are excluded from both ``Purpose.CONTENT`` and
       ``Purpose.STRICT_TREE``; tree views leave them to the patterns.
    4. Otherwise the path is excluded if the pattern set matches it, a negation rule
       notwithstanding. ``Purpose.TREE`` skips this step for media files;
       ``Purpose.STRICT_TREE`` never does.

    Decisions are memoized per ``(purpose, relative path, kind)``. The cache is
    dropped automatically whenever the pattern set changes.

    Attributes:
        root (Path): Absolute path of the root directory.
        pattern_set (PatternSet): The rules consulted in step 4.
        sniff_binary_content (bool): Whether files with unknown extensions are
            sampled for binary content under ``Purpose.CONTENT`` and
            ``Purpose.STRICT_TREE``.
        errors (List[Tuple[str, str]]): Paths that could not be resolved, with the
            reason. Such paths are excluded. Walkers clear the list at the start of
            each walk.

    Example:
        >>> engine = ExclusionEngine("/project")
        >>> engine.add_patterns(["*.md"], Origin.USER_CONFIG)
        >>> engine.should_exclude("/project/README.md", EntryKind.FILE, Purpose.CONTENT)
        True
        >>> engine.should_exclude("/project/logo.png", EntryKind.FILE, Purpose.CONTENT)
        True
        >>> engine.should_exclude("/project/logo.png", EntryKind.FILE, Purpose.TREE)
        False
        >>> engine.should_exclude("/project/node_modules/x.js", EntryKind.FILE, Purpose.TREE)
        True
    """

    def __init__(
        self,
        root: PathType,
        pattern_set: Optional[PatternSet] = None,
        pattern_source: Optional[PatternSource] = None,
        include_defaults: bool = True,
        sniff_binary_content: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            root: Root directory that paths are resolved against.
            pattern_set: Rules to use. Defaults to a new set for ``root``, seeded
                with the built-in system patterns if ``include_defaults`` is True.
            pattern_source: Optional provider of VCS-ignore and user patterns, which
                are added to the pattern set.
            include_defaults: Whether a newly created pattern set gets the system
                patterns. Ignored when ``pattern_set`` is given.
            sniff_binary_content: Sample files with unknown extensions for binary
                content when evaluating ``Purpose.CONTENT`` or ``Purpose.STRICT_TREE``.
            logger: Logger for decisions and failures. Defaults to this module's
                logger.
        """
        self.root = Path(os.path.abspath(root))
        self.logger = logger or logging.getLogger(__name__)
        self.sniff_binary_content = sniff_binary_content

        if pattern_set is None:
            if include_defaults:
                pattern_set = PatternSet.with_defaults(self.root, logger=self.logger)
            else:
                pattern_set = PatternSet(self.root, logger=self.logger)
        self.pattern_set = pattern_set

        if pattern_source is not None:
            self.pattern_set.add_patterns(pattern_source.get_vcs_ignore_patterns(), Origin.VCS_IGNORE)
            self.pattern_set.add_patterns(pattern_source.get_user_patterns(), Origin.USER_CONFIG)

        self.errors: List[Tuple[str, str]] = []
        self._cache: Dict[DecisionKey, bool] = {}
        self._cache_version = self.pattern_set.version
        self._sniffed: Dict[str, bool] = {}
        # Reentrant: ancestor checks resolve recursively under the lock
        self._lock = threading.RLock()

    def add_patterns(self, patterns: Iterable[str], origin: Origin) -> None:
        """Add rules to the pattern set and invalidate every cached decision."""
        with self._lock:
            self.pattern_set.add_patterns(patterns, origin)
            self.clear_cache()

    def clear_errors(self) -> None:
        """Forget the recorded failures."""
        with self._lock:
            self.errors.clear()

    def clear_cache(self) -> None:
        """Forget every cached decision."""
        with self._lock:
            self._cache.clear()
            self._cache_version = self.pattern_set.version
            self.logger.debug("Decision cache cleared for %s", self.root)

    @property
    def cache_size(self) -> int:
        """Number of cached decisions."""
        return len(self._cache)

    def should_exclude(
        self,
        path: PathType,
        kind: Optional[EntryKind] = None,
        purpose: Purpose = Purpose.CONTENT,
    ) -> bool:
        """Decide whether a path is excluded for the given purpose.

        This never raises. A path outside the root, or one whose kind has to be
        determined and cannot be, is excluded and recorded in :attr:`errors`.

        Args:
            path: Absolute path, or path relative to the root.
            kind: Whether the path is a file or a directory. When None the path is
                stat-ed to find out.
            purpose: Why the path is being evaluated.

        Returns:
            True if the path should be left out, False if it should be kept.
        """
        relative = self.pattern_set.relativize(path)
        if relative is None:
            self._report(path, "path is outside the root")
            return True
        if not relative:
            return False

        if kind is None:
            kind = self._stat_kind(relative)
            if kind is None:
                return True

        return self._resolve(relative, kind, purpose)

    def is_binary(self, path: PathType) -> bool:
        """Whether the path has a binary extension, or was sampled as binary content."""
        if is_binary_extension(path):
            return True
        relative = self.pattern_set.relativize(path)
        return relative is not None and self._sniffed.get(relative, False)

    def is_media(self, path: PathType) -> bool:
        """Whether the path names an image, audio or video file."""
        return is_media_file(path)

    def is_system_file(self, path: PathType) -> bool:
        """Whether the path names an OS metadata file."""
        return is_system_file(path)

    def _resolve(self, relative: str, kind: EntryKind, purpose: Purpose) -> bool:
        with self._lock:
            if self._cache_version != self.pattern_set.version:
                self.clear_cache()

            key = (purpose, relative, kind)
            cached = self._cache.get(key)
            if cached is not None:
                return cached

            decision = self._decide(relative, kind, purpose)
            self._cache[key] = decision
            return decision

    def _decide(self, relative: str, kind: EntryKind, purpose: Purpose) -> bool:
        is_file = kind is EntryKind.FILE
        media = is_file and is_media_file(relative)
        # Tree views surface media files even inside ignored directories
        media_override = media and purpose is Purpose.TREE

        parent = relative.rpartition("/")[0]
        if parent and not media_override and self._resolve(parent, EntryKind.DIRECTORY, purpose):
            self.logger.debug("Excluding %s: inside excluded directory %s (%s)", relative, parent, purpose.value)
            return True

        if is_system_file(relative):
            self.logger.debug("Excluding system file %s", relative)
            return True

        if media and purpose is Purpose.CONTENT:
            self.logger.debug("Excluding media file %s from content", relative)
            return True

        # Non-media binaries are left out of strict trees as well
        if is_file and not media and purpose is not Purpose.TREE and self._is_binary(relative):
            self.logger.debug("Excluding %s: binary content (%s)", relative, purpose.value)
            return True

        if media_override:
            return False

        matched, origin = self.pattern_set.match(relative, is_directory=not is_file)
        if matched and origin is not None:
            self.logger.debug("Excluding %s by %s pattern (%s)", relative, origin.value, purpose.value)
            return True

        return False

    def _stat_kind(self, relative: str) -> Optional[EntryKind]:
        path = self.root / relative
        try:
            mode = os.stat(path).st_mode
        except OSError as e:
            self._report(path, f"cannot stat: {e.strerror or e}")
            return None
        return EntryKind.DIRECTORY if stat.S_ISDIR(mode) else EntryKind.FILE

    def _is_binary(self, relative: str) -> bool:
        if is_binary_extension(relative):
            return True
        return self.sniff_binary_content and self._sniff(relative)

    def _sniff(self, relative: str) -> bool:
        if relative not in self._sniffed:
            try:
                self._sniffed[relative] = looks_binary(self.root / relative)
            except OSError as e:
                self._report(self.root / relative, f"cannot read: {e.strerror or e}")
                # Unreadable content is treated as binary so that it stays out
                self._sniffed[relative] = True
        return self._sniffed[relative]

    def _report(self, path: PathType, reason: str) -> None:
        self.logger.warning("Excluding %s: %s", path, reason)
        self.errors.append((os.fspath(path), reason))
