"""Origin-tagged exclusion patterns using .gitignore-style glob syntax."""

import logging
import os
import re
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pathspec.patterns import GitWildMatchPattern  # type: ignore

from ctxtree.config import read_ignore_file
from ctxtree.types import Origin, PathType

from .base_rules import BaseExclusionRules
from .file_classifier import BINARY_EXTENSIONS

# Dependency, build and VCS directories that never belong in any output
DEFAULT_IGNORED_DIRS = (
    "node_modules",
    "bower_components",
    "dist",
    "build",
    "coverage",
    "target",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".tox",
    "venv",
    ".venv",
    ".git",
    ".svn",
    ".hg",
    ".idea",
    ".vscode",
    ".next",
    ".cache",
    ".aicontext",
)

# Lock files, ignore files and secrets
DEFAULT_IGNORED_FILES = (
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "Gemfile.lock",
    "poetry.lock",
    "Cargo.lock",
    ".gitignore",
    ".npmignore",
    ".dockerignore",
    ".eslintignore",
    ".prettierignore",
    ".env",
    ".env.local",
    ".env.development",
    ".env.test",
    ".env.production",
)

# Matching order when several origins match: the most specific source is reported
_NARROWEST_FIRST = (Origin.USER_CONFIG, Origin.VCS_IGNORE, Origin.SYSTEM)


@dataclass(frozen=True)
class Pattern:
    """A single exclusion rule.

    Attributes:
        rule (str): Glob text with any leading ``!`` removed.
        origin (Origin): Where the rule came from.
        negated (bool): True if the rule re-includes paths instead of excluding them.

    Example:
        >>> Pattern.parse("!important.log", Origin.USER_CONFIG)
        Pattern(rule='important.log', origin=<Origin.USER_CONFIG: 'user-config'>, negated=True)
        >>> str(Pattern.parse("*.log", Origin.SYSTEM))
        '*.log'
    """

    rule: str
    origin: Origin
    negated: bool = False

    @classmethod
    def parse(cls, text: str, origin: Origin) -> "Pattern":
        if text.startswith("!"):
            return cls(text[1:], origin, negated=True)
        return cls(text, origin)

    def __str__(self) -> str:
        return f"!{self.rule}" if self.negated else self.rule


class _CompiledRule:
    """Match-time form of a Pattern: a gitwildmatch regex or a literal fallback."""

    def __init__(self, rule: str) -> None:
        self.literal: Optional[str] = None
        self.regex: Optional["re.Pattern[str]"] = None
        self.basename_style = False

        glob = normalize_glob(rule)
        try:
            compiled = GitWildMatchPattern(glob)
        except (ValueError, re.error):
            self.literal = glob.strip().strip("/")
            return

        # Blank lines and comments compile to a pattern that never matches
        if compiled.include is not None:
            self.regex = compiled.regex
            self.basename_style = "/" not in glob.rstrip("/")

    @property
    def malformed(self) -> bool:
        return self.literal is not None

    def matches(self, relative_path: str, is_directory: bool) -> bool:
        basename = relative_path.rsplit("/", 1)[-1]

        if self.literal is not None:
            return self.literal in (relative_path, basename)

        if self.regex is None:
            return False

        candidates = [relative_path]
        if self.basename_style and basename != relative_path:
            candidates.append(basename)
        if is_directory:
            candidates.extend([candidate + "/" for candidate in candidates])

        return any(self.regex.match(candidate) is not None for candidate in candidates)


def normalize_glob(rule: str) -> str:
    """Rewrite the rule spellings that gitwildmatch does not understand.

    A ``./`` prefix anchors the rule at the base directory, which gitwildmatch
    spells with a leading ``/``.

    Example:
        >>> normalize_glob("./src/*.js")
        '/src/*.js'
        >>> normalize_glob("*.log")
        '*.log'
    """
    if rule.startswith("./"):
        return "/" + rule[2:].lstrip("/")
    return rule


class PatternSet(BaseExclusionRules):
    """Origin-tagged set of exclusion patterns scoped to one base directory.

    Patterns are grouped by origin and are unordered within an origin. A rule
    starting with ``!`` is a negation: it re-includes a path excluded by a rule of
    equal or lower precedence and never excludes anything by itself. System defaults
    rank below VCS-ignore and user configuration rules, which rank equally.

    Raw rule text is kept as given so that it can be shown in diagnostics; glob
    normalization and compilation happen lazily at match time. Every mutation bumps
    :attr:`version`, which consumers use to invalidate cached decisions.

    Supported glob syntax:
    - ``*`` matches within one path segment, ``**`` across segments
    - a trailing ``/`` only matches directories, and everything beneath them
    - a leading ``./`` (or ``/``) anchors the rule at the base directory
    - a rule without ``/`` (e.g. ``*.log``) matches the basename at any depth

    Matching is case-sensitive. A rule that cannot be compiled is matched as a
    literal path or basename and listed in :attr:`malformed`.

    Attributes:
        base_dir (Path): Directory that relative paths are computed against.

    Example:
        >>> patterns = PatternSet("/project")
        >>> patterns.add_patterns(["*.log", "!keep.log"], Origin.USER_CONFIG)
        >>> patterns.match("logs/app.log", is_directory=False)
        (True, <Origin.USER_CONFIG: 'user-config'>)
        >>> patterns.match("logs/keep.log", is_directory=False)
        (False, None)
        >>> patterns.exclude("logs/")
        False
    """

    def __init__(self, base_dir: PathType, logger: Optional[logging.Logger] = None) -> None:
        """Create an empty PatternSet.

        Args:
            base_dir: Directory that relative paths are computed against.
            logger: Logger for diagnostics. Defaults to this module's logger.
        """
        self.base_dir = Path(os.path.abspath(base_dir))
        self.logger = logger or logging.getLogger(__name__)
        self._rules: Dict[Origin, List[Pattern]] = {origin: [] for origin in Origin}
        self._negations: Dict[Origin, List[Pattern]] = {origin: [] for origin in Origin}
        self._compiled: Dict[str, _CompiledRule] = {}
        self._version = 0

    @classmethod
    def with_defaults(cls, base_dir: PathType, logger: Optional[logging.Logger] = None) -> "PatternSet":
        """Create a PatternSet seeded with the built-in SYSTEM patterns.

        The defaults cover dependency/build/VCS directories, lock and ignore files,
        and every binary extension that is not a media type.

        Example:
            >>> patterns = PatternSet.with_defaults("/project")
            >>> patterns.match("node_modules", is_directory=True)
            (True, <Origin.SYSTEM: 'system'>)
            >>> patterns.match("bin/tool.exe", is_directory=False)[0]
            True
            >>> patterns.match("assets/logo.png", is_directory=False)[0]
            False
        """
        patterns = cls(base_dir, logger=logger)
        patterns.add_patterns([f"{name}/" for name in DEFAULT_IGNORED_DIRS], Origin.SYSTEM)
        patterns.add_patterns(DEFAULT_IGNORED_FILES, Origin.SYSTEM)
        patterns.add_patterns(sorted(f"*{ext}" for ext in BINARY_EXTENSIONS), Origin.SYSTEM)
        return patterns

    @property
    def version(self) -> int:
        """Counter incremented by every mutation."""
        return self._version

    def add_patterns(self, patterns: Iterable[str], origin: Origin) -> None:
        """Add raw rules from one origin.

        Args:
            patterns: Rule strings. A leading ``!`` marks a negation. Entries that are
                not strings are ignored.
            origin: Provenance of the rules.
        """
        added = 0
        for text in patterns:
            if not isinstance(text, str):
                continue
            pattern = Pattern.parse(text, origin)
            target = self._negations if pattern.negated else self._rules
            if pattern not in target[origin]:
                target[origin].append(pattern)
                added += 1

        if added:
            self._version += 1
            self.logger.debug("Added %d %s pattern(s) for %s", added, origin.value, self.base_dir)

    def add_pattern(self, pattern: str, origin: Origin = Origin.USER_CONFIG) -> None:
        """Add a single raw rule."""
        self.add_patterns([pattern], origin)

    def patterns(self, origin: Optional[Origin] = None) -> List[Pattern]:
        """Return the non-negated rules, optionally restricted to one origin."""
        origins = [origin] if origin is not None else list(Origin)
        return [pattern for o in origins for pattern in self._rules[o]]

    def negations(self, origin: Optional[Origin] = None) -> List[Pattern]:
        """Return the negation rules, optionally restricted to one origin."""
        origins = [origin] if origin is not None else list(Origin)
        return [pattern for o in origins for pattern in self._negations[o]]

    @property
    def malformed(self) -> List[Pattern]:
        """Rules that could not be compiled and are matched literally."""
        return [
            pattern
            for pattern in self.patterns() + self.negations()
            if self._compile(pattern.rule).malformed
        ]

    def __len__(self) -> int:
        return sum(len(rules) for rules in self._rules.values()) + sum(
            len(rules) for rules in self._negations.values()
        )

    def describe(self) -> Dict[str, int]:
        """Summarize the number of rules per origin, for diagnostics.

        Example:
            >>> patterns = PatternSet("/project")
            >>> patterns.add_patterns(["*.md", "!README.md"], Origin.USER_CONFIG)
            >>> patterns.describe()["user-config"]
            1
            >>> patterns.describe()["negations"]
            1
        """
        summary = {origin.value: len(self._rules[origin]) for origin in Origin}
        summary["negations"] = len(self.negations())
        return summary

    def relativize(self, path: PathType) -> Optional[str]:
        """Express a path relative to :attr:`base_dir` with forward slashes.

        Relative paths are taken to be relative to the base directory already. The
        base directory itself maps to the empty string.

        Returns:
            The relative path, or None if the path lies outside the base directory.

        Example:
            >>> patterns = PatternSet("/project")
            >>> patterns.relativize("/project/src/main.py")
            'src/main.py'
            >>> patterns.relativize("src/../README.md")
            'README.md'
            >>> patterns.relativize("/elsewhere/file") is None
            True
        """
        raw = os.fspath(path)
        if not os.path.isabs(raw):
            raw = os.path.join(self.base_dir, raw)
        try:
            relative = os.path.relpath(os.path.normpath(raw), self.base_dir)
        except ValueError:
            # Different drive on Windows
            return None

        if relative == os.curdir:
            return ""
        if relative == os.pardir or relative.startswith(os.pardir + os.sep):
            return None
        return relative.replace(os.sep, "/")

    def match(self, relative_path: str, is_directory: bool) -> Tuple[bool, Optional[Origin]]:
        """Match a relative path against every rule.

        A non-negated match is cancelled by any negation rule of equal or higher
        precedence that also matches. When several origins match, the narrowest one is
        reported: user configuration, then VCS-ignore, then system.

        Args:
            relative_path: Path relative to :attr:`base_dir`, using ``/`` separators.
            is_directory: Whether the path names a directory.

        Returns:
            ``(True, origin)`` for an excluding match, otherwise ``(False, None)``.
        """
        relative_path = relative_path.strip("/")
        if not relative_path:
            return False, None

        for origin in _NARROWEST_FIRST:
            if not any(self._matches(pattern, relative_path, is_directory) for pattern in self._rules[origin]):
                continue
            if self._is_reincluded(relative_path, is_directory, origin):
                self.logger.debug("%s re-included by negation over %s rules", relative_path, origin.value)
                continue
            return True, origin

        return False, None

    def exclude(self, path: str) -> bool:
        """Check a relative path; a trailing ``/`` marks it as a directory."""
        return self.match(path, is_directory=path.endswith("/"))[0]

    def load_rules(self, rules_files: Union[PathType, Sequence[PathType]]) -> None:
        """Load .gitignore-syntax files as VCS-ignore rules.

        Raises:
            FileNotFoundError: If any rules file does not exist.
        """
        if isinstance(rules_files, (str, PathLike)):
            rules_files = [rules_files]

        for rules_file in rules_files:
            path = Path(rules_file)
            if not path.exists():
                raise FileNotFoundError(f"Rules file not found: {path}")
            self.add_patterns(read_ignore_file(path), Origin.VCS_IGNORE)

    def add_rule(self, rule: str) -> None:
        """Add a single user configuration rule."""
        self.add_patterns([rule], Origin.USER_CONFIG)

    def _is_reincluded(self, relative_path: str, is_directory: bool, matched_origin: Origin) -> bool:
        for origin in Origin:
            if origin.precedence < matched_origin.precedence:
                continue
            if any(self._matches(pattern, relative_path, is_directory) for pattern in self._negations[origin]):
                return True
        return False

    def _matches(self, pattern: Pattern, relative_path: str, is_directory: bool) -> bool:
        return self._compile(pattern.rule).matches(relative_path, is_directory)

    def _compile(self, rule: str) -> _CompiledRule:
        compiled = self._compiled.get(rule)
        if compiled is None:
            compiled = _CompiledRule(rule)
            if compiled.malformed:
                self.logger.warning("Malformed pattern %r will be matched literally", rule)
            self._compiled[rule] = compiled
        return compiled
