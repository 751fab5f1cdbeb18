"""Sources of user and VCS-ignore patterns.

The exclusion engine does not know where its patterns come from. It asks a
:class:`PatternSource` for two plain lists of glob strings: the user's configured
patterns and the patterns of the version-control ignore file.

The file-backed source reads user patterns from a JSON file shaped like::

    {"patterns": ["*.md", "docs/", "!docs/index.md"]}

looked up at ``<root>/.aicontext/ignore.json`` first and ``~/.aicontext/ignore.json``
second, and VCS-ignore patterns from ``<root>/.gitignore``.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional

from ctxtree.exceptions import ConfigError
from ctxtree.types import PathType

CONFIG_DIR_NAME = ".aicontext"
IGNORE_FILE_NAME = "ignore.json"
GITIGNORE_FILE_NAME = ".gitignore"


def read_ignore_file(path: PathType) -> List[str]:
    """Read the rule lines of a .gitignore-style file.

    Blank lines and ``#`` comments are dropped; trailing whitespace is stripped.

    Raises:
        OSError: If the file cannot be read.
    """
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        lines = f.read().splitlines()
    return [line.rstrip() for line in lines if line.strip() and not line.lstrip().startswith("#")]


class PatternSource(ABC):
    """Provider of origin-tagged raw glob patterns for one root."""

    @abstractmethod
    def get_user_patterns(self) -> List[str]:
        """Return the patterns configured by the user."""

    @abstractmethod
    def get_vcs_ignore_patterns(self) -> List[str]:
        """Return the patterns of the version-control ignore file."""


class StaticPatternSource(PatternSource):
    """Pattern source backed by in-memory lists.

    Example:
        >>> source = StaticPatternSource(user_patterns=["*.md"])
        >>> source.get_user_patterns()
        ['*.md']
        >>> source.get_vcs_ignore_patterns()
        []
    """

    def __init__(self, user_patterns: Iterable[str] = (), vcs_patterns: Iterable[str] = ()) -> None:
        self.user_patterns = list(user_patterns)
        self.vcs_patterns = list(vcs_patterns)

    def get_user_patterns(self) -> List[str]:
        return list(self.user_patterns)

    def get_vcs_ignore_patterns(self) -> List[str]:
        return list(self.vcs_patterns)


class FilePatternSource(PatternSource):
    """Pattern source reading a JSON pattern config and the root's .gitignore.

    Files are read on every call, so edits made between walks are picked up.

    Attributes:
        root (Path): Directory whose .gitignore is read.
        config_file (Optional[Path]): Explicit JSON config file, if one was given.

    Example:
        >>> import tempfile
        >>> with tempfile.TemporaryDirectory() as tmpdir:
        ...     _ = (Path(tmpdir) / ".gitignore").write_text("*.log\\n# comment\\n")
        ...     source = FilePatternSource(tmpdir, home_dir=tmpdir)
        ...     source.get_vcs_ignore_patterns()
        ['*.log']
    """

    def __init__(
        self,
        root: PathType,
        config_file: Optional[PathType] = None,
        home_dir: Optional[PathType] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the source.

        Args:
            root: Directory whose .gitignore and local config are read.
            config_file: Explicit JSON config file. When given it must exist.
            home_dir: Directory holding the global config. Defaults to the user's
                home directory.
            logger: Logger for diagnostics. Defaults to this module's logger.

        Raises:
            FileNotFoundError: If an explicit config file does not exist.
        """
        self.root = Path(root)
        self.config_file = Path(config_file) if config_file is not None else None
        self.home_dir = Path(home_dir) if home_dir is not None else Path.home()
        self.logger = logger or logging.getLogger(__name__)

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_file}")

    def find_config_file(self) -> Optional[Path]:
        """Locate the JSON config that applies to this root, if any."""
        if self.config_file is not None:
            return self.config_file

        for candidate in (
            self.root / CONFIG_DIR_NAME / IGNORE_FILE_NAME,
            self.home_dir / CONFIG_DIR_NAME / IGNORE_FILE_NAME,
        ):
            if candidate.is_file():
                return candidate
        return None

    def get_user_patterns(self) -> List[str]:
        """Read the ``patterns`` list of the applicable JSON config.

        Raises:
            ConfigError: If the file is not valid JSON or ``patterns`` is not a list
                of strings.
        """
        path = self.find_config_file()
        if path is None:
            self.logger.debug("No pattern config found for %s", self.root)
            return []

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(str(e), path=str(path)) from e

        if not isinstance(data, dict):
            raise ConfigError("top-level value must be an object", path=str(path))

        patterns = data.get("patterns", [])
        if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
            raise ConfigError("'patterns' must be a list of strings", path=str(path))

        self.logger.debug("Loaded %d user pattern(s) from %s", len(patterns), path)
        return list(patterns)

    def get_vcs_ignore_patterns(self) -> List[str]:
        """Read the rules of ``<root>/.gitignore``; empty if there is none."""
        gitignore = self.root / GITIGNORE_FILE_NAME
        if not gitignore.is_file():
            return []
        patterns = read_ignore_file(gitignore)
        self.logger.debug("Loaded %d gitignore pattern(s) from %s", len(patterns), gitignore)
        return patterns


class ChainedPatternSource(PatternSource):
    """Concatenation of several pattern sources, queried in order.

    Example:
        >>> source = ChainedPatternSource(
        ...     StaticPatternSource(user_patterns=["*.md"]),
        ...     StaticPatternSource(user_patterns=["docs/"], vcs_patterns=["*.log"]),
        ... )
        >>> source.get_user_patterns()
        ['*.md', 'docs/']
        >>> source.get_vcs_ignore_patterns()
        ['*.log']
    """

    def __init__(self, *sources: PatternSource) -> None:
        self.sources = list(sources)

    def get_user_patterns(self) -> List[str]:
        return [pattern for source in self.sources for pattern in source.get_user_patterns()]

    def get_vcs_ignore_patterns(self) -> List[str]:
        return [pattern for source in self.sources for pattern in source.get_vcs_ignore_patterns()]
