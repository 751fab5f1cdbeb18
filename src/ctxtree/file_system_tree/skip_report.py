"""Diagnostic record of everything a walk left out, and why."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Tuple


class SkipReason(str, Enum):
    """Why a path was left out of a walk.

    None of these abort a walk; each one only removes a path or a subtree.

    Values:
        PATH_UNREADABLE: A directory could not be listed or an entry could not be stat-ed
        PATH_TOO_LARGE: A file exceeded the size limit
        DIRECTORY_TIMED_OUT: A directory was reached after the time limit
        SYMLINK_LOOP_DETECTED: A directory resolved to one of its own ancestors
        PATTERN_MALFORMED: A pattern could not be compiled and was matched literally
        BINARY_CONTENT: A file was excluded from content output as binary or media
    """

    PATH_UNREADABLE = "unreadable"
    PATH_TOO_LARGE = "too-large"
    DIRECTORY_TIMED_OUT = "timed-out"
    SYMLINK_LOOP_DETECTED = "symlink-loop"
    PATTERN_MALFORMED = "malformed-pattern"
    BINARY_CONTENT = "binary"


class DirectoryState(str, Enum):
    """Lifecycle of a directory during a walk.

    A directory moves from PENDING to VISITING when the walker enters it and ends
    in exactly one of the terminal states.
    """

    PENDING = "pending"
    VISITING = "visiting"
    COMPLETED = "completed"
    TIMED_OUT = "timed-out"
    LOOP_DETECTED = "loop-detected"
    UNREADABLE = "unreadable"

    @property
    def is_terminal(self) -> bool:
        return self not in (DirectoryState.PENDING, DirectoryState.VISITING)


_FIELD_BY_REASON = {
    SkipReason.PATH_TOO_LARGE: "large_files",
    SkipReason.DIRECTORY_TIMED_OUT: "timed_out",
    SkipReason.SYMLINK_LOOP_DETECTED: "symlink_loops",
    SkipReason.BINARY_CONTENT: "binary_files",
    SkipReason.PATH_UNREADABLE: "unreadable",
    SkipReason.PATTERN_MALFORMED: "malformed_patterns",
}


@dataclass(frozen=True)
class SkipReport:
    """Everything omitted from one walk, grouped by reason.

    Built once when a walk finishes and never modified afterwards.

    Attributes:
        large_files: Files skipped for exceeding the size limit.
        timed_out: Directories not entered because the time limit had passed.
        symlink_loops: Directories that resolved to one of their ancestors.
        binary_files: Files excluded from content output as binary or media.
        unreadable: Directories that could not be listed and entries that could
            not be stat-ed.
        malformed_patterns: Patterns and regular expressions that could not be
            compiled.
        directory_states: Terminal state of every directory the walk entered, keyed
            by absolute path.

    Example:
        >>> report = SkipReport(large_files=("/data/dump.sql",))
        >>> report.total_skipped
        1
        >>> list(report.entries())
        [(<SkipReason.PATH_TOO_LARGE: 'too-large'>, '/data/dump.sql')]
    """

    large_files: Tuple[str, ...] = ()
    timed_out: Tuple[str, ...] = ()
    symlink_loops: Tuple[str, ...] = ()
    binary_files: Tuple[str, ...] = ()
    unreadable: Tuple[str, ...] = ()
    malformed_patterns: Tuple[str, ...] = ()
    directory_states: Mapping[str, DirectoryState] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def total_skipped(self) -> int:
        """Number of skipped paths, not counting malformed patterns."""
        return sum(1 for reason, _ in self.entries() if reason is not SkipReason.PATTERN_MALFORMED)

    def is_empty(self) -> bool:
        return not any(True for _ in self.entries())

    def paths(self, reason: SkipReason) -> Tuple[str, ...]:
        """Return the entries recorded for one reason."""
        paths: Tuple[str, ...] = getattr(self, _FIELD_BY_REASON[reason])
        return paths

    def entries(self) -> Iterator[Tuple[SkipReason, str]]:
        """Yield ``(reason, path)`` for every recorded entry."""
        for reason in SkipReason:
            for path in self.paths(reason):
                yield reason, path

    @classmethod
    def merge(cls, reports: Iterable["SkipReport"]) -> "SkipReport":
        """Combine the reports of several walks into one."""
        recorder = SkipRecorder()
        for report in reports:
            for reason, path in report.entries():
                recorder.record(reason, path)
            for path, state in report.directory_states.items():
                recorder.set_state(path, state)
        return recorder.build()


class SkipRecorder:
    """Mutable accumulator used while a walk is in progress."""

    def __init__(self) -> None:
        # Insertion-ordered; values are unused
        self._entries: Dict[SkipReason, Dict[str, None]] = {reason: {} for reason in SkipReason}
        self._states: Dict[str, DirectoryState] = {}

    def record(self, reason: SkipReason, path: str) -> None:
        # Keep the first occurrence only
        self._entries[reason].setdefault(path, None)

    def set_state(self, path: str, state: DirectoryState) -> None:
        self._states[path] = state

    def state(self, path: str) -> DirectoryState:
        return self._states.get(path, DirectoryState.PENDING)

    def build(self) -> SkipReport:
        fields = {_FIELD_BY_REASON[reason]: tuple(paths) for reason, paths in self._entries.items()}
        return SkipReport(directory_states=MappingProxyType(dict(self._states)), **fields)
