"""Depth, time and file-size limits for one walk."""

from dataclasses import dataclass
from typing import Optional, Union

from humanfriendly import InvalidSize, parse_size

DEFAULT_MAX_DEPTH = 10
DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024


def parse_file_size(size_str: str) -> int:
    """Parse human-readable file size to bytes.

    Args:
        size_str: Size string like '1GB', '500MB', '2.5K', '2MiB' or just '1024'

    Returns:
        Size in bytes

    Raises:
        ValueError: If size_str is not a valid size format
    """
    try:
        return int(parse_size(size_str))
    except InvalidSize as e:
        raise ValueError(f"Invalid size format '{size_str}': {e}")


@dataclass(frozen=True)
class TraversalBudget:
    """Limits governing one walk. Immutable for the duration of the walk.

    Attributes:
        max_depth (int): Directories deeper than this are listed but not expanded.
            The root is at depth 0, so 0 yields the root alone.
        timeout_ms (Optional[int]): Milliseconds after which no further directory is
            entered. None disables the limit.
        max_file_size_bytes (Optional[int]): Files larger than this are skipped. A
            file of exactly this size is kept. None disables the limit.

    Example:
        >>> budget = TraversalBudget(max_depth=4)
        >>> budget.timeout_ms
        30000
        >>> TraversalBudget.from_human(max_file_size="2KiB").max_file_size_bytes
        2048
        >>> TraversalBudget(max_depth=-1)
        Traceback (most recent call last):
            ...
        ValueError: max_depth cannot be negative
    """

    max_depth: int = DEFAULT_MAX_DEPTH
    timeout_ms: Optional[int] = DEFAULT_TIMEOUT_MS
    max_file_size_bytes: Optional[int] = DEFAULT_MAX_FILE_SIZE_BYTES

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError("max_depth cannot be negative")
        if self.timeout_ms is not None and self.timeout_ms < 0:
            raise ValueError("timeout_ms cannot be negative")
        if self.max_file_size_bytes is not None and self.max_file_size_bytes < 0:
            raise ValueError("max_file_size_bytes cannot be negative")

    @classmethod
    def from_human(
        cls,
        max_depth: int = DEFAULT_MAX_DEPTH,
        timeout: Optional[float] = DEFAULT_TIMEOUT_MS / 1000,
        max_file_size: Optional[Union[str, int]] = DEFAULT_MAX_FILE_SIZE_BYTES,
    ) -> "TraversalBudget":
        """Build a budget from user-facing units.

        Args:
            max_depth: Maximum depth to expand.
            timeout: Timeout in seconds, or None for no limit.
            max_file_size: Size limit as bytes or a human-readable string such as
                '2MB', or None for no limit.

        Raises:
            ValueError: If a value is negative or the size cannot be parsed.
        """
        if isinstance(max_file_size, str):
            max_file_size = parse_file_size(max_file_size)
        timeout_ms = None if timeout is None else int(timeout * 1000)
        return cls(max_depth=max_depth, timeout_ms=timeout_ms, max_file_size_bytes=max_file_size)

    def allows_size(self, size: int) -> bool:
        """Whether a file of ``size`` bytes is within the limit."""
        return self.max_file_size_bytes is None or size <= self.max_file_size_bytes
