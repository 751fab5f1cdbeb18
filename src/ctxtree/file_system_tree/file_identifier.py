"""File identifier for uniquely identifying files by device and inode."""

import os
from typing import Any


class FileIdentifier:
    """Class for uniquely identifying files and directories by their device and inode.

    Two paths that resolve to the same object through symbolic links share an
    identifier, which makes it the canonical identity used for symlink loop
    detection and for de-duplicating file lists.

    Attributes:
        device_id (int): The device ID from stat information.
        inode_number (int): The inode number from stat information.

    Example:
        >>> FileIdentifier(1, 42) == FileIdentifier(1, 42)
        True
        >>> FileIdentifier(1, 42) == FileIdentifier(2, 42)
        False
    """

    def __init__(self, device_id: int, inode_number: int):
        self.device_id = device_id
        self.inode_number = inode_number

    @classmethod
    def from_stat(cls, stat_result: os.stat_result) -> "FileIdentifier":
        """Build an identifier from the result of ``os.stat``."""
        return cls(stat_result.st_dev, stat_result.st_ino)

    @property
    def is_known(self) -> bool:
        """Whether the filesystem reported a real inode number.

        Some filesystems report ``st_ino == 0`` for every entry, in which case the
        identifier cannot tell objects apart.

        Example:
            >>> FileIdentifier(1, 42).is_known
            True
            >>> FileIdentifier(1, 0).is_known
            False
        """
        return self.inode_number != 0

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, FileIdentifier):
            return False
        return self.device_id == other.device_id and self.inode_number == other.inode_number

    def __hash__(self) -> int:
        return hash((self.device_id, self.inode_number))

    def __repr__(self) -> str:
        return f"FileIdentifier(device_id={self.device_id}, inode_number={self.inode_number})"
