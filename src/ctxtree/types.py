from enum import Enum
from os import PathLike
from typing import Union

# Complete path type including strings and any path-like object
PathType = Union[str, PathLike[str]]


class EntryKind(Enum):
    """Kind of filesystem entry being evaluated.

    Attributes:
        FILE: Regular file (or anything that is not a directory)
        DIRECTORY: Directory
    """

    FILE = "file"
    DIRECTORY = "directory"


class Purpose(Enum):
    """Reason a path is being evaluated, which changes the inclusion rules.

    Attributes:
        CONTENT: The file's bytes may be read and embedded in output. Binary and
            media files are always excluded.
        TREE: The path is only named in a visual listing. Binary files are shown
            unless a pattern excludes them; media files are always shown.
        STRICT_TREE: Like TREE, but every ignore pattern applies with no
            leniency for media files.
    """

    CONTENT = "content"
    TREE = "tree"
    STRICT_TREE = "strict-tree"


class Origin(Enum):
    """Provenance of an exclusion pattern.

    Attributes:
        SYSTEM: Built-in defaults (dependency folders, lock files, binaries).
        VCS_IGNORE: Patterns read from a version-control ignore file.
        USER_CONFIG: Patterns supplied by the user's configuration.
    """

    SYSTEM = "system"
    VCS_IGNORE = "vcs-ignore"
    USER_CONFIG = "user-config"

    @property
    def precedence(self) -> int:
        """Precedence rank used when a negation pattern re-includes a path.

        VCS-ignore and user configuration patterns share the same rank.
        """
        return 0 if self is Origin.SYSTEM else 1
