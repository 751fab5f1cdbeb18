from typing import Optional


class RootPathError(Exception):
    """
    Exception raised when the root of a walk cannot be traversed at all.

    This is the only error that aborts a walk. Everything that goes wrong below the
    root (unreadable subdirectories, files that vanish mid-walk, symlink loops) is
    recorded in the walk's skip report instead.

    Attributes:
        path (str): The root path that was requested.
        reason (str): Short description of why the root cannot be walked.

    Example:
        >>> error = RootPathError("/no/such/dir", "does not exist")
        >>> str(error)
        'Cannot walk /no/such/dir: does not exist'
        >>> error.reason
        'does not exist'
    """

    def __init__(self, path: str, reason: str) -> None:
        """
        Initialize the exception with the offending root and the reason.

        Args:
            path (str): The root path that was requested.
            reason (str): Short description of the failure.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot walk {path}: {reason}")


class ConfigError(Exception):
    """
    Exception raised when a pattern configuration file cannot be used.

    This covers JSON syntax errors and files whose ``patterns`` entry is not a list
    of strings.

    Attributes:
        path (Optional[str]): Path of the configuration file, when known.

    Example:
        >>> error = ConfigError("'patterns' must be a list", path=".aicontext/ignore.json")
        >>> str(error)
        "Invalid configuration in .aicontext/ignore.json: 'patterns' must be a list"
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        """
        Initialize the exception.

        Args:
            message (str): Description of the problem.
            path (Optional[str]): Path of the configuration file, when known.
        """
        self.path = path
        if path is not None:
            message = f"Invalid configuration in {path}: {message}"
        super().__init__(message)
