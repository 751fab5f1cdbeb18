"""Bounded directory walking with layered exclusion rules.

This package decides, per file and per directory, whether a path belongs in a
generated output such as a flattened list of files for an LLM context dump or a
visual directory tree.
"""

from importlib.metadata import PackageNotFoundError, version

# Expose the version for both programmatic use and CLI
try:
    __version__ = version("ctxtree")
except PackageNotFoundError:
    __version__ = "unknown"
