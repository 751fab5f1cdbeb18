"""Bounded directory walking and tree rendering.

This package walks directory structures under depth, time and file-size limits,
consulting an exclusion engine at every node, and renders the resulting trees as
text.
"""

from .budget import TraversalBudget
from .file_system_node import FileSystemNode
from .skip_report import DirectoryState, SkipReason, SkipReport
from .tree_renderer import render_tree, stream_tree
from .walker import DirectoryWalker

__all__ = [
    "DirectoryState",
    "DirectoryWalker",
    "FileSystemNode",
    "SkipReason",
    "SkipReport",
    "TraversalBudget",
    "render_tree",
    "stream_tree",
]
