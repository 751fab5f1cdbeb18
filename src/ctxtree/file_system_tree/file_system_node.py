"""Node representation for file system elements in the tree."""

from typing import Any, Optional

from anytree import Node

from ctxtree.types import EntryKind


class FileSystemNode(Node):  # type: ignore
    """Node class representing a file or directory in a walked tree.

    Extends anytree.Node with the absolute path of the entry and whether it is a
    directory. A directory owns its children; the order of ``children`` is the
    order in which the walker produced them.

    Attributes:
        name (str): The name of the file or directory (just the basename).
        parent (Optional[FileSystemNode]): The parent node in the tree.
        absolute_path (str): Absolute path of the entry on disk.
        is_dir (bool): True if this node represents a directory, False for files.
        children (tuple[FileSystemNode]): The child nodes (inherited from anytree.Node).

    Example:
        >>> root = FileSystemNode("root", absolute_path="/root", is_dir=True)
        >>> child = FileSystemNode("file.txt", parent=root, absolute_path="/root/file.txt")
        >>> root.kind
        <EntryKind.DIRECTORY: 'directory'>
        >>> [node.name for node in root.children]
        ['file.txt']
    """

    def __init__(
        self,
        name: str,
        parent: Optional["FileSystemNode"] = None,
        absolute_path: str = "",
        is_dir: bool = False,
        **kwargs: Any,
    ) -> None:
        """Initialize a FileSystemNode.

        Args:
            name: The name of the file or directory.
            parent: The parent node. Defaults to None.
            absolute_path: Absolute path of the entry. Defaults to an empty string.
            is_dir: Whether this node represents a directory. Defaults to False.
            **kwargs: Additional arguments passed to anytree.Node.
        """
        super().__init__(name, parent, **kwargs)
        self.absolute_path = absolute_path
        self.is_dir = is_dir

    @property
    def kind(self) -> EntryKind:
        return EntryKind.DIRECTORY if self.is_dir else EntryKind.FILE
