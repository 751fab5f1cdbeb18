"""Text rendering of walked trees using box-drawing characters."""

from typing import Iterator, Optional

from .file_system_node import FileSystemNode


def stream_tree(node: Optional[FileSystemNode]) -> Iterator[str]:
    """Generate a tree representation one line at a time.

    Produces output similar to the Unix 'tree' command. The root is printed on its
    own line, every other entry is prefixed with a connector, and directories get a
    trailing ``/``. Children are printed in the order they appear in the tree.

    Args:
        node: Root of the tree to render. None yields nothing.

    Yields:
        Lines of the tree representation, without trailing newlines.

    Example:
        >>> root = FileSystemNode("src", is_dir=True)
        >>> utils = FileSystemNode("utils", parent=root, is_dir=True)
        >>> _ = FileSystemNode("helpers.py", parent=utils)
        >>> _ = FileSystemNode("main.py", parent=root)
        >>> for line in stream_tree(root):
        ...     print(line)
        src/
        ├── utils/
        │   └── helpers.py
        └── main.py
    """
    if node is None:
        return

    def write_node(node: FileSystemNode, prefix: str, is_last: bool) -> Iterator[str]:
        connector = "└── " if is_last else "├── "
        suffix = "/" if node.is_dir else ""
        yield f"{prefix}{connector}{node.name}{suffix}"

        child_prefix = prefix + ("    " if is_last else "│   ")
        children = node.children
        for i, child in enumerate(children):
            yield from write_node(child, child_prefix, i == len(children) - 1)

    yield f"{node.name}/" if node.is_dir else node.name

    children = node.children
    for i, child in enumerate(children):
        yield from write_node(child, "", i == len(children) - 1)


def render_tree(node: Optional[FileSystemNode]) -> str:
    """Get a complete string representation of a tree.

    Returns:
        The lines of :func:`stream_tree` joined with newlines, or an empty string
        for None.
    """
    return "\n".join(stream_tree(node))
