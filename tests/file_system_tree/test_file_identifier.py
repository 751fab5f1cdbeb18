"""Unit tests for the FileIdentifier class."""

import os

from ctxtree.file_system_tree.file_identifier import FileIdentifier


def test_file_identifier():
    """Test the FileIdentifier class functionality."""
    id1 = FileIdentifier(123, 456)
    id2 = FileIdentifier(123, 456)
    id3 = FileIdentifier(789, 456)

    # Test equality
    assert id1 == id2
    assert id1 != id3
    assert id1 != "not an identifier"

    # Test hash
    assert hash(id1) == hash(id2)
    assert hash(id1) != hash(id3)

    # Test in a set
    id_set = {id1, id3}
    assert len(id_set) == 2
    assert id2 in id_set

    assert repr(id1) == "FileIdentifier(device_id=123, inode_number=456)"


def test_from_stat_follows_symlinks(tmp_path):
    """Test that a symlink and its target share an identifier."""
    target = tmp_path / "target"
    target.mkdir()
    link = tmp_path / "link"
    link.symlink_to(target, target_is_directory=True)
    other = tmp_path / "other"
    other.mkdir()

    assert FileIdentifier.from_stat(os.stat(link)) == FileIdentifier.from_stat(os.stat(target))
    assert FileIdentifier.from_stat(os.stat(other)) != FileIdentifier.from_stat(os.stat(target))


def test_is_known():
    """Test that a zero inode number marks the identity as unknown."""
    assert FileIdentifier(1, 42).is_known
    assert not FileIdentifier(1, 0).is_known
