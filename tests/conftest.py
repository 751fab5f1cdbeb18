"""Test configuration and fixtures for ctxtree."""

import pytest


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def make_tree(tmp_path):
    """Create files and directories under tmp_path.

    Paths ending in ``/`` become directories; everything else becomes a file with the
    given content (default ``"x"``).
    """

    def _make(*paths, content="x"):
        for rel in paths:
            target = tmp_path / rel
            if rel.endswith("/"):
                target.mkdir(parents=True, exist_ok=True)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(content)
        return tmp_path

    return _make


@pytest.fixture
def fake_clock():
    return FakeClock()
