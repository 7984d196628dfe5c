import pytest


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is called."""

    def __init__(self, start=0.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def values_dir(tmp_path):
    """A values directory holding every file the stack references."""
    from stack_manager.constants import REQUIRED_VALUES_FILES

    for rel in REQUIRED_VALUES_FILES:
        (tmp_path / rel).write_text("# values\n", encoding="utf-8")
    return tmp_path
