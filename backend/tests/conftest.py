import os
import tempfile

# Point the app at a throwaway SQLite file before anything imports trailzap.db
_tmpdir = tempfile.mkdtemp(prefix="trailzap-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_tmpdir, 'test.db')}")

import pytest  # noqa: E402


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
