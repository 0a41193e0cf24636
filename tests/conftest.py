"""
Shared fixtures: an in-memory connection and a controllable clock.
"""

import pytest

from ironsync.connections.base import BaseConnection, ConnectionType, DownloadResult


class FakeConnection(BaseConnection):
    """Connection whose remote content is held in memory."""

    type = ConnectionType.HTTP

    def __init__(
        self,
        name="fake",
        *,
        payload=b"new content\n",
        staging_dir=None,
        persistent=False,
        error=None,
        modified=True,
        last_modified=None,
    ):
        super().__init__(name, {"staging_dir": staging_dir, "persistent": persistent})
        self.payload = payload
        self.error = error
        self.modified = modified
        self.last_modified = last_modified
        self.opened = 0
        self.closed = 0
        self.fetched: list[str] = []

    async def _open_handle(self):
        self.opened += 1
        return object()

    async def _close_handle(self, handle):
        self.closed += 1

    async def _fetch(self, handle, resource, staging):
        self.fetched.append(resource.path)
        if self.error is not None:
            raise self.error
        if not self.modified:
            return DownloadResult(modified=False, last_modified=self.last_modified)
        with open(staging, "wb") as f:
            f.write(self.payload)
        return DownloadResult(modified=True, path=staging, last_modified=self.last_modified)


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def dest_dir(tmp_path):
    path = tmp_path / "dest"
    path.mkdir()
    return path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_connection(staging_dir):
    def _make(**kwargs):
        kwargs.setdefault("staging_dir", str(staging_dir))
        return FakeConnection(**kwargs)

    return _make
