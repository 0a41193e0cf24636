"""
Tests for SyncService and startup initialization.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from ironsync.connections.manager import ConnectionManager
from ironsync.core.initialization import IronsyncInitializer, initialize
from ironsync.core.resource import Resource
from ironsync.exceptions import ConfigurationError
from ironsync.service.server import SyncService
from ironsync.service.worker import UpdateOutcome


class StubManager:
    def __init__(self, *connections):
        self._connections = list(connections)
        self.close_all = AsyncMock()

    def active_connections(self):
        return [c for c in self._connections if c.resources]


class TestSyncService:
    """Test worker orchestration."""

    @pytest.mark.asyncio
    async def test_one_worker_per_active_connection(self, make_connection, dest_dir):
        busy = make_connection(name="busy")
        busy.add_resource(Resource(path=str(dest_dir / "a")))
        idle = make_connection(name="idle")

        svc = SyncService(StubManager(busy, idle))

        assert [w.connection.name for w in svc.workers] == ["busy"]

    @pytest.mark.asyncio
    async def test_run_once(self, make_connection, dest_dir, clock):
        web = make_connection(name="web")
        web.add_resource(Resource(path=str(dest_dir / "a")))
        broken = make_connection(name="broken", error=OSError("unreachable"))
        broken.add_resource(Resource(path=str(dest_dir / "b")))
        manager = StubManager(web, broken)

        results = await SyncService(manager, clock=clock).run_once()

        assert results == {
            "web": {str(dest_dir / "a"): UpdateOutcome.UPDATED},
            "broken": {str(dest_dir / "b"): UpdateOutcome.FAILED},
        }
        manager.close_all.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_status(self, make_connection, dest_dir, clock):
        web = make_connection(name="web")
        web.add_resource(Resource(path=str(dest_dir / "a"), interval=300))
        svc = SyncService(StubManager(web), clock=clock)
        await svc.run_once()

        status = svc.get_status()

        assert status["running"] is False
        (conn,) = status["connections"]
        assert conn["connection"] == "web"
        assert conn["session_open"] is False
        (res,) = conn["resources"]
        assert res["next_update_time"] == clock.now + 300
        assert res["last_update_time"] == clock.now
        assert res["last_outcome"] is UpdateOutcome.UPDATED
        assert res["last_error"] is None

    @pytest.mark.asyncio
    async def test_start_and_stop(self, make_connection, dest_dir, clock):
        web = make_connection(name="web", persistent=True)
        web.add_resource(Resource(path=str(dest_dir / "a")))
        manager = StubManager(web)
        svc = SyncService(manager, tick_s=0.01, clock=clock)

        svc.start()
        assert svc.get_status()["running"] is True
        await asyncio.sleep(0.05)
        await svc.stop()

        assert svc.get_status()["running"] is False
        assert web.handle is None
        assert web.fetched == [str(dest_dir / "a")]
        manager.close_all.assert_awaited()

    @pytest.mark.asyncio
    async def test_run_forever_without_resources(self, make_connection):
        manager = StubManager(make_connection(name="idle"))
        await asyncio.wait_for(SyncService(manager).run_forever(), timeout=1)
        manager.close_all.assert_awaited()


class TestInitialization:
    """Test startup orchestration."""

    def test_initialize(self, tmp_path):
        (tmp_path / "config.yaml").write_text(
            "connections:\n"
            "  web:\n    type: http\n    url: https://example.org\n"
            "resources:\n"
            f"  {tmp_path / 'motd'}:\n    connection: web\n"
        )
        config, manager = initialize(tmp_path, setup_logging=False)

        assert isinstance(manager, ConnectionManager)
        assert config.connections["web"]["type"] == "http"
        assert [r.path for r in manager.get("web").resources] == [str(tmp_path / "motd")]

    def test_invalid_graph_is_fatal(self, tmp_path):
        (tmp_path / "config.yaml").write_text("connections:\n  web:\n    type: http\n")
        with pytest.raises(ConfigurationError, match="missing url"):
            initialize(tmp_path, setup_logging=False)

    def test_env_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("IRONSYNC_ENV", "prod")
        assert IronsyncInitializer(tmp_path).env == "prod"
        assert IronsyncInitializer(tmp_path, env="dev").env == "dev"
