"""
ironsync long-running service.

Runs one ConnectionWorker task per connection that owns resources. Workers
share no state, so a slow or hung transfer only delays resources of its own
connection.
"""

from __future__ import annotations

import asyncio
import signal
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ironsync.connections.manager import ConnectionManager
from ironsync.core.initialization import initialize
from ironsync.service.worker import DEFAULT_TICK_S, ConnectionWorker, UpdateOutcome
from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.service")

STOP_GRACE_S = 5.0


class SyncService:
    def __init__(
        self,
        manager: ConnectionManager,
        *,
        tick_s: float = DEFAULT_TICK_S,
        clock: Callable[[], float] = time.time,
    ):
        self.manager = manager
        self.tick_s = tick_s
        self.workers = [
            ConnectionWorker(conn, tick_s=tick_s, clock=clock) for conn in manager.active_connections()
        ]
        self._tasks: list[asyncio.Task] = []
        self._stopping = asyncio.Event()

    def start(self) -> None:
        """Start one background task per worker."""
        self._stopping.clear()
        for worker in self.workers:
            self._tasks.append(
                asyncio.create_task(worker.run(self._stopping), name=f"ironsync-{worker.connection.name}")
            )
        logger.info(f"Started {len(self.workers)} connection worker(s)")

    async def stop(self) -> None:
        """Ask workers to finish their current tick, cancel stragglers, close all sessions."""
        self._stopping.set()
        if self._tasks:
            _, pending = await asyncio.wait(self._tasks, timeout=self.tick_s + STOP_GRACE_S)
            for t in pending:
                t.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        await self.manager.close_all()

    async def run_forever(self) -> None:
        """Run until stopped by ``stop()``, SIGTERM/SIGINT or cancellation."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._stopping.set)
            except (NotImplementedError, RuntimeError):
                pass

        self.start()
        try:
            if self._tasks:
                await asyncio.gather(*self._tasks)
            else:
                logger.warning("No resources configured; nothing to do")
        finally:
            await self.stop()

    async def run_once(self) -> dict[str, dict[str, UpdateOutcome]]:
        """Run a single tick on every worker concurrently."""
        try:
            results = await asyncio.gather(*(worker.tick() for worker in self.workers))
        finally:
            await self.manager.close_all()
        return {worker.connection.name: outcome for worker, outcome in zip(self.workers, results)}

    def get_status(self) -> dict[str, Any]:
        """Per-resource scheduling state, for the CLI and logs."""
        connections = []
        for worker in self.workers:
            conn = worker.connection
            connections.append(
                {
                    "connection": conn.name,
                    "type": conn.type.value,
                    "persistent": conn.persistent,
                    "session_open": conn.handle is not None,
                    "resources": [
                        {
                            "path": r.path,
                            "next_update_time": r.next_update_time,
                            "last_update_time": r.last_update_time,
                            "last_outcome": worker.last_outcomes.get(r.path),
                            "last_error": worker.last_errors.get(r.path),
                        }
                        for r in conn.resources
                    ],
                }
            )
        return {"running": bool(self._tasks), "connections": connections}


def run_service(
    project_dir: Path,
    env: str | None = None,
    verbose: bool = False,
    once: bool = False,
    tick_s: float | None = None,
) -> dict[str, dict[str, UpdateOutcome]] | None:
    """
    Initialize and run ironsync.

    Args:
        project_dir: Directory holding config.yaml
        env: Environment name
        verbose: Enable DEBUG logging
        once: Run a single tick and return its outcomes instead of looping
        tick_s: Override ``scheduler.tick_s``

    Raises:
        ConfigurationError / InitializationError: On invalid configuration
    """
    config, manager = initialize(project_dir, env=env, verbose=verbose)
    if tick_s is None:
        tick_s = float(config.scheduler.get("tick_s", DEFAULT_TICK_S))

    async def _main() -> dict[str, dict[str, UpdateOutcome]] | None:
        svc = SyncService(manager, tick_s=tick_s)
        if once:
            return await svc.run_once()
        await svc.run_forever()
        return None

    return asyncio.run(_main())
