"""
Per-connection worker.

One worker runs per connection that owns resources. Each tick it walks the
connection's resources in config order and updates every resource that is
due:

    pre-update hook -> download -> compare -> install -> post-update hook

Success (including "not modified" and "unchanged") reschedules at
``interval``; any failure reschedules at ``retry_interval``. Nothing a
resource does can stop the loop.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from enum import Enum

from ironsync.connections.base import BaseConnection, DownloadResult
from ironsync.core.compare import files_equal
from ironsync.core.install import discard_file, install_staging_file
from ironsync.core.resource import Resource
from ironsync.exceptions import HookError, IronsyncError
from ironsync.utils.commands import run_command
from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.service.worker")

DEFAULT_TICK_S = 1.0


class UpdateOutcome(str, Enum):
    UPDATED = "updated"
    NOT_MODIFIED = "not_modified"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class ConnectionWorker:
    """Scheduling loop for the resources of a single connection."""

    def __init__(
        self,
        connection: BaseConnection,
        *,
        tick_s: float = DEFAULT_TICK_S,
        clock: Callable[[], float] = time.time,
    ):
        self.connection = connection
        self.tick_s = tick_s
        self.clock = clock
        self.last_outcomes: dict[str, UpdateOutcome] = {}
        self.last_errors: dict[str, str] = {}

    def _prefix(self, resource: Resource) -> str:
        return f"[{self.connection.name}][{resource.path}]"

    async def tick(self) -> dict[str, UpdateOutcome]:
        """Process every due resource once. Returns outcomes keyed by path."""
        outcomes: dict[str, UpdateOutcome] = {}
        for resource in self.connection.resources:
            if resource.is_due(self.clock()):
                outcomes[resource.path] = await self.process_resource(resource)
        return outcomes

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Tick until ``stop`` is set (forever when None)."""
        logger.info(f"[{self.connection.name}] Connection worker started")
        try:
            while stop is None or not stop.is_set():
                await self.tick()
                if stop is None:
                    await asyncio.sleep(self.tick_s)
                    continue
                try:
                    await asyncio.wait_for(stop.wait(), timeout=self.tick_s)
                except asyncio.TimeoutError:
                    pass
        finally:
            await self.connection.close()
            logger.info(f"[{self.connection.name}] Connection worker stopped")

    async def process_resource(self, resource: Resource) -> UpdateOutcome:
        """Run one update cycle for ``resource`` and reschedule it."""
        prefix = self._prefix(resource)
        logger.info(f"{prefix} Updating resource")

        try:
            outcome = await self._update(resource)
        except IronsyncError as e:
            outcome = UpdateOutcome.FAILED
            self.last_errors[resource.path] = str(e)
            logger.error(f"{prefix} Resource failed to update: {e}")
        except Exception as e:
            outcome = UpdateOutcome.FAILED
            self.last_errors[resource.path] = str(e)
            logger.exception(f"{prefix} Resource failed to update: {e}")

        now = self.clock()
        if outcome is UpdateOutcome.FAILED:
            resource.schedule_next(now, resource.retry_interval)
        else:
            self.last_errors.pop(resource.path, None)
            resource.schedule_next(now, resource.interval)
            if outcome is UpdateOutcome.UPDATED:
                logger.info(f"{prefix} Resource successfully updated")
            elif outcome is UpdateOutcome.UNCHANGED:
                logger.info(f"{prefix} Resource unchanged")
            else:
                logger.info(f"{prefix} Resource not modified")

        self.last_outcomes[resource.path] = outcome
        return outcome

    async def _update(self, resource: Resource) -> UpdateOutcome:
        if resource.pre_update_command:
            try:
                await run_command(resource.pre_update_command, resource.pre_update_command_timeout)
            except HookError as e:
                raise HookError(e.command, f"Pre-update command failed: {e}", returncode=e.returncode) from e

        result = await self.connection.download(resource)
        if not result.modified or result.path is None:
            return UpdateOutcome.NOT_MODIFIED

        staging = result.path
        try:
            # Advisory signal only: skip the write when the bytes are identical
            if await asyncio.to_thread(files_equal, staging, resource.path):
                self._commit_last_modified(resource, result)
                return UpdateOutcome.UNCHANGED

            await asyncio.to_thread(install_staging_file, staging, resource)
        finally:
            discard_file(staging)

        self._commit_last_modified(resource, result)
        resource.mark_updated(self.clock())

        if resource.post_update_command:
            try:
                await run_command(resource.post_update_command, resource.post_update_command_timeout)
            except HookError as e:
                logger.warning(f"{self._prefix(resource)} Post-update command failed: {e}")

        return UpdateOutcome.UPDATED

    @staticmethod
    def _commit_last_modified(resource: Resource, result: DownloadResult) -> None:
        if result.last_modified is None:
            return
        if resource.last_modified_time is None or result.last_modified > resource.last_modified_time:
            resource.last_modified_time = result.last_modified
