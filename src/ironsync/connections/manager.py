"""
Connection manager.

Builds the connection/resource graph from configuration and enforces the
guarantees the workers rely on: every connection has a known type and its
required fields, and every resource references an existing connection.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

from ironsync.connections.base import BaseConnection, ConnectionType
from ironsync.connections.dropbox import DropboxConnection
from ironsync.connections.ftp import FTPConnection
from ironsync.connections.http import GistConnection, HTTPConnection
from ironsync.connections.sftp import SFTPConnection
from ironsync.core.resource import DEFAULT_INTERVAL, DEFAULT_RETRY_INTERVAL, Resource
from ironsync.exceptions import ConfigurationError
from ironsync.utils.commands import DEFAULT_COMMAND_TIMEOUT
from ironsync.utils.logging import get_logger
from ironsync.utils.permissions import stat_existing_file

logger = get_logger("ironsync.connections.manager")

CONNECTION_CLASSES: dict[ConnectionType, type[BaseConnection]] = {
    ConnectionType.HTTP: HTTPConnection,
    ConnectionType.GIST: GistConnection,
    ConnectionType.SFTP: SFTPConnection,
    ConnectionType.FTP: FTPConnection,
    ConnectionType.DROPBOX: DropboxConnection,
}

REQUIRED_FIELDS: dict[ConnectionType, tuple[str, ...]] = {
    ConnectionType.HTTP: ("url",),
    ConnectionType.GIST: (),
    ConnectionType.SFTP: ("hostname", "username"),
    ConnectionType.FTP: ("hostname", "username", "password"),
    ConnectionType.DROPBOX: ("token",),
}

# Types whose resources may omit remote_path
OPTIONAL_REMOTE_PATH = {ConnectionType.HTTP, ConnectionType.GIST}


def parse_perms(value: Any) -> int:
    """
    Parse a permission mode.

    Modes are always octal digits: ``"0644"``, ``"644"`` and an unquoted YAML
    ``644`` all give ``0o644``. The config loader keeps a leading-zero literal
    such as ``0644`` as written, so it never arrives here pre-converted.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError(f"invalid perms {value!r}")
    try:
        mode = int(str(value).strip(), 8)
    except ValueError:
        raise ValueError(f"invalid perms {value!r}") from None
    if not 0 <= mode <= 0o7777:
        raise ValueError(f"invalid perms {value!r}")
    return mode


def _positive_int(value: Any, field: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer, got {value!r}") from None
    if number <= 0:
        raise ValueError(f"{field} must be positive, got {number}")
    return number


class ConnectionManager:
    """
    Owns every configured connection and the resources attached to it.

    Config shape::

        defaults:   {interval: 60, retry_interval: 30, timeout: 30}
        scheduler:  {staging_dir: /var/tmp/ironsync}
        connections:
          <name>: {type: http|gist|sftp|ftp|dropbox, ...}
        resources:
          </absolute/path>: {connection: <name>, remote_path: ..., ...}
    """

    def __init__(self, config: dict[str, Any]):
        self.config = config
        self.defaults: dict[str, Any] = config.get("defaults") or {}
        self.staging_dir: str | None = (config.get("scheduler") or {}).get("staging_dir")
        self._connections: dict[str, BaseConnection] = {}
        self._errors: list[str] = []

        self._load_connections()
        self._load_resources()

        if self._errors:
            error_message = "Configuration validation failed:\n\n" + "\n".join(
                f"{i}. {err}" for i, err in enumerate(self._errors, 1)
            )
            raise ConfigurationError(error_message, details={"errors": list(self._errors)})

    def _load_connections(self) -> None:
        """Load connections from configuration."""
        connections_config = self.config.get("connections") or {}
        if not connections_config:
            self._errors.append("No connections defined")
            return

        for name, conn_config in connections_config.items():
            if not name or not isinstance(name, str):
                self._errors.append(f"Connection names must be non-empty strings, got {name!r}")
                continue
            if not isinstance(conn_config, dict):
                self._errors.append(f"Connection '{name}': must be a mapping")
                continue

            raw_type = conn_config.get("type")
            if not raw_type:
                self._errors.append(f"Connection '{name}': missing type")
                continue
            try:
                conn_type = ConnectionType(str(raw_type).lower())
            except ValueError:
                self._errors.append(f"Connection '{name}': invalid type '{raw_type}'")
                continue

            missing = [field for field in REQUIRED_FIELDS[conn_type] if not conn_config.get(field)]
            if missing:
                self._errors.append(f"Connection '{name}': missing {', '.join(missing)}")
                continue

            merged = {**conn_config}
            if "timeout" not in merged and "timeout" in self.defaults:
                merged["timeout"] = self.defaults["timeout"]
            if self.staging_dir and "staging_dir" not in merged:
                merged["staging_dir"] = self.staging_dir

            try:
                self._connections[name] = CONNECTION_CLASSES[conn_type](name, merged)
            except (TypeError, ValueError) as e:
                self._errors.append(f"Connection '{name}': {e}")

    def _load_resources(self) -> None:
        """Create resources and attach each to its connection, in config order."""
        resources_config = self.config.get("resources") or {}

        for path, res_config in resources_config.items():
            if not isinstance(res_config, dict):
                self._errors.append(f"Resource '{path}': must be a mapping")
                continue
            conn_name = res_config.get("connection")
            if not conn_name:
                self._errors.append(f"Resource '{path}': missing connection")
                continue
            conn = self._connections.get(conn_name)
            if conn is None:
                if conn_name not in (self.config.get("connections") or {}):
                    self._errors.append(f"Resource '{path}': invalid connection {conn_name}")
                continue
            try:
                conn.add_resource(self._build_resource(str(path), res_config, conn))
            except ValueError as e:
                self._errors.append(f"Resource '{path}': {e}")

    def _build_resource(self, path: str, cfg: dict[str, Any], conn: BaseConnection) -> Resource:
        if not os.path.isabs(path):
            raise ValueError("path must be absolute")

        remote_path = cfg.get("remote_path") or ""
        if not remote_path and conn.type not in OPTIONAL_REMOTE_PATH:
            raise ValueError("missing remote_path")

        try:
            perms = parse_perms(cfg.get("perms"))
        except ValueError:
            raise ValueError(f"invalid perms {cfg.get('perms')}") from None

        resource = Resource(
            path=path,
            remote_path=str(remote_path),
            interval=_positive_int(cfg.get("interval", self.defaults.get("interval", DEFAULT_INTERVAL)), "interval"),
            retry_interval=_positive_int(
                cfg.get("retry_interval", self.defaults.get("retry_interval", DEFAULT_RETRY_INTERVAL)),
                "retry_interval",
            ),
            user=cfg.get("user"),
            group=cfg.get("group"),
            perms=perms,
            pre_update_command=cfg.get("pre_update_command"),
            pre_update_command_timeout=float(cfg.get("pre_update_command_timeout", DEFAULT_COMMAND_TIMEOUT)),
            post_update_command=cfg.get("post_update_command"),
            post_update_command_timeout=float(cfg.get("post_update_command_timeout", DEFAULT_COMMAND_TIMEOUT)),
        )

        if isinstance(conn, GistConnection):
            resource.gist_id = cfg.get("gist_id") or conn.gist_id
            resource.gist_username = cfg.get("gist_username") or conn.gist_username
            resource.github_token = cfg.get("github_token") or conn.github_token
            missing = [f for f in ("gist_id", "gist_username") if not getattr(resource, f)]
            if missing:
                raise ValueError(f"missing {', '.join(missing)}")

        try:
            existing = stat_existing_file(path)
        except OSError as e:
            raise ValueError(f"cannot access path: {e.strerror or e}") from None
        if existing is not None:
            resource.last_modified_time = datetime.fromtimestamp(existing.mtime, tz=timezone.utc)

        return resource

    def get(self, name: str) -> BaseConnection:
        """Get connection by name."""
        if name not in self._connections:
            raise KeyError(f"Connection not found: {name}")
        return self._connections[name]

    def list(self) -> list[str]:
        """List all connection names."""
        return list(self._connections.keys())

    def connections(self) -> list[BaseConnection]:
        return list(self._connections.values())

    def active_connections(self) -> list[BaseConnection]:
        """Connections that own at least one resource (the ones that get a worker)."""
        return [conn for conn in self._connections.values() if conn.resources]

    async def close_all(self) -> None:
        for conn in self._connections.values():
            await conn.close()
