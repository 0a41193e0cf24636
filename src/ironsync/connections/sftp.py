"""
SFTP connection.

Authentication tries, in order, every key offered by a reachable SSH agent,
the configured password, and the configured private key file. Host keys are
only verified when ``known_hosts`` is configured.
"""

from __future__ import annotations

import asyncio
import os
import socket
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import paramiko

from ironsync.connections.base import BaseConnection, ConnectionType, DownloadResult
from ironsync.core.resource import Resource
from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.connections.sftp")

DEFAULT_SSH_PORT = 22
DEFAULT_MAX_PACKET_SIZE = 1 << 15


@dataclass(frozen=True)
class SFTPConfig:
    hostname: str
    port: int = DEFAULT_SSH_PORT
    username: str | None = None
    password: str | None = None
    private_key_path: str | None = None
    private_key_passphrase: str | None = None
    known_hosts_path: str | None = None
    timeout: float = 30.0
    max_packet_size: int = DEFAULT_MAX_PACKET_SIZE


@dataclass
class SFTPSession:
    """Live SFTP client plus the transport it runs on."""

    transport: paramiko.Transport
    client: paramiko.SFTPClient

    def close(self) -> None:
        try:
            self.client.close()
        finally:
            self.transport.close()


class SFTPConnection(BaseConnection):
    """SFTP source; the handle is an ``SFTPSession``."""

    type = ConnectionType.SFTP
    transport_errors = (paramiko.SSHException, OSError, EOFError)

    def __init__(self, name: str, config: dict[str, Any]):
        super().__init__(name, config)
        self.sftp_config = self._parse_config()

    def _parse_config(self) -> SFTPConfig:
        cfg = self.config
        return SFTPConfig(
            hostname=cfg.get("hostname", ""),
            port=int(cfg.get("port", DEFAULT_SSH_PORT)),
            username=cfg.get("username"),
            password=cfg.get("password"),
            private_key_path=os.path.expanduser(cfg["private_key"]) if cfg.get("private_key") else None,
            private_key_passphrase=cfg.get("private_key_passphrase"),
            known_hosts_path=os.path.expanduser(cfg["known_hosts"]) if cfg.get("known_hosts") else None,
            timeout=self.timeout,
            max_packet_size=int(cfg.get("max_packet_size", DEFAULT_MAX_PACKET_SIZE)),
        )

    async def _open_handle(self) -> SFTPSession:
        return await asyncio.to_thread(self.connect)

    async def _close_handle(self, handle: SFTPSession) -> None:
        await asyncio.to_thread(handle.close)

    async def _fetch(self, handle: SFTPSession, resource: Resource, staging: str) -> DownloadResult:
        await asyncio.to_thread(self._get, handle.client, resource.remote_path, staging)
        # No cheap metadata signal; the worker falls back to byte comparison
        return DownloadResult(modified=True, path=staging)

    @staticmethod
    def _get(client: paramiko.SFTPClient, remote_path: str, staging: str) -> None:
        with open(staging, "wb") as f:
            client.getfo(remote_path, f)

    def connect(self) -> SFTPSession:
        """Dial, authenticate and open an SFTP channel (blocking)."""
        cfg = self.sftp_config
        if not cfg.hostname:
            raise ValueError(f"SFTP connection '{self.name}' missing hostname")

        sock = socket.create_connection((cfg.hostname, cfg.port), timeout=cfg.timeout)
        transport = paramiko.Transport(sock)
        transport.banner_timeout = cfg.timeout
        transport.auth_timeout = cfg.timeout

        try:
            transport.start_client(timeout=cfg.timeout)
            self._verify_host_key(transport, cfg)
            self._authenticate(transport, cfg)
            client = paramiko.SFTPClient.from_transport(transport, max_packet_size=cfg.max_packet_size)
            if client is None:
                raise paramiko.SSHException(f"Could not open SFTP channel to {cfg.hostname}")
            client.get_channel().settimeout(cfg.timeout)
        except BaseException:
            transport.close()
            raise

        return SFTPSession(transport=transport, client=client)

    def _verify_host_key(self, transport: paramiko.Transport, cfg: SFTPConfig) -> None:
        if not cfg.known_hosts_path:
            return
        host_keys = paramiko.HostKeys(cfg.known_hosts_path)
        lookup = cfg.hostname if cfg.port == DEFAULT_SSH_PORT else f"[{cfg.hostname}]:{cfg.port}"
        if not host_keys.check(lookup, transport.get_remote_server_key()):
            raise paramiko.SSHException(f"Host key for {lookup} not found in {cfg.known_hosts_path}")

    def _auth_methods(
        self, cfg: SFTPConfig, agent_keys: tuple[paramiko.AgentKey, ...] = ()
    ) -> list[tuple[str, Callable[[paramiko.Transport], Any]]]:
        """Authentication attempts in the order they should be tried."""
        methods: list[tuple[str, Callable[[paramiko.Transport], Any]]] = []

        for key in agent_keys:
            methods.append(("agent", lambda t, key=key: t.auth_publickey(cfg.username, key)))

        if cfg.password:
            methods.append(("password", lambda t: t.auth_password(cfg.username, cfg.password)))

        if cfg.private_key_path:
            methods.append(
                (
                    "private key",
                    lambda t: t.auth_publickey(
                        cfg.username, load_private_key(cfg.private_key_path, cfg.private_key_passphrase)
                    ),
                )
            )

        return methods

    def _authenticate(self, transport: paramiko.Transport, cfg: SFTPConfig) -> None:
        failures: list[str] = []
        agent = _open_agent()
        try:
            agent_keys = agent.get_keys() if agent is not None else ()
            for label, method in self._auth_methods(cfg, agent_keys):
                try:
                    method(transport)
                except (paramiko.SSHException, OSError) as e:
                    failures.append(f"{label}: {e}")
                    continue
                if transport.is_authenticated():
                    logger.debug(f"[{self.name}] Authenticated to {cfg.hostname} via {label}")
                    return
        finally:
            if agent is not None:
                agent.close()

        detail = "; ".join(failures) if failures else "no authentication methods available"
        raise paramiko.AuthenticationException(f"Authentication failed for {cfg.username}@{cfg.hostname} ({detail})")


def _open_agent() -> paramiko.Agent | None:
    """Connect to the SSH agent named by SSH_AUTH_SOCK, None when unreachable."""
    try:
        return paramiko.Agent()
    except (paramiko.SSHException, OSError) as e:
        logger.debug(f"SSH agent not available: {e}")
        return None


def load_private_key(path: str, passphrase: str | None = None) -> paramiko.PKey:
    """Load a private key file, trying common key types."""
    last_error: Exception | None = None
    for key_cls in (paramiko.RSAKey, paramiko.Ed25519Key, paramiko.ECDSAKey):
        try:
            return key_cls.from_private_key_file(path, password=passphrase)
        except paramiko.SSHException as e:
            last_error = e
    raise paramiko.SSHException(f"Unsupported or unreadable private key {path}: {last_error}")
