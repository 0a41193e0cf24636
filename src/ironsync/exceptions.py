"""
ironsync exception hierarchy.

All domain-specific exceptions inherit from IronsyncError, so a worker can
catch any expected failure with a single base class while callers can still
tell a transport fault from an install fault.

Hierarchy::

    IronsyncError
    ├── ConfigurationError   - config loading, parsing, graph validation
    ├── InitializationError  - startup orchestration failures
    ├── TransportError       - dial, auth, timeout, non-success status
    ├── ComparisonError      - unreadable file during byte comparison
    ├── InstallError         - permission, ownership or rename failure
    └── HookError            - pre/post-update command failure

Only ConfigurationError and InitializationError stop the process. Every other
kind is retryable: the resource is rescheduled at its retry interval.
"""

from __future__ import annotations


class IronsyncError(Exception):
    """Base exception for all ironsync errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(IronsyncError):
    """Raised when configuration loading, parsing, or validation fails."""


class InitializationError(IronsyncError):
    """Raised during startup when a required component fails to initialize.

    Exception chaining is suppressed (``from None``) where raised to keep CLI
    output clean.
    """


# --- Runtime -----------------------------------------------------------------


class TransportError(IronsyncError):
    """Raised when a remote resource cannot be fetched."""

    def __init__(self, connection: str, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message, details={"connection": connection})
        self.connection_name = connection
        if cause is not None:
            self.__cause__ = cause


class ComparisonError(IronsyncError):
    """Raised when a file cannot be read during byte comparison."""


class InstallError(IronsyncError):
    """Raised when a staging file cannot be installed onto its final path."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message, details={"path": path})
        self.path = path


class HookError(IronsyncError):
    """Raised when a pre/post-update command fails or times out."""

    def __init__(self, command: str, message: str, *, returncode: int | None = None) -> None:
        super().__init__(message, details={"command": command, "returncode": returncode})
        self.command = command
        self.returncode = returncode
