"""
Pre/post-update command runner.

Commands are split with ``shlex`` and executed without a shell. The timeout
is a hard wall-clock bound: the child is killed when it expires.
"""

from __future__ import annotations

import asyncio
import shlex

from ironsync.exceptions import HookError
from ironsync.utils.logging import get_logger

logger = get_logger("ironsync.utils.commands")

DEFAULT_COMMAND_TIMEOUT = 30


async def run_command(command_line: str, timeout_s: float = DEFAULT_COMMAND_TIMEOUT) -> None:
    """
    Run ``command_line`` and wait for it to exit.

    Args:
        command_line: Command and arguments, shell-quoted
        timeout_s: Seconds before the command is killed

    Raises:
        HookError: If the command cannot be started, exits non-zero or times out
    """
    try:
        args = shlex.split(command_line)
    except ValueError as e:
        raise HookError(command_line, f"Invalid command line: {e}") from None
    if not args:
        raise HookError(command_line, "Empty command line")

    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise HookError(command_line, f"Cannot start command: {e}") from e

    try:
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_s)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise HookError(command_line, f"Command timed out after {timeout_s}s") from None
    except asyncio.CancelledError:
        # Worker is stopping; the child must not outlive it
        if proc.returncode is None:
            proc.kill()
        raise

    if proc.returncode != 0:
        detail = (stderr or b"").decode(errors="replace").strip()
        message = f"Command exited with status {proc.returncode}"
        if detail:
            message = f"{message}: {detail}"
        raise HookError(command_line, message, returncode=proc.returncode)

    logger.debug(f"Command succeeded: {command_line}")
