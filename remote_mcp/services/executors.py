"""Remote session operations.

Each operation parses and validates the connection string, runs through the
strategy chain with a fresh session, and wipes the credential afterwards.
"""

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from remote_mcp.errors import EmptyResult, ExecutionError, LaunchError
from remote_mcp.models import CommandResult, Credential, FileEntry, TransferResult
from remote_mcp.services.chain import StrategyChain
from remote_mcp.services.process import which
from remote_mcp.services.session import RemoteSession
from remote_mcp.services.state import get_config
from remote_mcp.services.transfer import send_file, sink_command
from remote_mcp.utils.listing import parse_directory_listing
from remote_mcp.utils.parser import parse_target
from remote_mcp.utils.shell import quote_path, quote_powershell
from remote_mcp.utils.validation import validate_remote_path, validate_target

if TYPE_CHECKING:
    from remote_mcp.config import Config

logger = logging.getLogger(__name__)


def _resolve(config: "Config | None", chain: StrategyChain | None) -> tuple["Config", StrategyChain]:
    if config is None:
        config = get_config()
    if chain is None:
        chain = StrategyChain.from_config(config)
    return config, chain


def listing_command(path: str | None = None) -> str:
    """Remote command that produces a long directory listing."""
    if path:
        return f"ls -la {quote_path(path)}"
    return "ls -la"


async def _run_listing(
    connection: str,
    password: str,
    path: str | None,
    timeout: float | None,
    config: "Config | None",
    chain: StrategyChain | None,
) -> list[str]:
    config, chain = _resolve(config, chain)
    credential = Credential(password)
    command = listing_command(path)
    try:
        target = validate_target(parse_target(connection, port=config.ssh_port))

        async def operation(session: RemoteSession) -> CommandResult:
            return await session.run(command, timeout=timeout)

        result = await chain.run(target, credential, command, operation)
    finally:
        credential.wipe()

    if not result.exit_succeeded:
        raise ExecutionError(
            f"listing {path or 'home directory'} on {target.destination} "
            f"exited with status {result.exit_status}"
        )
    if not result.lines:
        raise EmptyResult(f"listing on {target.destination} produced no output")
    return result.lines


async def list_remote_directories(
    connection: str,
    password: str,
    path: str | None = None,
    timeout: float | None = None,
    config: "Config | None" = None,
    chain: StrategyChain | None = None,
) -> list[str]:
    """List a remote directory (the login directory by default).

    Args:
        connection: ``user@host`` connection string
        password: Secret for the remote account
        path: Directory to list, None for the login directory
        timeout: Seconds before the listing is abandoned
        config: Configuration override
        chain: Strategy chain override

    Returns:
        Non-blank lines of ``ls -la`` output, in order

    Raises:
        MalformedTarget: Bad connection string
        AuthRejected: Credential refused
        ExecutionError: Listing exited non-zero
        EmptyResult: Listing produced only blank lines
    """
    return await _run_listing(connection, password, path, timeout, config, chain)


async def browse_remote_directory(
    connection: str,
    password: str,
    path: str | None = None,
    timeout: float | None = None,
    config: "Config | None" = None,
    chain: StrategyChain | None = None,
) -> list[FileEntry]:
    """List a remote directory and parse it into entries."""
    lines = await _run_listing(connection, password, path, timeout, config, chain)
    return parse_directory_listing(lines)


async def execute_remote_command(
    connection: str,
    password: str,
    command: str,
    timeout: float | None = None,
    config: "Config | None" = None,
    chain: StrategyChain | None = None,
) -> CommandResult:
    """Run a command on a remote host.

    The command is passed through verbatim. A non-zero exit status is
    reported on the result, not raised.

    Returns:
        CommandResult with the normalized stdout lines
    """
    config, chain = _resolve(config, chain)
    credential = Credential(password)
    drop_blank = not config.settings.keep_blank_lines
    try:
        target = validate_target(parse_target(connection, port=config.ssh_port))

        async def operation(session: RemoteSession) -> CommandResult:
            return await session.run(command, timeout=timeout, drop_blank=drop_blank)

        result = await chain.run(target, credential, command, operation)
    finally:
        credential.wipe()

    logger.info(
        "Command on %s exited with status %s (%d lines)",
        target.destination,
        result.exit_status,
        len(result.lines),
    )
    return result


async def save_remote_file(
    connection: str,
    password: str,
    remote_path: str,
    content: bytes,
    timeout: float | None = None,
    config: "Config | None" = None,
    chain: StrategyChain | None = None,
) -> TransferResult:
    """Create or overwrite a remote file with the given content.

    Raises:
        ValueError: Remote path unusable
        TransferOpenError: Sink refused the file
        TransferWriteError: Content could not be sent
        TransferCloseError: Transfer did not complete cleanly
    """
    config, chain = _resolve(config, chain)
    credential = Credential(password)
    try:
        target = validate_target(parse_target(connection, port=config.ssh_port))
        validate_remote_path(remote_path)

        async def operation(session: RemoteSession) -> TransferResult:
            return await send_file(session, remote_path, content, timeout=timeout)

        return await chain.run(target, credential, sink_command(remote_path), operation)
    finally:
        credential.wipe()


def elevated_shell_argv(command: str) -> list[str]:
    """PowerShell invocation that opens an elevated window running command."""
    inner = f"-NoExit -Command \"{quote_powershell(command)}\""
    return [
        "powershell",
        "-NoExit",
        "-Command",
        f"Start-Process PowerShell -Verb RunAs -ArgumentList '{inner}'",
    ]


async def open_elevated_local_shell(command: str) -> None:
    """Open an elevated local PowerShell window pre-filled with a command.

    Fire-and-forget: the window's lifetime is independent of this call.

    Raises:
        LaunchError: Not on Windows, PowerShell missing, or spawn failed
    """
    if sys.platform != "win32":
        raise LaunchError(f"elevated shell is only supported on Windows, not {sys.platform}")
    if which("powershell") is None:
        raise LaunchError("powershell not found on the search path")

    try:
        process = await asyncio.create_subprocess_exec(*elevated_shell_argv(command))
    except OSError as e:
        raise LaunchError(f"cannot start powershell: {e.strerror or e}") from e

    logger.info("Launched elevated shell (pid=%s)", process.pid)
