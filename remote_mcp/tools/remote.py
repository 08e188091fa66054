"""Remote session tools.

Tools never raise for expected failures: they return an ``Error: <phase>:``
string so the caller can tell which step went wrong.
"""

import base64
import binascii
import logging
from dataclasses import asdict
from typing import Any

from remote_mcp.errors import RemoteError
from remote_mcp.services import executors, get_config

logger = logging.getLogger(__name__)


def _timeout(timeout: float | None) -> float | None:
    if timeout is not None and timeout > 0:
        return timeout
    return get_config().command_timeout


def _error(e: Exception) -> str:
    if isinstance(e, RemoteError):
        return f"Error: {e}"
    return f"Error: {type(e).__name__}: {e}"


async def list_remote_directories(
    connection: str,
    password: str,
    path: str | None = None,
    timeout: float | None = None,
) -> list[str] | str:
    """List a directory on a remote host with ``ls -la``.

    Args:
        connection: Connection string in the form user@host
        password: Password for the remote account (never stored)
        path: Directory to list (default: the login directory)
        timeout: Seconds before giving up (default: REMOTE_COMMAND_TIMEOUT)

    Returns:
        Listing lines, or an error string naming the failed phase.
    """
    try:
        return await executors.list_remote_directories(
            connection, password, path, timeout=_timeout(timeout)
        )
    except (RemoteError, ValueError) as e:
        logger.warning("list_remote_directories failed: %s", e)
        return _error(e)


async def browse_remote_directory(
    connection: str,
    password: str,
    path: str | None = None,
    timeout: float | None = None,
) -> list[dict[str, Any]] | str:
    """List a remote directory as structured entries.

    Each entry has name, type (file, directory, symlink or unknown), size,
    permissions and date.
    """
    try:
        entries = await executors.browse_remote_directory(
            connection, password, path, timeout=_timeout(timeout)
        )
    except (RemoteError, ValueError) as e:
        logger.warning("browse_remote_directory failed: %s", e)
        return _error(e)
    return [asdict(entry) for entry in entries]


async def execute_remote_command(
    connection: str,
    password: str,
    command: str,
    timeout: float | None = None,
) -> list[str] | str:
    """Run a shell command on a remote host.

    Args:
        connection: Connection string in the form user@host
        password: Password for the remote account (never stored)
        command: Command passed to the remote shell as-is
        timeout: Seconds before giving up (default: REMOTE_COMMAND_TIMEOUT)

    Returns:
        Output lines (possibly empty) regardless of the command's exit
        status, or an error string naming the failed phase.
    """
    try:
        result = await executors.execute_remote_command(
            connection, password, command, timeout=_timeout(timeout)
        )
    except (RemoteError, ValueError) as e:
        logger.warning("execute_remote_command failed: %s", e)
        return _error(e)
    return result.lines


async def save_remote_file(
    connection: str,
    password: str,
    remote_path: str,
    content: str,
    encoding: str = "text",
    timeout: float | None = None,
) -> str:
    """Create or overwrite a file on a remote host.

    Args:
        connection: Connection string in the form user@host
        password: Password for the remote account (never stored)
        remote_path: Destination file path on the remote host
        content: File contents
        encoding: "text" (UTF-8) or "base64" for binary content
        timeout: Seconds before giving up (default: REMOTE_COMMAND_TIMEOUT)

    Returns:
        Confirmation message or an error string naming the failed phase.
    """
    if encoding == "base64":
        try:
            data = base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError) as e:
            return f"Error: parse: content is not valid base64: {e}"
    elif encoding == "text":
        data = content.encode("utf-8")
    else:
        return f"Error: parse: unknown encoding {encoding!r} (use 'text' or 'base64')"

    try:
        result = await executors.save_remote_file(
            connection, password, remote_path, data, timeout=_timeout(timeout)
        )
    except RemoteError as e:
        logger.warning("save_remote_file failed: %s", e)
        return _error(e)
    except ValueError as e:
        return f"Error: transfer: {e}"

    return f"Saved {result.bytes_transferred} bytes to {result.remote_path}"


async def open_elevated_local_shell(command: str) -> str:
    """Open an elevated PowerShell window on this machine running a command.

    Windows only. The window is not tracked after it opens.
    """
    try:
        await executors.open_elevated_local_shell(command)
    except RemoteError as e:
        logger.warning("open_elevated_local_shell failed: %s", e)
        return _error(e)
    return "Elevated shell launched"
