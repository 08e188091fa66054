"""Single-file upload over the SCP sink protocol.

The remote side runs ``scp -t <path>`` and answers every control message
with an ack byte: ``\\0`` for success, ``\\1`` (warning) or ``\\2`` (fatal)
followed by a message line.
"""

import asyncio
import logging
import posixpath

from remote_mcp.errors import (
    AuthRejected,
    ExecutionError,
    TransferCloseError,
    TransferError,
    TransferOpenError,
    TransferWriteError,
    TransportUnavailable,
)
from remote_mcp.models import TransferResult
from remote_mcp.services.session import Channel, RemoteSession
from remote_mcp.utils.output import decode_output
from remote_mcp.utils.shell import quote_path

logger = logging.getLogger(__name__)

FILE_MODE = "0644"
ACK_OK = b"\0"
ACK_ERRORS = (b"\1", b"\2")

STREAM_ERRORS = (
    OSError,
    EOFError,
    asyncio.IncompleteReadError,
    ConnectionError,
)


def sink_command(remote_path: str) -> str:
    """Remote command that receives a single file at ``remote_path``."""
    return f"scp -t {quote_path(remote_path)}"


async def _read_ack(channel: Channel) -> str | None:
    """Read one ack; return None on success or the sink's error message."""
    code = await channel.read_exactly(1)
    if code == ACK_OK:
        return None
    if code in ACK_ERRORS:
        message = decode_output(await channel.readline()).strip()
        return message or "sink reported an error"
    return f"unexpected response byte {code!r}"


async def _client_failure(channel: Channel) -> None:
    """Surface a failed ssh client instead of a protocol error.

    With process-backed sessions authentication happens inside the
    transfer process, so a sink that never answers is usually a rejected
    credential or an unreachable host.
    """
    try:
        await asyncio.wait_for(channel.wait_closed(), timeout=1.0)
    except (AuthRejected, TransportUnavailable):
        raise
    except (asyncio.TimeoutError, ExecutionError, *STREAM_ERRORS):
        pass


async def _open(channel: Channel, remote_path: str, size: int) -> None:
    try:
        error = await _read_ack(channel)
        if error is None:
            name = posixpath.basename(remote_path)
            await channel.write(f"C{FILE_MODE} {size} {name}\n".encode())
            error = await _read_ack(channel)
    except STREAM_ERRORS as e:
        await _client_failure(channel)
        raise TransferOpenError(f"cannot open {remote_path}: {e}") from e

    if error is not None:
        raise TransferOpenError(f"cannot open {remote_path}: {error}")


async def _write(channel: Channel, remote_path: str, content: bytes) -> None:
    try:
        await channel.write(content)
        await channel.write(ACK_OK)
    except STREAM_ERRORS as e:
        raise TransferWriteError(f"cannot write {remote_path}: {e}") from e


async def _close(channel: Channel, remote_path: str) -> None:
    try:
        error = await _read_ack(channel)
        await channel.write_eof()
        status = await channel.wait_closed()
    except STREAM_ERRORS as e:
        raise TransferCloseError(f"cannot finish {remote_path}: {e}") from e

    if error is not None:
        raise TransferCloseError(f"cannot finish {remote_path}: {error}")
    if status not in (0, None):
        raise TransferCloseError(f"sink for {remote_path} exited with status {status}")


async def send_file(
    session: RemoteSession,
    remote_path: str,
    content: bytes,
    timeout: float | None = None,
) -> TransferResult:
    """Upload content to a remote file, creating or overwriting it.

    Args:
        session: Authenticated session
        remote_path: Destination path on the remote host
        content: File contents
        timeout: Seconds for the whole transfer, None for no limit

    Returns:
        TransferResult with the number of bytes sent

    Raises:
        TransferOpenError: Channel or file header refused
        TransferWriteError: Content could not be sent
        TransferCloseError: End-of-transfer sequence failed
    """
    command = sink_command(remote_path)
    stage: type[TransferError] = TransferOpenError

    async def transfer() -> TransferResult:
        nonlocal stage
        try:
            channel = await session.open_channel(command)
        except (AuthRejected, TransportUnavailable):
            raise
        except (ExecutionError, *STREAM_ERRORS) as e:
            raise TransferOpenError(f"cannot start sink for {remote_path}: {e}") from e

        await _open(channel, remote_path, len(content))
        logger.debug("Sink accepted header for %s (%d bytes)", remote_path, len(content))
        stage = TransferWriteError
        await _write(channel, remote_path, content)
        stage = TransferCloseError
        await _close(channel, remote_path)
        return TransferResult(remote_path=remote_path, bytes_transferred=len(content))

    try:
        result = await asyncio.wait_for(transfer(), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise stage(f"transfer to {remote_path} timed out after {timeout}s") from e

    logger.info("Transferred %d bytes to %s", result.bytes_transferred, remote_path)
    return result
