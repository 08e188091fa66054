"""Map heterogeneous failure signals onto the error taxonomy."""

import asyncio
import logging
from collections.abc import Iterable

import asyncssh

from remote_mcp.models import StrategyKind
from remote_mcp.errors import (
    AuthRejected,
    RemoteError,
    TransportUnavailable,
)

logger = logging.getLogger(__name__)

REJECTION_MARKERS: tuple[str, ...] = (
    "permission denied",
    "access denied",
    "authentication failed",
    "incorrect password",
)

CONNECTION_MARKERS: tuple[str, ...] = (
    "connection refused",
    "could not resolve hostname",
    "no route to host",
    "connection timed out",
    "network is unreachable",
    "host key verification failed",
    "connection closed",
    "connection reset",
    "operation timed out",
    "kex_exchange_identification",
)

# OpenSSH reserves 255 for its own errors
SSH_ERROR_STATUS = 255

# sshpass(1) exit codes
SSHPASS_WRONG_PASSWORD = 5
SSHPASS_UNKNOWN_HOST_KEY = 6


def find_marker(lines: Iterable[str], markers: Iterable[str]) -> str | None:
    """Return the first line containing any marker (case-insensitive)."""
    lowered = [m.lower() for m in markers]
    for line in lines:
        text = line.lower()
        if any(m in text for m in lowered):
            return line.strip()
    return None


def _transport_failed(
    returncode: int,
    stderr_lines: list[str],
    strategy: StrategyKind,
) -> bool:
    """Whether the exit status was produced by the ssh client itself.

    OpenSSH and sshpass pass the remote command's status through, so only
    their reserved statuses count. plink prefixes its own errors with
    "FATAL ERROR".
    """
    if strategy is StrategyKind.HELPER_B:
        return find_marker(stderr_lines, ("fatal error",)) is not None
    if strategy is StrategyKind.HELPER_A and returncode in (
        SSHPASS_WRONG_PASSWORD,
        SSHPASS_UNKNOWN_HOST_KEY,
    ):
        return True
    return returncode == SSH_ERROR_STATUS


def classify_process_failure(
    returncode: int | None,
    stderr_lines: list[str],
    strategy: StrategyKind,
) -> RemoteError | None:
    """Classify the exit of an ssh-family process.

    A "Permission denied" printed by the remote command itself (e.g. ls on
    an unreadable directory) is not a rejected credential, so markers are
    only consulted when the client reports its own failure.

    Args:
        returncode: Exit status of the subordinate process
        stderr_lines: Diagnostic stream contents, line by line
        strategy: Strategy that spawned the process

    Returns:
        AuthRejected or TransportUnavailable when the failure belongs to the
        transport, None when the status belongs to the remote command.
    """
    if returncode is None or returncode == 0:
        return None

    if not _transport_failed(returncode, stderr_lines, strategy):
        return None

    rejected = find_marker(stderr_lines, REJECTION_MARKERS)
    if rejected:
        return AuthRejected(f"{strategy.value}: {rejected}")

    if strategy is StrategyKind.HELPER_A:
        if returncode == SSHPASS_WRONG_PASSWORD:
            return AuthRejected("sshpass: incorrect password")
        if returncode == SSHPASS_UNKNOWN_HOST_KEY:
            return TransportUnavailable("sshpass: host public key is unknown")

    unreachable = find_marker(stderr_lines, CONNECTION_MARKERS)
    if unreachable:
        return TransportUnavailable(f"{strategy.value}: {unreachable}")

    if strategy is not StrategyKind.HELPER_B:
        # A bare 255 is also what a remote command may exit with
        return None

    detail = stderr_lines[-1].strip() if stderr_lines else "no diagnostics"
    return TransportUnavailable(
        f"{strategy.value}: exited with status {returncode} ({detail})"
    )


def classify_native_error(exc: BaseException) -> RemoteError:
    """Map an asyncssh or socket exception to the error taxonomy."""
    if isinstance(exc, RemoteError):
        return exc

    if isinstance(exc, asyncssh.PermissionDenied):
        return AuthRejected(f"native: {exc.reason or 'permission denied'}")

    if isinstance(exc, asyncssh.HostKeyNotVerifiable):
        return TransportUnavailable(f"native: host key not verifiable: {exc}")

    if isinstance(exc, asyncssh.DisconnectError):
        return TransportUnavailable(f"native: disconnected: {exc}")

    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return TransportUnavailable("native: connection timed out")

    if isinstance(exc, OSError):
        return TransportUnavailable(f"native: {exc.strerror or exc}")

    logger.debug("Unclassified native transport error: %r", exc)
    return TransportUnavailable(f"native: {type(exc).__name__}: {exc}")
