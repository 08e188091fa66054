"""In-process SSH transport (no external client binary)."""

import logging

import asyncssh

from remote_mcp.models import ConnectionTarget, Credential
from remote_mcp.services.classifier import classify_native_error

logger = logging.getLogger(__name__)


async def open_native_connection(
    target: ConnectionTarget,
    credential: Credential,
    known_hosts: str | None = None,
    connect_timeout: float | None = None,
) -> asyncssh.SSHClientConnection:
    """Handshake and authenticate with the credential as a password.

    Keys and agents are not offered: only password and
    keyboard-interactive authentication are attempted.

    Args:
        target: Parsed connection target
        credential: Password for the remote account
        known_hosts: known_hosts path, or None to skip host key verification
        connect_timeout: Seconds allowed for TCP connect plus handshake

    Returns:
        Authenticated asyncssh connection

    Raises:
        AuthRejected: If the server refuses the credential
        TransportUnavailable: If the host cannot be reached or verified
    """
    logger.info("Opening native SSH connection to %s", target)
    try:
        conn = await asyncssh.connect(
            target.host,
            port=target.port,
            username=target.user,
            password=credential.reveal(),
            known_hosts=known_hosts,
            client_keys=None,
            agent_path=None,
            preferred_auth="password,keyboard-interactive",
            connect_timeout=connect_timeout,
        )
    except (asyncssh.Error, OSError, TimeoutError) as e:
        error = classify_native_error(e)
        logger.warning("Native connection to %s failed: %s", target, error)
        raise error from e

    logger.info("Native SSH connection to %s succeeded", target)
    return conn
