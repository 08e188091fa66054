"""Connection target and remote path validation."""

import posixpath
from typing import Final

from remote_mcp.models import ConnectionTarget
from remote_mcp.errors import MalformedTarget

# Characters that could enable option or shell injection when the target is
# handed to an external ssh client
SUSPICIOUS_CHARS: Final[list[str]] = [
    "/", "\\", ";", "&", "|", "$", "`", "'", '"', " ", "\t", "\n", "\r", "\x00",
]

MAX_HOST_LENGTH: Final[int] = 253


def validate_target(target: ConnectionTarget) -> ConnectionTarget:
    """Validate a parsed target before it reaches any transport.

    Args:
        target: Parsed connection target

    Returns:
        The same target

    Raises:
        MalformedTarget: If user, host or port are unusable
    """
    for label, value in (("user", target.user), ("host", target.host)):
        if value.startswith("-"):
            raise MalformedTarget(f"{label.capitalize()} cannot start with '-': {value!r}")
        for char in SUSPICIOUS_CHARS:
            if char in value:
                raise MalformedTarget(f"{label.capitalize()} contains invalid characters: {value!r}")

    if len(target.host) > MAX_HOST_LENGTH:
        raise MalformedTarget(f"Host name too long: {len(target.host)} chars")

    if not 0 < target.port < 65536:
        raise MalformedTarget(f"Port out of range: {target.port}")

    return target


def validate_remote_path(path: str) -> str:
    """Validate a destination path for file transfer.

    The scp sink receives the file name on a newline-terminated header line,
    so names with newlines cannot be transferred.

    Raises:
        ValueError: If the path is empty, a directory, or contains
            newline or null characters
    """
    if not path or not path.strip():
        raise ValueError("Remote path cannot be empty")

    if "\x00" in path:
        raise ValueError(f"Remote path contains null byte: {path!r}")

    if "\n" in path or "\r" in path:
        raise ValueError(f"Remote path contains a line break: {path!r}")

    if not posixpath.basename(path):
        raise ValueError(f"Remote path must name a file, not a directory: {path}")

    return path
