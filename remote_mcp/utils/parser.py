"""Connection target parsing."""

from remote_mcp.models import DEFAULT_SSH_PORT, ConnectionTarget
from remote_mcp.errors import MalformedTarget


def parse_target(value: str, port: int | None = None) -> ConnectionTarget:
    """Parse a ``user@host`` connection string.

    The string is taken as given. Whitespace is not trimmed and ends up
    in the user or host, where validate_target rejects it.

    Args:
        value: Connection string, e.g. "root@10.0.0.5"
        port: Optional port override (defaults to 22)

    Returns:
        ConnectionTarget with parsed components.

    Raises:
        MalformedTarget: If the string does not hold exactly one '@'
            with text on both sides.
    """
    if value.count("@") != 1:
        raise MalformedTarget(
            f"Invalid connection string '{value}'. Expected 'user@host'"
        )

    user, host = value.split("@", 1)
    if not user or not host:
        raise MalformedTarget(
            f"Invalid connection string '{value}'. User and host cannot be empty"
        )

    return ConnectionTarget(
        user=user,
        host=host,
        port=DEFAULT_SSH_PORT if port is None else port,
    )
