"""Error taxonomy for remote session operations.

Every error carries the phase it failed in so callers can tell a bad
connection string from a refused password or a broken transfer.
"""


class RemoteError(Exception):
    """Base class for all remote session failures."""

    phase = "remote"

    def __init__(self, message: str):
        """Initialize remote error.

        Args:
            message: Human readable description (must never contain secrets)
        """
        self.message = message
        super().__init__(f"{self.phase}: {message}")


class MalformedTarget(RemoteError, ValueError):
    """Connection string is not a valid ``user@host``."""

    phase = "parse"


class TransportUnavailable(RemoteError):
    """No route to the remote host, or the transport could not start."""

    phase = "connect"


class StrategyUnavailable(TransportUnavailable):
    """A helper executable needed by a strategy is missing."""


class AuthRejected(RemoteError):
    """The remote side refused the credential."""

    phase = "authenticate"


class InjectionError(AuthRejected):
    """Writing the secret to the subordinate's input stream failed."""


class AuthExhausted(RemoteError):
    """Every authentication strategy failed."""

    phase = "authenticate"

    def __init__(self, last_error: RemoteError):
        """Initialize exhausted error.

        Args:
            last_error: Error raised by the last strategy attempted
        """
        self.last_error = last_error
        super().__init__(f"all strategies failed (last: {last_error})")


class ExecutionError(RemoteError):
    """Command dispatch or readback failed after authentication."""

    phase = "execute"


class ReadError(ExecutionError):
    """Command output could not be fully drained."""


class EmptyResult(ExecutionError):
    """Listing succeeded but produced no usable lines."""


class TransferError(RemoteError):
    """Base class for file transfer failures."""

    phase = "transfer"


class TransferOpenError(TransferError):
    """Transfer channel could not be opened or the header was refused."""


class TransferWriteError(TransferError):
    """Content could not be written to the transfer channel."""


class TransferCloseError(TransferError):
    """End-of-transfer sequence failed."""


class LaunchError(RemoteError):
    """Local elevated shell could not be spawned."""

    phase = "launch"
