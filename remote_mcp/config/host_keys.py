"""SSH host key verification settings.

Shared by the native transport (asyncssh known_hosts) and the process
strategies (OpenSSH -o options).
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class HostKeyVerifier:
    """SSH host key verification manager."""

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = False,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file or 'none' to disable
            strict_checking: Reject unknown host keys

        Raises:
            FileNotFoundError: If strict mode and the known_hosts file is missing
        """
        self.strict_checking = strict_checking
        self._known_hosts = self._resolve_known_hosts(known_hosts_path)

    def _resolve_known_hosts(self, env_value: str | None) -> str | None:
        """Resolve known_hosts path.

        Returns:
            Path to known_hosts file or None to disable verification

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        if env_value and env_value.lower() == "none":
            if self.strict_checking:
                logger.warning(
                    "Strict host key checking requested but known_hosts disabled; "
                    "host keys will not be verified"
                )
                self.strict_checking = False
            return None

        path = (
            Path(os.path.expanduser(env_value))
            if env_value
            else Path.home() / ".ssh" / "known_hosts"
        )
        if path.exists():
            return str(path)

        if self.strict_checking:
            raise FileNotFoundError(
                f"SSH host key verification required but known_hosts not found "
                f"at {path}.\n\n"
                f"To fix this:\n"
                f"1. Add host keys: ssh-keyscan <hostname> >> {path}\n"
                f"2. Or disable strict checking: "
                f"REMOTE_STRICT_HOST_KEY_CHECKING=false"
            )

        logger.debug("known_hosts not found at %s", path)
        return None

    def get_known_hosts_path(self) -> str | None:
        """Get path to known_hosts file.

        Returns:
            Path string or None if no file is in use
        """
        return self._known_hosts

    def native_known_hosts(self) -> str | None:
        """known_hosts argument for asyncssh.connect.

        None disables verification, which asyncssh requires for hosts that
        are not yet known when strict checking is off.
        """
        return self._known_hosts if self.strict_checking else None

    def openssh_options(self) -> list[str]:
        """``-o`` options for OpenSSH-based process strategies."""
        options = [
            "-o",
            f"StrictHostKeyChecking={'yes' if self.strict_checking else 'no'}",
        ]
        if self._known_hosts is not None:
            options += ["-o", f"UserKnownHostsFile={self._known_hosts}"]
        return options
