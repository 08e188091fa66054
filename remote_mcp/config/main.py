"""Application configuration.

Delegates to specialized components:
- HostKeyVerifier: Manages known_hosts
- Settings: Environment variables
"""

import logging
import os
from dataclasses import dataclass

from remote_mcp.config.host_keys import HostKeyVerifier
from remote_mcp.config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Application configuration.

    Aggregates settings from environment and host key policy.
    """

    settings: Settings
    host_keys: HostKeyVerifier

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Returns:
            Configured instance with all components initialized
        """
        settings = Settings.from_env()
        host_keys = HostKeyVerifier(
            known_hosts_path=os.getenv("REMOTE_KNOWN_HOSTS"),
            strict_checking=Settings._get_bool("REMOTE_STRICT_HOST_KEY_CHECKING", False),
        )
        logger.debug(
            "Config loaded (native_transport=%s, strict_host_keys=%s)",
            settings.native_transport,
            host_keys.strict_checking,
        )
        return cls(settings=settings, host_keys=host_keys)

    # Delegate to settings for convenience
    @property
    def ssh_port(self) -> int:
        """Default SSH port for parsed targets."""
        return self.settings.ssh_port

    @property
    def connect_timeout(self) -> int:
        """Connection timeout in seconds."""
        return self.settings.connect_timeout

    @property
    def command_timeout(self) -> float | None:
        """Command/transfer timeout in seconds, None when unbounded."""
        return self.settings.command_timeout_or_none

    @property
    def transport(self) -> str:
        """Transport type (http or stdio)."""
        return self.settings.transport

    @property
    def http_host(self) -> str:
        """HTTP server bind address."""
        return self.settings.http_host

    @property
    def http_port(self) -> int:
        """HTTP server port."""
        return self.settings.http_port
