"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_MARKERS = ["password:", "password for"]
DEFAULT_REJECTION_MARKERS = [
    "permission denied",
    "authentication failed",
    "access denied",
]


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Remote session
    ssh_port: int = field(default=22)
    connect_timeout: int = field(default=10)
    command_timeout: int = field(default=0)  # 0 = unbounded
    native_transport: bool = field(default=True)
    keep_blank_lines: bool = field(default=False)

    # Interactive prompt injection
    prompt_deadline: float = field(default=10.0)
    settle_delay: float = field(default=0.5)
    prompt_markers: list[str] = field(default_factory=lambda: list(DEFAULT_PROMPT_MARKERS))
    rejection_markers: list[str] = field(
        default_factory=lambda: list(DEFAULT_REJECTION_MARKERS)
    )

    # Transport
    transport: str = field(default="http")
    http_host: str = field(default="127.0.0.1")
    http_port: int = field(default=8000)

    # Security
    api_keys: list[str] = field(default_factory=list)
    auth_enabled: bool = field(default=True)
    rate_limit_per_minute: int = field(default=60)
    rate_limit_burst: int = field(default=10)

    # Logging
    log_level: str = field(default="INFO")
    log_payloads: bool = field(default=False)
    slow_threshold_ms: int = field(default=1000)
    include_traceback: bool = field(default=False)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from REMOTE_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            ssh_port=cls._get_int("REMOTE_SSH_PORT", 22),
            connect_timeout=cls._get_int("REMOTE_CONNECT_TIMEOUT", 10),
            command_timeout=cls._get_int("REMOTE_COMMAND_TIMEOUT", 0),
            native_transport=cls._get_bool("REMOTE_NATIVE_TRANSPORT", True),
            keep_blank_lines=cls._get_bool("REMOTE_KEEP_BLANK_LINES", False),
            prompt_deadline=cls._get_float("REMOTE_PROMPT_DEADLINE", 10.0),
            settle_delay=cls._get_float("REMOTE_SETTLE_DELAY", 0.5),
            prompt_markers=cls._get_list("REMOTE_PROMPT_MARKERS", DEFAULT_PROMPT_MARKERS),
            rejection_markers=cls._get_list(
                "REMOTE_REJECTION_MARKERS", DEFAULT_REJECTION_MARKERS
            ),
            transport=cls._get_transport(),
            http_host=os.getenv("REMOTE_HTTP_HOST", "127.0.0.1"),
            http_port=cls._get_int("REMOTE_HTTP_PORT", 8000),
            api_keys=cls._get_list("REMOTE_API_KEYS", []),
            auth_enabled=cls._get_bool("REMOTE_AUTH_ENABLED", True),
            rate_limit_per_minute=cls._get_int("REMOTE_RATE_LIMIT_PER_MINUTE", 60),
            rate_limit_burst=cls._get_int("REMOTE_RATE_LIMIT_BURST", 10),
            log_level=os.getenv("REMOTE_LOG_LEVEL", "INFO"),
            log_payloads=cls._get_bool("REMOTE_LOG_PAYLOADS", False),
            slow_threshold_ms=cls._get_int("REMOTE_SLOW_THRESHOLD_MS", 1000),
            include_traceback=cls._get_bool("REMOTE_INCLUDE_TRACEBACK", False),
        )

    @property
    def command_timeout_or_none(self) -> float | None:
        """Command timeout in seconds, or None when unbounded."""
        return float(self.command_timeout) if self.command_timeout > 0 else None

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float for %s: %s, using default %s", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_list(key: str, default: list[str]) -> list[str]:
        """Get a comma-separated list from environment.

        Returns:
            Stripped non-empty items, or a copy of default if unset
        """
        value = os.getenv(key, "").strip()
        if not value:
            return list(default)
        return [item.strip() for item in value.split(",") if item.strip()]

    @staticmethod
    def _get_transport() -> str:
        """Get transport from environment with validation.

        Returns:
            Transport type ("http" or "stdio")
        """
        transport = os.getenv("REMOTE_TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "http"
