"""Base middleware classes for Remote MCP."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from fastmcp.server.middleware import Middleware

# Tool arguments that carry secrets or file payloads
SENSITIVE_ARGUMENTS = frozenset({"password", "secret", "content"})

REDACTED = "***"


def redact_arguments(arguments: dict[str, Any] | None) -> dict[str, Any]:
    """Copy tool arguments with sensitive values masked."""
    if not arguments:
        return {}
    return {
        key: REDACTED if key.lower() in SENSITIVE_ARGUMENTS else value
        for key, value in arguments.items()
    }


class RemoteMiddleware(Middleware):
    """Base middleware with a configurable logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        """Initialize middleware.

        Args:
            logger: Optional custom logger. Defaults to module logger.
        """
        self.logger = logger or logging.getLogger(__name__)


class MCPMiddleware(ABC):
    """Transport-independent request filter.

    Implementations inspect a request before it reaches the MCP handler and
    reject it by raising. The HTTP adapter runs them for HTTP transport.
    """

    @abstractmethod
    async def process_request(
        self,
        method: str,
        params: dict[str, Any],
        context: dict[str, Any],
    ) -> dict[str, Any]:
        """Process request before tool handler.

        Args:
            method: MCP or HTTP method name
            params: Request parameters
            context: Transport-specific context (client IP, headers)

        Returns:
            Context dictionary, possibly extended

        Raises:
            PermissionError: Request is not authenticated
            RateLimitError: Client exceeded its request budget
        """

    async def process_response(
        self,
        method: str,
        response: Any,
        context: dict[str, Any],
    ) -> Any:
        """Process response after the handler (pass-through by default)."""
        return response
