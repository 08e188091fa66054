"""Remote MCP middleware components."""

from remote_mcp.middleware.auth import APIKeyMiddleware
from remote_mcp.middleware.base import MCPMiddleware, RemoteMiddleware, redact_arguments
from remote_mcp.middleware.errors import ErrorHandlingMiddleware
from remote_mcp.middleware.http_adapter import HTTPMiddlewareAdapter
from remote_mcp.middleware.logging import LoggingMiddleware
from remote_mcp.middleware.ratelimit import (
    RateLimitError,
    RateLimitMiddleware,
    TokenBucket,
)

__all__ = [
    "APIKeyMiddleware",
    "ErrorHandlingMiddleware",
    "HTTPMiddlewareAdapter",
    "LoggingMiddleware",
    "MCPMiddleware",
    "RateLimitError",
    "RateLimitMiddleware",
    "RemoteMiddleware",
    "TokenBucket",
    "redact_arguments",
]
