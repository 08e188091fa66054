"""Remote MCP FastMCP server.

Thin wiring of tools, middleware and logging. All session logic lives in
services/.
"""

import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from remote_mcp.config import Settings
from remote_mcp.dependencies import Dependencies
from remote_mcp.middleware import (
    APIKeyMiddleware,
    ErrorHandlingMiddleware,
    HTTPMiddlewareAdapter,
    LoggingMiddleware,
    RateLimitMiddleware,
)
from remote_mcp.services import set_config, which
from remote_mcp.tools import (
    browse_remote_directory,
    execute_remote_command,
    list_remote_directories,
    open_elevated_local_shell,
    save_remote_file,
)
from remote_mcp.utils.console import RemoteRequestFormatter

NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "asyncssh",
    "httpx",
    "httpcore",
    "fastmcp",
    "starlette",
    "anyio",
)


def _configure_logging() -> None:
    """Configure colorful logging for the remote_mcp package.

    Runs at import time so loggers are configured however the server is
    started.
    """
    log_level = os.getenv("REMOTE_LOG_LEVEL", "INFO").upper()
    use_colors = os.getenv("REMOTE_LOG_COLORS", "true").lower() != "false"
    if not sys.stderr.isatty():
        use_colors = False

    package_logger = logging.getLogger("remote_mcp")
    package_logger.setLevel(getattr(logging, log_level, logging.INFO))

    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(RemoteRequestFormatter(use_colors=use_colors))
        package_logger.addHandler(handler)
        package_logger.propagate = False

    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.WARNING)
        noisy.handlers = []
        noisy.propagate = False

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(logging.WARNING)


_configure_logging()

logger = logging.getLogger(__name__)

HELPER_PROGRAMS = ("ssh", "sshpass", "plink")


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Load configuration and report which transports are usable."""
    logger.info("Remote MCP server starting up")

    deps = Dependencies.create()
    set_config(deps.config)
    server.deps = deps

    helpers = {name: which(name) is not None for name in HELPER_PROGRAMS}
    logger.info(
        "Native transport %s; helpers: %s",
        "enabled" if deps.config.settings.native_transport else "disabled",
        ", ".join(f"{name}={'yes' if found else 'no'}" for name, found in helpers.items()),
    )

    try:
        yield {"native_transport": deps.config.settings.native_transport, "helpers": helpers}
    finally:
        logger.info("Remote MCP server shutdown complete")


def configure_middleware(server: FastMCP, settings: Settings) -> None:
    """Add MCP-layer middleware (first added = innermost).

    Args:
        server: The FastMCP server to configure.
        settings: Logging options (REMOTE_LOG_PAYLOADS,
            REMOTE_SLOW_THRESHOLD_MS, REMOTE_INCLUDE_TRACEBACK).
    """
    server.add_middleware(
        ErrorHandlingMiddleware(include_traceback=settings.include_traceback)
    )
    server.add_middleware(
        LoggingMiddleware(
            include_payloads=settings.log_payloads,
            slow_threshold_ms=settings.slow_threshold_ms,
        )
    )


def configure_http_security(server: FastMCP, settings: Settings) -> Any:
    """Wrap the HTTP app with rate limiting and API key checks.

    Returns:
        The Starlette app with security middleware installed
    """
    http_app = server.http_app()

    if settings.rate_limit_per_minute > 0:
        http_app.add_middleware(
            HTTPMiddlewareAdapter,
            mcp_middleware=RateLimitMiddleware(
                per_minute=settings.rate_limit_per_minute,
                burst=settings.rate_limit_burst,
            ),
        )
        logger.info(
            "Rate limiting configured: %d req/min, burst=%d",
            settings.rate_limit_per_minute,
            settings.rate_limit_burst,
        )
    else:
        logger.info("Rate limiting disabled (REMOTE_RATE_LIMIT_PER_MINUTE=0)")

    if not settings.api_keys:
        logger.warning(
            "No API keys configured (REMOTE_API_KEYS not set). "
            "Authentication disabled - server is open to all requests!"
        )
        return http_app

    http_app.add_middleware(
        HTTPMiddlewareAdapter,
        mcp_middleware=APIKeyMiddleware(
            api_keys=settings.api_keys,
            enabled=settings.auth_enabled,
        ),
    )
    if settings.auth_enabled:
        logger.info("API key authentication enabled (%d key(s))", len(settings.api_keys))
    else:
        logger.warning("API key authentication DISABLED via REMOTE_AUTH_ENABLED=false")
    return http_app


def create_server(settings: Settings | None = None) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        settings: Settings override, read from the environment by default

    Returns:
        Configured FastMCP server instance
    """
    settings = settings or Settings.from_env()
    server = FastMCP("remote_mcp", lifespan=app_lifespan)

    configure_middleware(server, settings)

    server.tool()(list_remote_directories)
    server.tool()(execute_remote_command)
    server.tool()(save_remote_file)
    server.tool()(browse_remote_directory)
    server.tool()(open_elevated_local_shell)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> PlainTextResponse:
        """Health check endpoint."""
        client_host = request.client.host if request.client else "unknown"
        logger.debug("Health check from %s", client_host)
        return PlainTextResponse("OK")

    configure_http_security(server, settings)
    return server


# Default server instance
mcp = create_server()
