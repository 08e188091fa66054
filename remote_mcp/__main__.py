"""Entry point for remote_mcp server."""

import logging

from remote_mcp.server import mcp  # importing also configures logging
from remote_mcp.services import get_config

logger = logging.getLogger(__name__)


def run_server() -> None:
    """Run the MCP server with the configured transport."""
    config = get_config()

    if config.transport == "stdio":
        logger.info("Starting Remote MCP server (transport=stdio)")
        mcp.run(transport="stdio")
        return

    logger.info(
        "Starting Remote MCP server (transport=http, host=%s, port=%d)",
        config.http_host,
        config.http_port,
    )
    mcp.run(transport="http", host=config.http_host, port=config.http_port)


if __name__ == "__main__":
    run_server()
