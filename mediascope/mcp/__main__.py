"""
CLI entry point for running the MCP server.

Usage:
    python -m mediascope.mcp

Starts the FastMCP server with stdio transport. The agent talks to the
server over stdin/stdout, so all logging goes to stderr.
"""

import logging

from mediascope.observability.logging_config import configure_logging
from mediascope.mcp.server import get_server

configure_logging()

logger = logging.getLogger(__name__)


def main() -> None:
    """Start the MCP server."""
    logger.info("mcp_server_starting")
    server = get_server()
    server.run()


if __name__ == "__main__":
    main()
