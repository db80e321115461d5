"""AA Slack MCP Server - Standalone entry point.

This module delegates to server/ for the server infrastructure.
It only specifies which tool modules to load.
"""

import argparse
import asyncio

from server.main import create_mcp_server, run_mcp_server, setup_logging


def main():
    """Run the slack-only MCP server."""
    parser = argparse.ArgumentParser(description="AA Slack MCP Server (stdio)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    setup_logging(debug=args.debug)
    server = create_mcp_server(name="aa_slack", tools=["slack"])
    asyncio.run(run_mcp_server(server))


if __name__ == "__main__":
    main()
