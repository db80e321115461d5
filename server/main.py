"""MCP Server - Main Entry Point.

This module provides the MCP server infrastructure that loads tool modules.
Tool modules are plugins in the tool_modules/ directory.

Usage:
    # Run with the Slack tools (default):
    python -m server

    # Run with specific tool modules:
    python -m server --tools slack

    # Print the registered tools and exit:
    python -m server --list-tools
"""

import argparse
import asyncio
import importlib
import logging
import sys

from fastmcp import FastMCP

from .protocols import validate_tool_module
from .tool_paths import get_available_modules, get_tools_file_path, get_tools_module_name

DEFAULT_TOOLS = ["slack"]


def setup_logging(debug: bool = False) -> logging.Logger:
    """Configure logging for MCP server.

    Format excludes timestamp since journald adds its own.
    Logs to stderr since stdout is reserved for JSON-RPC.
    """
    stream_handler = logging.StreamHandler(sys.stderr)

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(name)s - %(levelname)s - %(message)s",
        handlers=[stream_handler],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger(__name__)


def _load_single_tool_module(tool_name: str, server: FastMCP) -> int:
    """
    Import a single tool module and register its tools.

    Args:
        tool_name: Tool module name (e.g., "slack" or "slack_basic")
        server: FastMCP server instance

    Returns:
        Number of tools registered, 0 on failure
    """
    logger = logging.getLogger(__name__)

    tools_file = get_tools_file_path(tool_name)
    if not tools_file.exists():
        logger.warning(f"Tools file not found: {tools_file}")
        return 0

    module = importlib.import_module(get_tools_module_name(tool_name))

    errors = validate_tool_module(module, tool_name)
    if errors:
        for error in errors:
            logger.warning(error)
        return 0

    count = module.register_tools(server)
    logger.info(f"Loaded {tool_name}: {count} tools")
    return count


def create_mcp_server(
    name: str = "aa_slack",
    tools: list[str] | None = None,
) -> FastMCP:
    """
    Create and configure an MCP server with the specified tools.

    Args:
        name: Server name for identification
        tools: List of tool module names to load (e.g., ["slack"])
               If None, loads all available tools

    Returns:
        Configured FastMCP server instance
    """
    logger = logging.getLogger(__name__)
    server = FastMCP(name)

    available_modules = get_available_modules()
    if tools is None:
        tools = list(available_modules)

    loaded_modules = []
    for module_name in tools:
        base_name = module_name.removesuffix("_basic").removesuffix("_core")
        if base_name not in available_modules:
            logger.warning(
                f"Unknown tool module: {module_name}. Available: {sorted(available_modules)}"
            )
            continue

        try:
            if _load_single_tool_module(module_name, server):
                loaded_modules.append(module_name)
        except Exception as e:
            logger.error(f"Error loading {module_name}: {e}")

    logger.info(f"Server ready with tools from {len(loaded_modules)} modules: {loaded_modules}")
    return server


async def run_mcp_server(server: FastMCP):
    """Run the MCP server in stdio mode (for AI integrations)."""
    logger = logging.getLogger(__name__)
    logger.info("Starting MCP server (stdio mode)...")

    try:
        await server.run_stdio_async()
    finally:
        # Close the shared Slack HTTP client if the slack module was used
        slack_tools = sys.modules.get("tool_modules.aa_slack.src.tools_basic")
        if slack_tools is not None:
            try:
                await slack_tools.close_client()
            except Exception as e:
                logger.warning(f"Error closing Slack client: {e}")


async def _list_tools(server: FastMCP) -> list[str]:
    from fastmcp import Client

    async with Client(server) as client:
        return sorted(tool.name for tool in await client.list_tools())


def main():
    """Main entry point with tool selection."""
    parser = argparse.ArgumentParser(
        description="AA Slack MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available tool modules:
  {', '.join(get_available_modules())}

Environment:
  SLACK_BOT_TOKEN   Slack bot token (xoxb-...), required
  AA_SLACK_CONFIG   Path to config.json (default: project root)

Examples:
  python -m server                   # Load the Slack tools
  python -m server --tools slack     # Same, explicitly
  python -m server --list-tools      # Print tool names and exit
        """,
    )
    parser.add_argument(
        "--tools",
        type=str,
        default="",
        help="Comma-separated list of tool modules to load (default: slack)",
    )
    parser.add_argument(
        "--name",
        default="aa_slack",
        help="Server name (default: aa_slack)",
    )
    parser.add_argument(
        "--list-tools",
        action="store_true",
        help="Print the registered tool names and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()
    logger = setup_logging(debug=args.debug)

    tools = [t.strip() for t in args.tools.split(",") if t.strip()] or DEFAULT_TOOLS

    try:
        server = create_mcp_server(name=args.name, tools=tools)
        if args.list_tools:
            for tool_name in asyncio.run(_list_tools(server)):
                print(tool_name)
            return
        asyncio.run(run_mcp_server(server))
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
