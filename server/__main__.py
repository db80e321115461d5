"""Entry point for running the MCP server.

Usage:
    python -m server                  # Run with the Slack tools
    python -m server --tools slack    # Load specific tool modules
    python -m server --list-tools     # Print tool names and exit
"""

from .main import main

if __name__ == "__main__":
    main()
