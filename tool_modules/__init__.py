"""Tool modules (plugins) loaded by the MCP server."""
