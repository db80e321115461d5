"""MCP server infrastructure: tool module loading, config, result envelope."""
