"""Slack Web API client and MCP tools."""
