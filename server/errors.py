"""Standardized result envelope for MCP tools.

Every tool outcome is a ``ToolResult``. Successes carry the JSON-serialisable
payload returned to the host; failures carry a human-readable message and an
error code, and are raised to the MCP layer as ``ToolError`` so the host sees
``isError: true`` instead of having to parse the text.

Usage:
    from server.errors import tool_error, tool_success, ErrorCodes

    result = tool_success({"channel": "C1", "ts": "1.2"})
    result = tool_error("Slack API error: channel_not_found", code=ErrorCodes.API_ERROR)

    return result.unwrap()  # JSON text, or raises ToolError
"""

import json
from dataclasses import dataclass, field
from typing import Any

from fastmcp.exceptions import ToolError


# Common error codes for consistency
class ErrorCodes:
    """Standard error codes for tool responses."""

    # Configuration
    CONFIG_MISSING = "CONFIG_MISSING"

    # Remote failures
    HTTP_ERROR = "HTTP_ERROR"
    API_ERROR = "API_ERROR"
    RATE_LIMITED = "RATE_LIMITED"

    # Network errors
    CONNECTION_FAILED = "CONNECTION_FAILED"

    # Everything else
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class ToolResult:
    """Structured result from a tool operation.

    Attributes:
        success: Whether the operation succeeded
        data: Result payload if successful
        message: Human-readable error message if failed
        code: Error code for programmatic handling
        context: Additional context (tool name, Slack method, ...)
    """

    success: bool
    data: Any = None
    message: str = ""
    code: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def to_string(self) -> str:
        """Convert to the text block sent back to the host."""
        if self.success:
            return json.dumps(self.data, indent=2)
        return f"Error: {self.message}"

    def unwrap(self) -> str:
        """Return the success text, or raise ``ToolError`` for a failure."""
        if not self.success:
            raise ToolError(self.to_string())
        return self.to_string()


def tool_success(data: Any) -> ToolResult:
    """Create a successful result carrying ``data``."""
    return ToolResult(success=True, data=data)


def tool_error(
    message: str,
    code: str | None = None,
    context: dict[str, Any] | None = None,
) -> ToolResult:
    """Create a failed result.

    Args:
        message: Error message (shown to the host as ``Error: <message>``)
        code: Error code (see ``ErrorCodes``)
        context: Additional context dict (e.g., {"tool": "slack_post_message"})

    Examples:
        >>> tool_error("Slack API error: 500 Internal Server Error").to_string()
        'Error: Slack API error: 500 Internal Server Error'
    """
    return ToolResult(
        success=False,
        message=message or "An unknown error occurred",
        code=code,
        context=context or {},
    )
