"""Tool registration helper for tool modules.

Wraps ``server.tool()`` so a module's ``register_tools`` can report how many
tools it added without reaching into FastMCP internals.

Usage:
    def register_tools(server: FastMCP) -> int:
        registry = ToolRegistry(server)

        @registry.tool()
        async def example_tool(arg: str) -> str:
            '''Example tool.'''
            return f"Result: {arg}"

        return registry.count
"""

import logging
from collections.abc import Callable
from typing import Any

from fastmcp import FastMCP

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registers tools on a FastMCP server and remembers their names."""

    def __init__(self, server: FastMCP):
        self.server = server
        self.tools: list[str] = []

    def tool(self, name: str | None = None, **kwargs: Any) -> Callable[[Callable], Callable]:
        """Decorator equivalent to ``@server.tool()`` that records the tool name."""

        def decorator(fn: Callable) -> Callable:
            tool_name = fn.__name__ if name is None else name
            self.server.tool(name=tool_name, **kwargs)(fn)
            self.tools.append(tool_name)
            logger.debug(f"Registered tool {tool_name}")
            return fn

        return decorator

    @property
    def count(self) -> int:
        return len(self.tools)
