"""Protocol definitions for MCP server components.

Usage:
    from server.protocols import validate_tool_module

    errors = validate_tool_module(some_module, "slack")
    if not errors:
        some_module.register_tools(server)
"""

import inspect
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from fastmcp import FastMCP


@runtime_checkable
class ToolModuleProtocol(Protocol):
    """Protocol for tool modules loaded by ``server.main``.

    Tool modules must have:
    - register_tools(server): Function that registers tools with FastMCP server
    - __project_root__ (optional): Path to project root

    Example implementation:
        # tool_modules/aa_example/src/tools_basic.py

        from fastmcp import FastMCP
        from server.tool_registry import ToolRegistry

        def register_tools(server: FastMCP) -> int:
            registry = ToolRegistry(server)

            @registry.tool()
            async def example_tool(arg: str) -> str:
                '''Example tool.'''
                return f"Result: {arg}"

            return registry.count
    """

    def register_tools(self, server: "FastMCP") -> int:
        """Register tools with the FastMCP server and return how many."""
        ...


def validate_tool_module(module: Any, module_name: str) -> list[str]:
    """Validate a tool module and return any issues found.

    Args:
        module: Module to validate
        module_name: Name of the module (for error messages)

    Returns:
        List of validation error messages (empty if valid)
    """
    errors: list[str] = []

    if not isinstance(module, ToolModuleProtocol):
        errors.append(f"{module_name}: Missing register_tools function")
        return errors

    register_fn = module.register_tools
    if not callable(register_fn):
        errors.append(f"{module_name}: register_tools is not callable")
        return errors

    try:
        sig = inspect.signature(register_fn)
    except (ValueError, TypeError) as e:
        errors.append(f"{module_name}: Could not inspect register_tools signature: {e}")
        return errors

    params = [
        p
        for p in sig.parameters.values()
        if p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]
    if not params:
        errors.append(f"{module_name}: register_tools must accept at least one parameter (server)")

    if sig.return_annotation is not inspect.Signature.empty:
        if sig.return_annotation not in (int, "int", None):
            errors.append(
                f"{module_name}: register_tools should return int, got {sig.return_annotation}"
            )

    return errors
