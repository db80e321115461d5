"""Tests for server.tool_registry module."""

from unittest.mock import MagicMock

import pytest
from fastmcp import Client, FastMCP

from server.tool_registry import ToolRegistry


@pytest.fixture
def mock_server():
    """A FastMCP stand-in whose tool() decorator returns the function unchanged."""
    server = MagicMock()
    server.tool.return_value = lambda func: func
    return server


@pytest.fixture
def registry(mock_server):
    return ToolRegistry(mock_server)


class TestToolDecorator:
    def test_starts_empty(self, registry, mock_server):
        assert registry.server is mock_server
        assert registry.tools == []
        assert registry.count == 0

    def test_uses_function_name(self, registry, mock_server):
        @registry.tool()
        async def slack_join_channel():
            """Join a channel."""

        assert registry.tools == ["slack_join_channel"]
        mock_server.tool.assert_called_with(name="slack_join_channel")

    def test_custom_name_and_kwargs_forwarded(self, registry, mock_server):
        @registry.tool(name="custom", description="A custom tool")
        async def my_tool():
            pass

        mock_server.tool.assert_called_with(name="custom", description="A custom tool")
        assert registry.tools == ["custom"]

    def test_empty_name_used_as_is(self, registry):
        @registry.tool(name="")
        async def my_tool():
            pass

        assert registry.tools == [""]

    def test_returns_original_function(self, registry):
        async def my_tool():
            return "hello"

        assert registry.tool()(my_tool) is my_tool

    def test_registration_order(self, registry):
        for name in ("first", "second", "third"):
            registry.tool(name=name)(lambda: None)

        assert registry.tools == ["first", "second", "third"]
        assert registry.count == 3

    def test_server_error_propagates(self, mock_server):
        mock_server.tool.side_effect = RuntimeError("Server error")
        reg = ToolRegistry(mock_server)

        with pytest.raises(RuntimeError, match="Server error"):

            @reg.tool()
            async def bad_tool():
                pass

        assert reg.count == 0


class TestWithFastMCP:
    async def test_tools_visible_to_clients(self):
        server = FastMCP("registry-test")
        registry = ToolRegistry(server)

        @registry.tool()
        async def echo(text: str) -> str:
            """Echo text back."""
            return text

        async with Client(server) as client:
            tools = await client.list_tools()
            result = await client.call_tool("echo", {"text": "hi"})

        assert [tool.name for tool in tools] == ["echo"]
        assert result.content[0].text == "hi"
