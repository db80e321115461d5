"""Tests for server/main.py - MCP Server main entry point."""

import logging
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastmcp import Client

from server.main import (
    _list_tools,
    _load_single_tool_module,
    create_mcp_server,
    main,
    run_mcp_server,
    setup_logging,
)
from tool_modules.aa_slack.src import tools_basic

# ────────────────────────────────────────────────────────────────────
# setup_logging
# ────────────────────────────────────────────────────────────────────


class TestSetupLogging:
    def test_returns_logger(self):
        logger = setup_logging()
        assert isinstance(logger, logging.Logger)
        assert logger.name == "server.main"

    def test_quiets_httpx(self):
        setup_logging()
        assert logging.getLogger("httpx").level == logging.WARNING


# ────────────────────────────────────────────────────────────────────
# _load_single_tool_module
# ────────────────────────────────────────────────────────────────────


class TestLoadSingleToolModule:
    def test_registers_slack_tools(self):
        server = MagicMock()
        server.tool.return_value = lambda func: func

        assert _load_single_tool_module("slack", server) == 14

    def test_missing_tools_file(self):
        server = MagicMock()
        with patch(
            "server.main.get_tools_file_path",
            return_value=Path("/nonexistent/tools_basic.py"),
        ):
            assert _load_single_tool_module("missing", server) == 0
        server.tool.assert_not_called()

    def test_invalid_module_skipped(self):
        server = MagicMock()
        module = MagicMock(spec=[])

        with patch("server.main.importlib.import_module", return_value=module):
            assert _load_single_tool_module("slack", server) == 0


# ────────────────────────────────────────────────────────────────────
# create_mcp_server
# ────────────────────────────────────────────────────────────────────


class TestCreateMcpServer:
    async def test_default_modules(self):
        server = create_mcp_server(name="test")

        assert server.name == "test"
        names = await _list_tools(server)
        assert len(names) == 14
        assert all(name.startswith("slack_") for name in names)

    async def test_basic_suffix(self):
        server = create_mcp_server(tools=["slack_basic"])
        assert len(await _list_tools(server)) == 14

    async def test_unknown_module_skipped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="server.main"):
            server = create_mcp_server(tools=["jira"])

        assert "Unknown tool module: jira" in caplog.text
        assert await _list_tools(server) == []

    async def test_load_error_does_not_abort(self, caplog):
        with (
            patch("server.main._load_single_tool_module", side_effect=ImportError("broken")),
            caplog.at_level(logging.ERROR, logger="server.main"),
        ):
            server = create_mcp_server(tools=["slack"])

        assert "Error loading slack: broken" in caplog.text
        async with Client(server) as client:
            assert await client.list_tools() == []


# ────────────────────────────────────────────────────────────────────
# run_mcp_server
# ────────────────────────────────────────────────────────────────────


class TestRunMcpServer:
    async def test_closes_slack_client(self):
        server = MagicMock()
        server.run_stdio_async = AsyncMock()

        with patch.object(tools_basic, "close_client", new_callable=AsyncMock) as mock_close:
            await run_mcp_server(server)

        server.run_stdio_async.assert_awaited_once()
        mock_close.assert_awaited_once()

    async def test_closes_client_on_failure(self):
        server = MagicMock()
        server.run_stdio_async = AsyncMock(side_effect=RuntimeError("stdio gone"))

        with patch.object(tools_basic, "close_client", new_callable=AsyncMock) as mock_close:
            with pytest.raises(RuntimeError):
                await run_mcp_server(server)

        mock_close.assert_awaited_once()


# ────────────────────────────────────────────────────────────────────
# main
# ────────────────────────────────────────────────────────────────────


class TestMain:
    def test_list_tools(self, capsys):
        with patch.object(sys, "argv", ["server", "--list-tools"]):
            main()

        lines = capsys.readouterr().out.split()
        assert lines == sorted(lines)
        assert "slack_post_message" in lines
        assert len(lines) == 14

    def test_runs_server(self):
        with (
            patch.object(sys, "argv", ["server", "--tools", "slack", "--name", "custom"]),
            patch("server.main.create_mcp_server") as mock_create,
            patch("server.main.run_mcp_server", new_callable=AsyncMock) as mock_run,
        ):
            main()

        mock_create.assert_called_once_with(name="custom", tools=["slack"])
        mock_run.assert_awaited_once_with(mock_create.return_value)

    def test_empty_tools_uses_default(self):
        with (
            patch.object(sys, "argv", ["server", "--tools", " , "]),
            patch("server.main.create_mcp_server") as mock_create,
            patch("server.main.run_mcp_server", new_callable=AsyncMock),
        ):
            main()

        assert mock_create.call_args.kwargs["tools"] == ["slack"]

    def test_server_error_exits(self):
        with (
            patch.object(sys, "argv", ["server"]),
            patch("server.main.create_mcp_server", side_effect=RuntimeError("boom")),
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 1

    def test_keyboard_interrupt_is_clean(self):
        with (
            patch.object(sys, "argv", ["server"]),
            patch("server.main.create_mcp_server", side_effect=KeyboardInterrupt),
        ):
            main()
