"""Tests for server/protocols.py - Tool module protocol and validation."""

from types import ModuleType
from unittest.mock import MagicMock

from server.protocols import ToolModuleProtocol, validate_tool_module
from tool_modules.aa_slack.src import tools_basic


class ConcreteToolModule:
    """A valid tool module implementation."""

    def register_tools(self, server) -> int:
        return 0


def _module(name: str, **attrs) -> ModuleType:
    mod = ModuleType(name)
    for key, value in attrs.items():
        setattr(mod, key, value)
    return mod


class TestToolModuleProtocol:
    def test_isinstance_valid(self):
        assert isinstance(ConcreteToolModule(), ToolModuleProtocol)

    def test_isinstance_missing_register_tools(self):
        obj = MagicMock(spec=[])
        assert not isinstance(obj, ToolModuleProtocol)

    def test_isinstance_plain_object(self):
        assert not isinstance(object(), ToolModuleProtocol)

    def test_slack_tools_module(self):
        assert isinstance(tools_basic, ToolModuleProtocol)


class TestValidateToolModule:
    def test_slack_tools_module_is_valid(self):
        assert validate_tool_module(tools_basic, "slack") == []

    def test_missing_function(self):
        assert validate_tool_module(_module("empty"), "empty") == [
            "empty: Missing register_tools function"
        ]

    def test_not_callable(self):
        errors = validate_tool_module(_module("bad", register_tools="x"), "bad")
        assert errors == ["bad: register_tools is not callable"]

    def test_requires_server_parameter(self):
        errors = validate_tool_module(_module("bad", register_tools=lambda: 0), "bad")
        assert errors == ["bad: register_tools must accept at least one parameter (server)"]

    def test_wrong_return_annotation(self):
        def register_tools(server) -> str:
            return ""

        errors = validate_tool_module(_module("bad", register_tools=register_tools), "bad")
        assert len(errors) == 1
        assert "should return int" in errors[0]

    def test_unannotated_is_accepted(self):
        def register_tools(server):
            return 0

        assert validate_tool_module(_module("ok", register_tools=register_tools), "ok") == []

    def test_only_var_args_rejected(self):
        errors = validate_tool_module(_module("bad", register_tools=lambda *args, **kw: 0), "bad")
        assert errors == ["bad: register_tools must accept at least one parameter (server)"]

    def test_object_without_register_tools(self):
        errors = validate_tool_module(MagicMock(spec=[]), "mock")
        assert errors == ["mock: Missing register_tools function"]

    def test_class_instance_is_valid(self):
        assert validate_tool_module(ConcreteToolModule(), "concrete") == []
