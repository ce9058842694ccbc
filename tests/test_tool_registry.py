"""Tests for the tool registry."""

import pytest

from pantry_planner.errors import ToolNotFoundError
from pantry_planner.tools import ToolRegistry


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_register_and_get(self):
        registry = ToolRegistry()
        registry.register(name="echo", description="Echo input", handler=lambda args: dict(args))
        tool = registry.get_tool("echo")
        assert tool.run({"x": 1}) == {"x": 1}
        assert tool.input_schema == {"type": "object", "properties": {}}

    def test_get_tool_unknown_raises(self):
        registry = ToolRegistry()
        with pytest.raises(ToolNotFoundError) as exc_info:
            registry.get_tool("missing")
        assert exc_info.value.name == "missing"
        assert "missing" in str(exc_info.value)

    def test_get_returns_none_for_unknown(self):
        assert ToolRegistry().get("missing") is None

    def test_registration_order_preserved(self, registry):
        assert [t.name for t in registry.get_tools()] == ["pantry_get", "recipe_get"]

    def test_contains_and_len(self, registry):
        assert "pantry_get" in registry
        assert "python_execute" not in registry
        assert len(registry) == 2

    def test_tools_summary(self, registry):
        summary = registry.get_tools_summary()
        assert summary.startswith("- pantry_get: ")
        assert "- recipe_get: " in summary

    def test_handler_errors_propagate(self):
        def broken(args):
            raise ValueError("bad input")

        registry = ToolRegistry()
        registry.register(name="broken", description="Always fails", handler=broken)
        with pytest.raises(ValueError):
            registry.get_tool("broken").run({})
