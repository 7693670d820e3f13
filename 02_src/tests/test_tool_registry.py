"""Tests for ToolRegistry."""

import pytest

from brain.errors import ToolAlreadyRegisteredError, ToolNotFoundError
from brain.models import ToolDefinition
from brain.tools import ToolRegistry


class EchoTool:
    def __init__(self, name="echo"):
        self.definition = ToolDefinition(name=name, description="Echo the input")

    async def execute(self, arguments):
        return str(arguments)


class TestToolRegistry:
    def test_register_and_get(self):
        registry = ToolRegistry()
        tool = EchoTool()
        registry.register(tool)

        assert registry.get("echo") is tool
        assert registry.has("echo")
        assert len(registry) == 1

    def test_duplicate_rejected(self):
        registry = ToolRegistry()
        first = EchoTool()
        registry.register(first)

        with pytest.raises(ToolAlreadyRegisteredError, match='Tool "echo" is already registered'):
            registry.register(EchoTool())
        assert registry.get("echo") is first

    def test_get_missing(self):
        with pytest.raises(ToolNotFoundError, match='Tool "nope" not found'):
            ToolRegistry().get("nope")

    def test_unregister(self):
        registry = ToolRegistry()
        registry.register(EchoTool())

        assert registry.unregister("echo") is True
        assert registry.unregister("echo") is False
        assert not registry.has("echo")

    def test_listing_keeps_registration_order(self):
        registry = ToolRegistry()
        for name in ("b", "a", "c"):
            registry.register(EchoTool(name))

        assert registry.names() == ["b", "a", "c"]
        assert [d.name for d in registry.definitions()] == ["b", "a", "c"]
        assert [t.definition.name for t in registry.list()] == ["b", "a", "c"]

    def test_empty_registry(self):
        registry = ToolRegistry()
        assert registry.names() == []
        assert registry.definitions() == []
        assert len(registry) == 0
