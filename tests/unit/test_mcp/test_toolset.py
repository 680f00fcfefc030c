"""Unit tests for ToolSet."""

import pytest

from mcp_toolset.exceptions import ToolNotFoundError
from mcp_toolset.mcp.toolset import InvokableTool, ToolSet
from mcp_toolset.models import ToolDefinition


class FakeTool:
    """In-process tool that reports who answered."""

    def __init__(self, name: str, owner: str = "local"):
        self._name = name
        self.owner = owner

    @property
    def name(self) -> str:
        return self._name

    def definition(self, prompt: str = "") -> ToolDefinition:
        return ToolDefinition(name=self._name, description=f"{self._name} from {self.owner}")

    async def call(self, arguments: str) -> str:
        return f"{self.owner}:{self._name}:{arguments}"


class TestToolSet:
    """Tests for ToolSet."""

    def test_fake_tool_satisfies_protocol(self):
        """Test structural typing against InvokableTool."""
        assert isinstance(FakeTool("x"), InvokableTool)

    def test_empty(self):
        """Test an empty tool set."""
        tool_set = ToolSet()

        assert len(tool_set) == 0
        assert tool_set.names() == []
        assert tool_set.get("anything") is None

    def test_add_and_lookup(self):
        """Test tools are indexed by name in insertion order."""
        tool_set = ToolSet([FakeTool("b"), FakeTool("a")])

        assert tool_set.names() == ["b", "a"]
        assert "a" in tool_set
        assert "c" not in tool_set
        assert list(tool_set) == ["b", "a"]

    def test_add_tool_replaces_same_name(self):
        """Test the later tool wins and the replaced one is returned."""
        tool_set = ToolSet()
        first = FakeTool("search", owner="peer-a")
        second = FakeTool("search", owner="peer-b")

        assert tool_set.add_tool(first) is None
        assert tool_set.add_tool(second) is first
        assert tool_set.get("search") is second
        assert len(tool_set) == 1

    def test_add_tools_reports_replaced_names(self):
        """Test merging returns only the names that collided."""
        tool_set = ToolSet([FakeTool("a"), FakeTool("b")])
        other = ToolSet([FakeTool("b", owner="other"), FakeTool("c", owner="other")])

        replaced = tool_set.add_tools(other)

        assert replaced == ["b"]
        assert tool_set.names() == ["a", "b", "c"]
        assert tool_set.get("b").owner == "other"

    def test_definitions(self):
        """Test definitions are produced for every tool."""
        tool_set = ToolSet([FakeTool("a"), FakeTool("b")])

        definitions = tool_set.definitions()

        assert [d.name for d in definitions] == ["a", "b"]
        assert definitions[0].description == "a from local"

    @pytest.mark.asyncio
    async def test_call_dispatches_by_name(self):
        """Test call() routes to the named tool."""
        tool_set = ToolSet([FakeTool("a", owner="p1"), FakeTool("b", owner="p2")])

        assert await tool_set.call("b", "{}") == "p2:b:{}"

    @pytest.mark.asyncio
    async def test_call_unknown_tool(self):
        """Test call() raises ToolNotFoundError for unknown names."""
        with pytest.raises(ToolNotFoundError) as exc_info:
            await ToolSet().call("missing", "{}")

        assert exc_info.value.name == "missing"
