"""Name-indexed collection of invokable tools."""

from typing import Iterable, Iterator, Optional, Protocol, runtime_checkable

from ..exceptions import ToolNotFoundError
from ..models import ToolDefinition


@runtime_checkable
class InvokableTool(Protocol):
    """Capability every tool in a ToolSet provides."""

    @property
    def name(self) -> str:
        """Unique name for this tool."""
        ...

    def definition(self, prompt: str = "") -> ToolDefinition:
        """Definition to advertise to a language model."""
        ...

    async def call(self, arguments: str) -> str:
        """Invoke the tool with JSON-encoded arguments.

        Raises:
            ToolCallError: On invalid arguments or execution failure.
        """
        ...


class ToolSet:
    """Tools gathered from one or more peers, keyed by tool name.

    Adding a tool whose name is already present replaces the earlier one.
    """

    def __init__(self, tools: Iterable[InvokableTool] = ()) -> None:
        self._tools: dict[str, InvokableTool] = {}
        for tool in tools:
            self.add_tool(tool)

    def add_tool(self, tool: InvokableTool) -> Optional[InvokableTool]:
        """Add a tool.

        Returns:
            The tool it replaced, if one had the same name
        """
        replaced = self._tools.get(tool.name)
        self._tools[tool.name] = tool
        return replaced

    def add_tools(self, other: "ToolSet") -> list[str]:
        """Merge another tool set into this one.

        Returns:
            Names that were already present and got replaced
        """
        return [tool.name for tool in other.tools() if self.add_tool(tool) is not None]

    def get(self, name: str) -> Optional[InvokableTool]:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def tools(self) -> list[InvokableTool]:
        return list(self._tools.values())

    def definitions(self, prompt: str = "") -> list[ToolDefinition]:
        """Definitions for every tool, for a model's function-calling API."""
        return [tool.definition(prompt) for tool in self._tools.values()]

    async def call(self, name: str, arguments: str) -> str:
        """Invoke a tool by name.

        Args:
            name: Tool name
            arguments: JSON-encoded arguments

        Returns:
            The tool's result

        Raises:
            ToolNotFoundError: If no tool has that name
            ToolCallError: If the invocation fails
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return await tool.call(arguments)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __repr__(self) -> str:
        return f"ToolSet({self.names()!r})"
