"""Adapt remote MCP tools to the invokable tool interface.

Each ``MCPToolAdaptor`` binds one tool descriptor to the peer that listed
it, so a caller can advertise and invoke it without knowing which peer or
transport is behind it.
"""

import json
from typing import Any

from pydantic import ValidationError

from ..exceptions import DiscoveryError, InvalidArgumentsError, MCPToolsetError, RemoteFailureError
from ..models import RemoteTool, ToolDefinition
from ..utils.logging import get_logger
from .peer import MCPPeer
from .toolset import ToolSet

logger = get_logger(__name__)


def flatten_call_result(result: dict[str, Any]) -> str:
    """Serialize a tools/call result to a single string.

    The whole result envelope is kept (content items, isError,
    structuredContent, ...) so nothing the peer returned is dropped.
    """
    return json.dumps(result, ensure_ascii=False)


class MCPToolAdaptor:
    """A remote tool bound to its owning peer."""

    def __init__(self, tool: RemoteTool, peer: MCPPeer) -> None:
        """Initialize the adaptor.

        Args:
            tool: Tool descriptor as listed by the peer
            peer: The peer that listed it
        """
        self.tool = tool
        self.peer = peer

    @property
    def name(self) -> str:
        return self.tool.name

    @property
    def peer_name(self) -> str:
        return self.peer.name

    def definition(self, prompt: str = "") -> ToolDefinition:
        """Project the descriptor into a model-facing definition.

        The prompt is accepted for interface compatibility; remote
        definitions do not depend on it and the peer is not contacted.
        """
        return ToolDefinition(
            name=self.tool.name,
            description=self.tool.description or "",
            parameters=self.tool.input_schema,
        )

    async def call(self, arguments: str) -> str:
        """Invoke the remote tool.

        Args:
            arguments: JSON object with the tool arguments. A blank string
                means no arguments.

        Returns:
            The JSON-serialized tools/call result

        Raises:
            InvalidArgumentsError: If arguments is not a JSON object
            RemoteFailureError: If the peer is unreachable or returns an error
        """
        parsed = self._parse_arguments(arguments)

        try:
            result = await self.peer.call_tool(self.tool.name, parsed)
        except MCPToolsetError as e:
            logger.error(f"Tool call {self.peer.name}:{self.tool.name} failed: {e}")
            raise RemoteFailureError(self.tool.name, str(e)) from e

        logger.info(f"Tool call {self.peer.name}:{self.tool.name} returned: {str(result)[:200]}")
        return flatten_call_result(result)

    def context(self) -> dict[str, Any]:
        """The remote descriptor as a JSON value, for embedding stores."""
        return self.tool.to_wire()

    def embedding_docs(self) -> list[str]:
        """Documents to embed when indexing this tool."""
        return [self.tool.description or ""]

    def _parse_arguments(self, arguments: str) -> dict[str, Any]:
        if not isinstance(arguments, str):
            raise InvalidArgumentsError(self.tool.name, f"expected a JSON string, got {type(arguments).__name__}")

        if not arguments.strip():
            return {}

        try:
            parsed = json.loads(arguments)
        except json.JSONDecodeError as e:
            raise InvalidArgumentsError(self.tool.name, f"invalid JSON: {e}") from e

        if not isinstance(parsed, dict):
            raise InvalidArgumentsError(self.tool.name, f"expected a JSON object, got {type(parsed).__name__}")
        return parsed

    def __repr__(self) -> str:
        return f"MCPToolAdaptor(name={self.tool.name!r}, peer={self.peer.name!r})"


async def get_tool_set(peer: MCPPeer) -> ToolSet:
    """Discover a peer's tools and wrap each in an adaptor.

    Args:
        peer: Connected peer

    Returns:
        Tool set with one adaptor per listed tool

    Raises:
        DiscoveryError: If the catalog cannot be fetched or is malformed
    """
    try:
        tools = await peer.list_all_tools()
    except (MCPToolsetError, ValidationError) as e:
        raise DiscoveryError(peer.name, str(e)) from e

    tool_set = ToolSet()
    for tool in tools:
        logger.info(f"Get tool: {peer.name}:{tool.name}")
        tool_set.add_tool(MCPToolAdaptor(tool, peer))

    logger.info(f"Discovered {len(tools)} tools from {peer.name}")
    return tool_set
