"""Connected MCP peers.

``connect`` turns one connection descriptor into a live ``MCPPeer``: it
picks the transport, runs the handshake and guarantees the transport is
released again if the handshake fails.
"""

import asyncio
from typing import Any, Optional

from ..config import ClientSettings
from ..exceptions import ConnectError
from ..models import (
    ConnectionDescriptor,
    EventStreamDescriptor,
    RemoteTool,
    StreamableHttpDescriptor,
    SubprocessDescriptor,
)
from ..utils.logging import get_logger
from .client import MCPMessage, MCPSSETransport, MCPStdioTransport, MCPTransport
from .streamable_http import MCPStreamableHTTPTransport

logger = get_logger(__name__)


def create_mcp_transport(
    descriptor: ConnectionDescriptor,
    server_name: str,
    settings: Optional[ClientSettings] = None,
) -> MCPTransport:
    """Create MCP transport for a connection descriptor.

    Args:
        descriptor: Connection descriptor
        server_name: Peer name for logging
        settings: Client settings

    Returns:
        MCP transport instance (not yet connected)

    Raises:
        ValueError: If the descriptor type is unsupported
    """
    if isinstance(descriptor, SubprocessDescriptor):
        return MCPStdioTransport(descriptor, server_name, settings)
    elif isinstance(descriptor, EventStreamDescriptor):
        return MCPSSETransport(descriptor, server_name, settings)
    elif isinstance(descriptor, StreamableHttpDescriptor):
        return MCPStreamableHTTPTransport(descriptor, server_name, settings)
    else:
        raise ValueError(f"Unsupported connection descriptor: {descriptor!r}")


class MCPPeer:
    """A live, initialized connection to one MCP server.

    Usable as an async context manager; leaving the block closes the
    transport (terminating a child process if there is one).
    """

    def __init__(
        self,
        name: str,
        transport: MCPTransport,
        init_result: Optional[dict[str, Any]] = None,
    ) -> None:
        """Initialize the peer.

        Args:
            name: Logical peer name
            transport: Connected transport
            init_result: The server's initialize result
        """
        self.name = name
        self.transport = transport
        self.init_result = init_result or {}

    @property
    def server_info(self) -> dict[str, Any]:
        """Server implementation info (name, version)."""
        return self.init_result.get("serverInfo", {})

    @property
    def capabilities(self) -> dict[str, Any]:
        """Capabilities announced by the server."""
        return self.init_result.get("capabilities", {})

    @property
    def instructions(self) -> Optional[str]:
        """Usage instructions announced by the server, if any."""
        return self.init_result.get("instructions")

    def is_connected(self) -> bool:
        return self.transport.is_connected()

    async def request(self, method: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Send one request and return its result.

        Raises:
            ProtocolError: If the peer answers with a JSON-RPC error
            TransportError: If the peer cannot be reached
        """
        response = await self.transport.send_message(MCPMessage(method=method, params=params))
        response.raise_for_error(self.name)
        return response.result

    async def list_all_tools(self) -> list[RemoteTool]:
        """Fetch the peer's complete tool catalog, following pagination.

        Returns:
            Tools in the order the peer lists them
        """
        tools: list[RemoteTool] = []
        cursor: Optional[str] = None

        while True:
            params = {"cursor": cursor} if cursor else None
            result = await self.request("tools/list", params) or {}

            for tool_def in result.get("tools", []):
                tool = RemoteTool.model_validate(tool_def)
                tools.append(tool)
                logger.debug(f"Discovered tool: {self.name}:{tool.name}")

            cursor = result.get("nextCursor")
            if not cursor:
                return tools

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Invoke a tool by name.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            The raw tools/call result (content, isError, ...)
        """
        return await self.request("tools/call", {"name": name, "arguments": arguments}) or {}

    async def close(self) -> None:
        """Close the underlying transport."""
        await self.transport.disconnect()

    async def __aenter__(self) -> "MCPPeer":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"MCPPeer(name={self.name!r}, transport={type(self.transport).__name__})"


async def connect(
    descriptor: ConnectionDescriptor,
    name: str,
    settings: Optional[ClientSettings] = None,
) -> MCPPeer:
    """Start a transport from a descriptor and complete the handshake.

    Args:
        descriptor: Connection descriptor
        name: Logical peer name
        settings: Client settings; ``connect_timeout`` bounds the handshake

    Returns:
        Connected peer

    Raises:
        ConnectError: If spawning, connecting or the handshake fails
    """
    settings = settings or ClientSettings()
    transport = create_mcp_transport(descriptor, name, settings)

    try:
        init_result = await asyncio.wait_for(transport.connect(), timeout=settings.connect_timeout)
    except asyncio.CancelledError:
        await transport.disconnect()
        raise
    except asyncio.TimeoutError as e:
        await transport.disconnect()
        raise ConnectError(name, f"handshake timed out after {settings.connect_timeout}s") from e
    except Exception as e:
        await transport.disconnect()
        raise ConnectError(name, str(e)) from e

    peer = MCPPeer(name, transport, init_result)
    logger.info(f"Connected to MCP server '{name}' ({peer.server_info.get('name', 'unknown')})")
    return peer
