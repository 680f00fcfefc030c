"""mcp-toolset.

Connects to any number of MCP tool servers over stdio, HTTP+SSE or
Streamable HTTP, aggregates the tools they expose and brokers calls to them.
"""

__version__ = "0.1.0"

from .config import ClientSettings
from .exceptions import (
    ConnectError,
    DiscoveryError,
    InvalidArgumentsError,
    MCPToolsetError,
    PeerClosedError,
    ProtocolError,
    RemoteFailureError,
    RequestTimeoutError,
    ToolCallError,
    ToolNotFoundError,
    TransportError,
)
from .mcp import (
    InvokableTool,
    MCPManager,
    MCPManagerBuilder,
    MCPPeer,
    MCPToolAdaptor,
    ToolSet,
    connect,
)
from .models import (
    ConnectionDescriptor,
    EventStreamDescriptor,
    PeerConfig,
    RemoteTool,
    StreamableHttpDescriptor,
    SubprocessDescriptor,
    ToolDefinition,
    parse_descriptor,
    parse_peer_configs,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "ClientSettings",
    "ConnectionDescriptor",
    "EventStreamDescriptor",
    "StreamableHttpDescriptor",
    "SubprocessDescriptor",
    "PeerConfig",
    "parse_descriptor",
    "parse_peer_configs",
    # Manager
    "MCPManager",
    "MCPManagerBuilder",
    "MCPPeer",
    "connect",
    # Tools
    "InvokableTool",
    "MCPToolAdaptor",
    "RemoteTool",
    "ToolDefinition",
    "ToolSet",
    # Errors
    "MCPToolsetError",
    "TransportError",
    "RequestTimeoutError",
    "PeerClosedError",
    "ProtocolError",
    "ConnectError",
    "DiscoveryError",
    "ToolCallError",
    "InvalidArgumentsError",
    "RemoteFailureError",
    "ToolNotFoundError",
]
