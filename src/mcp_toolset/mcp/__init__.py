"""MCP client integration for mcp-toolset.

- Transports: stdio, HTTP+SSE and Streamable HTTP
- Peers: connected, initialized servers
- Tool adaptors and the aggregated ToolSet
- Manager and its builder
"""

from .client import MCPMessage, MCPSSETransport, MCPStdioTransport, MCPTransport
from .manager import MCPManager, MCPManagerBuilder
from .peer import MCPPeer, connect, create_mcp_transport
from .sse import SSEEvent, SSEParser
from .streamable_http import MCPStreamableHTTPTransport
from .tool_adaptor import MCPToolAdaptor, flatten_call_result, get_tool_set
from .toolset import InvokableTool, ToolSet

__all__ = [
    # Transports
    "MCPMessage",
    "MCPTransport",
    "MCPStdioTransport",
    "MCPSSETransport",
    "MCPStreamableHTTPTransport",
    "SSEEvent",
    "SSEParser",
    # Peers
    "MCPPeer",
    "connect",
    "create_mcp_transport",
    # Tools
    "InvokableTool",
    "MCPToolAdaptor",
    "ToolSet",
    "flatten_call_result",
    "get_tool_set",
    # Manager
    "MCPManager",
    "MCPManagerBuilder",
]
