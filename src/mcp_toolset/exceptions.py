"""Exception hierarchy for mcp-toolset.

The hierarchy is:

    MCPToolsetError
    ├── TransportError(peer)
    │   ├── RequestTimeoutError
    │   └── PeerClosedError
    ├── ProtocolError(peer, code, message)
    ├── ConnectError(peer)
    ├── DiscoveryError(peer)
    ├── ToolCallError(tool)
    │   ├── InvalidArgumentsError
    │   └── RemoteFailureError
    └── ToolNotFoundError(name)
"""

from typing import Any, Optional


class MCPToolsetError(Exception):
    """Base exception for all mcp-toolset errors."""


# ─── Transport Errors ─────────────────────────────────────────


class TransportError(MCPToolsetError):
    """I/O level failure while talking to a peer."""

    def __init__(self, peer: str, message: str) -> None:
        self.peer = peer
        super().__init__(f"[{peer}] {message}")


class RequestTimeoutError(TransportError):
    """A request did not get its response in time."""


class PeerClosedError(TransportError):
    """The channel to the peer closed while requests were outstanding."""


class ProtocolError(MCPToolsetError):
    """The peer answered with a JSON-RPC error object."""

    def __init__(
        self,
        peer: str,
        code: int,
        message: str,
        data: Optional[Any] = None,
    ) -> None:
        self.peer = peer
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"[{peer}] JSON-RPC error {code}: {message}")


# ─── Peer Lifecycle Errors ────────────────────────────────────


class ConnectError(MCPToolsetError):
    """Spawning or handshaking with a peer failed."""

    def __init__(self, peer: str, message: str) -> None:
        self.peer = peer
        super().__init__(f"[{peer}] Failed to connect: {message}")


class DiscoveryError(MCPToolsetError):
    """A connected peer failed to return its tool catalog."""

    def __init__(self, peer: str, message: str) -> None:
        self.peer = peer
        super().__init__(f"[{peer}] Failed to list tools: {message}")


# ─── Tool Call Errors ─────────────────────────────────────────


class ToolCallError(MCPToolsetError):
    """Base for errors raised while invoking a tool."""

    def __init__(self, tool: str, message: str) -> None:
        self.tool = tool
        super().__init__(f"Tool '{tool}': {message}")


class InvalidArgumentsError(ToolCallError):
    """Call arguments were not a valid JSON object. The peer was not contacted."""


class RemoteFailureError(ToolCallError):
    """The peer was unreachable or rejected the call. See ``__cause__``."""


class ToolNotFoundError(MCPToolsetError):
    """No tool with the requested name is in the tool set."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")
