"""Data models for mcp-toolset."""

from .peer import (
    ConnectionDescriptor,
    EventStreamDescriptor,
    PeerConfig,
    StreamableHttpDescriptor,
    SubprocessDescriptor,
    parse_descriptor,
    parse_peer_configs,
)
from .tool import RemoteTool, ToolDefinition

__all__ = [
    # Peers
    "ConnectionDescriptor",
    "EventStreamDescriptor",
    "StreamableHttpDescriptor",
    "SubprocessDescriptor",
    "PeerConfig",
    "parse_descriptor",
    "parse_peer_configs",
    # Tools
    "RemoteTool",
    "ToolDefinition",
]
