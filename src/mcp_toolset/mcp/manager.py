"""MCP peer manager for mcp-toolset.

``MCPManagerBuilder`` collects named connection descriptors and connects
them all concurrently; ``MCPManager`` owns the peers that came up and
aggregates their tool catalogs on demand. A failing peer is logged and
left out; it never fails the whole operation.
"""

import asyncio
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from ..config import ClientSettings
from ..models import (
    ConnectionDescriptor,
    EventStreamDescriptor,
    PeerConfig,
    StreamableHttpDescriptor,
    SubprocessDescriptor,
)
from ..utils.logging import get_logger
from .peer import MCPPeer, connect
from .tool_adaptor import get_tool_set
from .toolset import ToolSet

logger = get_logger(__name__)

DEFAULT_PEER_NAME = "default-mcp"
DEFAULT_PEER_URL = "http://localhost:8080/mcp"


class MCPManager:
    """Owns connected MCP peers, keyed by name.

    The peer registry is fixed at construction. Use ``async with`` or
    ``close()`` to release every peer.
    """

    def __init__(self, peers: Mapping[str, MCPPeer]) -> None:
        """Initialize the manager.

        Args:
            peers: Connected peers keyed by logical name
        """
        self._peers: dict[str, MCPPeer] = dict(peers)

    @property
    def peers(self) -> Mapping[str, MCPPeer]:
        """Read-only view of the peer registry."""
        return MappingProxyType(self._peers)

    def names(self) -> list[str]:
        return list(self._peers)

    def get_peer(self, name: str) -> Optional[MCPPeer]:
        return self._peers.get(name)

    async def collect_tools(self) -> ToolSet:
        """Query every peer concurrently and aggregate their tools.

        Results are merged in peer registration order, so when two peers
        list a tool with the same name the later-registered peer wins.

        Returns:
            A new tool set; peers whose discovery failed contribute nothing
        """
        names = list(self._peers)
        results = await asyncio.gather(
            *(get_tool_set(self._peers[name]) for name in names),
            return_exceptions=True,
        )

        tool_set = ToolSet()
        for name, result in zip(names, results):
            if isinstance(result, ToolSet):
                for replaced in tool_set.add_tools(result):
                    logger.warning(f"Tool '{replaced}' from '{name}' replaces a tool of the same name")
            elif isinstance(result, Exception):
                logger.error(f"Failed to get tool set from '{name}': {result}", extra={"peer": name})
            else:
                raise result

        logger.info(f"Collected {len(tool_set)} tools from {len(names)} MCP servers")
        return tool_set

    async def close(self) -> None:
        """Close all peer connections."""
        logger.info("Closing all MCP server connections")

        names = list(self._peers)
        results = await asyncio.gather(
            *(self._peers[name].close() for name in names),
            return_exceptions=True,
        )
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.error(f"Error disconnecting from {name}: {result}", extra={"peer": name})

    async def __aenter__(self) -> "MCPManager":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __len__(self) -> int:
        return len(self._peers)

    def __contains__(self, name: object) -> bool:
        return name in self._peers

    def __repr__(self) -> str:
        return f"MCPManager(peers={self.names()!r})"


class MCPManagerBuilder:
    """Accumulates named peers before any connection is attempted.

    Builders are immutable: every ``add*`` call returns a new builder and
    leaves the original untouched.
    """

    def __init__(
        self,
        servers: Iterable[tuple[str, ConnectionDescriptor]] = (),
        settings: Optional[ClientSettings] = None,
    ) -> None:
        """Initialize the builder.

        Args:
            servers: (name, descriptor) pairs
            settings: Client settings passed to every transport
        """
        self._servers: tuple[tuple[str, ConnectionDescriptor], ...] = tuple(servers)
        self._settings = settings or ClientSettings()

    @classmethod
    def default(cls) -> "MCPManagerBuilder":
        """Builder with one event-stream peer on the local default port."""
        return cls().add_sse(DEFAULT_PEER_NAME, DEFAULT_PEER_URL)

    @classmethod
    def from_configs(
        cls,
        configs: Iterable[PeerConfig],
        settings: Optional[ClientSettings] = None,
    ) -> "MCPManagerBuilder":
        """Builder from configuration entries, in order."""
        return cls(((config.name, config.transport) for config in configs), settings)

    @property
    def servers(self) -> tuple[tuple[str, ConnectionDescriptor], ...]:
        return self._servers

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    def add(self, name: str, descriptor: ConnectionDescriptor) -> "MCPManagerBuilder":
        """Return a new builder with one more peer."""
        return MCPManagerBuilder(self._servers + ((name, descriptor),), self._settings)

    def add_sse(self, name: str, url: str, headers: Optional[dict[str, str]] = None) -> "MCPManagerBuilder":
        return self.add(name, EventStreamDescriptor(url=url, headers=headers or {}))

    def add_streamable(self, name: str, url: str, headers: Optional[dict[str, str]] = None) -> "MCPManagerBuilder":
        return self.add(name, StreamableHttpDescriptor(url=url, headers=headers or {}))

    def add_stdio(
        self,
        name: str,
        command: str,
        args: Optional[list[str]] = None,
        envs: Optional[dict[str, str]] = None,
    ) -> "MCPManagerBuilder":
        return self.add(name, SubprocessDescriptor(command=command, args=args or [], envs=envs or {}))

    def with_settings(self, settings: ClientSettings) -> "MCPManagerBuilder":
        """Return a new builder using different client settings."""
        return MCPManagerBuilder(self._servers, settings)

    async def build(self) -> MCPManager:
        """Connect every peer concurrently.

        A peer that fails to connect is logged and omitted; the manager is
        built from whatever connected. If the build is cancelled, peers
        that had already connected are closed before re-raising.

        Returns:
            Manager owning the connected peers
        """
        entries: dict[str, ConnectionDescriptor] = {}
        for name, descriptor in self._servers:
            if name in entries:
                logger.warning(f"MCP server '{name}' added more than once, using the last descriptor")
                # Re-registering moves the peer to its latest position
                del entries[name]
            entries[name] = descriptor

        names = list(entries)
        tasks = [
            asyncio.create_task(connect(entries[name], name, self._settings), name=f"mcp-connect:{name}")
            for name in names
        ]

        try:
            results = await asyncio.gather(*tasks, return_exceptions=True)
        except asyncio.CancelledError:
            await self._close_connected(tasks)
            raise

        peers: dict[str, MCPPeer] = {}
        for name, result in zip(names, results):
            if isinstance(result, MCPPeer):
                peers[name] = result
            elif isinstance(result, Exception):
                logger.error(f"Failed to start server '{name}': {result}", extra={"peer": name})
            else:
                await self._close_connected(tasks)
                raise result

        logger.info(f"Started {len(peers)} of {len(names)} MCP servers")
        return MCPManager(peers)

    @staticmethod
    async def _close_connected(tasks: list[asyncio.Task]) -> None:
        for task in tasks:
            if task.done() and not task.cancelled() and task.exception() is None:
                await task.result().close()
