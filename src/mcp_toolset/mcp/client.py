"""MCP (Model Context Protocol) client transports.

This module provides the JSON-RPC message model, the abstract transport and
the two transports whose responses arrive on a separate inbound channel:
stdio (child process pipes) and the legacy HTTP+SSE event stream.
"""

import asyncio
import json
import os
from abc import ABC, abstractmethod
from typing import Any, Optional
from urllib.parse import urljoin

import aiohttp
from pydantic import BaseModel

from ..config import ClientSettings
from ..exceptions import PeerClosedError, ProtocolError, RequestTimeoutError, TransportError
from ..models import EventStreamDescriptor, SubprocessDescriptor
from ..utils.logging import get_logger
from .sse import SSEEvent, SSEParser

logger = get_logger(__name__)

# JSON-RPC "method not found"
METHOD_NOT_FOUND = -32601

# Stdout line limit for the stdio transport; tool catalogs can be large
STDIO_LINE_LIMIT = 16 * 1024 * 1024


class MCPMessage(BaseModel):
    """MCP protocol message.

    Attributes:
        jsonrpc: JSON-RPC version (always "2.0")
        id: Request ID
        method: Method name
        params: Method parameters
        result: Result (for responses)
        error: Error (for error responses)
    """

    jsonrpc: str = "2.0"
    id: str | int | None = None
    method: str | None = None
    params: dict[str, Any] | None = None
    result: Any | None = None
    error: dict[str, Any] | None = None

    @property
    def is_server_request(self) -> bool:
        """True for a request the peer expects us to answer."""
        return self.method is not None and self.id is not None

    @property
    def is_notification(self) -> bool:
        """True for a message that expects no answer."""
        return self.method is not None and self.id is None

    def to_json(self) -> str:
        """Serialize, leaving out unset envelope members."""
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        for key in ("id", "method", "params", "result", "error"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return json.dumps(payload)

    def raise_for_error(self, peer: str) -> None:
        """Raise ProtocolError if this is an error response.

        Args:
            peer: Peer name for the error message

        Raises:
            ProtocolError: If the message carries a JSON-RPC error
        """
        if self.error is not None:
            raise ProtocolError(
                peer,
                code=self.error.get("code", 0),
                message=self.error.get("message", "Unknown error"),
                data=self.error.get("data"),
            )


class MCPTransport(ABC):
    """Abstract base class for MCP transports."""

    def __init__(self, server_name: str, settings: Optional[ClientSettings] = None) -> None:
        """Initialize the transport.

        Args:
            server_name: Server name for logging and errors
            settings: Client settings (defaults if omitted)
        """
        self.server_name = server_name
        self.settings = settings or ClientSettings()
        self._request_id = 0

    @abstractmethod
    async def connect(self) -> dict[str, Any]:
        """Open the channel and run the initialize handshake.

        Returns:
            The peer's initialize result (serverInfo, capabilities, ...)
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the channel and release its resources."""

    @abstractmethod
    async def send_message(self, message: MCPMessage) -> MCPMessage:
        """Send a request and wait for its response.

        Args:
            message: Request to send; its id is assigned here

        Returns:
            Response message
        """

    @abstractmethod
    async def send_notification(self, message: MCPMessage) -> None:
        """Send a message that expects no response.

        Args:
            message: Notification (or reply) to send
        """

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if transport is connected.

        Returns:
            True if connected
        """

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def _initialize(self) -> dict[str, Any]:
        """Send initialize request and the initialized notification."""
        init_message = MCPMessage(
            method="initialize",
            params={
                "protocolVersion": self.settings.protocol_version,
                "capabilities": {},
                "clientInfo": self.settings.client_info,
            },
        )
        response = await self.send_message(init_message)
        response.raise_for_error(self.server_name)

        await self.send_notification(MCPMessage(method="notifications/initialized"))
        return response.result or {}

    def _reply_to(self, request: MCPMessage) -> MCPMessage:
        """Build our answer to a server-initiated request."""
        if request.method == "ping":
            return MCPMessage(id=request.id, result={})
        return MCPMessage(
            id=request.id,
            error={"code": METHOD_NOT_FOUND, "message": f"Method not found: {request.method}"},
        )


class _InboundChannelTransport(MCPTransport):
    """Transport whose responses arrive on a separate inbound channel.

    Outstanding requests are tracked by id and resolved as the reader task
    dispatches incoming messages.
    """

    def __init__(self, server_name: str, settings: Optional[ClientSettings] = None) -> None:
        super().__init__(server_name, settings)
        self._pending_requests: dict[int, asyncio.Future] = {}

    @abstractmethod
    async def _write(self, message: MCPMessage) -> None:
        """Put one message on the outbound channel."""

    async def send_message(self, message: MCPMessage) -> MCPMessage:
        if not self.is_connected():
            raise PeerClosedError(self.server_name, "Not connected to MCP server")

        request_id = self._next_id()
        message.id = request_id

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending_requests[request_id] = future

        try:
            await self._write(message)
            return await asyncio.wait_for(future, timeout=self.settings.request_timeout)
        except asyncio.TimeoutError:
            raise RequestTimeoutError(
                self.server_name,
                f"MCP request timed out after {self.settings.request_timeout}s: {message.method}",
            )
        finally:
            self._pending_requests.pop(request_id, None)

    async def send_notification(self, message: MCPMessage) -> None:
        if not self.is_connected():
            raise PeerClosedError(self.server_name, "Not connected to MCP server")
        await self._write(message)

    async def _handle_incoming(self, data: Any) -> None:
        """Route one decoded inbound message."""
        if isinstance(data, list):
            for item in data:
                await self._handle_incoming(item)
            return

        message = MCPMessage.model_validate(data)

        if message.is_server_request:
            logger.debug(f"'{self.server_name}' sent request: {message.method}")
            await self._write(self._reply_to(message))
            return

        if message.is_notification:
            logger.debug(f"'{self.server_name}' sent notification: {message.method}")
            return

        future = self._pending_requests.pop(message.id, None)  # type: ignore[arg-type]
        if future is None:
            logger.debug(f"Dropping response with unknown id {message.id} from '{self.server_name}'")
            return
        if not future.done():
            future.set_result(message)

    def _fail_pending(self, error: Exception) -> None:
        for future in self._pending_requests.values():
            if not future.done():
                future.set_exception(error)
        self._pending_requests.clear()


class MCPStdioTransport(_InboundChannelTransport):
    """MCP stdio transport using a child process.

    Requests are written to the child's stdin and responses read from its
    stdout, one JSON message per line. The child's stderr is discarded.
    """

    def __init__(
        self,
        config: SubprocessDescriptor,
        server_name: str,
        settings: Optional[ClientSettings] = None,
    ) -> None:
        """Initialize the stdio transport.

        Args:
            config: Subprocess descriptor
            server_name: Server name for logging
            settings: Client settings
        """
        super().__init__(server_name, settings)
        self.config = config
        self.process: asyncio.subprocess.Process | None = None
        self._read_task: asyncio.Task | None = None

    async def connect(self) -> dict[str, Any]:
        """Spawn the MCP server process and initialize it."""
        logger.info(f"Connecting to MCP server '{self.server_name}' via stdio: {self.config.command}")

        env = dict(os.environ)
        env.update(self.config.envs)

        try:
            self.process = await asyncio.create_subprocess_exec(
                self.config.command,
                *self.config.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                env=env,
                limit=STDIO_LINE_LIMIT,
            )
        except OSError as e:
            raise TransportError(self.server_name, f"Failed to spawn '{self.config.command}': {e}") from e

        self._read_task = asyncio.create_task(self._read_messages())

        return await self._initialize()

    async def disconnect(self) -> None:
        """Close the pipes and reap the child process."""
        if self.process:
            if self.process.stdin and not self.process.stdin.is_closing():
                self.process.stdin.close()

            if self.process.returncode is None:
                await self._stop_process(self.process)

            logger.info(f"Stopped MCP server process '{self.server_name}' (exit code {self.process.returncode})")

        if self._read_task:
            self._read_task.cancel()
            try:
                await self._read_task
            except asyncio.CancelledError:
                pass
            self._read_task = None

        self._fail_pending(PeerClosedError(self.server_name, "Transport disconnected"))

    async def _stop_process(self, process: asyncio.subprocess.Process) -> None:
        """Wait for exit after stdin closes, then terminate, then kill."""
        grace = self.settings.shutdown_timeout

        for stop in (None, process.terminate, process.kill):
            if stop is not None:
                try:
                    stop()
                except ProcessLookupError:
                    break
            try:
                await asyncio.wait_for(process.wait(), timeout=grace)
                return
            except asyncio.TimeoutError:
                logger.debug(f"MCP server process '{self.server_name}' still running")

        await process.wait()

    def is_connected(self) -> bool:
        """Check if connected.

        Returns:
            True if process is running and its stdout is still being read
        """
        return (
            self.process is not None
            and self.process.returncode is None
            and self._read_task is not None
            and not self._read_task.done()
        )

    async def _write(self, message: MCPMessage) -> None:
        if not self.process or not self.process.stdin or self.process.stdin.is_closing():
            raise PeerClosedError(self.server_name, "Not connected to MCP server")

        self.process.stdin.write((message.to_json() + "\n").encode())
        try:
            await self.process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise PeerClosedError(self.server_name, f"MCP server closed its stdin: {e}") from e

    async def _read_messages(self) -> None:
        """Read messages from stdout until EOF."""
        if not self.process or not self.process.stdout:
            return

        while True:
            try:
                line = await self.process.stdout.readline()
            except (ValueError, asyncio.LimitOverrunError) as e:
                logger.error(f"Oversized message from '{self.server_name}': {e}")
                break
            if not line:
                break

            text = line.decode(errors="replace").strip()
            if not text:
                continue

            try:
                await self._handle_incoming(json.loads(text))
            except ValueError as e:
                logger.warning(f"Ignoring malformed line from '{self.server_name}': {e}")
            except TransportError as e:
                logger.error(f"Failed to answer '{self.server_name}': {e}")
                break

        self._fail_pending(PeerClosedError(self.server_name, "MCP server closed its stdout"))


class MCPSSETransport(_InboundChannelTransport):
    """MCP transport over HTTP Server-Sent Events.

    A long-lived GET request carries the peer's messages. The first
    "endpoint" event names the URL that requests are POSTed to.
    """

    def __init__(
        self,
        config: EventStreamDescriptor,
        server_name: str,
        settings: Optional[ClientSettings] = None,
    ) -> None:
        """Initialize the SSE transport.

        Args:
            config: Event stream descriptor
            server_name: Server name for logging
            settings: Client settings
        """
        super().__init__(server_name, settings)
        self.config = config
        self.session: aiohttp.ClientSession | None = None
        self._stream_task: asyncio.Task | None = None
        self._message_endpoint: str | None = None

    async def connect(self) -> dict[str, Any]:
        """Open the event stream, wait for the endpoint, then initialize."""
        logger.info(f"Connecting to MCP server '{self.server_name}' via SSE at {self.config.url}")

        self.session = aiohttp.ClientSession(headers=self.config.headers)
        endpoint: asyncio.Future = asyncio.get_running_loop().create_future()
        self._stream_task = asyncio.create_task(self._consume_stream(self.session, endpoint))

        self._message_endpoint = await endpoint
        logger.info(f"Message endpoint for '{self.server_name}': {self._message_endpoint}")

        return await self._initialize()

    async def disconnect(self) -> None:
        """Stop the event stream and close the HTTP session."""
        if self._stream_task:
            self._stream_task.cancel()
            try:
                await self._stream_task
            except asyncio.CancelledError:
                pass
            self._stream_task = None

        if self.session:
            await self.session.close()

        self._message_endpoint = None
        self._fail_pending(PeerClosedError(self.server_name, "Transport disconnected"))
        logger.info(f"Disconnected from '{self.server_name}'")

    def is_connected(self) -> bool:
        """Check if connected.

        Returns:
            True if the stream is open and the endpoint is known
        """
        return (
            self._message_endpoint is not None
            and self.session is not None
            and not self.session.closed
            and self._stream_task is not None
            and not self._stream_task.done()
        )

    async def _write(self, message: MCPMessage) -> None:
        if not self.session or not self._message_endpoint:
            raise PeerClosedError(self.server_name, "Not connected to MCP server")

        try:
            async with self.session.post(
                self._message_endpoint,
                data=message.to_json(),
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.settings.request_timeout),
            ) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise TransportError(
                        self.server_name,
                        f"POST to message endpoint failed: {response.status} - {text[:200]}",
                    )
        except asyncio.TimeoutError:
            raise RequestTimeoutError(self.server_name, f"POST timed out: {message.method}")
        except aiohttp.ClientError as e:
            raise TransportError(self.server_name, f"POST to message endpoint failed: {e}") from e

    async def _consume_stream(self, session: aiohttp.ClientSession, endpoint: asyncio.Future) -> None:
        """Read the event stream for the lifetime of the connection.

        Args:
            session: HTTP session owning the stream
            endpoint: Resolved with the message endpoint URL, or failed if
                the stream breaks before one arrives
        """
        try:
            async with session.get(
                self.config.url,
                headers={"Accept": "text/event-stream"},
                timeout=aiohttp.ClientTimeout(
                    total=None,
                    sock_connect=self.settings.connect_timeout,
                ),
            ) as response:
                if response.status != 200:
                    text = await response.text()
                    raise TransportError(self.server_name, f"SSE connection failed: {response.status} - {text[:200]}")

                parser = SSEParser()
                async for chunk in response.content.iter_any():
                    for event in parser.feed(chunk):
                        await self._handle_event(event, endpoint)

            raise PeerClosedError(self.server_name, "Event stream closed by server")

        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = e if isinstance(e, TransportError) else TransportError(self.server_name, f"Event stream failed: {e}")
            if not endpoint.done():
                endpoint.set_exception(error)
            else:
                logger.warning(f"Event stream for '{self.server_name}' ended: {error}")
            self._fail_pending(error)

    async def _handle_event(self, event: SSEEvent, endpoint: asyncio.Future) -> None:
        if event.event_type == "endpoint":
            if not endpoint.done():
                endpoint.set_result(urljoin(self.config.url, event.data.strip()))
            return

        if event.event_type != "message":
            logger.debug(f"Ignoring '{event.event_type}' event from '{self.server_name}'")
            return

        try:
            await self._handle_incoming(event.json())
        except ValueError as e:
            logger.warning(f"Ignoring malformed event from '{self.server_name}': {e}")
        except TransportError as e:
            logger.error(f"Failed to answer '{self.server_name}': {e}")
