"""Streamable HTTP transport for MCP (Model Context Protocol) client.

Streamable HTTP is the standard transport for remote MCP servers (March
2025+), replacing the legacy HTTP+SSE transport. Every client message is a
POST to one endpoint; the server answers with either a plain JSON body or
an SSE stream that ends with the response.

Key features:
- Single endpoint for all communications
- Simple JSON responses and SSE streaming responses
- Session ID management via the Mcp-Session-Id header
- Session termination (DELETE) on disconnect
"""

import asyncio
import json
from typing import Any, Optional

import aiohttp

from ..config import ClientSettings
from ..exceptions import PeerClosedError, RequestTimeoutError, TransportError
from ..models import StreamableHttpDescriptor
from ..utils.logging import get_logger
from .client import MCPMessage, MCPTransport
from .sse import SSEParser

logger = get_logger(__name__)

SESSION_HEADER = "Mcp-Session-Id"


class MCPStreamableHTTPTransport(MCPTransport):
    """MCP Streamable HTTP transport implementation.

    Each request is its own POST, so responses are matched to requests by
    the HTTP exchange itself rather than by a shared inbound channel.
    """

    def __init__(
        self,
        config: StreamableHttpDescriptor,
        server_name: str,
        settings: Optional[ClientSettings] = None,
    ) -> None:
        """Initialize the Streamable HTTP transport.

        Args:
            config: Streamable HTTP descriptor
            server_name: Server name for logging
            settings: Client settings
        """
        super().__init__(server_name, settings)
        self.config = config
        self.session: aiohttp.ClientSession | None = None
        self._session_id: str | None = None
        self._connected = False

    @property
    def session_id(self) -> str | None:
        """Session ID assigned by the server, if any."""
        return self._session_id

    async def connect(self) -> dict[str, Any]:
        """Open an HTTP session and run the initialize handshake."""
        logger.info(f"Connecting to MCP server '{self.server_name}' via Streamable HTTP at {self.config.url}")

        self.session = aiohttp.ClientSession(headers=self.config.headers)
        result = await self._initialize()

        self._connected = True
        logger.info(f"Connected to '{self.server_name}' via Streamable HTTP")
        return result

    async def disconnect(self) -> None:
        """Terminate the server session and close the HTTP session."""
        if self.session and not self.session.closed:
            if self._session_id:
                await self._terminate_session(self.session, self._session_id)
            await self.session.close()

        self._session_id = None
        self._connected = False
        logger.info(f"Disconnected from '{self.server_name}'")

    def is_connected(self) -> bool:
        """Check if connected.

        Returns:
            True if session is active
        """
        return self._connected and self.session is not None and not self.session.closed

    async def send_message(self, message: MCPMessage) -> MCPMessage:
        """Send a request via Streamable HTTP.

        Args:
            message: Message to send

        Returns:
            Response message

        Raises:
            PeerClosedError: If the session is closed or expired
            RequestTimeoutError: If request times out
            TransportError: On HTTP failure or a response without our id
        """
        message.id = self._next_id()
        response = await self._post(message)
        if response is None:
            raise TransportError(self.server_name, f"No response to request {message.id}")
        return response

    async def send_notification(self, message: MCPMessage) -> None:
        await self._post(message)

    async def _post(self, message: MCPMessage) -> MCPMessage | None:
        """POST one message; return the matching response for requests."""
        if not self.session or self.session.closed:
            raise PeerClosedError(self.server_name, "Not connected to MCP server")

        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }
        if self._session_id:
            headers[SESSION_HEADER] = self._session_id

        data = message.to_json()
        logger.debug(f"Sending to {self.config.url}: {data[:200]}")

        try:
            async with self.session.post(
                self.config.url,
                data=data,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.settings.request_timeout),
            ) as response:
                self._extract_session_id(response)

                if response.status == 404 and self._session_id:
                    self._connected = False
                    raise PeerClosedError(self.server_name, "Session expired on server")

                if response.status >= 400:
                    text = await response.text()
                    raise TransportError(self.server_name, f"HTTP error {response.status}: {text[:200]}")

                # Notifications and our replies to server requests get no response
                if message.id is None or message.method is None:
                    return None

                content_type = response.headers.get("Content-Type", "")
                if "text/event-stream" in content_type:
                    return await self._handle_streaming_response(response, message.id)
                return await self._handle_simple_response(response, message.id)

        except asyncio.TimeoutError:
            raise RequestTimeoutError(
                self.server_name,
                f"Request timed out after {self.settings.request_timeout}s: {message.method}",
            )
        except aiohttp.ClientError as e:
            raise TransportError(self.server_name, f"HTTP request failed: {e}") from e

    async def _handle_simple_response(
        self,
        response: aiohttp.ClientResponse,
        request_id: str | int,
    ) -> MCPMessage:
        """Handle a plain JSON response body."""
        text = await response.text()
        if not text.strip():
            raise TransportError(self.server_name, f"Empty response to request {request_id}")

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise TransportError(self.server_name, f"Invalid JSON response: {text[:200]}") from e

        # A JSON-RPC batch may carry our response among others
        candidates = payload if isinstance(payload, list) else [payload]
        for candidate in candidates:
            if isinstance(candidate, dict) and candidate.get("id") == request_id:
                return MCPMessage.model_validate(candidate)

        raise TransportError(self.server_name, f"No response for request {request_id} in body")

    async def _handle_streaming_response(
        self,
        response: aiohttp.ClientResponse,
        request_id: str | int,
    ) -> MCPMessage:
        """Read an SSE response stream until our response arrives.

        Server requests interleaved on the stream are answered; notifications
        are logged and skipped.
        """
        parser = SSEParser()

        async for chunk in response.content.iter_any():
            for event in parser.feed(chunk):
                if event.event_type != "message":
                    continue
                try:
                    message = MCPMessage.model_validate(event.json())
                except ValueError as e:
                    logger.warning(f"Ignoring malformed event from '{self.server_name}': {e}")
                    continue

                if message.is_server_request:
                    await self._post(self._reply_to(message))
                elif message.is_notification:
                    logger.debug(f"'{self.server_name}' sent notification: {message.method}")
                elif message.id == request_id:
                    return message

        raise PeerClosedError(self.server_name, f"Stream ended before response to request {request_id}")

    def _extract_session_id(self, response: aiohttp.ClientResponse) -> None:
        session_id = response.headers.get(SESSION_HEADER)
        if session_id and session_id != self._session_id:
            self._session_id = session_id
            logger.debug(f"Received session ID: {session_id[:20]}...")

    async def _terminate_session(self, session: aiohttp.ClientSession, session_id: str) -> None:
        """Ask the server to drop our session. Servers may refuse with 405."""
        try:
            async with session.delete(
                self.config.url,
                headers={SESSION_HEADER: session_id},
                timeout=aiohttp.ClientTimeout(total=self.settings.shutdown_timeout or None),
            ) as response:
                logger.debug(f"Session termination for '{self.server_name}' returned {response.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to terminate session with '{self.server_name}': {e}")
