"""Integration tests for the stdio transport.

Each test spawns the stub MCP server as a real child process.
"""

import asyncio
import json
import sys

import pytest

from mcp_toolset import ClientSettings, ConnectError, SubprocessDescriptor, connect
from mcp_toolset.exceptions import ProtocolError
from mcp_toolset.mcp.tool_adaptor import get_tool_set


class TestStdioPeer:
    """Tests against a well-behaved stdio peer."""

    @pytest.mark.asyncio
    async def test_connect_and_handshake(self, stdio_descriptor, settings):
        """Test the handshake result is exposed on the peer."""
        async with await connect(stdio_descriptor(STUB_NAME="local-stub"), "local", settings) as peer:
            assert peer.is_connected()
            assert peer.server_info["name"] == "local-stub"
            assert "tools" in peer.capabilities

    @pytest.mark.asyncio
    async def test_list_and_call(self, stdio_descriptor, settings):
        """Test discovery and invocation over pipes."""
        async with await connect(stdio_descriptor(), "local", settings) as peer:
            tool_set = await get_tool_set(peer)

            assert tool_set.names() == ["echo", "reverse"]
            echoed = json.loads(await tool_set.call("echo", '{"text": "hi"}'))
            reversed_ = json.loads(await tool_set.call("reverse", '{"text": "abc"}'))

        assert echoed["content"][0]["text"] == "hi"
        assert reversed_["content"][0]["text"] == "cba"

    @pytest.mark.asyncio
    async def test_paginated_listing(self, stdio_descriptor, settings):
        """Test nextCursor pages are followed to the end."""
        descriptor = stdio_descriptor(STUB_TOOLS="echo,reverse,sum", STUB_PAGE_SIZE="1")

        async with await connect(descriptor, "paged", settings) as peer:
            tools = await peer.list_all_tools()

        assert [tool.name for tool in tools] == ["echo", "reverse", "sum"]

    @pytest.mark.asyncio
    async def test_tool_error_result(self, stdio_descriptor, settings):
        """Test an isError result comes back as text, not an exception."""
        async with await connect(stdio_descriptor(), "local", settings) as peer:
            tool_set = await get_tool_set(peer)
            result = json.loads(await tool_set.call("echo", "{}"))

        assert result["isError"] is True

    @pytest.mark.asyncio
    async def test_unknown_tool_is_protocol_error(self, stdio_descriptor, settings):
        """Test a JSON-RPC error response raises ProtocolError."""
        async with await connect(stdio_descriptor(), "local", settings) as peer:
            with pytest.raises(ProtocolError) as exc_info:
                await peer.call_tool("missing", {})

        assert exc_info.value.code == -32602

    @pytest.mark.asyncio
    async def test_concurrent_calls(self, stdio_descriptor, settings):
        """Test interleaved requests are matched to their own responses."""
        async with await connect(stdio_descriptor(), "local", settings) as peer:
            results = await asyncio.gather(*(
                peer.call_tool("echo", {"text": str(i)}) for i in range(20)
            ))

        assert [r["content"][0]["text"] for r in results] == [str(i) for i in range(20)]

    @pytest.mark.asyncio
    async def test_close_reaps_process(self, stdio_descriptor, settings):
        """Test closing the peer leaves no running child process."""
        peer = await connect(stdio_descriptor(), "local", settings)
        process = peer.transport.process

        await peer.close()

        assert process.returncode is not None
        assert not peer.is_connected()


class TestStdioFailures:
    """Tests for peers that cannot be started or never answer."""

    @pytest.mark.asyncio
    async def test_missing_executable(self, settings):
        """Test a command that does not exist fails with ConnectError."""
        descriptor = SubprocessDescriptor(command="/nonexistent/mcp-server-does-not-exist")

        with pytest.raises(ConnectError) as exc_info:
            await connect(descriptor, "ghost", settings)

        assert exc_info.value.peer == "ghost"

    @pytest.mark.asyncio
    async def test_process_exits_immediately(self, settings):
        """Test a child that exits before answering fails with ConnectError."""
        descriptor = SubprocessDescriptor(command=sys.executable, args=["-c", "pass"])

        with pytest.raises(ConnectError):
            await connect(descriptor, "quitter", settings)

    @pytest.mark.asyncio
    async def test_hanging_process_times_out(self):
        """Test a silent child is killed once the handshake times out."""
        settings = ClientSettings(connect_timeout=0.5, shutdown_timeout=0.2)
        descriptor = SubprocessDescriptor(
            command=sys.executable,
            args=["-c", "import time; time.sleep(60)"],
        )
        loop = asyncio.get_running_loop()

        started = loop.time()
        with pytest.raises(ConnectError, match="timed out"):
            await connect(descriptor, "sleeper", settings)

        assert loop.time() - started < 5
