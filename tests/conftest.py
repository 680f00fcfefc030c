"""Test configuration and fixtures for mcp-toolset tests.

This module provides shared fixtures: fast client settings, stub MCP peers
over stdio, HTTP+SSE and Streamable HTTP, and an unreachable peer.
"""

import sys
from pathlib import Path

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from mcp_stubs.http_peers import SSEStubServer, StreamableStubServer
from mcp_stubs.stub_server import StubPeer
from mcp_toolset import ClientSettings, EventStreamDescriptor, SubprocessDescriptor

STUB_SERVER_PATH = Path(__file__).parent / "mcp_stubs" / "stub_server.py"


@pytest.fixture
def settings():
    """Client settings with short timeouts so failures surface quickly."""
    return ClientSettings(connect_timeout=10.0, request_timeout=10.0, shutdown_timeout=2.0)


@pytest.fixture
def stdio_descriptor():
    """Factory for descriptors that spawn the stub server over stdio."""
    def make(**envs: str) -> SubprocessDescriptor:
        return SubprocessDescriptor(
            command=sys.executable,
            args=[str(STUB_SERVER_PATH)],
            envs=envs,
        )

    return make


@pytest.fixture
def unreachable_sse_descriptor():
    """Event stream descriptor pointing at a closed local port."""
    return EventStreamDescriptor(url="http://127.0.0.1:1/sse")


@pytest_asyncio.fixture
async def streamable_server():
    """Streamable HTTP stub listing one tool, ``sum``."""
    stub = StreamableStubServer(StubPeer(tools=["sum"], server_name="streamable-stub"))
    server = TestServer(stub.app)
    await server.start_server()
    stub.url = str(server.make_url("/mcp"))
    yield stub
    await server.close()


@pytest_asyncio.fixture
async def streaming_streamable_server():
    """Streamable HTTP stub that answers every request with an SSE stream."""
    stub = StreamableStubServer(
        StubPeer(tools=["echo", "sum"], server_name="streaming-stub"),
        stream_responses=True,
    )
    server = TestServer(stub.app)
    await server.start_server()
    stub.url = str(server.make_url("/mcp"))
    yield stub
    await server.close()


@pytest_asyncio.fixture
async def sse_server():
    """Legacy HTTP+SSE stub listing ``echo`` and ``reverse``."""
    stub = SSEStubServer(StubPeer(tools=["echo", "reverse"], server_name="sse-stub"))
    server = TestServer(stub.app)
    await server.start_server()
    stub.url = str(server.make_url("/sse"))
    yield stub
    stub.close_streams()
    await server.close()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (spawn processes or servers)"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (no external dependencies)"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test location."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
