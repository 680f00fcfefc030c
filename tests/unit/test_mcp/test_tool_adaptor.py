"""Unit tests for MCPToolAdaptor and tool discovery."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from mcp_toolset.exceptions import (
    DiscoveryError,
    InvalidArgumentsError,
    ProtocolError,
    RemoteFailureError,
    RequestTimeoutError,
    ToolCallError,
)
from mcp_toolset.mcp.peer import MCPPeer
from mcp_toolset.mcp.tool_adaptor import MCPToolAdaptor, flatten_call_result, get_tool_set
from mcp_toolset.models import RemoteTool

SEARCH_TOOL = RemoteTool.model_validate({
    "name": "search",
    "description": "Search documents",
    "inputSchema": {
        "type": "object",
        "properties": {"query": {"type": "string"}},
        "required": ["query"],
    },
})


@pytest.fixture
def peer():
    """Peer double whose call_tool/list_all_tools are AsyncMocks."""
    mock_peer = MagicMock(spec=MCPPeer)
    mock_peer.name = "docs"
    mock_peer.call_tool = AsyncMock(return_value={
        "content": [{"type": "text", "text": "3 results"}],
        "isError": False,
    })
    mock_peer.list_all_tools = AsyncMock(return_value=[SEARCH_TOOL])
    return mock_peer


@pytest.fixture
def adaptor(peer):
    return MCPToolAdaptor(SEARCH_TOOL, peer)


class TestDefinition:
    """Tests for definition() and the descriptor accessors."""

    def test_definition_projects_descriptor(self, adaptor, peer):
        """Test name, description and schema come from the descriptor."""
        definition = adaptor.definition("any prompt")

        assert definition.name == "search"
        assert definition.description == "Search documents"
        assert definition.parameters == SEARCH_TOOL.input_schema
        peer.call_tool.assert_not_called()
        peer.list_all_tools.assert_not_called()

    def test_definition_ignores_prompt(self, adaptor):
        """Test the prompt does not change the definition."""
        assert adaptor.definition("") == adaptor.definition("summarize the news")

    def test_missing_description_is_empty(self, peer):
        """Test a tool without description yields an empty string."""
        adaptor = MCPToolAdaptor(RemoteTool(name="bare"), peer)

        assert adaptor.definition().description == ""
        assert adaptor.embedding_docs() == [""]

    def test_names(self, adaptor):
        assert adaptor.name == "search"
        assert adaptor.peer_name == "docs"

    def test_context_is_wire_descriptor(self, adaptor):
        """Test context() returns the descriptor in protocol form."""
        context = adaptor.context()

        assert context["name"] == "search"
        assert context["inputSchema"]["required"] == ["query"]

    def test_embedding_docs(self, adaptor):
        assert adaptor.embedding_docs() == ["Search documents"]


class TestCall:
    """Tests for call()."""

    @pytest.mark.asyncio
    async def test_call_forwards_arguments(self, adaptor, peer):
        """Test arguments are decoded and sent with the tool name."""
        result = await adaptor.call('{"query": "mcp"}')

        peer.call_tool.assert_awaited_once_with("search", {"query": "mcp"})
        assert json.loads(result)["content"][0]["text"] == "3 results"

    @pytest.mark.asyncio
    async def test_blank_arguments_mean_empty_object(self, adaptor, peer):
        """Test an empty string is sent as {}."""
        await adaptor.call("  ")

        peer.call_tool.assert_awaited_once_with("search", {})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("arguments", ["{not json", "[1, 2]", '"query"', "42", "null"])
    async def test_invalid_arguments_never_reach_peer(self, adaptor, peer, arguments):
        """Test malformed or non-object arguments fail locally."""
        with pytest.raises(InvalidArgumentsError) as exc_info:
            await adaptor.call(arguments)

        assert exc_info.value.tool == "search"
        peer.call_tool.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_string_arguments_rejected(self, adaptor, peer):
        """Test passing a dict instead of a JSON string fails locally."""
        with pytest.raises(InvalidArgumentsError):
            await adaptor.call({"query": "mcp"})  # type: ignore[arg-type]

        peer.call_tool.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        ProtocolError("docs", -32602, "Unknown tool: search"),
        RequestTimeoutError("docs", "timed out"),
    ])
    async def test_peer_failure_becomes_remote_failure(self, adaptor, peer, error):
        """Test transport and protocol errors surface as RemoteFailureError."""
        peer.call_tool.side_effect = error

        with pytest.raises(RemoteFailureError) as exc_info:
            await adaptor.call('{"query": "mcp"}')

        assert isinstance(exc_info.value, ToolCallError)
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_error_result_is_returned_not_raised(self, adaptor, peer):
        """Test a result with isError: true is passed through as text."""
        peer.call_tool.return_value = {
            "content": [{"type": "text", "text": "quota exceeded"}],
            "isError": True,
        }

        result = json.loads(await adaptor.call('{"query": "mcp"}'))

        assert result["isError"] is True


class TestFlatten:
    """Tests for flatten_call_result()."""

    def test_keeps_whole_envelope(self):
        """Test every content item and flag is preserved."""
        result = {
            "content": [
                {"type": "text", "text": "first"},
                {"type": "image", "data": "aGk=", "mimeType": "image/png"},
            ],
            "isError": False,
            "structuredContent": {"count": 2},
        }

        assert json.loads(flatten_call_result(result)) == result

    def test_non_ascii_kept_readable(self):
        assert "héllo" in flatten_call_result({"content": [{"type": "text", "text": "héllo"}]})


class TestGetToolSet:
    """Tests for get_tool_set()."""

    @pytest.mark.asyncio
    async def test_one_adaptor_per_tool(self, peer):
        """Test every listed tool becomes an adaptor bound to the peer."""
        peer.list_all_tools.return_value = [SEARCH_TOOL, RemoteTool(name="fetch")]

        tool_set = await get_tool_set(peer)

        assert tool_set.names() == ["search", "fetch"]
        assert all(tool.peer is peer for tool in tool_set.tools())

    @pytest.mark.asyncio
    async def test_empty_catalog(self, peer):
        peer.list_all_tools.return_value = []

        assert len(await get_tool_set(peer)) == 0

    @pytest.mark.asyncio
    async def test_listing_failure_becomes_discovery_error(self, peer):
        """Test a failed tools/list raises DiscoveryError naming the peer."""
        peer.list_all_tools.side_effect = ProtocolError("docs", -32603, "Tool listing unavailable")

        with pytest.raises(DiscoveryError) as exc_info:
            await get_tool_set(peer)

        assert exc_info.value.peer == "docs"
