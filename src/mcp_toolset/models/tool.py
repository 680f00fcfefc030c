"""Tool entities for mcp-toolset.

This module defines the remote tool descriptor fetched from a peer and the
caller-facing definition advertised to a language model.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class RemoteTool(BaseModel):
    """A tool as listed by an MCP peer in its tools/list response.

    Attributes:
        name: Tool name, unique within one peer's catalog
        description: Human-readable description
        input_schema: JSON Schema for call arguments
        output_schema: JSON Schema for structured results, if declared
        annotations: Behavioural hints declared by the peer
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    name: str = Field(..., description="Tool name")
    description: Optional[str] = Field(None, description="Tool description")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object"},
        alias="inputSchema",
        description="JSON Schema for arguments",
    )
    output_schema: Optional[dict[str, Any]] = Field(
        None, alias="outputSchema", description="JSON Schema for results"
    )
    annotations: Optional[dict[str, Any]] = Field(None, description="Tool annotations")

    def to_wire(self) -> dict[str, Any]:
        """Serialize back to the MCP wire shape.

        Returns:
            Dictionary using the protocol's camelCase keys
        """
        return self.model_dump(by_alias=True, exclude_none=True)


class ToolDefinition(BaseModel):
    """Definition of a tool suitable for a model's function-calling API.

    Attributes:
        name: Tool name
        description: What the tool does
        parameters: JSON Schema of the arguments
    """

    name: str = Field(..., description="Tool name")
    description: str = Field(default="", description="Tool description")
    parameters: dict[str, Any] = Field(default_factory=dict, description="JSON Schema for arguments")
