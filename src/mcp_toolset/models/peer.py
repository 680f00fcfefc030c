"""Peer connection descriptors for mcp-toolset.

This module defines the connection descriptors for the three supported MCP
transports, and the named peer entry handed over by configuration loading.
"""

import os
import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

# Pattern for environment variable substitution: ${VAR_NAME} or ${VAR_NAME:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def _validate_http_url(v: str) -> str:
    if not v.startswith(("http://", "https://")):
        raise ValueError("URL must start with http:// or https://")
    return v


class EventStreamDescriptor(BaseModel):
    """Connection descriptor for the legacy HTTP+SSE transport.

    Attributes:
        type: Discriminator, always "sse"
        url: Event stream endpoint URL
        headers: HTTP headers sent with every request
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["sse"] = "sse"
    url: str = Field(..., description="Event stream endpoint URL")
    headers: dict[str, str] = Field(default_factory=dict, description="HTTP headers")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate that URL starts with http:// or https://."""
        return _validate_http_url(v)


class StreamableHttpDescriptor(BaseModel):
    """Connection descriptor for the Streamable HTTP transport.

    Attributes:
        type: Discriminator, always "streamable"
        url: MCP endpoint URL
        headers: HTTP headers sent with every request
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["streamable"] = "streamable"
    url: str = Field(..., description="MCP endpoint URL")
    headers: dict[str, str] = Field(default_factory=dict, description="HTTP headers")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate that URL starts with http:// or https://."""
        return _validate_http_url(v)


class SubprocessDescriptor(BaseModel):
    """Connection descriptor for the stdio transport.

    Attributes:
        type: Discriminator, always "stdio"
        command: Executable to spawn
        args: Command arguments
        envs: Environment variables added to the inherited environment
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["stdio"] = "stdio"
    command: str = Field(..., min_length=1, description="Executable path")
    args: list[str] = Field(default_factory=list, description="Command arguments")
    envs: dict[str, str] = Field(default_factory=dict, description="Environment variables")


ConnectionDescriptor = Annotated[
    Union[EventStreamDescriptor, StreamableHttpDescriptor, SubprocessDescriptor],
    Field(discriminator="type"),
]

_descriptor_adapter: TypeAdapter[ConnectionDescriptor] = TypeAdapter(ConnectionDescriptor)


def parse_descriptor(data: dict[str, Any]) -> ConnectionDescriptor:
    """Validate a raw mapping into a connection descriptor.

    Args:
        data: Mapping with a "type" discriminator

    Returns:
        The matching descriptor variant

    Raises:
        pydantic.ValidationError: If the mapping is not a valid descriptor
    """
    return _descriptor_adapter.validate_python(data)


class PeerConfig(BaseModel):
    """A named peer as supplied by configuration.

    Attributes:
        name: Logical peer name, unique within a manager
        transport: Connection descriptor
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Logical peer name")
    transport: ConnectionDescriptor = Field(..., description="Connection descriptor")


def _expand_env_vars(value: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in strings."""
    if isinstance(value, str):
        def replace_env_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default)

        return ENV_VAR_PATTERN.sub(replace_env_var, value)

    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]

    return value


def parse_peer_configs(
    entries: list[dict[str, Any]],
    expand_env: bool = True,
) -> list[PeerConfig]:
    """Validate already-parsed configuration data into peer entries.

    Args:
        entries: Sequence of {"name": ..., "transport": {...}} mappings
        expand_env: Whether to expand environment variables in string values

    Returns:
        Peer entries in input order

    Raises:
        pydantic.ValidationError: If an entry is invalid
    """
    if expand_env:
        entries = _expand_env_vars(entries)
    return [PeerConfig.model_validate(entry) for entry in entries]
