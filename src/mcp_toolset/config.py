"""Client settings for mcp-toolset.

Settings are plain pydantic models. ``ClientSettings.from_env`` reads
overrides from ``MCP_TOOLSET_*`` environment variables, after loading a
``.env`` file if one is present.
"""

import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from . import __version__

DEFAULT_PROTOCOL_VERSION = "2024-11-05"


class ClientSettings(BaseModel):
    """Settings shared by every transport a manager starts.

    Attributes:
        client_name: Name announced in the initialize handshake
        client_version: Version announced in the initialize handshake
        protocol_version: MCP protocol revision requested from peers
        connect_timeout: Seconds allowed for spawning/handshaking one peer
        request_timeout: Seconds allowed for one JSON-RPC round trip
        shutdown_timeout: Seconds a child process gets to exit before it is killed
    """

    client_name: str = Field(default="mcp-toolset", description="Client name")
    client_version: str = Field(default=__version__, description="Client version")
    protocol_version: str = Field(default=DEFAULT_PROTOCOL_VERSION, description="MCP protocol version")
    connect_timeout: float = Field(default=30.0, gt=0, description="Handshake timeout (seconds)")
    request_timeout: float = Field(default=300.0, gt=0, description="Request timeout (seconds)")
    shutdown_timeout: float = Field(default=5.0, ge=0, description="Process shutdown grace (seconds)")

    @property
    def client_info(self) -> dict[str, str]:
        """Client implementation info for the initialize request."""
        return {"name": self.client_name, "version": self.client_version}

    @classmethod
    def from_env(cls, prefix: str = "MCP_TOOLSET_") -> "ClientSettings":
        """Build settings from environment variables.

        Each field maps to ``{prefix}{FIELD_NAME}``; unset variables keep
        their defaults.

        Args:
            prefix: Environment variable prefix

        Returns:
            Validated settings

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        load_dotenv(find_dotenv(usecwd=True))

        overrides = {}
        for field_name in cls.model_fields:
            value = os.environ.get(f"{prefix}{field_name.upper()}")
            if value is not None:
                overrides[field_name] = value

        return cls.model_validate(overrides)
