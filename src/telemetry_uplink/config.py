"""Client configuration."""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SocketConfig(BaseModel):
    """Stats socket configuration."""

    url: str = Field(
        default="wss://stats.example.invalid/ws",
        description="Collector WebSocket endpoint URL",
    )
    reconnect_delay: float = Field(
        default=5.0,
        ge=0.0,
        description="Seconds to wait before reconnecting after an abrupt close",
    )


class HeartbeatConfig(BaseModel):
    """Heartbeat configuration."""

    enabled: bool = Field(default=True, description="Send periodic heartbeats")
    interval: float = Field(
        default=60.0, gt=0.0, description="Heartbeat interval in seconds"
    )


class ReachabilityConfig(BaseModel):
    """Network reachability probing.

    Without a ``probe_url`` the client assumes the network is always
    reachable and relies on the host to flip the signal itself.
    """

    probe_url: Optional[str] = Field(
        default=None, description="HTTP URL probed to decide online/offline"
    )
    interval: float = Field(
        default=10.0, gt=0.0, description="Seconds between probes"
    )
    timeout: float = Field(
        default=3.0, gt=0.0, description="Probe request timeout in seconds"
    )


class ClientConfig(BaseModel):
    """Client configuration."""

    socket: SocketConfig = Field(default_factory=SocketConfig)
    heartbeat: HeartbeatConfig = Field(default_factory=HeartbeatConfig)
    reachability: ReachabilityConfig = Field(default_factory=ReachabilityConfig)

    @classmethod
    def from_file(cls, path: str) -> "ClientConfig":
        """Load configuration from a JSON file.

        Args:
            path: Path to configuration file

        Returns:
            ClientConfig instance
        """
        with open(path, "r") as f:
            data = json.load(f)
        return cls.model_validate(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """Load configuration from a dictionary."""
        return cls.model_validate(data)

    def to_file(self, path: str) -> None:
        """Save configuration to a JSON file.

        Args:
            path: Path to save configuration
        """
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
