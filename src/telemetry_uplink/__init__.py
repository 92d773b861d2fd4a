"""Telemetry uplink: resilient stats socket client."""

from .config import ClientConfig, HeartbeatConfig, ReachabilityConfig, SocketConfig
from .client import StatsClient
from .network import ConnectionState, ResilientSocketClient

__all__ = [
    "ClientConfig",
    "HeartbeatConfig",
    "ReachabilityConfig",
    "SocketConfig",
    "StatsClient",
    "ConnectionState",
    "ResilientSocketClient",
]
