"""Stats socket network module."""

from .transport import (
    AiohttpSocketHandle,
    AiohttpTransport,
    CloseEvent,
    ReadyState,
    SocketHandle,
    Transport,
)
from .reachability import Reachability, StaticReachability, ProbeReachability
from .heartbeat import HeartbeatManager
from .socket_client import ConnectionState, ResilientSocketClient

__all__ = [
    "AiohttpSocketHandle",
    "AiohttpTransport",
    "CloseEvent",
    "ReadyState",
    "SocketHandle",
    "Transport",
    "Reachability",
    "StaticReachability",
    "ProbeReachability",
    "HeartbeatManager",
    "ConnectionState",
    "ResilientSocketClient",
]
