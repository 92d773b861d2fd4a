"""Stats client wiring the socket, heartbeat and reachability together."""

import logging
from typing import Any, Callable, Optional, Union

from .config import ClientConfig
from .network.heartbeat import HeartbeatManager
from .network.reachability import ProbeReachability, Reachability, StaticReachability
from .network.socket_client import ResilientSocketClient
from .network.transport import AiohttpTransport, Transport


logger = logging.getLogger(__name__)


class StatsClient:
    """Telemetry uplink for one application user."""

    def __init__(
        self,
        identity: Union[str, Callable[[], str]],
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        reachability: Optional[Reachability] = None,
    ):
        """Initialize stats client.

        Args:
            identity: Identity sent in heartbeats, or a callable returning it
            config: Client configuration
            transport: Transport override (default: aiohttp)
            reachability: Reachability override; defaults to probing
                ``config.reachability.probe_url`` when set, else always online
        """
        self.config = config or ClientConfig()
        self._identity = identity
        self.transport = transport or AiohttpTransport()

        self._probe: Optional[ProbeReachability] = None
        if reachability is None:
            probe_url = self.config.reachability.probe_url
            if probe_url:
                self._probe = ProbeReachability(
                    probe_url,
                    interval=self.config.reachability.interval,
                    timeout=self.config.reachability.timeout,
                    on_change=self._on_reachability_change,
                )
                reachability = self._probe
            else:
                reachability = StaticReachability()
        self.reachability = reachability

        self.socket = ResilientSocketClient.from_config(
            self.config.socket,
            transport=self.transport,
            reachability=self.reachability,
        )
        self.heartbeat = HeartbeatManager(
            send=self.socket.heartbeat,
            identity_provider=self.identity,
            interval=self.config.heartbeat.interval,
        )

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def identity(self) -> str:
        if callable(self._identity):
            return self._identity()
        return self._identity

    async def start(self) -> None:
        """Connect the socket and start background loops."""
        if self._probe:
            await self._probe.start()
        self.socket.connect()
        if self.config.heartbeat.enabled:
            await self.heartbeat.start()

    async def close(self) -> None:
        """Stop background loops and close all connections."""
        await self.heartbeat.stop()
        if self._probe:
            await self._probe.stop()
        self.socket.disconnect()
        await self.transport.close()

    def send(self, message: Any) -> bool:
        """Queue a telemetry message for delivery."""
        return self.socket.send(message)

    def is_connected(self) -> bool:
        return self.socket.is_connected()

    def _on_reachability_change(self, online: bool) -> None:
        if not online:
            return
        if self.socket.is_connected():
            if self.socket.pending:
                logger.info("Network back online; flushing %d buffered message(s)", self.socket.pending)
                self.socket.flush()
            return
        logger.info("Network back online; reconnecting stats socket")
        self.socket.reconnect()
