"""Resilient stats socket client."""

import asyncio
import json
import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, List, Optional

from pydantic import BaseModel

from .reachability import Reachability, StaticReachability
from .transport import AiohttpTransport, CloseEvent, ReadyState, SocketHandle, Transport
from ..config import SocketConfig


logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Client connection states."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSING = "CLOSING"


class ResilientSocketClient:
    """Keeps one stats socket to a collector alive and buffers outbound messages.

    Every public method returns immediately and never raises. Messages are
    appended to a FIFO buffer before any connectivity check and are removed
    only once the transport has accepted them, so they survive reconnects.
    Reconnection is always gated on the reachability signal.

    All methods and transport callbacks must run on the same event loop.
    """

    def __init__(
        self,
        url: str,
        transport: Optional[Transport] = None,
        reachability: Optional[Reachability] = None,
        reconnect_delay: float = 5.0,
    ):
        """Initialize socket client.

        Args:
            url: Collector WebSocket URL
            transport: Transport used to open sessions (default: aiohttp)
            reachability: Network reachability signal (default: always online)
            reconnect_delay: Seconds to wait before reconnecting after an abrupt close
        """
        self.url = url
        self.transport = transport or AiohttpTransport()
        self.reachability = reachability or StaticReachability()
        self.reconnect_delay = reconnect_delay

        self._handle: Optional[SocketHandle] = None
        self._state = ConnectionState.DISCONNECTED
        self._buffer: Deque[str] = deque()
        self._reconnect_timer: Optional[asyncio.TimerHandle] = None

        self._on_message: Optional[Callable[[Any], None]] = None
        self._on_connection_change: Optional[Callable[[bool], None]] = None

    @classmethod
    def from_config(
        cls,
        config: SocketConfig,
        transport: Optional[Transport] = None,
        reachability: Optional[Reachability] = None,
    ) -> "ResilientSocketClient":
        return cls(
            url=config.url,
            transport=transport,
            reachability=reachability,
            reconnect_delay=config.reconnect_delay,
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def pending(self) -> int:
        """Number of buffered messages awaiting delivery."""
        return len(self._buffer)

    def buffered_messages(self) -> List[str]:
        return list(self._buffer)

    def set_on_message(self, callback: Callable[[Any], None]) -> None:
        """Set callback for inbound socket messages."""
        self._on_message = callback

    def set_on_connection_change(self, callback: Callable[[bool], None]) -> None:
        """Set callback for connection state changes.

        Args:
            callback: Called with True when the socket opens, False when it closes
        """
        self._on_connection_change = callback

    def is_connected(self) -> bool:
        return self._handle is not None and self._handle.ready_state == ReadyState.OPEN

    def connect(self) -> None:
        """Open a socket unless one already exists."""
        if self._handle:
            return

        logger.debug("opening stats socket %s", self.url)
        try:
            handle = self.transport.open(self.url)
        except Exception as e:
            logger.error(f"stats socket open error: {e}")
            self._on_error(None, e)
            return

        handle.on_open = lambda: self._on_open(handle)
        handle.on_close = lambda event: self._on_close(handle, event)
        handle.on_message = lambda data: self._on_inbound(handle, data)
        handle.on_error = lambda error: self._on_error(handle, error)
        self._handle = handle
        self._state = ConnectionState.CONNECTING

    def disconnect(self) -> None:
        """Close the socket and cancel any pending reconnect."""
        logger.debug("stats socket disconnect()")
        self._cancel_reconnect()
        if self._handle:
            self._state = ConnectionState.CLOSING
            handle = self._handle
            # Unbind first so the handle's own close event cannot trigger reconnects.
            handle.unbind()
            self._handle = None
            try:
                handle.close()
            except Exception as e:
                logger.error(f"stats socket close error: {e}")
        self._state = ConnectionState.DISCONNECTED

    def reconnect(self) -> None:
        """Replace the socket with a fresh one, only while online."""
        if not self.reachability.is_online():
            logger.debug("network offline, skipping stats socket reconnect")
            return

        if self._handle and self._handle.ready_state == ReadyState.CONNECTING:
            logger.debug("stats socket handshake in progress, not reconnecting")
            return

        if self._handle:
            self._discard_handle()
        self.connect()

    def send(self, message: Any) -> bool:
        """Buffer a message and flush the buffer if the socket is usable.

        Args:
            message: JSON-serializable object or pydantic model

        Returns:
            True if a drain pass ran, False if the message stays buffered
        """
        try:
            text = self._serialize(message)
        except (TypeError, ValueError) as e:
            logger.error(f"unable to serialize stats message: {e}")
            return False

        self._buffer.append(text)

        if self.is_connected() and self.reachability.is_online():
            logger.debug("stats: %s", text)
            self._drain()
            return True

        logger.error("unable to send message, stats socket is not open")
        self.reconnect()
        return False

    def heartbeat(self, identity: str) -> bool:
        """Send a liveness payload; heartbeats are never buffered.

        Args:
            identity: Identity token embedded verbatim in the payload

        Returns:
            True if sent, False otherwise
        """
        if self.is_connected():
            msg = json.dumps({"heartbeat": "healthy", "username": identity})
            try:
                self._handle.send(msg)
            except Exception as e:
                logger.error(f"unable to send heartbeat: {e}")
                self.reconnect()
                return False
            logger.debug("sent heartbeat to stats socket: %s", msg)
            return True

        logger.error("unable to send heartbeat, stats socket is not open")
        self.reconnect()
        return False

    def flush(self) -> bool:
        """Drain the buffer if the socket is open and the network is online.

        Returns:
            True if a drain pass ran, False otherwise
        """
        if not (self.is_connected() and self.reachability.is_online()):
            return False
        self._drain()
        return True

    def _drain(self) -> None:
        """Send buffered messages head to tail until empty or a send fails."""
        sent = 0
        while self._buffer and self.is_connected():
            try:
                self._handle.send(self._buffer[0])
            except Exception as e:
                logger.error(f"stats send failed, {len(self._buffer)} message(s) kept: {e}")
                break
            self._buffer.popleft()
            sent += 1
        if sent:
            logger.debug("stats send success (%d message(s))", sent)

    def _serialize(self, message: Any) -> str:
        if isinstance(message, BaseModel):
            message = message.model_dump(mode="json")
        return json.dumps(message)

    def _discard_handle(self) -> None:
        handle = self._handle
        handle.unbind()
        self._handle = None
        self._state = ConnectionState.DISCONNECTED
        try:
            handle.close()
        except Exception as e:
            logger.error(f"stats socket close error: {e}")

    def _on_open(self, handle: SocketHandle) -> None:
        if handle is not self._handle:
            return
        logger.info("stats socket %s connected", self.url)
        self._state = ConnectionState.OPEN
        self._notify_connection_change(True)
        if self._buffer and self.reachability.is_online():
            self._drain()

    def _on_close(self, handle: SocketHandle, event: CloseEvent) -> None:
        if handle is not self._handle:
            return
        logger.debug("stats socket %s closed (code=%s)", self.url, event.code)
        handle.unbind()
        self._handle = None
        self._state = ConnectionState.DISCONNECTED
        self._notify_connection_change(False)

        if event.was_clean:
            return

        if not self.reachability.is_online():
            logger.warning("stats socket abrupt disconnection, network offline, not reconnecting")
            return

        logger.warning(
            "stats socket abrupt disconnection, reconnecting in %.1f sec",
            self.reconnect_delay,
        )
        self._schedule_reconnect()

    def _on_inbound(self, handle: SocketHandle, data: Any) -> None:
        if handle is not self._handle:
            return
        logger.info("received stats socket message: %s", data)
        if self._on_message:
            try:
                self._on_message(data)
            except Exception as e:
                logger.error(f"stats message callback failed: {e}")

    def _on_error(self, handle: Optional[SocketHandle], error: BaseException) -> None:
        if handle is not None and handle is not self._handle:
            return
        logger.debug("stats socket %s error: %s", self.url, error)

    def _notify_connection_change(self, connected: bool) -> None:
        if self._on_connection_change:
            try:
                self._on_connection_change(connected)
            except Exception as e:
                logger.error(f"connection change callback failed: {e}")

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("no running event loop, cannot schedule stats socket reconnect")
            return
        self._reconnect_timer = loop.call_later(self.reconnect_delay, self._reconnect_due)

    def _cancel_reconnect(self) -> None:
        if self._reconnect_timer:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _reconnect_due(self) -> None:
        self._reconnect_timer = None
        if not self.reachability.is_online():
            logger.debug("network offline, dropping scheduled stats socket reconnect")
            return
        self.connect()
