"""Periodic stats socket heartbeat."""

import asyncio
import logging
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class HeartbeatManager:
    """Sends a liveness heartbeat through the stats socket at a fixed interval."""

    def __init__(
        self,
        send: Callable[[str], bool],
        identity_provider: Callable[[], str],
        interval: float = 60.0,
    ):
        """Initialize heartbeat manager.

        Args:
            send: Heartbeat sender, usually ``ResilientSocketClient.heartbeat``
            identity_provider: Returns the identity embedded in each heartbeat
            interval: Heartbeat interval in seconds (default: 60)
        """
        self.send = send
        self.identity_provider = identity_provider
        self.interval = interval

        self.sent_count = 0
        self.missed_count = 0
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start heartbeat loop."""
        async with self._lock:
            if self._running:
                return
            self._running = True
            self._task = asyncio.create_task(self._heartbeat_loop())

    async def stop(self) -> None:
        """Stop heartbeat loop."""
        async with self._lock:
            self._running = False
            if self._task:
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
                self._task = None

    def beat(self) -> bool:
        """Send one heartbeat now.

        Returns:
            True if the heartbeat went out, False otherwise
        """
        try:
            sent = self.send(self.identity_provider())
        except Exception as e:
            logger.error(f"Heartbeat failed: {e}")
            sent = False

        if sent:
            self.sent_count += 1
        else:
            self.missed_count += 1
        return sent

    async def _heartbeat_loop(self) -> None:
        """Main heartbeat loop."""
        while self._running:
            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break

            if not self._running:
                break
            self.beat()
