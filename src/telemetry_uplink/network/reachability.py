"""Network reachability signals."""

import asyncio
import logging
from typing import Callable, Optional

import aiohttp


logger = logging.getLogger(__name__)


class Reachability:
    """Read-only "is the network up" signal, polled at decision points."""

    def is_online(self) -> bool:
        raise NotImplementedError


class StaticReachability(Reachability):
    """Reachability flag flipped by the host application."""

    def __init__(self, online: bool = True):
        self._online = online

    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online != self._online:
            logger.info("Network reported %s", "online" if online else "offline")
        self._online = online


class ProbeReachability(Reachability):
    """Reachability derived from periodically probing an HTTP endpoint.

    ``is_online`` returns the result of the last probe and never blocks.
    Any HTTP response counts as online; connection errors and timeouts
    count as offline.
    """

    def __init__(
        self,
        probe_url: str,
        interval: float = 10.0,
        timeout: float = 3.0,
        on_change: Optional[Callable[[bool], None]] = None,
    ):
        """Initialize reachability probe.

        Args:
            probe_url: URL requested on every probe
            interval: Seconds between probes
            timeout: Probe request timeout in seconds
            on_change: Callback invoked with the new state on transitions
        """
        self.probe_url = probe_url
        self.interval = interval
        self.timeout = timeout
        self.on_change = on_change

        self._online = True
        self._task: Optional[asyncio.Task] = None
        self._http_session: Optional[aiohttp.ClientSession] = None

    def is_online(self) -> bool:
        return self._online

    async def start(self) -> None:
        """Start probe loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._probe_loop())

    async def stop(self) -> None:
        """Stop probe loop and close HTTP session."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._http_session and not self._http_session.closed:
            await self._http_session.close()

    async def probe(self) -> bool:
        """Probe once and record the result.

        Returns:
            True if the probe URL answered, False otherwise
        """
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession()

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with self._http_session.head(self.probe_url, timeout=timeout):
                online = True
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("Reachability probe %s failed: %s", self.probe_url, e)
            online = False

        self._update(online)
        return online

    def _update(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info("Network reported %s", "online" if online else "offline")
        if self.on_change:
            try:
                self.on_change(online)
            except Exception as e:
                logger.error(f"Reachability callback failed: {e}")

    async def _probe_loop(self) -> None:
        while True:
            await self.probe()
            await asyncio.sleep(self.interval)
