"""WebSocket transport handles."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

import aiohttp


logger = logging.getLogger(__name__)


class ReadyState(str, Enum):
    """Transport session ready states."""

    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


@dataclass
class CloseEvent:
    """Describes how a transport session ended."""

    code: Optional[int] = None
    reason: str = ""
    was_clean: bool = False


class SocketHandle:
    """One transport session.

    Owners bind the ``on_open``, ``on_close``, ``on_message`` and ``on_error``
    slots. Subclasses report transport events through the ``_emit_*``
    helpers, which skip unbound slots.
    """

    def __init__(self, url: str):
        self.url = url
        self.ready_state = ReadyState.CONNECTING
        self.on_open: Optional[Callable[[], None]] = None
        self.on_close: Optional[Callable[[CloseEvent], None]] = None
        self.on_message: Optional[Callable[[Any], None]] = None
        self.on_error: Optional[Callable[[BaseException], None]] = None

    def send(self, text: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def unbind(self) -> None:
        """Drop every bound callback."""
        self.on_open = None
        self.on_close = None
        self.on_message = None
        self.on_error = None

    def _emit_open(self) -> None:
        if self.on_open:
            self.on_open()

    def _emit_close(self, event: CloseEvent) -> None:
        if self.on_close:
            self.on_close(event)

    def _emit_message(self, data: Any) -> None:
        if self.on_message:
            self.on_message(data)

    def _emit_error(self, error: BaseException) -> None:
        if self.on_error:
            self.on_error(error)


class Transport:
    """Factory for transport sessions."""

    def open(self, url: str) -> SocketHandle:
        raise NotImplementedError

    async def close(self) -> None:
        """Release resources shared by the handles."""


class AiohttpSocketHandle(SocketHandle):
    """WebSocket session backed by aiohttp.

    The handshake, the read loop and the write loop run as tasks on the
    running event loop; ``send`` only enqueues, so it never blocks.
    """

    def __init__(self, url: str, session: aiohttp.ClientSession):
        super().__init__(url)
        # Raises RuntimeError when no loop is running.
        self._loop = asyncio.get_running_loop()
        self._session = session
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._close_requested = False
        self._writer_task: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Task] = None
        self._task = self._loop.create_task(self._run())

    @property
    def close_requested(self) -> bool:
        return self._close_requested

    def send(self, text: str) -> None:
        if self.ready_state != ReadyState.OPEN:
            raise ConnectionError(f"socket {self.url} is not open")
        self._outbox.put_nowait(text)

    def close(self) -> None:
        """Flush queued frames, then close with a normal closure code."""
        if self.ready_state in (ReadyState.CLOSING, ReadyState.CLOSED):
            return
        self._close_requested = True
        self.ready_state = ReadyState.CLOSING
        if self._ws is None:
            # Still handshaking; abandon the attempt.
            self._task.cancel()
            self.ready_state = ReadyState.CLOSED
            return
        self._close_task = self._loop.create_task(self._shutdown())

    async def wait_closed(self) -> None:
        """Wait until a requested close has finished."""
        tasks = [t for t in (self._close_task, self._task) if t is not None]
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _shutdown(self) -> None:
        await self._outbox.join()
        await self._ws.close()

    async def _run(self) -> None:
        try:
            self._ws = await self._session.ws_connect(self.url)
        except asyncio.CancelledError:
            self.ready_state = ReadyState.CLOSED
            raise
        except Exception as e:
            self.ready_state = ReadyState.CLOSED
            self._emit_error(e)
            self._emit_close(CloseEvent(code=1006, reason=str(e), was_clean=False))
            return

        self.ready_state = ReadyState.OPEN
        self._writer_task = self._loop.create_task(self._write_loop())
        self._emit_open()

        event = await self._read_loop()

        self._writer_task.cancel()
        self._discard_outbox()
        self.ready_state = ReadyState.CLOSED
        self._emit_close(event)

    async def _read_loop(self) -> CloseEvent:
        """Read frames until the session ends and describe how it ended."""
        while True:
            try:
                msg = await self._ws.receive()
            except Exception as e:
                self._emit_error(e)
                await self._ws.close()
                return CloseEvent(code=1006, reason=str(e), was_clean=False)

            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                self._emit_message(msg.data)
            elif msg.type == aiohttp.WSMsgType.CLOSE:
                # Peer completed the closing handshake.
                return CloseEvent(
                    code=self._ws.close_code,
                    reason=msg.extra or "",
                    was_clean=True,
                )
            elif msg.type in (aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                return CloseEvent(
                    code=self._ws.close_code,
                    was_clean=self._close_requested,
                )
            elif msg.type == aiohttp.WSMsgType.ERROR:
                error = self._ws.exception() or ConnectionError("websocket error")
                self._emit_error(error)
                return CloseEvent(code=1006, reason=str(error), was_clean=False)

    async def _write_loop(self) -> None:
        while True:
            text = await self._outbox.get()
            try:
                await self._ws.send_str(text)
            except Exception as e:
                logger.error(f"WebSocket send to {self.url} failed: {e}")
                self._emit_error(e)
                self._discard_outbox()
                return
            finally:
                self._outbox.task_done()

    def _discard_outbox(self) -> None:
        dropped = 0
        while not self._outbox.empty():
            self._outbox.get_nowait()
            self._outbox.task_done()
            dropped += 1
        if dropped:
            logger.warning("Dropped %d queued frame(s) for %s", dropped, self.url)


class AiohttpTransport(Transport):
    """Opens aiohttp WebSocket sessions sharing one ClientSession."""

    def __init__(self) -> None:
        self._http_session: Optional[aiohttp.ClientSession] = None
        self._handles: List[AiohttpSocketHandle] = []

    def open(self, url: str) -> SocketHandle:
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession()
        handle = AiohttpSocketHandle(url, self._http_session)
        self._handles = [h for h in self._handles if h.ready_state != ReadyState.CLOSED]
        self._handles.append(handle)
        return handle

    async def close(self) -> None:
        """Let locally closed handles finish flushing, then close HTTP session."""
        closing = [h for h in self._handles if h.close_requested]
        await asyncio.gather(*(h.wait_closed() for h in closing))
        self._handles = []
        if self._http_session and not self._http_session.closed:
            await self._http_session.close()
