"""
Binance partial-depth WebSocket client.

Handles:
1. One WebSocket connection to <symbol>@depth20@100ms
2. Run-to-completion processing of each frame through DepthEngine
3. Tri-state connection status (connecting / live / disconnected)
4. Pushing the derived DepthView to a bounded queue for the UI

Reconnection is an explicit action (reconnect()) unless auto_reconnect is on,
in which case a bounded exponential backoff schedule is used.

Performance notes:
- orjson decoding happens inside the engine
- Minimal logging in hot path
- All I/O is non-blocking (pure asyncio)
"""

from __future__ import annotations

import asyncio
import logging
import queue
from typing import TYPE_CHECKING, Callable, Iterator, Optional

import aiohttp

from ..config import FeedConfig
from ..types import ConnectionStatus, DepthView

if TYPE_CHECKING:
    from ..engine.pipeline import DepthEngine

logger = logging.getLogger(__name__)


def backoff_delays(base_s: float, max_s: float, attempts: int) -> Iterator[float]:
    """Exponential delays base, 2*base, 4*base, ... capped at max_s, `attempts` of them."""
    for attempt in range(attempts):
        yield min(base_s * (2 ** attempt), max_s)


class BinanceDepthClient:
    """
    Async client feeding a DepthEngine from Binance partial book depth.

    Usage:
        engine = DepthEngine(config)
        client = BinanceDepthClient(engine, config.feed)
        await client.run()   # views arrive on client.view_queue
    """

    def __init__(
        self,
        engine: DepthEngine,
        config: Optional[FeedConfig] = None,
        on_status: Optional[Callable[[ConnectionStatus], None]] = None,
    ) -> None:
        self.engine = engine
        self.config = config or FeedConfig()
        self.on_status = on_status

        # State
        self._running = False
        self._status = ConnectionStatus.DISCONNECTED
        self._reconnect_requested = asyncio.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None

        # Output queue for UI - thread-safe so a UI thread can drain it too
        self.view_queue: queue.Queue[DepthView] = queue.Queue(maxsize=self.config.queue_size)

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    def _set_status(self, status: ConnectionStatus) -> None:
        if status is self._status:
            return
        logger.info(f"Feed {self.config.symbol.upper()}: {self._status.value} -> {status.value}")
        self._status = status
        if self.on_status is not None:
            self.on_status(status)

    def _push_view(self, view: DepthView) -> None:
        """Non-blocking put; when the queue is full the oldest view is dropped."""
        try:
            self.view_queue.put_nowait(view)
        except queue.Full:
            try:
                self.view_queue.get_nowait()
            except queue.Empty:
                pass
            self.view_queue.put_nowait(view)

    def _handle_ws_message(self, raw: str) -> bool:
        """
        Handle one WebSocket text frame.

        HOT PATH - called ~10x per second. Returns True if the engine accepted it.
        """
        if not self.engine.process_message(raw):
            return False
        view = self.engine.view
        if view is not None:
            self._push_view(view)
        return True

    async def _stream(self, session: aiohttp.ClientSession) -> None:
        """One connection lifetime: connect, consume until closed or errored."""
        self._set_status(ConnectionStatus.CONNECTING)
        async with session.ws_connect(self.config.url, heartbeat=30.0) as ws:
            self._ws = ws
            self.engine.on_connected()
            self._set_status(ConnectionStatus.LIVE)
            self._reconnect_requested.clear()
            try:
                async for msg in ws:
                    if not self._running:
                        break
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        self._handle_ws_message(msg.data)
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        logger.warning(f"WebSocket error: {ws.exception()}")
                        break
            finally:
                self._ws = None

    async def run(self) -> None:
        """
        Main run loop. Returns after stop().

        After a disconnect it either waits for reconnect() or, with
        auto_reconnect, retries on the backoff schedule until it gives up.
        """
        self._running = True
        self._loop = asyncio.get_running_loop()
        delays = self._new_backoff()

        async with aiohttp.ClientSession() as session:
            while self._running:
                try:
                    await self._stream(session)
                    delays = self._new_backoff()
                except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                    logger.warning(f"Feed connection failed: {e}")

                self._set_status(ConnectionStatus.DISCONNECTED)
                self.engine.on_disconnected()
                if not self._running:
                    break

                delay = next(delays, None) if self.config.auto_reconnect else None
                if delay is not None:
                    logger.info(f"Reconnecting in {delay:.1f}s")
                    try:
                        await asyncio.wait_for(self._reconnect_requested.wait(), timeout=delay)
                    except asyncio.TimeoutError:
                        pass
                else:
                    # Manual reconnect: park until reconnect() or stop()
                    await self._reconnect_requested.wait()
                self._reconnect_requested.clear()

    def _new_backoff(self) -> Iterator[float]:
        return backoff_delays(
            self.config.reconnect_base_delay_s,
            self.config.reconnect_max_delay_s,
            self.config.reconnect_max_attempts,
        )

    def _wake(self) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._reconnect_requested.set)
        else:
            self._reconnect_requested.set()

    def reconnect(self) -> None:
        """Explicitly request a new connection after a disconnect."""
        self._wake()

    def stop(self) -> None:
        """Signal the client to stop. Engine state stays readable."""
        self._running = False
        ws = self._ws
        if ws is not None and self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(lambda: asyncio.ensure_future(ws.close()))
        self._wake()
