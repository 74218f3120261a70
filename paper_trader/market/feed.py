"""
Live candle feed: REST bootstrap, websocket stream with reconnect backoff,
and a low-frequency REST poll as a redundant source.

Both sources write through the same per-symbol CandleBuffer, so a closed candle
seen by the stream and the poll is appended and published exactly once.
"""

from __future__ import annotations
import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import websockets

from paper_trader.core.types import Candle
from paper_trader.market.base import MarketDataClient
from paper_trader.market.buffer import CandleBuffer
from paper_trader.market.parsing import candle_from_rest, candle_from_stream
from paper_trader.utils.retry import backoff_delay

logger = logging.getLogger("paper_trader.feed")


def _now_ms() -> int:
    return int(time.time() * 1000)


class MarketFeed:
    """
    Per-symbol candle history fed by a push stream and a pull fallback.
    Newly closed candles are published on `events` (one queue, one consumer).
    """

    def __init__(
        self,
        client: MarketDataClient,
        symbols: Sequence[str],
        interval: str,
        buffer_size: int = 200,
        history_limit: int = 100,
        poll_interval_s: float = 60.0,
        poll_limit: int = 5,
        ws_url: str = "wss://stream.binance.com:9443",
        reconnect_base_s: float = 1.0,
        reconnect_max_s: float = 30.0,
        max_reconnect_attempts: int = 10,
        bootstrap_attempts: int = 5,
        bootstrap_base_s: float = 2.0,
        bootstrap_max_s: float = 30.0,
        connect: Optional[Callable[[str], Any]] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self._client = client
        self.symbols = [s.upper() for s in symbols]
        self.interval = interval
        self.history_limit = history_limit
        self.poll_interval_s = poll_interval_s
        self.poll_limit = poll_limit
        self.ws_url = ws_url.rstrip("/")
        self.reconnect_base_s = reconnect_base_s
        self.reconnect_max_s = reconnect_max_s
        self.max_reconnect_attempts = max_reconnect_attempts
        self.bootstrap_attempts = bootstrap_attempts
        self.bootstrap_base_s = bootstrap_base_s
        self.bootstrap_max_s = bootstrap_max_s
        self._connect = connect or websockets.connect
        self._clock = clock
        self._buffers: Dict[str, CandleBuffer] = {s: CandleBuffer(s, buffer_size) for s in self.symbols}
        self.events: "asyncio.Queue[Candle]" = asyncio.Queue()
        self._running = False
        self._stream_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self.stream_alive = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stream_url(self) -> str:
        streams = "/".join(f"{s.lower()}@kline_{self.interval}" for s in self.symbols)
        return f"{self.ws_url}/stream?streams={streams}"

    # ---- lifecycle ----

    async def start(self) -> None:
        """Bootstrap each symbol, then start the stream and poll tasks."""
        if self._running:
            logger.warning("Feed already running")
            return
        logger.info("Starting market feed for %d symbols (%s)", len(self.symbols), self.interval)
        self._running = True
        for symbol in self.symbols:
            await self._bootstrap(symbol)
        self._stream_task = asyncio.create_task(self._stream_loop(), name="feed-stream")
        self._poll_task = asyncio.create_task(self._poll_loop(), name="feed-poll")

    async def stop(self) -> None:
        """Cancel stream and poll tasks and wait for them; closes the socket."""
        if not self._running:
            return
        logger.info("Stopping market feed")
        self._running = False
        tasks = [t for t in (self._stream_task, self._poll_task) if t is not None]
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._stream_task = None
        self._poll_task = None
        self.stream_alive = False

    def on_closed_candle(self) -> "asyncio.Queue[Candle]":
        """Queue of newly closed candles, in arrival order across symbols."""
        return self.events

    # ---- reads ----

    def get_recent_candles(self, symbol: str, n: int, until: Optional[int] = None) -> List[Candle]:
        """Last n closed candles; `until` caps history at that open_time."""
        buf = self._buffers.get(symbol.upper())
        return buf.recent(n, until) if buf is not None else []

    def get_current_price(self, symbol: str) -> Optional[float]:
        buf = self._buffers.get(symbol.upper())
        return buf.last_price if buf is not None else None

    def get_prices(self) -> Dict[str, float]:
        """Current price per symbol, omitting symbols with no data yet."""
        prices = {}
        for symbol in self.symbols:
            price = self.get_current_price(symbol)
            if price is not None:
                prices[symbol] = price
        return prices

    # ---- ingestion (single writer per buffer) ----

    def ingest(self, candle: Candle, source: str = "stream") -> bool:
        """Apply a candle update; publish it if it is a newly closed candle."""
        buf = self._buffers.get(candle.symbol)
        if buf is None:
            logger.debug("Ignoring candle for unsubscribed symbol %s", candle.symbol)
            return False
        if not buf.add(candle):
            return False
        logger.info("[%s] New closed candle %s close=%s vol=%s", source.upper(), candle.symbol, candle.close, candle.volume)
        self.events.put_nowait(candle)
        return True

    def ingest_stream_message(self, message: Any) -> Optional[Candle]:
        """Push path. Malformed messages are logged and dropped."""
        try:
            candle = candle_from_stream(message)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Malformed stream message dropped: %s", e)
            return None
        if candle is None:
            return None
        self.ingest(candle, source="stream")
        return candle

    def ingest_rest_rows(self, symbol: str, rows: Sequence[Sequence[Any]]) -> List[Candle]:
        """Poll path. Returns the candles that were newly closed and published."""
        now = self._clock()
        published = []
        for row in rows:
            try:
                candle = candle_from_rest(symbol, self.interval, row, now)
            except (ValueError, IndexError, TypeError) as e:
                logger.warning("Malformed kline row for %s dropped: %s", symbol, e)
                continue
            if self.ingest(candle, source="poll"):
                published.append(candle)
        return published

    # ---- background loops ----

    async def _fetch(self, symbol: str, limit: int) -> List[List[Any]]:
        return await asyncio.to_thread(self._client.get_klines, symbol, self.interval, limit)

    async def _bootstrap(self, symbol: str) -> bool:
        """Historical load with capped backoff. Failure leaves the buffer empty."""
        for attempt in range(1, self.bootstrap_attempts + 1):
            try:
                rows = await self._fetch(symbol, self.history_limit)
            except Exception as e:
                logger.warning("Historical fetch attempt %d/%d failed for %s: %s", attempt, self.bootstrap_attempts, symbol, e)
                if attempt < self.bootstrap_attempts:
                    await asyncio.sleep(backoff_delay(attempt, self.bootstrap_base_s, self.bootstrap_max_s))
                continue
            now = self._clock()
            candles = []
            for row in rows:
                try:
                    candles.append(candle_from_rest(symbol, self.interval, row, now))
                except (ValueError, IndexError, TypeError) as e:
                    logger.warning("Malformed historical row for %s dropped: %s", symbol, e)
            loaded = self._buffers[symbol].load(candles)
            logger.info("Loaded %d historical candles for %s", loaded, symbol)
            return True
        logger.error("All %d historical fetch attempts failed for %s; relying on live data", self.bootstrap_attempts, symbol)
        return False

    async def _stream_loop(self) -> None:
        attempts = 0
        while self._running:
            try:
                logger.info("Connecting to kline stream %s", self.stream_url)
                async with self._connect(self.stream_url) as ws:
                    attempts = 0
                    self.stream_alive = True
                    logger.info("Kline stream connected")
                    async for message in ws:
                        self.ingest_stream_message(message)
                logger.warning("Kline stream disconnected")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("Kline stream error: %s", e)
            finally:
                self.stream_alive = False
            if not self._running:
                break
            if attempts >= self.max_reconnect_attempts:
                logger.error("Max reconnect attempts (%d) reached; stream stopped, polling continues", self.max_reconnect_attempts)
                return
            attempts += 1
            delay = backoff_delay(attempts, self.reconnect_base_s, self.reconnect_max_s)
            logger.info("Reconnecting in %.1fs (attempt %d/%d)", delay, attempts, self.max_reconnect_attempts)
            await asyncio.sleep(delay)

    async def poll_once(self) -> int:
        """One pass of the REST fallback over all symbols. Returns candles published."""
        published = 0
        for symbol in self.symbols:
            try:
                rows = await self._fetch(symbol, self.poll_limit)
            except Exception as e:
                logger.warning("Polling failed for %s: %s", symbol, e)
                continue
            published += len(self.ingest_rest_rows(symbol, rows))
        return published

    async def _poll_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.poll_interval_s)
            if not self._running:
                break
            await self.poll_once()
