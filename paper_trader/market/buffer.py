"""Fixed-capacity per-symbol candle history."""

from __future__ import annotations
from bisect import bisect_left
from collections import deque
from typing import Deque, Iterable, List, Optional

from paper_trader.core.types import Candle


def _open_time(candle: Candle) -> int:
    return candle.open_time


class CandleBuffer:
    """
    Ring buffer of closed candles plus one in-progress slot.
    Closed candles are kept in open_time order and dispatched once per open_time: a
    repeat is a duplicate, while a missing older candle (e.g. a gap the poll path fills
    after a stream reconnect) is inserted in order. Candles older than a full buffer's
    oldest entry would be evicted immediately and are dropped.
    """

    def __init__(self, symbol: str, capacity: int = 200):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.symbol = symbol
        self.capacity = capacity
        self._closed: Deque[Candle] = deque(maxlen=capacity)
        self._live: Optional[Candle] = None

    def __len__(self) -> int:
        return len(self._closed)

    @property
    def last_closed(self) -> Optional[Candle]:
        return self._closed[-1] if self._closed else None

    @property
    def live(self) -> Optional[Candle]:
        return self._live

    def __contains__(self, open_time: int) -> bool:
        idx = bisect_left(self._closed, open_time, key=_open_time)
        return idx < len(self._closed) and self._closed[idx].open_time == open_time

    def add(self, candle: Candle) -> bool:
        """Apply an update. Returns True only when a new closed candle was stored."""
        last = self.last_closed
        if not candle.is_closed:
            if last is not None and candle.open_time <= last.open_time:
                return False
            if self._live is None or candle.open_time >= self._live.open_time:
                self._live = candle
            return False

        if last is None or candle.open_time > last.open_time:
            self._closed.append(candle)
            if self._live is not None and self._live.open_time <= candle.open_time:
                self._live = None
            return True
        return self._insert_late(candle)

    def _insert_late(self, candle: Candle) -> bool:
        idx = bisect_left(self._closed, candle.open_time, key=_open_time)
        if idx < len(self._closed) and self._closed[idx].open_time == candle.open_time:
            return False
        if len(self._closed) == self.capacity:
            if idx == 0:
                return False
            self._closed.popleft()
            idx -= 1
        self._closed.insert(idx, candle)
        return True

    def load(self, candles: Iterable[Candle]) -> int:
        """Bulk insert (bootstrap). Returns number of closed candles stored."""
        return sum(1 for c in sorted(candles, key=_open_time) if self.add(c))

    def recent(self, n: int, until: Optional[int] = None) -> List[Candle]:
        """Last n closed candles, oldest first; with `until`, only open_time <= until."""
        if n <= 0:
            return []
        items = list(self._closed)
        if until is not None:
            items = items[:bisect_left(items, until + 1, key=_open_time)]
        return items[-n:]

    @property
    def last_price(self) -> Optional[float]:
        if self._live is not None:
            return self._live.close
        if self._closed:
            return self._closed[-1].close
        return None
