"""Abstract market data source for historical and recent klines."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, List


class MarketDataClient(ABC):
    """Blocking REST client returning raw kline rows."""

    @abstractmethod
    def get_klines(self, symbol: str, interval: str, limit: int = 100) -> List[List[Any]]:
        """
        Return kline rows oldest first, each
        [open_time, open, high, low, close, volume, close_time, ...].
        """
        pass
