"""
Binance spot public market data with rate-limit retry.
"""

from __future__ import annotations
import logging
from typing import Any, List, Optional

from binance.client import Client

from paper_trader.market.base import MarketDataClient
from paper_trader.utils.retry import retry_on_rate_limit

logger = logging.getLogger("paper_trader.market.binance")


class BinanceSpotClient(MarketDataClient):
    """Public spot klines. Keys are optional; market data needs none."""

    def __init__(self, api_key: Optional[str] = None, api_secret: Optional[str] = None):
        self._client = Client(api_key, api_secret)
        logger.info("Binance spot market data client ready")

    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def get_klines(self, symbol: str, interval: str, limit: int = 100) -> List[List[Any]]:
        return self._client.get_klines(symbol=symbol, interval=interval, limit=limit)
