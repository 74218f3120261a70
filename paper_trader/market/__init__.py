"""Market data: REST source abstraction, candle buffers, live feed."""

from paper_trader.market.base import MarketDataClient
from paper_trader.market.buffer import CandleBuffer
from paper_trader.market.feed import MarketFeed

__all__ = ["MarketDataClient", "CandleBuffer", "MarketFeed"]
