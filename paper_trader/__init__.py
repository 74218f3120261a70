"""Paper trading decision pipeline for crypto candle streams."""

__version__ = "0.1.0"
