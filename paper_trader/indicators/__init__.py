"""Indicators: EMA, RSI, ATR, ADX, volume and swing structure."""

from paper_trader.indicators.engine import IndicatorEngine, ema, rsi, atr, adx, sma, volume_ratio

__all__ = ["IndicatorEngine", "ema", "rsi", "atr", "adx", "sma", "volume_ratio"]
