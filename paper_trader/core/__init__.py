"""Core: config, types, logging."""

from paper_trader.core.config import load_config, Config
from paper_trader.core.types import (
    Candle,
    ClosedTrade,
    Direction,
    IndicatorSnapshot,
    PortfolioState,
    Position,
    RegimeState,
    TradeSignal,
    TrailingStopState,
)
from paper_trader.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "Candle",
    "ClosedTrade",
    "Direction",
    "IndicatorSnapshot",
    "PortfolioState",
    "Position",
    "RegimeState",
    "TradeSignal",
    "TrailingStopState",
    "setup_logging",
]
