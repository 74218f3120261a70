"""
Historical replay: pushes closed candles through the same feed buffer and tick
handler the live loop uses, one candle at a time in open_time order, so there is no
lookahead. Positions still open at the end are closed at the last price.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from paper_trader.analytics.metrics import PerformanceMetrics, compute_metrics
from paper_trader.core.types import Candle, ClosedTrade, EngineStatus, ExitReason
from paper_trader.engine.orchestrator import Orchestrator
from paper_trader.market.base import MarketDataClient
from paper_trader.market.parsing import candle_from_rest
from paper_trader.utils.timeframes import timeframe_minutes

logger = logging.getLogger("paper_trader.replay")

MINUTES_PER_YEAR = 365 * 24 * 60


@dataclass
class ReplayResult:
    """Replay output: trades, per-candle equity and metrics."""
    trades: List[ClosedTrade] = field(default_factory=list)
    equity_curve: List[float] = field(default_factory=list)
    metrics: Optional[PerformanceMetrics] = None


def load_history(
    client: MarketDataClient,
    symbols: Iterable[str],
    interval: str,
    limit: int = 500,
) -> List[Candle]:
    """Fetch klines for each symbol; only candles already closed are kept."""
    now = int(time.time() * 1000)
    candles: List[Candle] = []
    for symbol in symbols:
        rows = client.get_klines(symbol, interval, limit)
        parsed = [candle_from_rest(symbol, interval, row, now) for row in rows]
        closed = [c for c in parsed if c.is_closed]
        logger.info("Fetched %d closed candles for %s", len(closed), symbol)
        candles.extend(closed)
    return candles


class ReplayRunner:
    """Drives an Orchestrator from a candle list instead of the live feed tasks."""

    def __init__(self, orchestrator: Orchestrator, periods_per_year: Optional[float] = None):
        self.orchestrator = orchestrator
        if periods_per_year is None:
            periods_per_year = MINUTES_PER_YEAR / timeframe_minutes(orchestrator.config.interval)
        self.periods_per_year = periods_per_year

    async def run(self, candles: Sequence[Candle]) -> ReplayResult:
        orch = self.orchestrator
        feed, portfolio = orch.feed, orch.portfolio
        orch.status = EngineStatus.RUNNING
        equity_curve = [portfolio.equity]
        last_time = 0

        ordered = sorted((c for c in candles if c.is_closed), key=lambda c: (c.open_time, c.symbol))
        logger.info("Replaying %d candles over %d symbols", len(ordered), len({c.symbol for c in ordered}))
        for candle in ordered:
            if not feed.ingest(candle, source="replay"):
                continue
            while not feed.events.empty():
                await orch.process_candle(feed.events.get_nowait())
            equity_curve.append(portfolio.equity)
            last_time = candle.close_time

        prices: Dict[str, float] = feed.get_prices()
        leftover = orch.exits.close_all(prices, ExitReason.END_OF_DATA, timestamp=last_time)
        if leftover:
            logger.info("Closed %d open positions at end of data", len(leftover))
            equity_curve.append(portfolio.equity)

        trades = portfolio.closed_trades
        metrics = compute_metrics(
            [t.pnl for t in trades],
            equity_curve,
            initial_capital=portfolio.initial_capital,
            periods_per_year=self.periods_per_year,
        )
        orch.status = EngineStatus.PAUSED
        logger.info("Replay done: %d trades, return %.2f%%", metrics.total_trades, metrics.total_return_pct)
        return ReplayResult(trades=trades, equity_curve=equity_curve, metrics=metrics)
