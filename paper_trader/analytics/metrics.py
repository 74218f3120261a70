"""
Performance metrics for a replay or a paper session.

Risk-adjusted ratios (Sharpe, Sortino) and drawdown come from the equity curve, sampled
once per processed candle. Trade statistics (win rate, profit factor, expectancy) come
from net closed-trade P&L, so commissions are already included.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

EPS = 1e-12


@dataclass
class PerformanceMetrics:
    total_return_pct: float
    sharpe_ratio: float
    sortino_ratio: float
    max_drawdown_pct: float
    win_rate: float
    profit_factor: float
    expectancy: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    avg_win: float
    avg_loss: float
    largest_win: float = 0.0
    largest_loss: float = 0.0


def _annualized(mean: float, dev: float, periods_per_year: float) -> float:
    if dev <= EPS:
        return 0.0
    return float(np.sqrt(periods_per_year) * mean / dev)


def sharpe_ratio(returns: Sequence[float], risk_free_rate: float = 0.0, periods_per_year: float = 252.0) -> float:
    """Annualized Sharpe of per-period returns. 0 for empty or flat returns."""
    arr = np.asarray(returns, dtype=float)
    if arr.size == 0:
        return 0.0
    excess = arr - risk_free_rate / periods_per_year
    return _annualized(excess.mean(), excess.std(), periods_per_year)


def sortino_ratio(returns: Sequence[float], risk_free_rate: float = 0.0, periods_per_year: float = 252.0) -> float:
    """Annualized Sortino; equals Sharpe when there is no downside dispersion."""
    arr = np.asarray(returns, dtype=float)
    if arr.size == 0:
        return 0.0
    downside = arr[arr < 0]
    if downside.size == 0 or downside.std() <= EPS:
        return sharpe_ratio(arr, risk_free_rate, periods_per_year)
    excess = arr - risk_free_rate / periods_per_year
    return _annualized(excess.mean(), downside.std(), periods_per_year)


def max_drawdown(equity_curve: Sequence[float]) -> float:
    """Worst peak-to-trough move in percent, <= 0 (-15.0 = 15% below peak)."""
    arr = np.asarray(equity_curve, dtype=float)
    if arr.size == 0:
        return 0.0
    peak = np.maximum.accumulate(arr)
    safe_peak = np.where(peak != 0, peak, 1.0)
    return float(((arr - peak) / safe_peak).min() * 100.0)


def equity_returns(equity_curve: Sequence[float]) -> List[float]:
    arr = np.asarray(equity_curve, dtype=float)
    if arr.size < 2:
        return []
    base = np.where(arr[:-1] != 0, arr[:-1], 1.0)
    return (np.diff(arr) / base).tolist()


def win_rate(pnls: Sequence[float]) -> float:
    arr = np.asarray(pnls, dtype=float)
    return float((arr > 0).mean()) if arr.size else 0.0


def profit_factor(pnls: Sequence[float]) -> float:
    """Gross profit over gross loss. inf with wins and no losses, 0 with neither."""
    arr = np.asarray(pnls, dtype=float)
    gross_win = float(arr[arr > 0].sum())
    gross_loss = float(-arr[arr < 0].sum())
    if gross_loss <= 0:
        return float("inf") if gross_win > 0 else 0.0
    return gross_win / gross_loss


def expectancy(pnls: Sequence[float]) -> float:
    """Mean net P&L per trade."""
    arr = np.asarray(pnls, dtype=float)
    return float(arr.mean()) if arr.size else 0.0


def _curve_from_pnls(pnls: Sequence[float], initial_capital: float) -> List[float]:
    return [initial_capital] + (initial_capital + np.cumsum(pnls)).tolist()


def compute_metrics(
    pnls: Sequence[float],
    equity_curve: Optional[Sequence[float]] = None,
    initial_capital: float = 1.0,
    risk_free_rate: float = 0.0,
    periods_per_year: float = 252.0,
) -> PerformanceMetrics:
    """
    Full metric set from closed-trade P&Ls and, optionally, a per-period equity curve.
    Without a curve one point per trade is derived from initial_capital.
    """
    trades = np.asarray(list(pnls), dtype=float)
    curve = list(equity_curve) if equity_curve is not None and len(equity_curve) > 0 else None
    if curve is None:
        curve = _curve_from_pnls(trades, initial_capital)
    if trades.size == 0 and len(curve) < 2:
        return PerformanceMetrics(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0, 0, 0, 0.0, 0.0)

    wins = trades[trades > 0]
    losses = trades[trades < 0]
    start = initial_capital or curve[0]
    rets = equity_returns(curve)
    return PerformanceMetrics(
        total_return_pct=(curve[-1] / start - 1.0) * 100.0 if start else 0.0,
        sharpe_ratio=sharpe_ratio(rets, risk_free_rate, periods_per_year),
        sortino_ratio=sortino_ratio(rets, risk_free_rate, periods_per_year),
        max_drawdown_pct=max_drawdown(curve),
        win_rate=win_rate(trades),
        profit_factor=profit_factor(trades),
        expectancy=expectancy(trades),
        total_trades=int(trades.size),
        winning_trades=int(wins.size),
        losing_trades=int(losses.size),
        avg_win=float(wins.mean()) if wins.size else 0.0,
        avg_loss=float(losses.mean()) if losses.size else 0.0,
        largest_win=float(wins.max()) if wins.size else 0.0,
        largest_loss=float(losses.min()) if losses.size else 0.0,
    )
