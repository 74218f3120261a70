"""Performance analytics."""

from paper_trader.analytics.metrics import (
    PerformanceMetrics,
    compute_metrics,
    expectancy,
    max_drawdown,
    profit_factor,
    sharpe_ratio,
    sortino_ratio,
    win_rate,
)

__all__ = [
    "PerformanceMetrics",
    "compute_metrics",
    "expectancy",
    "max_drawdown",
    "profit_factor",
    "sharpe_ratio",
    "sortino_ratio",
    "win_rate",
]
