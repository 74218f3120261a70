"""
Core data types: candles, indicator snapshots, regimes, signals, positions, trades.
Timestamps are Unix milliseconds, matching the exchange wire format.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple


class Direction(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"


class SignalStrength(str, Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


class VolatilityRegime(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    EXTREME = "extreme"


class TrendRegime(str, Enum):
    STRONG_UP = "strong_up"
    UP = "up"
    NEUTRAL = "neutral"
    DOWN = "down"
    STRONG_DOWN = "strong_down"


class MarketDecision(str, Enum):
    TRADE_ALLOWED = "TRADE_ALLOWED"
    DANGER = "DANGER"


class ExitReason(str, Enum):
    TAKE_PROFIT = "take_profit"
    TRAILING_STOP = "trailing_stop"
    STOP_LOSS = "stop_loss"
    MANUAL = "manual"
    END_OF_DATA = "end_of_data"


class TradeOutcome(str, Enum):
    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"


class EngineStatus(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    PAUSED = "paused"
    ERROR = "error"


@dataclass(frozen=True)
class Candle:
    """OHLCV bar for one symbol and interval. Replaced, never mutated."""
    symbol: str
    interval: str
    open_time: int
    close_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    is_closed: bool = True

    @property
    def key(self) -> Tuple[str, int]:
        return (self.symbol, self.open_time)

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator values computed from one candle history slice."""
    symbol: str
    timestamp: int
    ema9: float
    ema21: float
    ema50: float
    rsi14: float
    atr14: float
    atr_percent: float
    adx14: float
    volume_sma20: float
    volume_ratio: float
    last_swing_high: float
    last_swing_low: float


@dataclass(frozen=True)
class RegimeState:
    symbol: str
    timestamp: int
    volatility: VolatilityRegime
    trend: TrendRegime
    decision: MarketDecision
    sentiment_score: float
    sentiment_label: str
    reason: str

    @property
    def trade_allowed(self) -> bool:
        return self.decision != MarketDecision.DANGER


@dataclass(frozen=True)
class TradeSignal:
    """Proposed trade with entry, stop and target, plus the inputs that produced it."""
    id: str
    symbol: str
    timestamp: int
    direction: Direction
    strength: SignalStrength
    entry_price: float
    stop_loss: float
    take_profit: float
    risk_reward: float
    reason: str
    strategy: str
    indicators: IndicatorSnapshot
    regime: RegimeState


@dataclass
class Position:
    """Open paper position. Quantity is fixed at open."""
    id: str
    symbol: str
    direction: Direction
    entry_price: float
    current_price: float
    quantity: float
    entry_time: int
    stop_loss: float
    take_profit: float
    unrealized_pnl: float = 0.0
    unrealized_pnl_pct: float = 0.0
    signal_id: str = ""

    @property
    def entry_notional(self) -> float:
        return self.quantity * self.entry_price

    @property
    def market_value(self) -> float:
        return self.quantity * self.current_price

    def gross_pnl_at(self, price: float) -> float:
        """Directional P&L before commissions if closed at price."""
        if self.direction == Direction.LONG:
            return (price - self.entry_price) * self.quantity
        return (self.entry_price - price) * self.quantity


@dataclass
class TrailingStopState:
    """Trailing stop bookkeeping for one open position, keyed by position id."""
    position_id: str
    current_stop: float
    extreme_price: float
    active: bool = False
    activation_price: float = 0.0


@dataclass(frozen=True)
class ClosedTrade:
    """Closed trade record. Append-only."""
    id: str
    symbol: str
    direction: Direction
    entry_price: float
    exit_price: float
    quantity: float
    entry_time: int
    exit_time: int
    stop_loss: float
    take_profit: float
    pnl: float
    pnl_pct: float
    commission: float
    outcome: TradeOutcome
    exit_reason: ExitReason
    signal_id: str = ""


@dataclass
class PortfolioState:
    """Aggregate portfolio view, recomputed on demand."""
    total_equity: float
    available_cash: float
    positions: List[Position] = field(default_factory=list)
    total_pnl: float = 0.0
    total_pnl_pct: float = 0.0
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    total_trades: int = 0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    expectancy: float = 0.0
    timestamp: int = 0
