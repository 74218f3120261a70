"""Detector interface: one pure function per entry pattern, uniform signature."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from paper_trader.core.types import Candle, Direction, IndicatorSnapshot, RegimeState


@dataclass(frozen=True)
class DetectorInput:
    """Everything a detector may look at. Candles are closed, oldest first."""
    symbol: str
    candles: Sequence[Candle]
    indicators: IndicatorSnapshot
    regime: RegimeState

    @property
    def last(self) -> Candle:
        return self.candles[-1]

    @property
    def prev(self) -> Candle:
        return self.candles[-2]


@dataclass(frozen=True)
class Setup:
    """A detector hit: direction with stop/target derived from the last close."""
    strategy: str
    direction: Direction
    entry_price: float
    stop_loss: float
    take_profit: float
    risk_reward: float
    reason: str


Detector = Callable[[DetectorInput], Optional[Setup]]


def make_setup(
    strategy: str,
    direction: Direction,
    entry: float,
    stop: float,
    target: float,
    min_rr: float,
    reason: str,
) -> Optional[Setup]:
    """Validate stop/target sides and the risk:reward floor. None if rejected."""
    if direction == Direction.LONG:
        risk, reward = entry - stop, target - entry
    else:
        risk, reward = stop - entry, entry - target
    if risk <= 0 or reward <= 0:
        return None
    rr = reward / risk
    if rr < min_rr:
        return None
    return Setup(
        strategy=strategy,
        direction=direction,
        entry_price=entry,
        stop_loss=stop,
        take_profit=target,
        risk_reward=rr,
        reason=reason,
    )
