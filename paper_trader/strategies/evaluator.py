"""
Strategy evaluation: regime gate and per-symbol cooldown, then the detector chain
in priority order. The first detector that returns a setup wins.
"""

from __future__ import annotations
import logging
import uuid
from typing import Dict, Optional, Sequence

from paper_trader.core.types import Candle, IndicatorSnapshot, RegimeState, SignalStrength, TradeSignal
from paper_trader.strategies.base import Detector, DetectorInput
from paper_trader.strategies.detectors import DEFAULT_DETECTORS
from paper_trader.utils.timeframes import interval_ms

logger = logging.getLogger("paper_trader.strategy")


def signal_strength(ind: IndicatorSnapshot) -> SignalStrength:
    stacked = (ind.ema9 > ind.ema21 > ind.ema50) or (ind.ema9 < ind.ema21 < ind.ema50)
    if ind.adx14 > 25 and ind.volume_ratio > 1.5 and stacked:
        return SignalStrength.STRONG
    if ind.adx14 > 15 or ind.volume_ratio > 1.2:
        return SignalStrength.MODERATE
    return SignalStrength.WEAK


class StrategyEvaluator:
    """Turns (candles, indicators, regime) into at most one TradeSignal per call."""

    def __init__(
        self,
        cooldown_candles: int = 0,
        interval: str = "5m",
        detectors: Sequence[Detector] = DEFAULT_DETECTORS,
    ):
        self.cooldown_candles = cooldown_candles
        self.interval = interval
        self._interval_ms = interval_ms(interval)
        self.detectors = tuple(detectors)
        self._last_signal_time: Dict[str, int] = {}

    def in_cooldown(self, symbol: str, open_time: int) -> bool:
        if self.cooldown_candles <= 0:
            return False
        last = self._last_signal_time.get(symbol)
        if last is None:
            return False
        elapsed = (open_time - last) / self._interval_ms
        return elapsed < self.cooldown_candles

    def evaluate(
        self,
        symbol: str,
        candles: Sequence[Candle],
        indicators: IndicatorSnapshot,
        regime: RegimeState,
    ) -> Optional[TradeSignal]:
        if not candles:
            return None
        if not regime.trade_allowed:
            logger.info("%s: trading blocked by regime (%s)", symbol, regime.decision.value)
            return None
        last = candles[-1]
        if self.in_cooldown(symbol, last.open_time):
            logger.debug("%s: in cooldown", symbol)
            return None

        data = DetectorInput(symbol=symbol, candles=candles, indicators=indicators, regime=regime)
        for detector in self.detectors:
            setup = detector(data)
            if setup is None:
                continue
            signal = TradeSignal(
                id=str(uuid.uuid4()),
                symbol=symbol,
                timestamp=last.close_time,
                direction=setup.direction,
                strength=signal_strength(indicators),
                entry_price=setup.entry_price,
                stop_loss=setup.stop_loss,
                take_profit=setup.take_profit,
                risk_reward=setup.risk_reward,
                reason=setup.reason,
                strategy=setup.strategy,
                indicators=indicators,
                regime=regime,
            )
            self._last_signal_time[symbol] = last.open_time
            logger.info(
                "Signal %s %s via %s | entry=%.6f sl=%.6f tp=%.6f rr=%.2f strength=%s",
                symbol, signal.direction.value, signal.strategy, signal.entry_price,
                signal.stop_loss, signal.take_profit, signal.risk_reward, signal.strength.value,
            )
            return signal
        logger.debug("%s: no detector fired", symbol)
        return None

    def reset(self, symbol: Optional[str] = None) -> None:
        """Clear cooldown tracking for one symbol, or all."""
        if symbol is None:
            self._last_signal_time.clear()
        else:
            self._last_signal_time.pop(symbol, None)
