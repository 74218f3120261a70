"""
Regime classification from ATR%, EMA alignment + ADX, and a 0-100 sentiment score.
Trading is permitted unless volatility is extreme while sentiment is in extreme fear.
"""

from __future__ import annotations
import logging
from typing import Optional

from paper_trader.core.types import (
    IndicatorSnapshot,
    MarketDecision,
    RegimeState,
    TrendRegime,
    VolatilityRegime,
)

logger = logging.getLogger("paper_trader.regime")


def sentiment_label(score: float) -> str:
    if score <= 20:
        return "Extreme Fear"
    if score <= 40:
        return "Fear"
    if score <= 60:
        return "Neutral"
    if score <= 80:
        return "Greed"
    return "Extreme Greed"


class RegimeClassifier:
    """Pure: (indicators, sentiment, price) -> RegimeState."""

    def __init__(
        self,
        atr_pct_cuts: tuple[float, float, float] = (0.5, 2.5, 5.0),
        strong_adx: float = 25.0,
        weak_adx: float = 15.0,
        flat_ema_tolerance: float = 0.003,
        danger_sentiment: float = 10.0,
    ):
        self.atr_pct_cuts = atr_pct_cuts
        self.strong_adx = strong_adx
        self.weak_adx = weak_adx
        self.flat_ema_tolerance = flat_ema_tolerance
        self.danger_sentiment = danger_sentiment

    def classify_volatility(self, atr_percent: float) -> VolatilityRegime:
        low, normal, high = self.atr_pct_cuts
        if atr_percent < low:
            return VolatilityRegime.LOW
        if atr_percent < normal:
            return VolatilityRegime.NORMAL
        if atr_percent < high:
            return VolatilityRegime.HIGH
        return VolatilityRegime.EXTREME

    def classify_trend(self, ind: IndicatorSnapshot, price: Optional[float] = None) -> TrendRegime:
        price = ind.ema9 if price is None else price
        e9, e21, e50, strength = ind.ema9, ind.ema21, ind.ema50, ind.adx14

        if price > e9 > e21 > e50 and strength > self.strong_adx:
            return TrendRegime.STRONG_UP
        if price > e21 and e9 > e21:
            return TrendRegime.UP
        if price < e9 < e21 < e50 and strength > self.strong_adx:
            return TrendRegime.STRONG_DOWN
        if price < e21 and e9 < e21:
            return TrendRegime.DOWN
        if self.is_flat(ind):
            return TrendRegime.NEUTRAL
        # Mixed alignment, e.g. price on the other side of EMA21 from EMA9
        return TrendRegime.NEUTRAL

    def is_flat(self, ind: IndicatorSnapshot) -> bool:
        """EMA9 within the relative tolerance of EMA21, or ADX below the weak threshold."""
        if ind.adx14 < self.weak_adx:
            return True
        if ind.ema21 == 0:
            return ind.ema9 == 0
        return abs(ind.ema9 - ind.ema21) / abs(ind.ema21) < self.flat_ema_tolerance

    def decide(self, volatility: VolatilityRegime, sentiment: float) -> MarketDecision:
        if volatility == VolatilityRegime.EXTREME and sentiment < self.danger_sentiment:
            return MarketDecision.DANGER
        return MarketDecision.TRADE_ALLOWED

    def describe(
        self,
        volatility: VolatilityRegime,
        trend: TrendRegime,
        decision: MarketDecision,
        ind: IndicatorSnapshot,
        sentiment: float,
    ) -> str:
        """Audit string; deterministic for the same inputs."""
        parts = [f"{volatility.value.capitalize()} volatility (ATR {ind.atr_percent:.2f}%)"]
        if trend == TrendRegime.STRONG_UP:
            parts.append(f"strong uptrend (ADX {ind.adx14:.1f})")
        elif trend == TrendRegime.UP:
            parts.append("uptrend")
        elif trend == TrendRegime.STRONG_DOWN:
            parts.append(f"strong downtrend (ADX {ind.adx14:.1f})")
        elif trend == TrendRegime.DOWN:
            parts.append("downtrend")
        elif self.is_flat(ind):
            parts.append(f"range-bound (ADX {ind.adx14:.1f})")
        else:
            parts.append(f"no clear trend, mixed alignment (ADX {ind.adx14:.1f})")

        if ind.rsi14 > 70:
            parts.append(f"overbought (RSI {ind.rsi14:.1f})")
        elif ind.rsi14 < 30:
            parts.append(f"oversold (RSI {ind.rsi14:.1f})")

        if sentiment < 20:
            parts.append(f"extreme fear ({sentiment:.0f})")
        elif sentiment > 80:
            parts.append(f"extreme greed ({sentiment:.0f})")

        if decision == MarketDecision.DANGER:
            verdict = "DANGER - Risk too high to trade"
        else:
            verdict = "TRADE_ALLOWED - Conditions acceptable"
        return f"{verdict}. {', '.join(parts)}."

    def classify(
        self,
        symbol: str,
        ind: IndicatorSnapshot,
        sentiment: float,
        price: Optional[float] = None,
    ) -> RegimeState:
        volatility = self.classify_volatility(ind.atr_percent)
        trend = self.classify_trend(ind, price)
        decision = self.decide(volatility, sentiment)
        state = RegimeState(
            symbol=symbol,
            timestamp=ind.timestamp,
            volatility=volatility,
            trend=trend,
            decision=decision,
            sentiment_score=sentiment,
            sentiment_label=sentiment_label(sentiment),
            reason=self.describe(volatility, trend, decision, ind, sentiment),
        )
        logger.info(
            "%s -> %s | vol=%s trend=%s atr%%=%.2f adx=%.2f rsi=%.2f sentiment=%.0f",
            symbol, decision.value, volatility.value, trend.value,
            ind.atr_percent, ind.adx14, ind.rsi14, sentiment,
        )
        return state
