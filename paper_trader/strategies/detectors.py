"""
Entry detectors, listed in priority order in DEFAULT_DETECTORS.
Each derives stop/target from ATR multiples around the last close and is dropped
when its risk:reward falls below the detector's floor.
"""

from __future__ import annotations
from typing import Optional

from paper_trader.core.types import Direction
from paper_trader.strategies.base import Detector, DetectorInput, Setup, make_setup

MIN_RR = 0.5
SCALP_MIN_RR = 0.4


def ema_crossover(d: DetectorInput) -> Optional[Setup]:
    """EMA9 on the far side of EMA21 and the last close crossed EMA21 from the previous close."""
    if len(d.candles) < 3:
        return None
    ind = d.indicators
    close, prev_close, atr = d.last.close, d.prev.close, ind.atr14

    if ind.ema9 > ind.ema21 and prev_close < ind.ema21 < close:
        return make_setup(
            "ema_crossover", Direction.LONG, close, close - atr * 1.5, close + atr * 3, MIN_RR,
            f"EMA crossover bullish. EMA9({ind.ema9:.2f}) > EMA21({ind.ema21:.2f}), RSI: {ind.rsi14:.1f}",
        )
    if ind.ema9 < ind.ema21 and prev_close > ind.ema21 > close:
        return make_setup(
            "ema_crossover", Direction.SHORT, close, close + atr * 1.5, close - atr * 3, MIN_RR,
            f"EMA crossover bearish. EMA9({ind.ema9:.2f}) < EMA21({ind.ema21:.2f}), RSI: {ind.rsi14:.1f}",
        )
    return None


def rsi_reversal(d: DetectorInput) -> Optional[Setup]:
    """RSI below the 48-52 midpoint band -> long, above -> short."""
    ind = d.indicators
    close, atr = d.last.close, ind.atr14
    if ind.rsi14 < 48:
        return make_setup(
            "rsi_reversal", Direction.LONG, close, close - atr * 1.5, close + atr * 2.5, MIN_RR,
            f"RSI oversold reversal. RSI: {ind.rsi14:.1f}, bounce confirmed",
        )
    if ind.rsi14 > 52:
        return make_setup(
            "rsi_reversal", Direction.SHORT, close, close + atr * 1.5, close - atr * 2.5, MIN_RR,
            f"RSI overbought reversal. RSI: {ind.rsi14:.1f}, rejection confirmed",
        )
    return None


def momentum_breakout(d: DetectorInput) -> Optional[Setup]:
    """Adequate volume, a full-bodied candle, and close on the candle's side of EMA9."""
    if len(d.candles) < 5:
        return None
    ind = d.indicators
    cur, atr = d.last, ind.atr14
    if ind.volume_ratio < 0.8:
        return None
    body_ratio = cur.body / cur.range if cur.range > 0 else 0.0
    if body_ratio < 0.3:
        return None

    detail = f"Vol: {ind.volume_ratio:.1f}x, Body: {body_ratio * 100:.0f}%, ADX: {ind.adx14:.1f}"
    if cur.close > cur.open and cur.close > ind.ema9:
        setup = make_setup(
            "momentum_breakout", Direction.LONG, cur.close, cur.low - atr * 0.5, cur.close + atr * 2, MIN_RR,
            f"Momentum breakout LONG. {detail}",
        )
        if setup:
            return setup
    if cur.close < cur.open and cur.close < ind.ema9:
        return make_setup(
            "momentum_breakout", Direction.SHORT, cur.close, cur.high + atr * 0.5, cur.close - atr * 2, MIN_RR,
            f"Momentum breakout SHORT. {detail}",
        )
    return None


def structure_break(d: DetectorInput, window: int = 10) -> Optional[Setup]:
    """Last `window` candles make a new high/low versus the `window` before them."""
    if len(d.candles) < window * 2:
        return None
    ind = d.indicators
    close, atr = d.last.close, ind.atr14
    recent = d.candles[-window:]
    previous = d.candles[-2 * window:-window]
    recent_high = max(c.high for c in recent)
    recent_low = min(c.low for c in recent)
    prev_high = max(c.high for c in previous)
    prev_low = min(c.low for c in previous)

    if recent_high > prev_high and close > ind.ema21 and ind.rsi14 < 72:
        setup = make_setup(
            "structure_break", Direction.LONG, close, recent_low - atr * 0.3, close + atr * 2.5, MIN_RR,
            f"Structure break bullish. New high: {recent_high:.2f} > {prev_high:.2f}, RSI: {ind.rsi14:.1f}",
        )
        if setup:
            return setup
    if recent_low < prev_low and close < ind.ema21 and ind.rsi14 > 28:
        return make_setup(
            "structure_break", Direction.SHORT, close, recent_high + atr * 0.3, close - atr * 2.5, MIN_RR,
            f"Structure break bearish. New low: {recent_low:.2f} < {prev_low:.2f}, RSI: {ind.rsi14:.1f}",
        )
    return None


def ema_bounce(d: DetectorInput) -> Optional[Setup]:
    """Close returns to EMA21 from the other side, within 1.5 ATR, RSI not extreme."""
    if len(d.candles) < 5:
        return None
    ind = d.indicators
    cur, prev, atr = d.last, d.prev, ind.atr14
    if ind.rsi14 < 20 or ind.rsi14 > 80:
        return None
    if abs(cur.close - ind.ema21) > atr * 1.5:
        return None

    if prev.close < ind.ema21 and cur.close >= ind.ema21 * 0.999:
        setup = make_setup(
            "ema_bounce", Direction.LONG, cur.close, cur.low - atr * 0.8, cur.close + atr * 1.8, MIN_RR,
            f"EMA bounce bullish. Price near EMA21({ind.ema21:.2f}), RSI: {ind.rsi14:.1f}",
        )
        if setup:
            return setup
    if prev.close > ind.ema21 and cur.close <= ind.ema21 * 1.001:
        return make_setup(
            "ema_bounce", Direction.SHORT, cur.close, cur.high + atr * 0.8, cur.close - atr * 1.8, MIN_RR,
            f"EMA bounce bearish. Price near EMA21({ind.ema21:.2f}), RSI: {ind.rsi14:.1f}",
        )
    return None


def mean_reversion(d: DetectorInput) -> Optional[Setup]:
    """Close at least 1 ATR from EMA50 and turning back; target half the deviation."""
    if len(d.candles) < 10:
        return None
    ind = d.indicators
    cur, prev, atr = d.last, d.prev, ind.atr14
    if atr <= 0:
        return None
    deviation = cur.close - ind.ema50
    deviation_atr = abs(deviation) / atr
    if deviation_atr < 1.0:
        return None
    target_distance = abs(deviation) * 0.5

    if deviation < 0 and ind.rsi14 < 45 and cur.close > prev.close:
        setup = make_setup(
            "mean_reversion", Direction.LONG, cur.close, cur.close - atr * 1.2, cur.close + target_distance, MIN_RR,
            f"Mean reversion LONG. {deviation_atr:.1f}x ATR below EMA50({ind.ema50:.2f}), RSI: {ind.rsi14:.1f}",
        )
        if setup:
            return setup
    if deviation > 0 and ind.rsi14 > 55 and cur.close < prev.close:
        return make_setup(
            "mean_reversion", Direction.SHORT, cur.close, cur.close + atr * 1.2, cur.close - target_distance, MIN_RR,
            f"Mean reversion SHORT. {deviation_atr:.1f}x ATR above EMA50({ind.ema50:.2f}), RSI: {ind.rsi14:.1f}",
        )
    return None


def candle_trend(d: DetectorInput) -> Optional[Setup]:
    """Two same-colour candles in a row, or a one-candle turn after a counter move."""
    if len(d.candles) < 3:
        return None
    ind = d.indicators
    cur, prev, prev2 = d.candles[-1], d.candles[-2], d.candles[-3]
    atr = ind.atr14

    bullish = (cur.close > cur.open and prev.close > prev.open) or (cur.close > prev.close and prev.close < prev2.close)
    if bullish and ind.rsi14 < 70:
        setup = make_setup(
            "candle_trend", Direction.LONG, cur.close, min(cur.low, prev.low) - atr * 0.3, cur.close + atr * 1.5, MIN_RR,
            f"Candle trend LONG. Consecutive green candles, RSI: {ind.rsi14:.1f}",
        )
        if setup:
            return setup

    bearish = (cur.close < cur.open and prev.close < prev.open) or (cur.close < prev.close and prev.close > prev2.close)
    if bearish and ind.rsi14 > 30:
        return make_setup(
            "candle_trend", Direction.SHORT, cur.close, max(cur.high, prev.high) + atr * 0.3, cur.close - atr * 1.5, MIN_RR,
            f"Candle trend SHORT. Consecutive red candles, RSI: {ind.rsi14:.1f}",
        )
    return None


def quick_scalp(d: DetectorInput) -> Optional[Setup]:
    """Catch-all: any non-doji candle on its side of EMA9, tight stop and target."""
    if len(d.candles) < 2:
        return None
    ind = d.indicators
    cur, atr = d.last, ind.atr14
    if cur.body < atr * 0.15:
        return None

    detail = f"Body: {cur.body:.2f}, Vol: {ind.volume_ratio:.1f}x, RSI: {ind.rsi14:.1f}"
    if cur.close > cur.open and cur.close >= ind.ema9 * 0.998:
        setup = make_setup(
            "quick_scalp", Direction.LONG, cur.close, cur.low - atr * 0.3, cur.close + atr * 1.0, SCALP_MIN_RR,
            f"Quick scalp LONG. {detail}",
        )
        if setup:
            return setup
    if cur.close < cur.open and cur.close <= ind.ema9 * 1.002:
        return make_setup(
            "quick_scalp", Direction.SHORT, cur.close, cur.high + atr * 0.3, cur.close - atr * 1.0, SCALP_MIN_RR,
            f"Quick scalp SHORT. {detail}",
        )
    return None


DEFAULT_DETECTORS: tuple[Detector, ...] = (
    ema_crossover,
    rsi_reversal,
    momentum_breakout,
    structure_break,
    ema_bounce,
    mean_reversion,
    candle_trend,
    quick_scalp,
)
