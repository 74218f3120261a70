"""
Technical indicators from an ordered candle slice: EMA, RSI, ATR, ADX, volume ratio,
swing points. Every indicator degrades to a neutral default on short history so the
pipeline always gets a snapshot.

EMA and Wilder smoothing are seeded with the simple mean of the first `period`
values; after the seed the recurrences are exactly pandas' `ewm(adjust=False)`.
"""

from __future__ import annotations
import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from paper_trader.core.types import Candle, IndicatorSnapshot

logger = logging.getLogger("paper_trader.indicators")


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """OHLCV DataFrame (columns: open_time, open, high, low, close, volume)."""
    return pd.DataFrame(
        {
            "open_time": [c.open_time for c in candles],
            "open": [c.open for c in candles],
            "high": [c.high for c in candles],
            "low": [c.low for c in candles],
            "close": [c.close for c in candles],
            "volume": [c.volume for c in candles],
        },
        dtype=float,
    )


def _seeded(values: Sequence[float], period: int) -> pd.Series:
    data = np.asarray(values, dtype=float)
    seed = data[:period].mean()
    return pd.Series(np.concatenate(([seed], data[period:])))


def ema(values: Sequence[float], period: int) -> float:
    """EMA seeded with SMA(period). Shorter input returns the last value (0 if empty)."""
    if len(values) < period:
        return float(values[-1]) if len(values) > 0 else 0.0
    return float(_seeded(values, period).ewm(span=period, adjust=False).mean().iloc[-1])


def wilder(values: Sequence[float], period: int) -> float:
    """Wilder's running average: avg = (avg * (period - 1) + value) / period."""
    if len(values) < period or period <= 0:
        return 0.0
    return float(_seeded(values, period).ewm(alpha=1.0 / period, adjust=False).mean().iloc[-1])


def sma(values: Sequence[float], period: int) -> float:
    """Mean of the last `period` values (all values if fewer)."""
    period = min(period, len(values))
    if period == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)[-period:]))


def rsi(closes: Sequence[float], period: int = 14) -> float:
    if len(closes) < period + 1:
        return 50.0
    deltas = np.diff(np.asarray(closes, dtype=float))
    avg_gain = wilder(np.clip(deltas, 0, None), period)
    avg_loss = wilder(np.clip(-deltas, 0, None), period)
    if avg_loss == 0:
        return 100.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)


def true_ranges(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float]) -> np.ndarray:
    h = np.asarray(highs, dtype=float)[1:]
    l = np.asarray(lows, dtype=float)[1:]
    prev_close = np.asarray(closes, dtype=float)[:-1]
    return np.maximum.reduce([h - l, np.abs(h - prev_close), np.abs(l - prev_close)])


def atr(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float], period: int = 14) -> float:
    if len(highs) < period + 1:
        return 0.0
    return wilder(true_ranges(highs, lows, closes), period)


def atr_percent(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float], period: int = 14) -> float:
    if len(closes) == 0 or closes[-1] == 0:
        return 0.0
    return atr(highs, lows, closes, period) / closes[-1] * 100.0


def adx(highs: Sequence[float], lows: Sequence[float], closes: Sequence[float], period: int = 14) -> float:
    """
    Directional index from Wilder-smoothed +DM/-DM/TR.
    Reports the latest DX; DX itself is not smoothed a second time.
    """
    if len(highs) < period + 1:
        return 0.0
    h = np.asarray(highs, dtype=float)
    l = np.asarray(lows, dtype=float)
    up = h[1:] - h[:-1]
    down = l[:-1] - l[1:]
    plus_dm = np.where((up > down) & (up > 0), up, 0.0)
    minus_dm = np.where((down > up) & (down > 0), down, 0.0)
    tr = wilder(true_ranges(highs, lows, closes), period)
    if tr == 0:
        return 0.0
    plus_di = wilder(plus_dm, period) / tr * 100.0
    minus_di = wilder(minus_dm, period) / tr * 100.0
    di_sum = plus_di + minus_di
    if di_sum == 0:
        return 0.0
    return abs(plus_di - minus_di) / di_sum * 100.0


def volume_ratio(volumes: Sequence[float], period: int = 20) -> float:
    if len(volumes) < 2:
        return 1.0
    avg = sma(volumes, period)
    if avg == 0:
        return 1.0
    return float(volumes[-1]) / avg


def swing_high(highs: Sequence[float], lookback: int = 5) -> float:
    """Most recent pivot high (strictly above `lookback` bars each side); else the max."""
    h = np.asarray(highs, dtype=float)
    if len(h) == 0:
        return 0.0
    if len(h) < lookback * 2 + 1:
        return float(h.max())
    for i in range(len(h) - 1 - lookback, lookback - 1, -1):
        left = h[i - lookback:i]
        right = h[i + 1:i + 1 + lookback]
        if (left < h[i]).all() and (right < h[i]).all():
            return float(h[i])
    return float(h.max())


def swing_low(lows: Sequence[float], lookback: int = 5) -> float:
    """Most recent pivot low (strictly below `lookback` bars each side); else the min."""
    l = np.asarray(lows, dtype=float)
    if len(l) == 0:
        return 0.0
    if len(l) < lookback * 2 + 1:
        return float(l.min())
    for i in range(len(l) - 1 - lookback, lookback - 1, -1):
        left = l[i - lookback:i]
        right = l[i + 1:i + 1 + lookback]
        if (left > l[i]).all() and (right > l[i]).all():
            return float(l[i])
    return float(l.min())


class IndicatorEngine:
    """Stateless: candle history in, IndicatorSnapshot out."""

    def __init__(
        self,
        ema_periods: tuple[int, int, int] = (9, 21, 50),
        rsi_len: int = 14,
        atr_len: int = 14,
        adx_len: int = 14,
        vol_ma_len: int = 20,
        swing_lookback: int = 5,
    ):
        self.ema_periods = ema_periods
        self.rsi_len = rsi_len
        self.atr_len = atr_len
        self.adx_len = adx_len
        self.vol_ma_len = vol_ma_len
        self.swing_lookback = swing_lookback

    def compute(self, symbol: str, candles: Sequence[Candle], timestamp: Optional[int] = None) -> IndicatorSnapshot:
        """Snapshot timestamp defaults to the last candle's close time."""
        if timestamp is None:
            timestamp = candles[-1].close_time if candles else 0
        if len(candles) < 2:
            logger.warning("Not enough candles for %s (%d), returning defaults", symbol, len(candles))
            return self.defaults(symbol, timestamp)

        df = candles_to_frame(candles)
        closes: List[float] = df["close"].tolist()
        highs: List[float] = df["high"].tolist()
        lows: List[float] = df["low"].tolist()
        volumes: List[float] = df["volume"].tolist()
        fast, mid, slow = self.ema_periods

        return IndicatorSnapshot(
            symbol=symbol,
            timestamp=timestamp,
            ema9=ema(closes, fast),
            ema21=ema(closes, mid),
            ema50=ema(closes, slow),
            rsi14=rsi(closes, self.rsi_len),
            atr14=atr(highs, lows, closes, self.atr_len),
            atr_percent=atr_percent(highs, lows, closes, self.atr_len),
            adx14=adx(highs, lows, closes, self.adx_len),
            volume_sma20=sma(volumes, self.vol_ma_len),
            volume_ratio=volume_ratio(volumes, self.vol_ma_len),
            last_swing_high=swing_high(highs, self.swing_lookback),
            last_swing_low=swing_low(lows, self.swing_lookback),
        )

    @staticmethod
    def defaults(symbol: str, timestamp: int = 0) -> IndicatorSnapshot:
        return IndicatorSnapshot(
            symbol=symbol,
            timestamp=timestamp,
            ema9=0.0,
            ema21=0.0,
            ema50=0.0,
            rsi14=50.0,
            atr14=0.0,
            atr_percent=0.0,
            adx14=0.0,
            volume_sma20=0.0,
            volume_ratio=1.0,
            last_swing_high=0.0,
            last_swing_low=0.0,
        )
