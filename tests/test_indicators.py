"""Unit tests for indicators.engine."""

import math

import pytest
from paper_trader.core.types import Candle
from paper_trader.indicators.engine import (
    IndicatorEngine,
    adx,
    atr,
    ema,
    rsi,
    swing_high,
    swing_low,
    volume_ratio,
)


def _candles(closes, spread=1.0, symbol="BTCUSDT"):
    return [
        Candle(symbol, "5m", i * 300_000, i * 300_000 + 299_999, c, c + spread, c - spread, c, 100.0)
        for i, c in enumerate(closes)
    ]


def test_ema_hand_computed():
    # seed = mean(1, 2, 3) = 2, alpha = 0.5 -> 3, 4, ..., 9
    assert ema([float(x) for x in range(1, 11)], 3) == pytest.approx(9.0)


def test_ema_short_input_returns_last_value():
    assert ema([1.0, 2.0], 5) == 2.0
    assert ema([], 5) == 0.0


def test_rsi_rising_series_is_100():
    assert rsi([float(x) for x in range(1, 30)], 14) == 100.0


def test_rsi_short_input_is_50():
    assert rsi([1.0] * 10, 14) == 50.0


def test_rsi_in_range():
    closes = [100 + 5 * math.sin(i / 3.0) for i in range(80)]
    value = rsi(closes, 14)
    assert 0.0 <= value <= 100.0


def test_atr_constant_range():
    closes = [100.0] * 30
    highs = [101.0] * 30
    lows = [99.0] * 30
    assert atr(highs, lows, closes, 14) == pytest.approx(2.0)
    assert atr(highs[:10], lows[:10], closes[:10], 14) == 0.0


def test_adx_one_directional_trend_is_100():
    highs = [100.0 + i for i in range(30)]
    lows = [98.0 + i for i in range(30)]
    closes = [99.0 + i for i in range(30)]
    assert adx(highs, lows, closes, 14) == pytest.approx(100.0)


def test_volume_ratio():
    vols = [1.0] * 19 + [3.0]
    assert volume_ratio(vols, 20) == pytest.approx(3.0 / 1.1)
    assert volume_ratio([5.0], 20) == 1.0


def test_swing_points():
    highs = [1, 2, 3, 4, 5, 10, 5, 4, 3, 2, 1, 2]
    lows = [10, 9, 8, 7, 6, 1, 6, 7, 8, 9, 10, 9]
    assert swing_high(highs, 5) == 10.0
    assert swing_low(lows, 5) == 1.0
    assert swing_high([3.0, 7.0], 5) == 7.0


def test_engine_defaults_on_short_history():
    snap = IndicatorEngine().compute("BTCUSDT", _candles([100.0]))
    assert snap.rsi14 == 50.0
    assert snap.volume_ratio == 1.0
    assert snap.atr14 == 0.0
    assert snap.ema9 == 0.0


def test_engine_snapshot():
    closes = [100 + 0.5 * i for i in range(60)]
    candles = _candles(closes)
    snap = IndicatorEngine().compute("BTCUSDT", candles)
    assert snap.symbol == "BTCUSDT"
    assert snap.timestamp == candles[-1].close_time
    # Steady uptrend: faster EMAs sit above slower ones
    assert snap.ema9 > snap.ema21 > snap.ema50
    assert snap.rsi14 == 100.0
    assert snap.atr14 > 0
    assert snap.atr_percent == pytest.approx(snap.atr14 / closes[-1] * 100)
    assert snap.volume_ratio == pytest.approx(1.0)
