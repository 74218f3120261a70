"""Unit tests for strategies: detectors and the first-match evaluator."""

from dataclasses import replace

import pytest
from paper_trader.core.types import (
    Candle,
    Direction,
    IndicatorSnapshot,
    MarketDecision,
    RegimeState,
    SignalStrength,
    TrendRegime,
    VolatilityRegime,
)
from paper_trader.strategies import StrategyEvaluator, make_setup, signal_strength
from paper_trader.strategies.base import DetectorInput
from paper_trader.strategies.detectors import (
    candle_trend,
    ema_bounce,
    ema_crossover,
    mean_reversion,
    momentum_breakout,
    quick_scalp,
    rsi_reversal,
    structure_break,
)

STEP = 300_000


def _candle(i, o, h, l, c, v=100.0):
    return Candle("SOLUSDT", "5m", i * STEP, i * STEP + STEP - 1, o, h, l, c, v)


def _snap(**overrides):
    base = IndicatorSnapshot(
        symbol="SOLUSDT", timestamp=0,
        ema9=100.0, ema21=100.0, ema50=100.0, rsi14=50.0,
        atr14=1.0, atr_percent=1.0, adx14=10.0,
        volume_sma20=100.0, volume_ratio=1.0,
        last_swing_high=0.0, last_swing_low=0.0,
    )
    return replace(base, **overrides)


def _regime(decision=MarketDecision.TRADE_ALLOWED):
    return RegimeState(
        symbol="SOLUSDT", timestamp=0, volatility=VolatilityRegime.NORMAL,
        trend=TrendRegime.NEUTRAL, decision=decision,
        sentiment_score=50.0, sentiment_label="Neutral", reason="",
    )


def _crossing_candles():
    return [
        _candle(0, 99.0, 99.5, 98.5, 99.0),
        _candle(1, 99.0, 99.5, 98.5, 99.0),
        _candle(2, 99.0, 101.5, 98.9, 101.0),
    ]


def test_make_setup_rejects_wrong_side_and_low_rr():
    assert make_setup("x", Direction.LONG, 100.0, 101.0, 110.0, 0.5, "") is None
    assert make_setup("x", Direction.SHORT, 100.0, 99.0, 90.0, 0.5, "") is None
    assert make_setup("x", Direction.LONG, 100.0, 98.0, 100.5, 0.5, "") is None
    s = make_setup("x", Direction.LONG, 100.0, 98.0, 104.0, 0.5, "")
    assert s.risk_reward == pytest.approx(2.0)


def test_ema_crossover_long():
    d = DetectorInput("SOLUSDT", _crossing_candles(), _snap(ema9=100.5, ema21=100.0), _regime())
    s = ema_crossover(d)
    assert s.direction == Direction.LONG
    assert s.stop_loss == pytest.approx(99.5)
    assert s.take_profit == pytest.approx(104.0)
    assert s.risk_reward == pytest.approx(2.0)


def test_rsi_reversal_band():
    candles = _crossing_candles()
    long = rsi_reversal(DetectorInput("SOLUSDT", candles, _snap(rsi14=40.0), _regime()))
    assert long.direction == Direction.LONG
    assert long.stop_loss == pytest.approx(99.5)
    assert long.take_profit == pytest.approx(103.5)
    short = rsi_reversal(DetectorInput("SOLUSDT", candles, _snap(rsi14=60.0), _regime()))
    assert short.direction == Direction.SHORT
    assert rsi_reversal(DetectorInput("SOLUSDT", candles, _snap(rsi14=50.0), _regime())) is None
    # Zero ATR means zero risk distance
    assert rsi_reversal(DetectorInput("SOLUSDT", candles, _snap(rsi14=40.0, atr14=0.0), _regime())) is None


def test_quick_scalp_needs_real_body():
    prev = _candle(0, 100.0, 100.2, 99.8, 100.0)
    doji = _candle(1, 100.0, 100.5, 99.5, 100.05)
    assert quick_scalp(DetectorInput("SOLUSDT", [prev, doji], _snap(), _regime())) is None
    green = _candle(1, 100.0, 101.2, 99.8, 101.0)
    s = quick_scalp(DetectorInput("SOLUSDT", [prev, green], _snap(), _regime()))
    assert s.direction == Direction.LONG
    assert s.stop_loss == pytest.approx(99.5)
    assert s.take_profit == pytest.approx(102.0)


def test_mean_reversion_zero_atr_is_skipped():
    candles = [_candle(i, 90.0, 91.0, 89.0, 90.0) for i in range(12)]
    assert mean_reversion(DetectorInput("SOLUSDT", candles, _snap(atr14=0.0, ema50=100.0, rsi14=30.0), _regime())) is None


def test_structure_break_needs_twenty_candles():
    candles = [_candle(i, 100.0 + i, 101.0 + i, 99.0 + i, 100.5 + i) for i in range(19)]
    snap = _snap(ema21=100.0, rsi14=60.0, atr14=10.0)
    assert structure_break(DetectorInput("SOLUSDT", candles, snap, _regime())) is None
    candles.append(_candle(19, 119.0, 120.0, 118.0, 119.5))
    s = structure_break(DetectorInput("SOLUSDT", candles, snap, _regime()))
    assert s.direction == Direction.LONG
    assert s.strategy == "structure_break"


def _input(candles, **snap):
    return DetectorInput("SOLUSDT", candles, _snap(**snap), _regime())


def _flat(n, price=100.0):
    return [_candle(i, price, price + 0.5, price - 0.5, price) for i in range(n)]


def _assert_setup(s, direction, stop, target, rr):
    assert s is not None
    assert s.direction == direction
    assert s.stop_loss == pytest.approx(stop)
    assert s.take_profit == pytest.approx(target)
    assert s.risk_reward == pytest.approx(rr)


def test_ema_crossover_short():
    candles = [_candle(0, 101.0, 101.5, 100.5, 101.0), _candle(1, 101.0, 101.5, 100.5, 101.0),
               _candle(2, 101.0, 101.1, 98.5, 99.0)]
    _assert_setup(ema_crossover(_input(candles, ema9=99.5)), Direction.SHORT, 100.5, 96.0, 2.0)
    # No cross: previous close already below EMA21
    assert ema_crossover(_input(_flat(2, 99.0) + [candles[-1]], ema9=99.5)) is None


def test_momentum_breakout_long_and_short():
    long_bar = _candle(4, 100.0, 102.0, 99.5, 101.5)
    _assert_setup(momentum_breakout(_input(_flat(4) + [long_bar])), Direction.LONG, 99.0, 103.5, 0.8)
    short_bar = _candle(4, 100.0, 100.5, 98.0, 98.5)
    _assert_setup(momentum_breakout(_input(_flat(4) + [short_bar])), Direction.SHORT, 101.0, 96.5, 0.8)


def test_momentum_breakout_filters():
    long_bar = _candle(4, 100.0, 102.0, 99.5, 101.5)
    assert momentum_breakout(_input(_flat(3) + [long_bar])) is None
    assert momentum_breakout(_input(_flat(4) + [long_bar], volume_ratio=0.5)) is None
    wick = _candle(4, 100.0, 103.0, 99.0, 100.5)
    assert momentum_breakout(_input(_flat(4) + [wick])) is None
    # Stop under a deep low: risk 5, reward 2
    deep = _candle(4, 97.0, 101.2, 96.5, 101.0)
    assert momentum_breakout(_input(_flat(4) + [deep])) is None


def test_structure_break_long_levels_and_rr_floor():
    candles = [_candle(i, 100.0 + i, 101.0 + i, 99.0 + i, 100.5 + i) for i in range(20)]
    s = structure_break(_input(candles, ema21=100.0, rsi14=60.0, atr14=10.0))
    _assert_setup(s, Direction.LONG, 106.0, 144.5, 25.0 / 13.5)
    # Same break with ATR 1: stop 10.8 away for 2.5 of reward
    assert structure_break(_input(candles, ema21=100.0, rsi14=60.0, atr14=1.0)) is None


def test_structure_break_short():
    candles = [_candle(i, 120.0 - i, 121.0 - i, 119.0 - i, 119.5 - i) for i in range(20)]
    s = structure_break(_input(candles, ema21=110.0, rsi14=40.0, atr14=10.0))
    _assert_setup(s, Direction.SHORT, 114.0, 75.5, 25.0 / 13.5)
    assert structure_break(_input(candles, ema21=110.0, rsi14=20.0, atr14=10.0)) is None


def test_ema_bounce_long_and_short():
    prev = _candle(3, 99.5, 99.8, 99.0, 99.5)
    cur = _candle(4, 99.6, 100.5, 99.5, 100.2)
    _assert_setup(ema_bounce(_input(_flat(3) + [prev, cur])), Direction.LONG, 98.7, 102.0, 1.2)
    prev = _candle(3, 100.5, 100.8, 100.2, 100.5)
    cur = _candle(4, 100.4, 100.5, 99.5, 99.8)
    _assert_setup(ema_bounce(_input(_flat(3) + [prev, cur])), Direction.SHORT, 101.3, 98.0, 1.2)


def test_ema_bounce_filters():
    prev = _candle(3, 99.5, 99.8, 99.0, 99.5)
    cur = _candle(4, 99.6, 100.5, 99.5, 100.2)
    assert ema_bounce(_input(_flat(3) + [prev, cur], rsi14=85.0)) is None
    far = _candle(4, 99.6, 102.5, 99.5, 102.0)
    assert ema_bounce(_input(_flat(3) + [prev, far])) is None
    # Long wick below: risk 5.0 for 1.8 of reward
    deep = _candle(4, 99.6, 100.5, 96.0, 100.2)
    assert ema_bounce(_input(_flat(3) + [prev, deep])) is None


def test_mean_reversion_long_and_short():
    prev = _candle(8, 96.5, 96.8, 96.0, 96.5)
    cur = _candle(9, 96.5, 97.2, 96.4, 97.0)
    s = mean_reversion(_input(_flat(8, 96.0) + [prev, cur], rsi14=40.0))
    _assert_setup(s, Direction.LONG, 95.8, 98.5, 1.25)
    prev = _candle(8, 103.5, 103.8, 103.2, 103.5)
    cur = _candle(9, 103.5, 103.6, 102.8, 103.0)
    s = mean_reversion(_input(_flat(8, 104.0) + [prev, cur], rsi14=60.0))
    _assert_setup(s, Direction.SHORT, 104.2, 101.5, 1.25)


def test_mean_reversion_filters():
    prev = _candle(8, 96.5, 96.8, 96.0, 96.5)
    cur = _candle(9, 96.5, 97.2, 96.4, 97.0)
    assert mean_reversion(_input(_flat(8, 96.0) + [prev, cur], rsi14=50.0)) is None
    near = _candle(9, 99.0, 99.6, 99.0, 99.5)
    assert mean_reversion(_input(_flat(8, 99.0) + [prev, near], rsi14=40.0)) is None
    # One ATR away: half-deviation target 0.5 against a 1.2 stop
    edge = _candle(9, 98.5, 99.2, 98.4, 99.0)
    assert mean_reversion(_input(_flat(8, 98.0) + [prev, edge], rsi14=40.0)) is None


def test_candle_trend_long_and_short():
    base = _candle(0, 100.0, 100.5, 99.5, 100.0)
    green = [base, _candle(1, 100.0, 100.8, 99.8, 100.5), _candle(2, 100.5, 101.2, 100.3, 101.0)]
    _assert_setup(candle_trend(_input(green)), Direction.LONG, 99.5, 102.5, 1.0)
    red = [base, _candle(1, 100.0, 100.2, 99.4, 99.5), _candle(2, 99.5, 99.7, 98.8, 99.0)]
    _assert_setup(candle_trend(_input(red)), Direction.SHORT, 100.5, 97.5, 1.0)


def test_candle_trend_filters():
    base = _candle(0, 100.0, 100.5, 99.5, 100.0)
    green = [base, _candle(1, 100.0, 100.8, 99.8, 100.5), _candle(2, 100.5, 101.2, 100.3, 101.0)]
    assert candle_trend(_input(green, rsi14=75.0)) is None
    assert candle_trend(_input(green[1:])) is None
    # Deep previous low: risk 5.3 for 1.5 of reward
    deep = [base, _candle(1, 100.0, 100.8, 96.0, 100.5), green[2]]
    assert candle_trend(_input(deep)) is None


def test_quick_scalp_short():
    prev = _candle(0, 100.0, 100.2, 99.8, 100.0)
    red = _candle(1, 100.0, 100.2, 98.8, 99.0)
    _assert_setup(quick_scalp(_input([prev, red])), Direction.SHORT, 100.5, 98.0, 1.0 / 1.5)


def test_evaluator_first_match_wins():
    ev = StrategyEvaluator(interval="5m")
    candles = _crossing_candles()
    # Both the crossover and the RSI reversal would fire
    signal = ev.evaluate("SOLUSDT", candles, _snap(ema9=100.5, ema21=100.0, rsi14=40.0), _regime())
    assert signal.strategy == "ema_crossover"
    assert signal.entry_price == candles[-1].close
    assert signal.timestamp == candles[-1].close_time
    assert signal.id


def test_evaluator_blocked_by_danger():
    ev = StrategyEvaluator(interval="5m")
    signal = ev.evaluate("SOLUSDT", _crossing_candles(), _snap(rsi14=40.0), _regime(MarketDecision.DANGER))
    assert signal is None


def test_evaluator_cooldown():
    ev = StrategyEvaluator(cooldown_candles=3, interval="5m")
    snap = _snap(rsi14=40.0)
    base = _crossing_candles()
    assert ev.evaluate("SOLUSDT", base, snap, _regime()) is not None
    two_later = base[:-1] + [_candle(4, 99.0, 101.5, 98.9, 101.0)]
    assert ev.evaluate("SOLUSDT", two_later, snap, _regime()) is None
    three_later = base[:-1] + [_candle(5, 99.0, 101.5, 98.9, 101.0)]
    assert ev.evaluate("SOLUSDT", three_later, snap, _regime()) is not None


def test_evaluator_custom_detector_order():
    calls = []

    def never(d):
        calls.append("never")
        return None

    def always(d):
        calls.append("always")
        return make_setup("always", Direction.SHORT, d.last.close, d.last.close + 1, d.last.close - 2, 0.5, "test")

    ev = StrategyEvaluator(detectors=(never, always, never), interval="5m")
    signal = ev.evaluate("SOLUSDT", _crossing_candles(), _snap(), _regime())
    assert signal.direction == Direction.SHORT
    assert calls == ["never", "always"]


def test_signal_strength():
    stacked = _snap(ema9=105.0, ema21=100.0, ema50=95.0, adx14=30.0, volume_ratio=2.0)
    assert signal_strength(stacked) == SignalStrength.STRONG
    assert signal_strength(replace(stacked, adx14=20.0)) == SignalStrength.MODERATE
    assert signal_strength(_snap(adx14=10.0, volume_ratio=1.0)) == SignalStrength.WEAK
