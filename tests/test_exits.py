"""Unit tests for risk.exits (trailing stop state machine and exit priority)."""

import pytest
from paper_trader.core.types import (
    Direction,
    ExitReason,
    IndicatorSnapshot,
    MarketDecision,
    RegimeState,
    SignalStrength,
    TradeSignal,
    TrendRegime,
    VolatilityRegime,
)
from paper_trader.risk.exits import ExitManager
from paper_trader.risk.portfolio import RiskPortfolio

SNAP = IndicatorSnapshot("LINKUSDT", 0, 100, 100, 100, 50, 1, 1, 10, 100, 1, 0, 0)
REGIME = RegimeState("LINKUSDT", 0, VolatilityRegime.NORMAL, TrendRegime.NEUTRAL,
                     MarketDecision.TRADE_ALLOWED, 50.0, "Neutral", "")


def _signal(direction=Direction.LONG, stop=98.0, tp=200.0):
    return TradeSignal(
        id="sig", symbol="LINKUSDT", timestamp=0, direction=direction, strength=SignalStrength.WEAK,
        entry_price=100.0, stop_loss=stop, take_profit=tp, risk_reward=2.0,
        reason="test", strategy="test", indicators=SNAP, regime=REGIME,
    )


def _manager():
    pf = RiskPortfolio(10000.0, commission_rate=0.001)
    return pf, ExitManager(pf, activation=0.008, distance=0.005)


def test_open_position_arms_trailing_state():
    pf, em = _manager()
    pos = em.open_position(_signal(), 100.0)
    state = em.get_state(pos.id)
    assert state.active is False
    assert state.current_stop == 98.0
    assert state.extreme_price == 100.0


def test_long_trailing_ratchet_never_loosens():
    pf, em = _manager()
    pos = em.open_position(_signal(), 100.0)
    stops = []
    for price in (100.5, 101.0, 102.0, 101.6):
        assert em.check_exits({"LINKUSDT": price}) == []
        stops.append(em.get_state(pos.id).current_stop)
    assert stops == sorted(stops)
    state = em.get_state(pos.id)
    assert state.active is True
    assert state.activation_price == 101.0
    assert state.extreme_price == 102.0
    assert state.current_stop == pytest.approx(102.0 * 0.995)

    closed = em.check_exits({"LINKUSDT": 101.4})
    assert len(closed) == 1
    assert closed[0].exit_reason == ExitReason.TRAILING_STOP
    assert em.get_state(pos.id) is None
    assert pf.open_positions == []


def test_short_trailing_ratchet_never_loosens():
    pf, em = _manager()
    pos = em.open_position(_signal(Direction.SHORT, stop=102.0, tp=50.0), 100.0)
    stops = []
    for price in (99.0, 98.0, 98.4):
        assert em.check_exits({"LINKUSDT": price}) == []
        stops.append(em.get_state(pos.id).current_stop)
    assert stops == sorted(stops, reverse=True)
    assert stops[-1] == pytest.approx(98.0 * 1.005)
    closed = em.check_exits({"LINKUSDT": 98.6})
    assert closed[0].exit_reason == ExitReason.TRAILING_STOP


def test_take_profit_wins_over_trailing_stop():
    pf, em = _manager()
    pos = em.open_position(_signal(tp=101.0), 100.0)
    state = em.get_state(pos.id)
    state.active = True
    state.extreme_price = 103.0
    state.current_stop = 102.0
    # 101.5 is above the take-profit and below the trailing stop
    assert em.evaluate_exit(pos, 101.5) == ExitReason.TAKE_PROFIT
    closed = em.check_exits({"LINKUSDT": 101.5})
    assert closed[0].exit_reason == ExitReason.TAKE_PROFIT


def test_static_stop_loss():
    pf, em = _manager()
    em.open_position(_signal(), 100.0)
    closed = em.check_exits({"LINKUSDT": 97.9})
    assert closed[0].exit_reason == ExitReason.STOP_LOSS
    assert closed[0].pnl < 0


def test_missing_price_skips_position():
    pf, em = _manager()
    pos = em.open_position(_signal(), 100.0)
    assert em.check_exits({}) == []
    assert pf.get_position(pos.id) is not None


def test_manual_close_drops_state():
    pf, em = _manager()
    pos = em.open_position(_signal(), 100.0)
    trade = em.close(pos.id, 100.0, ExitReason.MANUAL)
    assert trade.exit_reason == ExitReason.MANUAL
    assert em.states == {}
    assert em.close(pos.id, 100.0) is None


def test_close_all_end_of_data():
    pf, em = _manager()
    em.open_position(_signal(), 100.0)
    closed = em.close_all({"LINKUSDT": 100.5}, ExitReason.END_OF_DATA)
    assert [t.exit_reason for t in closed] == [ExitReason.END_OF_DATA]
    assert pf.open_positions == []
    assert pf.cash == pytest.approx(pf.equity)


def test_missing_trailing_state_is_reported_and_rearmed(caplog):
    pf, em = _manager()
    # Opened behind the exit manager's back: no trailing state exists
    pos = pf.open(_signal(), 100.0)
    assert em.get_state(pos.id) is None
    with caplog.at_level("WARNING", logger="paper_trader.exits"):
        assert em.check_exits({"LINKUSDT": 100.5}) == []
    assert any("No trailing state" in r.getMessage() for r in caplog.records)
    state = em.get_state(pos.id)
    assert state.current_stop == pytest.approx(98.0)
    assert not state.active
