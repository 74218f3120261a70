"""
Paper portfolio: cash, open positions and the closed-trade log.
Position size = equity * risk_per_trade / stop_distance (lose the risk budget if the
stop is hit), capped by max_position_fraction of equity and floored to the lot step.
"""

from __future__ import annotations
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional

from paper_trader.analytics.metrics import expectancy, profit_factor, win_rate
from paper_trader.core.types import (
    ClosedTrade,
    Direction,
    ExitReason,
    PortfolioState,
    Position,
    TradeOutcome,
    TradeSignal,
)
from paper_trader.utils.exchange_filters import round_quantity

logger = logging.getLogger("paper_trader.portfolio")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SizingResult:
    """Result of sizing: allowed or rejected + reason."""
    allowed: bool
    quantity: float = 0.0
    reason: str = ""


class RiskPortfolio:
    """
    Single writer of cash and the position map.
    Equity is always cash + sum(quantity * current_price) over open positions.
    """

    def __init__(
        self,
        initial_capital: float,
        max_open_positions: int = 12,
        max_position_fraction: float = 0.15,
        risk_per_trade_fraction: float = 0.02,
        commission_rate: float = 0.001,
        min_cash_reserve_fraction: float = 0.1,
        qty_step: float = 0.0,
        min_qty: float = 0.0,
        clock: Callable[[], int] = _now_ms,
    ):
        self.initial_capital = initial_capital
        self.max_open_positions = max_open_positions
        self.max_position_fraction = max_position_fraction
        self.risk_per_trade_fraction = risk_per_trade_fraction
        self.commission_rate = commission_rate
        self.min_cash_reserve_fraction = min_cash_reserve_fraction
        self.qty_step = qty_step
        self.min_qty = min_qty
        self._clock = clock
        self.cash = initial_capital
        self.equity = initial_capital
        self._positions: Dict[str, Position] = {}
        self._closed: List[ClosedTrade] = []

    # ---- reads ----

    @property
    def open_positions(self) -> List[Position]:
        return list(self._positions.values())

    @property
    def closed_trades(self) -> List[ClosedTrade]:
        return list(self._closed)

    def get_position(self, position_id: str) -> Optional[Position]:
        return self._positions.get(position_id)

    def _recompute_equity(self) -> None:
        self.equity = self.cash + sum(p.market_value for p in self._positions.values())

    # ---- checks ----

    def can_open(self, symbol: str = "") -> bool:
        if len(self._positions) >= self.max_open_positions:
            logger.info("Cannot open %s: max open positions (%d) reached", symbol, self.max_open_positions)
            return False
        if self.cash < self.equity * self.min_cash_reserve_fraction:
            logger.info("Cannot open %s: cash %.2f below reserve %.0f%% of equity", symbol, self.cash, self.min_cash_reserve_fraction * 100)
            return False
        return True

    def position_size(self, signal: TradeSignal, fill_price: float) -> SizingResult:
        """Quantity risking risk_per_trade_fraction of equity between entry and stop."""
        if signal.direction == Direction.NEUTRAL:
            return SizingResult(allowed=False, reason="neutral direction")
        if fill_price <= 0:
            return SizingResult(allowed=False, reason="invalid fill price")
        dist = abs(signal.entry_price - signal.stop_loss)
        if dist <= 0:
            return SizingResult(allowed=False, reason="zero stop distance")

        qty = self.equity * self.risk_per_trade_fraction / dist
        max_qty = self.equity * self.max_position_fraction / fill_price
        if qty > max_qty:
            qty = max_qty
        qty = round_quantity(qty, self.min_qty, self.qty_step)
        if qty <= 0:
            return SizingResult(allowed=False, reason="qty rounded to 0")
        return SizingResult(allowed=True, quantity=qty)

    # ---- mutations ----

    def open(self, signal: TradeSignal, fill_price: float, timestamp: Optional[int] = None) -> Optional[Position]:
        """Open a position at fill_price. Returns None (with a log) when rejected."""
        if not self.can_open(signal.symbol):
            return None
        sizing = self.position_size(signal, fill_price)
        if not sizing.allowed:
            logger.warning("Rejected %s %s: %s", signal.symbol, signal.direction.value, sizing.reason)
            return None

        qty = sizing.quantity
        notional = qty * fill_price
        commission = notional * self.commission_rate
        if notional + commission > self.cash:
            logger.warning("Rejected %s: cost %.2f exceeds cash %.2f", signal.symbol, notional + commission, self.cash)
            return None

        position = Position(
            id=str(uuid.uuid4()),
            symbol=signal.symbol,
            direction=signal.direction,
            entry_price=fill_price,
            current_price=fill_price,
            quantity=qty,
            entry_time=timestamp if timestamp is not None else self._clock(),
            stop_loss=signal.stop_loss,
            take_profit=signal.take_profit,
            unrealized_pnl=-commission,
            unrealized_pnl_pct=-commission / notional * 100.0,
            signal_id=signal.id,
        )
        self.cash -= notional + commission
        self._positions[position.id] = position
        self._recompute_equity()
        logger.info(
            "Opened %s %s qty=%.8f @ %.6f notional=%.2f fee=%.4f cash=%.2f",
            position.direction.value, position.symbol, qty, fill_price, notional, commission, self.cash,
        )
        return position

    def close(
        self,
        position_id: str,
        exit_price: float,
        exit_reason: ExitReason,
        timestamp: Optional[int] = None,
    ) -> Optional[ClosedTrade]:
        """Close at exit_price. Unknown id returns None."""
        position = self._positions.get(position_id)
        if position is None:
            logger.warning("Close requested for unknown position %s", position_id)
            return None

        gross = position.gross_pnl_at(exit_price)
        entry_fee = position.entry_notional * self.commission_rate
        exit_notional = position.quantity * exit_price
        exit_fee = exit_notional * self.commission_rate
        commission = entry_fee + exit_fee
        pnl = gross - commission
        if pnl > 0:
            outcome = TradeOutcome.WIN
        elif pnl < 0:
            outcome = TradeOutcome.LOSS
        else:
            outcome = TradeOutcome.BREAKEVEN

        trade = ClosedTrade(
            id=position.id,
            symbol=position.symbol,
            direction=position.direction,
            entry_price=position.entry_price,
            exit_price=exit_price,
            quantity=position.quantity,
            entry_time=position.entry_time,
            exit_time=timestamp if timestamp is not None else self._clock(),
            stop_loss=position.stop_loss,
            take_profit=position.take_profit,
            pnl=pnl,
            pnl_pct=pnl / position.entry_notional * 100.0 if position.entry_notional else 0.0,
            commission=commission,
            outcome=outcome,
            exit_reason=exit_reason,
            signal_id=position.signal_id,
        )
        self.cash += exit_notional - exit_fee
        del self._positions[position_id]
        self._closed.append(trade)
        self._recompute_equity()
        logger.info(
            "Closed %s %s @ %.6f reason=%s pnl=%.2f (%.2f%%) %s",
            trade.direction.value, trade.symbol, exit_price, exit_reason.value,
            pnl, trade.pnl_pct, outcome.value,
        )
        return trade

    def mark_to_market(self, prices: Mapping[str, float]) -> None:
        """Refresh current prices and unrealized P&L; symbols without a price keep their last mark."""
        for position in self._positions.values():
            price = prices.get(position.symbol)
            if price is None:
                continue
            entry_fee = position.entry_notional * self.commission_rate
            position.current_price = price
            position.unrealized_pnl = position.gross_pnl_at(price) - entry_fee
            position.unrealized_pnl_pct = (
                position.unrealized_pnl / position.entry_notional * 100.0 if position.entry_notional else 0.0
            )
        self._recompute_equity()

    def snapshot(self) -> PortfolioState:
        pnls = [t.pnl for t in self._closed]
        realized = sum(pnls)
        unrealized = sum(p.unrealized_pnl for p in self._positions.values())
        total = realized + unrealized
        return PortfolioState(
            total_equity=self.equity,
            available_cash=self.cash,
            positions=[Position(**vars(p)) for p in self._positions.values()],
            total_pnl=total,
            total_pnl_pct=total / self.initial_capital * 100.0 if self.initial_capital else 0.0,
            realized_pnl=realized,
            unrealized_pnl=unrealized,
            total_trades=len(self._closed),
            win_rate=win_rate(pnls),
            profit_factor=profit_factor(pnls),
            expectancy=expectancy(pnls),
            timestamp=self._clock(),
        )
