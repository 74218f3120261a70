"""
Exit management: take-profit, trailing stop, static stop-loss per open position.

A position starts armed (static SL/TP only). Once unrealized profit exceeds the
activation fraction the trailing stop engages and ratchets with the best price seen;
it never loosens. Exit checks run in a fixed order: TP, trailing, SL.
"""

from __future__ import annotations
import logging
from typing import Dict, List, Mapping, Optional

from paper_trader.core.types import (
    ClosedTrade,
    Direction,
    ExitReason,
    Position,
    TradeSignal,
    TrailingStopState,
)
from paper_trader.risk.portfolio import RiskPortfolio

logger = logging.getLogger("paper_trader.exits")


class ExitManager:
    """Owns TrailingStopState by position id; closes through the portfolio."""

    def __init__(self, portfolio: RiskPortfolio, activation: float = 0.008, distance: float = 0.005):
        self.portfolio = portfolio
        self.activation = activation
        self.distance = distance
        self._states: Dict[str, TrailingStopState] = {}

    @property
    def states(self) -> Dict[str, TrailingStopState]:
        return dict(self._states)

    def get_state(self, position_id: str) -> Optional[TrailingStopState]:
        return self._states.get(position_id)

    def open_position(self, signal: TradeSignal, fill_price: float, timestamp: Optional[int] = None) -> Optional[Position]:
        """Open through the portfolio and arm a trailing state for the new position."""
        position = self.portfolio.open(signal, fill_price, timestamp)
        if position is None:
            return None
        self._states[position.id] = TrailingStopState(
            position_id=position.id,
            current_stop=position.stop_loss,
            extreme_price=position.entry_price,
        )
        return position

    def update_trailing(self, position: Position, price: float) -> TrailingStopState:
        """Advance the trailing state machine for one price observation."""
        state = self._states.get(position.id)
        if state is None:
            logger.warning("No trailing state for open position %s (%s); re-arming from its stop-loss",
                           position.id, position.symbol)
            state = TrailingStopState(
                position_id=position.id,
                current_stop=position.stop_loss,
                extreme_price=position.entry_price,
            )
            self._states[position.id] = state

        is_long = position.direction == Direction.LONG
        if is_long:
            profit = (price - position.entry_price) / position.entry_price
        else:
            profit = (position.entry_price - price) / position.entry_price

        if not state.active and profit > self.activation:
            state.active = True
            state.activation_price = price
            logger.info("Trailing stop activated for %s %s @ %.6f", position.symbol, position.direction.value, price)

        if state.active:
            if is_long and price > state.extreme_price:
                state.extreme_price = price
            elif not is_long and price < state.extreme_price:
                state.extreme_price = price
            if is_long:
                candidate = state.extreme_price * (1 - self.distance)
                if candidate > state.current_stop:
                    state.current_stop = candidate
            else:
                candidate = state.extreme_price * (1 + self.distance)
                if candidate < state.current_stop:
                    state.current_stop = candidate
        return state

    def evaluate_exit(self, position: Position, price: float) -> Optional[ExitReason]:
        """First matching exit for price, or None. Does not mutate state."""
        state = self._states.get(position.id)
        if position.direction == Direction.LONG:
            if price >= position.take_profit:
                return ExitReason.TAKE_PROFIT
            if state is not None and state.active and price <= state.current_stop:
                return ExitReason.TRAILING_STOP
            if price <= position.stop_loss:
                return ExitReason.STOP_LOSS
        else:
            if price <= position.take_profit:
                return ExitReason.TAKE_PROFIT
            if state is not None and state.active and price >= state.current_stop:
                return ExitReason.TRAILING_STOP
            if price >= position.stop_loss:
                return ExitReason.STOP_LOSS
        return None

    def check_exits(self, prices: Mapping[str, float], timestamp: Optional[int] = None) -> List[ClosedTrade]:
        """Run every open position with a known price; mark the rest to market."""
        closed = []
        for position in self.portfolio.open_positions:
            price = prices.get(position.symbol)
            if price is None:
                continue
            self.update_trailing(position, price)
            reason = self.evaluate_exit(position, price)
            if reason is None:
                continue
            trade = self.close(position.id, price, reason, timestamp)
            if trade is not None:
                closed.append(trade)
        self.portfolio.mark_to_market(prices)
        return closed

    def close(
        self,
        position_id: str,
        price: float,
        reason: ExitReason = ExitReason.MANUAL,
        timestamp: Optional[int] = None,
    ) -> Optional[ClosedTrade]:
        """Close a position and drop its trailing state together."""
        trade = self.portfolio.close(position_id, price, reason, timestamp)
        if trade is not None:
            self._states.pop(position_id, None)
        return trade

    def close_all(self, prices: Mapping[str, float], reason: ExitReason, timestamp: Optional[int] = None) -> List[ClosedTrade]:
        """Close every position that has a price (end of data, shutdown)."""
        closed = []
        for position in self.portfolio.open_positions:
            price = prices.get(position.symbol, position.current_price)
            trade = self.close(position.id, price, reason, timestamp)
            if trade is not None:
                closed.append(trade)
        return closed
