"""Telegram notifications. Never log token or chat_id."""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from paper_trader.core.types import ClosedTrade, Position, TradeSignal
    from paper_trader.gate.base import ApprovalDecision

logger = logging.getLogger("paper_trader.utils.telegram")


def send_telegram(text: str, bot_token: str = "", chat_id: str = "") -> bool:
    """Send message to Telegram. Returns True on success. No-op if not configured."""
    if not bot_token or not chat_id:
        logger.debug("Telegram not configured, skipping message (len=%d)", len(text))
        return False
    try:
        url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
        payload = {"chat_id": chat_id, "text": text}
        r = requests.post(url, json=payload, timeout=10)
        if r.status_code != 200:
            logger.warning("Telegram send failed: %s %s", r.status_code, r.text[:200])
            return False
        return True
    except requests.RequestException as e:
        logger.exception("Telegram error: %s", e)
        return False


class TelegramNotifier:
    """Formats pipeline events into chat messages. Read-only consumer of records."""

    def __init__(self, bot_token: str = "", chat_id: str = ""):
        self._bot_token = bot_token
        self._chat_id = chat_id

    @property
    def enabled(self) -> bool:
        return bool(self._bot_token and self._chat_id)

    def send(self, text: str) -> bool:
        return send_telegram(text, self._bot_token, self._chat_id)

    def engine_started(self, symbols: list[str], interval: str, capital: float) -> bool:
        return self.send(f"Paper trader started | {len(symbols)} symbols | {interval} | capital ${capital:,.2f}")

    def signal_generated(self, signal: "TradeSignal") -> bool:
        return self.send(
            f"Signal {signal.direction.value} {signal.symbol} ({signal.strength.value}) "
            f"entry={signal.entry_price:.4f} SL={signal.stop_loss:.4f} TP={signal.take_profit:.4f} "
            f"R:R={signal.risk_reward:.2f}\n{signal.reason}"
        )

    def trade_opened(self, position: "Position", decision: "ApprovalDecision") -> bool:
        return self.send(
            f"Opened {position.direction.value} {position.symbol} qty={position.quantity:.6f} "
            f"@ {position.entry_price:.4f} SL={position.stop_loss:.4f} TP={position.take_profit:.4f} "
            f"(confidence {decision.confidence:.2f})"
        )

    def trade_rejected(self, signal: "TradeSignal", decision: "ApprovalDecision") -> bool:
        return self.send(f"Rejected {signal.direction.value} {signal.symbol}: {decision.verdict.value} - {decision.reasoning}")

    def trade_closed(self, trade: "ClosedTrade") -> bool:
        return self.send(
            f"Closed {trade.direction.value} {trade.symbol} @ {trade.exit_price:.4f} "
            f"({trade.exit_reason.value}) PnL ${trade.pnl:.2f} ({trade.pnl_pct:.2f}%) {trade.outcome.value}"
        )
