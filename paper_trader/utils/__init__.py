"""Utils: intervals, lot-size rounding, retry/backoff. Telegram lives in utils.telegram."""

from paper_trader.utils.timeframes import timeframe_minutes, interval_ms
from paper_trader.utils.exchange_filters import round_quantity
from paper_trader.utils.retry import backoff_delay, retry_on_rate_limit

__all__ = ["timeframe_minutes", "interval_ms", "round_quantity", "backoff_delay", "retry_on_rate_limit"]
