"""Interval label conversions."""

def timeframe_minutes(tf: str) -> int:
    """Convert Binance-style interval (e.g. '5m', '1h', '1d') to minutes."""
    tf = tf.strip().lower()
    if tf.endswith("m"):
        return int(tf[:-1])
    if tf.endswith("h"):
        return int(tf[:-1]) * 60
    if tf.endswith("d"):
        return int(tf[:-1]) * 60 * 24
    raise ValueError(f"Unsupported timeframe: {tf}")


def interval_ms(tf: str) -> int:
    """Interval length in milliseconds."""
    return timeframe_minutes(tf) * 60_000
