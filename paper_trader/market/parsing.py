"""Normalize the two kline wire shapes (stream message, REST row) into Candle."""

from __future__ import annotations
import json
from typing import Any, Mapping, Optional, Sequence, Union

from paper_trader.core.types import Candle


def candle_from_stream(message: Union[str, bytes, Mapping[str, Any]]) -> Optional[Candle]:
    """
    Parse a kline push message, either combined-stream ({"stream", "data"}) or raw.
    Returns None for non-kline events. Raises ValueError/KeyError on malformed input.
    """
    if isinstance(message, (str, bytes)):
        message = json.loads(message)
    data = message.get("data", message)
    if data.get("e") != "kline":
        return None
    k = data["k"]
    return Candle(
        symbol=str(k["s"]).upper(),
        interval=str(k["i"]),
        open_time=int(k["t"]),
        close_time=int(k["T"]),
        open=float(k["o"]),
        high=float(k["h"]),
        low=float(k["l"]),
        close=float(k["c"]),
        volume=float(k["v"]),
        is_closed=bool(k["x"]),
    )


def candle_from_rest(symbol: str, interval: str, row: Sequence[Any], now_ms: int) -> Candle:
    """REST rows carry no closed flag; a candle is closed once its close time has passed."""
    close_time = int(row[6])
    return Candle(
        symbol=symbol.upper(),
        interval=interval,
        open_time=int(row[0]),
        close_time=close_time,
        open=float(row[1]),
        high=float(row[2]),
        low=float(row[3]),
        close=float(row[4]),
        volume=float(row[5]),
        is_closed=now_ms > close_time,
    )
