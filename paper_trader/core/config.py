"""
Load configuration from config.yaml and .env. Secrets only from env.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, List, Optional, Sequence

import yaml
from dotenv import load_dotenv

from paper_trader.utils.timeframes import timeframe_minutes

DEFAULT_SYMBOLS = [
    "BTCUSDT", "ETHUSDT", "SOLUSDT", "XRPUSDT", "BNBUSDT",
    "DOGEUSDT", "AVAXUSDT", "ADAUSDT", "LINKUSDT", "MATICUSDT",
]


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    def env(key: str, default: str = "") -> str:
        return os.getenv(key, default).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

    def env_int(key: str, default: int = 0) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    market = data.get("market", {})
    portfolio = data.get("portfolio", {})
    strategy = data.get("strategy", {})
    exits = data.get("exits", {})
    engine = data.get("engine", {})
    telegram = data.get("telegram", {})
    logging_cfg = data.get("logging", {})

    symbols_env = env("SYMBOLS")
    symbols = [s.strip() for s in symbols_env.split(",") if s.strip()] if symbols_env else market.get("symbols", DEFAULT_SYMBOLS)

    return Config(
        # Market data
        symbols=symbols,
        interval=env("INTERVAL", market.get("interval", "5m")),
        buffer_size=env_int("BUFFER_SIZE", market.get("buffer_size", 200)),
        history_limit=env_int("HISTORY_LIMIT", market.get("history_limit", 100)),
        poll_interval_s=env_float("POLL_INTERVAL_S", market.get("poll_interval_s", 60.0)),
        ws_url=env("BINANCE_WS_URL", market.get("ws_url", "wss://stream.binance.com:9443")),
        # Portfolio / risk
        initial_capital=env_float("INITIAL_CAPITAL", portfolio.get("initial_capital", 10000.0)),
        max_open_positions=env_int("MAX_OPEN_POSITIONS", portfolio.get("max_open_positions", 12)),
        max_position_fraction=env_float("MAX_POSITION_FRACTION", portfolio.get("max_position_fraction", 0.15)),
        risk_per_trade_fraction=env_float("RISK_PER_TRADE_FRACTION", portfolio.get("risk_per_trade_fraction", 0.02)),
        commission_rate=env_float("COMMISSION_RATE", portfolio.get("commission_rate", 0.001)),
        min_cash_reserve_fraction=env_float("MIN_CASH_RESERVE_FRACTION", portfolio.get("min_cash_reserve_fraction", 0.1)),
        qty_step=env_float("QTY_STEP", portfolio.get("qty_step", 0.0)),
        min_qty=env_float("MIN_QTY", portfolio.get("min_qty", 0.0)),
        # Strategy
        cooldown_candles=env_int("COOLDOWN_CANDLES", strategy.get("cooldown_candles", 0)),
        # Exits
        trailing_stop_activation=env_float("TRAILING_STOP_ACTIVATION", exits.get("trailing_stop_activation", 0.008)),
        trailing_stop_distance=env_float("TRAILING_STOP_DISTANCE", exits.get("trailing_stop_distance", 0.005)),
        # Engine
        analysis_window=env_int("ANALYSIS_WINDOW", engine.get("analysis_window", 100)),
        min_candles=env_int("MIN_CANDLES", engine.get("min_candles", 20)),
        max_signal_attempts=env_int("MAX_SIGNAL_ATTEMPTS", engine.get("max_signal_attempts", 2)),
        approval_fail_open=env_bool("APPROVAL_FAIL_OPEN", engine.get("approval_fail_open", False)),
        # Telegram
        telegram_bot_token=env("TELEGRAM_BOT_TOKEN", telegram.get("bot_token", "")),
        telegram_chat_id=env("TELEGRAM_CHAT_ID", telegram.get("chat_id", "")),
        # Logging
        log_level=env("LOG_LEVEL", logging_cfg.get("level", "INFO")),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "paper_trader.log"),
    )


class Config:
    """Unified configuration. Built once at startup, read-only afterwards."""

    __slots__ = (
        "symbols", "interval", "buffer_size", "history_limit", "poll_interval_s", "ws_url",
        "initial_capital", "max_open_positions", "max_position_fraction", "risk_per_trade_fraction",
        "commission_rate", "min_cash_reserve_fraction", "qty_step", "min_qty",
        "cooldown_candles",
        "trailing_stop_activation", "trailing_stop_distance",
        "analysis_window", "min_candles", "max_signal_attempts", "approval_fail_open",
        "telegram_bot_token", "telegram_chat_id",
        "log_level", "log_dir", "log_file",
    )

    def __init__(
        self,
        symbols: Optional[Sequence[str]] = None,
        interval: str = "5m",
        buffer_size: int = 200,
        history_limit: int = 100,
        poll_interval_s: float = 60.0,
        ws_url: str = "wss://stream.binance.com:9443",
        initial_capital: float = 10000.0,
        max_open_positions: int = 12,
        max_position_fraction: float = 0.15,
        risk_per_trade_fraction: float = 0.02,
        commission_rate: float = 0.001,
        min_cash_reserve_fraction: float = 0.1,
        qty_step: float = 0.0,
        min_qty: float = 0.0,
        cooldown_candles: int = 0,
        trailing_stop_activation: float = 0.008,
        trailing_stop_distance: float = 0.005,
        analysis_window: int = 100,
        min_candles: int = 20,
        max_signal_attempts: int = 2,
        approval_fail_open: bool = False,
        telegram_bot_token: str = "",
        telegram_chat_id: str = "",
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
        log_file: str = "paper_trader.log",
    ):
        # Raises ValueError on labels the exchange does not use
        timeframe_minutes(interval)
        self.symbols: List[str] = [s.upper() for s in (symbols or DEFAULT_SYMBOLS)]
        self.interval = interval
        self.buffer_size = buffer_size
        self.history_limit = history_limit
        self.poll_interval_s = poll_interval_s
        self.ws_url = ws_url
        self.initial_capital = initial_capital
        self.max_open_positions = max_open_positions
        self.max_position_fraction = max_position_fraction
        self.risk_per_trade_fraction = risk_per_trade_fraction
        self.commission_rate = commission_rate
        self.min_cash_reserve_fraction = min_cash_reserve_fraction
        self.qty_step = qty_step
        self.min_qty = min_qty
        self.cooldown_candles = cooldown_candles
        self.trailing_stop_activation = trailing_stop_activation
        self.trailing_stop_distance = trailing_stop_distance
        self.analysis_window = analysis_window
        self.min_candles = min_candles
        self.max_signal_attempts = max_signal_attempts
        self.approval_fail_open = approval_fail_open
        self.telegram_bot_token = telegram_bot_token
        self.telegram_chat_id = telegram_chat_id
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file
