#!/usr/bin/env python3
"""
Paper Trader CLI: paper | replay
Usage:
  python main.py paper [--config config.yaml]
  python main.py replay [--config config.yaml] [--limit 500]
"""

from __future__ import annotations
import argparse
import asyncio
import logging
import os
from pathlib import Path

from paper_trader.core.config import load_config
from paper_trader.core.logger import setup_logging
from paper_trader.engine.orchestrator import build_orchestrator
from paper_trader.engine.replay import ReplayRunner, load_history
from paper_trader.market.binance_spot import BinanceSpotClient
from paper_trader.utils.telegram import TelegramNotifier

ROOT = Path(__file__).resolve().parent


def _client() -> BinanceSpotClient:
    # Market data is public; keys are passed through only if present
    return BinanceSpotClient(os.getenv("BINANCE_API_KEY") or None, os.getenv("BINANCE_API_SECRET") or None)


def run_replay(config_path: Path | None, limit: int) -> int:
    """Fetch recent klines for every symbol and replay them through the pipeline."""
    config = load_config(config_path, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file)
    logger = logging.getLogger("paper_trader")
    client = _client()
    try:
        candles = load_history(client, config.symbols, config.interval, limit=limit)
    except Exception as e:
        logger.error("Could not fetch history: %s", e)
        return 1
    orchestrator = build_orchestrator(config, client)
    result = asyncio.run(ReplayRunner(orchestrator).run(candles))
    m = result.metrics
    if m:
        print("\n--- Replay Results ---")
        print(f"Total trades: {m.total_trades} (wins: {m.winning_trades}, losses: {m.losing_trades})")
        print(f"Total return: {m.total_return_pct:.2f}%")
        print(f"Sharpe ratio: {m.sharpe_ratio:.2f}")
        print(f"Sortino ratio: {m.sortino_ratio:.2f}")
        print(f"Max drawdown: {m.max_drawdown_pct:.2f}%")
        print(f"Win rate: {m.win_rate*100:.1f}%")
        print(f"Profit factor: {m.profit_factor:.2f}")
        print(f"Expectancy: {m.expectancy:.2f} USD/trade")
    return 0


def run_paper(config_path: Path | None) -> int:
    """Run the live paper-trading loop until Ctrl-C."""
    config = load_config(config_path, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file)
    logger = logging.getLogger("paper_trader")
    notifier = TelegramNotifier(config.telegram_bot_token, config.telegram_chat_id)
    orchestrator = build_orchestrator(config, _client(), notifier=notifier)
    try:
        asyncio.run(orchestrator.run())
    except KeyboardInterrupt:
        logger.info("Shutdown by user")
    state = orchestrator.state()
    p = state.portfolio
    print(f"\nEquity: {p.total_equity:.2f} | PnL: {p.total_pnl:.2f} ({p.total_pnl_pct:.2f}%) | "
          f"trades: {p.total_trades} | win rate: {p.win_rate*100:.1f}% | open: {len(p.positions)}")
    notifier.send("Paper trader stopped (user request).")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Paper Trader CLI")
    parser.add_argument("mode", choices=["paper", "replay"], help="Run live paper trading or a historical replay")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--limit", type=int, default=500, help="Candles per symbol to replay")
    args = parser.parse_args()
    if args.mode == "replay":
        return run_replay(args.config, args.limit)
    return run_paper(args.config)


if __name__ == "__main__":
    exit(main())
