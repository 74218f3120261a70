"""
Trading loop: one tick per closed candle.

Tick: recent candles -> indicators -> sentiment -> regime -> exits on all symbols ->
up to max_signal_attempts of (signal -> approval gate -> open). A rejected or delayed
signal, or a portfolio refusal, ends the attempts for that symbol on that tick.
Ticks never interleave; the feed queue has one consumer.
"""

from __future__ import annotations
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from paper_trader.core.config import Config
from paper_trader.core.types import (
    Candle,
    ClosedTrade,
    EngineStatus,
    PortfolioState,
    RegimeState,
    TradeSignal,
)
from paper_trader.gate.base import ApprovalContext, ApprovalDecision, ApprovalGate, ApprovalVerdict, AutoApproveGate
from paper_trader.gate.sentiment import SentimentProvider, StaticSentiment
from paper_trader.indicators.engine import IndicatorEngine
from paper_trader.market.base import MarketDataClient
from paper_trader.market.feed import MarketFeed
from paper_trader.regime.classifier import RegimeClassifier, sentiment_label
from paper_trader.risk.exits import ExitManager
from paper_trader.risk.portfolio import RiskPortfolio
from paper_trader.strategies.evaluator import StrategyEvaluator
from paper_trader.utils.telegram import TelegramNotifier

logger = logging.getLogger("paper_trader.engine")

MAX_ERRORS = 100
ERROR_STATUS_THRESHOLD = 50
NEUTRAL_SENTIMENT = 50.0


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class EngineState:
    """Read-only view for dashboards and notifications."""
    status: EngineStatus
    started_at: int
    uptime_ms: int
    symbols: List[str]
    interval: str
    regimes: Dict[str, RegimeState]
    prices: Dict[str, float]
    portfolio: PortfolioState
    last_signal: Optional[TradeSignal] = None
    last_decision: Optional[ApprovalDecision] = None
    errors: List[str] = field(default_factory=list)


class Orchestrator:
    """Wires the pipeline stages. Sole writer of portfolio and trailing state."""

    def __init__(
        self,
        config: Config,
        feed: MarketFeed,
        indicators: IndicatorEngine,
        regime: RegimeClassifier,
        evaluator: StrategyEvaluator,
        portfolio: RiskPortfolio,
        exits: ExitManager,
        gate: ApprovalGate,
        sentiment: SentimentProvider,
        notifier: Optional[TelegramNotifier] = None,
        clock=_now_ms,
    ):
        self.config = config
        self.feed = feed
        self.indicators = indicators
        self.regime = regime
        self.evaluator = evaluator
        self.portfolio = portfolio
        self.exits = exits
        self.gate = gate
        self.sentiment = sentiment
        self.notifier = notifier
        self._clock = clock
        self.status = EngineStatus.STARTING
        self.started_at = 0
        self.regimes: Dict[str, RegimeState] = {}
        self.last_signal: Optional[TradeSignal] = None
        self.last_decision: Optional[ApprovalDecision] = None
        self.errors: List[str] = []
        self._running = False
        self._idle = False
        self._consumer: Optional[asyncio.Task] = None

    # ---- lifecycle ----

    async def start(self) -> None:
        logger.info("Starting engine: %d symbols, interval=%s, capital=%.2f",
                    len(self.config.symbols), self.config.interval, self.config.initial_capital)
        self.status = EngineStatus.STARTING
        self.started_at = self._clock()
        self._running = True
        try:
            await self.feed.start()
        except Exception as e:
            # Feed keeps its poll fallback; the engine runs on whatever arrives
            logger.warning("Feed start had errors: %s", e)
        self.status = EngineStatus.RUNNING
        await self._notify("engine_started", self.config.symbols, self.config.interval, self.config.initial_capital)
        logger.info("Engine running")

    async def stop(self) -> None:
        """Stop the feed and release the consumer if it is waiting for a candle."""
        if not self._running:
            return
        logger.info("Stopping engine")
        self._running = False
        await self.feed.stop()
        if self.status != EngineStatus.ERROR:
            self.status = EngineStatus.PAUSED
        consumer = self._consumer
        if consumer is not None and self._idle and consumer is not asyncio.current_task():
            consumer.cancel()
        snap = self.portfolio.snapshot()
        logger.info("Engine stopped. Equity=%.2f PnL=%.2f trades=%d", snap.total_equity, snap.total_pnl, snap.total_trades)

    async def run(self) -> None:
        """Start, then consume closed candles until stopped or cancelled."""
        await self.start()
        self._consumer = asyncio.current_task()
        events = self.feed.on_closed_candle()
        try:
            while self._running:
                self._idle = True
                candle = await events.get()
                self._idle = False
                await self.process_candle(candle)
        finally:
            self._idle = False
            self._consumer = None
            await self.stop()

    # ---- tick ----

    async def process_candle(self, candle: Candle) -> None:
        symbol = candle.symbol
        try:
            logger.info("Processing closed candle %s close=%s", symbol, candle.close)
            recent = self.feed.get_recent_candles(symbol, self.config.analysis_window, until=candle.open_time)
            if len(recent) < self.config.min_candles:
                logger.warning("Not enough candles for %s (%d/%d), skipping", symbol, len(recent), self.config.min_candles)
                return

            ind = self.indicators.compute(symbol, recent)
            score = await self._sentiment_score()
            price = self.feed.get_current_price(symbol)
            if price is None:
                price = candle.close
            regime = self.regime.classify(symbol, ind, score, price)
            self.regimes[symbol] = regime

            closed = self.exits.check_exits(self.feed.get_prices(), timestamp=candle.close_time)
            for trade in closed:
                await self._on_trade_closed(trade)

            for _ in range(self.config.max_signal_attempts):
                signal = self.evaluator.evaluate(symbol, recent, ind, regime)
                if signal is None:
                    break
                self.last_signal = signal
                await self._notify("signal_generated", signal)

                context = ApprovalContext(
                    sentiment_score=score,
                    sentiment_label=sentiment_label(score),
                    headlines=await self._headlines(symbol),
                )
                decision = await self.request_approval(signal, context)
                self.last_decision = decision

                if not decision.approved:
                    logger.info("Signal %s %s not approved: %s (%s)",
                                symbol, signal.direction.value, decision.verdict.value, decision.reasoning)
                    await self._notify("trade_rejected", signal, decision)
                    break

                position = self.exits.open_position(signal, price, timestamp=candle.close_time)
                if position is None:
                    break
                logger.info("Trade executed: %s %s @ %.6f (confidence %.2f)",
                            signal.direction.value, symbol, price, decision.confidence)
                await self._notify("trade_opened", position, decision)
        except Exception as e:
            self.handle_error(f"Error processing candle for {symbol}", e)

    async def request_approval(self, signal: TradeSignal, context: ApprovalContext) -> ApprovalDecision:
        """Ask the gate. A gate failure resolves by the configured fail-open/closed policy."""
        try:
            return await self.gate.evaluate(signal, context)
        except Exception as e:
            self.handle_error("Approval gate failed", e)
            if self.config.approval_fail_open:
                return ApprovalDecision(
                    signal_id=signal.id,
                    verdict=ApprovalVerdict.APPROVE,
                    confidence=0.5,
                    reasoning=f"Approval gate error ({e}); approved by fail-open policy",
                    context=list(context.headlines),
                )
            return ApprovalDecision(
                signal_id=signal.id,
                verdict=ApprovalVerdict.REJECT,
                confidence=0.0,
                reasoning=f"Approval gate error ({e}); rejected by fail-closed policy",
                context=list(context.headlines),
            )

    async def _sentiment_score(self) -> float:
        try:
            return float(await self.sentiment.score())
        except Exception as e:
            self.handle_error("Sentiment provider failed", e)
            return NEUTRAL_SENTIMENT

    async def _headlines(self, symbol: str) -> List[str]:
        try:
            return list(await self.sentiment.headlines(symbol))
        except Exception as e:
            self.handle_error(f"Headline fetch failed for {symbol}", e)
            return []

    async def _on_trade_closed(self, trade: ClosedTrade) -> None:
        logger.info("Trade closed: %s %s pnl=%.2f outcome=%s reason=%s",
                    trade.direction.value, trade.symbol, trade.pnl, trade.outcome.value, trade.exit_reason.value)
        await self._notify("trade_closed", trade)

    async def _notify(self, event: str, *args) -> None:
        if self.notifier is None or not self.notifier.enabled:
            return
        try:
            await asyncio.to_thread(getattr(self.notifier, event), *args)
        except Exception as e:
            self.handle_error(f"Notification '{event}' failed", e)

    # ---- errors / state ----

    def handle_error(self, message: str, exc: Optional[BaseException] = None) -> None:
        """Record into the rolling error log; too many errors flips status to error."""
        detail = f"{message} - {exc}" if exc is not None else message
        logger.error("%s", detail, exc_info=exc)
        stamp = datetime.now(timezone.utc).isoformat()
        self.errors.append(f"{stamp}: {detail}")
        if len(self.errors) > MAX_ERRORS:
            self.errors = self.errors[-MAX_ERRORS:]
        if len(self.errors) > ERROR_STATUS_THRESHOLD and self.status != EngineStatus.ERROR:
            self.status = EngineStatus.ERROR
            logger.error("Too many errors (%d), status set to error", len(self.errors))

    def state(self) -> EngineState:
        uptime = self._clock() - self.started_at if self.started_at > 0 else 0
        return EngineState(
            status=self.status,
            started_at=self.started_at,
            uptime_ms=uptime,
            symbols=list(self.config.symbols),
            interval=self.config.interval,
            regimes=dict(self.regimes),
            prices=self.feed.get_prices(),
            portfolio=self.portfolio.snapshot(),
            last_signal=self.last_signal,
            last_decision=self.last_decision,
            errors=self.errors[-10:],
        )


def build_orchestrator(
    config: Config,
    client: MarketDataClient,
    gate: Optional[ApprovalGate] = None,
    sentiment: Optional[SentimentProvider] = None,
    notifier: Optional[TelegramNotifier] = None,
    **feed_kwargs,
) -> Orchestrator:
    """Construct every component from config. Nothing is shared at module level."""
    feed = MarketFeed(
        client,
        config.symbols,
        config.interval,
        buffer_size=config.buffer_size,
        history_limit=config.history_limit,
        poll_interval_s=config.poll_interval_s,
        ws_url=config.ws_url,
        **feed_kwargs,
    )
    portfolio = RiskPortfolio(
        initial_capital=config.initial_capital,
        max_open_positions=config.max_open_positions,
        max_position_fraction=config.max_position_fraction,
        risk_per_trade_fraction=config.risk_per_trade_fraction,
        commission_rate=config.commission_rate,
        min_cash_reserve_fraction=config.min_cash_reserve_fraction,
        qty_step=config.qty_step,
        min_qty=config.min_qty,
    )
    return Orchestrator(
        config=config,
        feed=feed,
        indicators=IndicatorEngine(),
        regime=RegimeClassifier(),
        evaluator=StrategyEvaluator(cooldown_candles=config.cooldown_candles, interval=config.interval),
        portfolio=portfolio,
        exits=ExitManager(portfolio, config.trailing_stop_activation, config.trailing_stop_distance),
        gate=gate or AutoApproveGate(),
        sentiment=sentiment or StaticSentiment(),
        notifier=notifier,
    )
