"""
Approval gate interface. A gate sees a TradeSignal plus auxiliary context and
answers approve / reject / delay; only approve may open a position.
"""

from __future__ import annotations
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from paper_trader.core.types import TradeSignal


class ApprovalVerdict(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    DELAY = "DELAY"


@dataclass
class ApprovalContext:
    """What the gate is given besides the signal."""
    sentiment_score: float = 50.0
    sentiment_label: str = "Neutral"
    headlines: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ApprovalDecision:
    signal_id: str
    verdict: ApprovalVerdict
    confidence: float
    reasoning: str
    delay_minutes: Optional[int] = None
    context: List[str] = field(default_factory=list)
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    @property
    def approved(self) -> bool:
        return self.verdict == ApprovalVerdict.APPROVE


class ApprovalGate(ABC):
    """External advisory gate. Implementations may block on I/O; they are awaited."""

    @abstractmethod
    async def evaluate(self, signal: TradeSignal, context: ApprovalContext) -> ApprovalDecision:
        pass


class AutoApproveGate(ApprovalGate):
    """Approves every signal. Default when no external gate is configured."""

    def __init__(self, confidence: float = 1.0):
        self.confidence = confidence

    async def evaluate(self, signal: TradeSignal, context: ApprovalContext) -> ApprovalDecision:
        return ApprovalDecision(
            signal_id=signal.id,
            verdict=ApprovalVerdict.APPROVE,
            confidence=self.confidence,
            reasoning="Auto-approved (no external gate configured)",
            context=list(context.headlines),
        )
