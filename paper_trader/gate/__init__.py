"""Approval gate and sentiment collaborators."""

from paper_trader.gate.base import (
    ApprovalContext,
    ApprovalDecision,
    ApprovalGate,
    ApprovalVerdict,
    AutoApproveGate,
)
from paper_trader.gate.sentiment import SentimentProvider, StaticSentiment

__all__ = [
    "ApprovalContext",
    "ApprovalDecision",
    "ApprovalGate",
    "ApprovalVerdict",
    "AutoApproveGate",
    "SentimentProvider",
    "StaticSentiment",
]
