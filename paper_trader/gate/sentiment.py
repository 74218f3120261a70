"""Sentiment/news context providers (0-100 score, 0 = extreme fear)."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Sequence


class SentimentProvider(ABC):
    @abstractmethod
    async def score(self) -> float:
        """Market-wide sentiment score in [0, 100]."""
        pass

    async def headlines(self, symbol: str) -> List[str]:
        """Recent headlines for symbol. Default none."""
        return []


class StaticSentiment(SentimentProvider):
    """Fixed score and headlines; used when no live provider is configured, and in replay."""

    def __init__(self, score: float = 50.0, headlines: Sequence[str] = ()):
        self._score = max(0.0, min(100.0, float(score)))
        self._headlines = list(headlines)

    async def score(self) -> float:
        return self._score

    async def headlines(self, symbol: str) -> List[str]:
        return list(self._headlines)
