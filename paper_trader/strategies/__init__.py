"""Strategies: ordered entry detectors and the first-match evaluator."""

from paper_trader.strategies.base import DetectorInput, Setup, make_setup
from paper_trader.strategies.detectors import DEFAULT_DETECTORS
from paper_trader.strategies.evaluator import StrategyEvaluator, signal_strength

__all__ = ["DetectorInput", "Setup", "make_setup", "DEFAULT_DETECTORS", "StrategyEvaluator", "signal_strength"]
