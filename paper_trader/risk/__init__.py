"""Risk: position sizing, paper portfolio accounting, exits and trailing stops."""

from paper_trader.risk.exits import ExitManager
from paper_trader.risk.portfolio import RiskPortfolio, SizingResult

__all__ = ["ExitManager", "RiskPortfolio", "SizingResult"]
