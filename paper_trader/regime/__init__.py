"""Market regime: volatility and trend buckets plus trade permission."""

from paper_trader.regime.classifier import RegimeClassifier, sentiment_label

__all__ = ["RegimeClassifier", "sentiment_label"]
