"""Pydantic models for data validation and serialization."""

from .data import HistoricalPoint, Candle
from .indicators import BollingerBands, PriceLevels, TechnicalIndicators
from .patterns import (
    PatternDirection,
    CandlePattern,
    DoublePattern,
    FibonacciLevels,
    Divergence,
)
from .response import MarketSentiment, RiskAssessment, MarketCondition, TradingSuggestion

__all__ = [
    "HistoricalPoint",
    "Candle",
    "BollingerBands",
    "PriceLevels",
    "TechnicalIndicators",
    "PatternDirection",
    "CandlePattern",
    "DoublePattern",
    "FibonacciLevels",
    "Divergence",
    "MarketSentiment",
    "RiskAssessment",
    "MarketCondition",
    "TradingSuggestion",
]
