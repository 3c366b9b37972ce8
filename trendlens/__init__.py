"""trendlens - technical analysis and trading suggestions for price/volume series."""

from trendlens.models import HistoricalPoint, TradingSuggestion
from trendlens.tools.analysis import analyze_trend

__version__ = "0.1.0"

__all__ = ["HistoricalPoint", "TradingSuggestion", "analyze_trend"]
