"""Technical analysis tools - pure functions over historical series."""

from .indicators import (
    calculate_sma,
    calculate_ema,
    calculate_rsi,
    calculate_rsi_series,
    calculate_stoch_rsi,
    calculate_macd,
    calculate_bollinger_bands,
    calculate_volatility,
    detect_support_resistance,
    analyze_technical_indicators,
    calculate_confidence_score,
)
from .patterns import (
    detect_candle_patterns,
    find_double_pattern,
    calculate_pattern_probability,
    calculate_fibonacci_levels,
    detect_divergence,
)
from .sentiment import analyze_market_sentiment
from .analysis import (
    SignalPriority,
    SignalProposal,
    resolve_action,
    analyze_trend,
)

__all__ = [
    # Indicator tools (11)
    "calculate_sma",
    "calculate_ema",
    "calculate_rsi",
    "calculate_rsi_series",
    "calculate_stoch_rsi",
    "calculate_macd",
    "calculate_bollinger_bands",
    "calculate_volatility",
    "detect_support_resistance",
    "analyze_technical_indicators",
    "calculate_confidence_score",
    # Pattern tools (5)
    "detect_candle_patterns",
    "find_double_pattern",
    "calculate_pattern_probability",
    "calculate_fibonacci_levels",
    "detect_divergence",
    # Sentiment (1)
    "analyze_market_sentiment",
    # Signal fusion (4)
    "SignalPriority",
    "SignalProposal",
    "resolve_action",
    "analyze_trend",
]
