"""Trend analysis and trading suggestion tools.

Combines the indicator snapshot, detected patterns, divergence and market
sentiment into a single BUY/SELL/HOLD suggestion. Signals are produced by an
ordered list of evaluators and folded into one action by resolve_action().
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple
import logging

from trendlens.config import Settings, get_settings
from trendlens.models.data import HistoricalPoint
from trendlens.models.indicators import TechnicalIndicators
from trendlens.models.patterns import CandlePattern, Divergence, FibonacciLevels, PatternDirection
from trendlens.models.response import (
    MarketCondition,
    MarketSentiment,
    RiskAssessment,
    TradingSuggestion,
)
from trendlens.tools.indicators import (
    analyze_technical_indicators,
    calculate_confidence_score,
    calculate_rsi_series,
)
from trendlens.tools.patterns import (
    calculate_fibonacci_levels,
    detect_candle_patterns,
    detect_divergence,
)
from trendlens.tools.sentiment import analyze_market_sentiment

logger = logging.getLogger(__name__)

STRONG_PATTERN_PROBABILITY = 0.7
STRONG_DIVERGENCE = 0.7
HIGH_VOLUME_RATIO = 1.5
MIXED_SIGNALS_REASON = "Mixed or unclear market signals"

OPPOSITE_ACTION = {"BUY": "SELL", "SELL": "BUY"}


class SignalPriority(str, Enum):
    """How a proposal interacts with the action accumulated so far."""

    OVERRIDE = "override"           # replaces the current action
    CONFIRMATION = "confirmation"   # applies unless the current action is the opposite


@dataclass(frozen=True)
class SignalProposal:
    """Action proposed by a single signal, with its explanation."""
    action: str
    priority: SignalPriority
    reason: str


@dataclass(frozen=True)
class AnalysisContext:
    """Everything the signal evaluators look at."""
    indicators: TechnicalIndicators
    patterns: List[CandlePattern]
    divergence: Divergence
    sentiment: MarketSentiment


def evaluate_patterns(context: AnalysisContext) -> List[SignalProposal]:
    """Strong directional patterns (probability > 0.7) override the action."""
    proposals = []
    for pattern in context.patterns:
        if pattern.probability <= STRONG_PATTERN_PROBABILITY or not pattern.is_directional:
            continue
        action = "BUY" if pattern.direction == PatternDirection.BULLISH else "SELL"
        proposals.append(SignalProposal(
            action=action,
            priority=SignalPriority.OVERRIDE,
            reason=(
                f"Strong {pattern.pattern} pattern detected "
                f"({pattern.probability * 100:.1f}% confidence)"
            ),
        ))
    return proposals


def evaluate_divergence(context: AnalysisContext) -> List[SignalProposal]:
    """Strong RSI divergence overrides the action."""
    divergence = context.divergence
    if divergence.type is None or divergence.strength <= STRONG_DIVERGENCE:
        return []

    action = "BUY" if divergence.type == "bullish" else "SELL"
    return [SignalProposal(
        action=action,
        priority=SignalPriority.OVERRIDE,
        reason=(
            f"{divergence.type.capitalize()} divergence detected "
            f"(strength: {divergence.strength * 100:.1f}%)"
        ),
    )]


def evaluate_macd(context: AnalysisContext) -> List[SignalProposal]:
    """MACD line and histogram agreeing in sign confirm a direction."""
    indicators = context.indicators
    if indicators.histogram > 0 and indicators.macd > 0:
        return [SignalProposal("BUY", SignalPriority.CONFIRMATION, "MACD indicates bullish momentum")]
    if indicators.histogram < 0 and indicators.macd < 0:
        return [SignalProposal("SELL", SignalPriority.CONFIRMATION, "MACD indicates bearish momentum")]
    return []


def evaluate_rsi(context: AnalysisContext) -> List[SignalProposal]:
    """RSI extremes confirm a direction unless sentiment points the other way."""
    rsi = context.indicators.rsi
    sentiment = context.sentiment.sentiment

    if rsi < 30 and sentiment != "BEARISH":
        return [SignalProposal(
            "BUY",
            SignalPriority.CONFIRMATION,
            "RSI indicates oversold conditions with supportive market sentiment",
        )]
    if rsi > 70 and sentiment != "BULLISH":
        return [SignalProposal(
            "SELL",
            SignalPriority.CONFIRMATION,
            "RSI indicates overbought conditions with weak market sentiment",
        )]
    return []


SIGNAL_EVALUATORS: List[Callable[[AnalysisContext], List[SignalProposal]]] = [
    evaluate_patterns,
    evaluate_divergence,
    evaluate_macd,
    evaluate_rsi,
]


def resolve_action(proposals: Sequence[SignalProposal], default: str = "HOLD") -> str:
    """Fold proposals, in order, into a single action.

    OVERRIDE proposals replace the current action (last one wins).
    CONFIRMATION proposals set their action unless the current action is
    the opposite direction.

    Example:
        >>> resolve_action([
        ...     SignalProposal("SELL", SignalPriority.OVERRIDE, "pattern"),
        ...     SignalProposal("BUY", SignalPriority.CONFIRMATION, "macd"),
        ... ])
        'SELL'
    """
    action = default
    for proposal in proposals:
        if proposal.priority == SignalPriority.OVERRIDE:
            action = proposal.action
        elif OPPOSITE_ACTION.get(proposal.action) != action:
            action = proposal.action
    return action


def fibonacci_reasons(action: str, price: float, levels: FibonacciLevels) -> List[str]:
    """Commentary on where the price sits relative to Fibonacci levels."""
    if action == "BUY":
        if price <= levels.retracement.level_382:
            return ["Price at strong Fibonacci support level (38.2%)"]
        if price <= levels.retracement.level_618:
            return ["Price at key Fibonacci support level (61.8%)"]
    elif action == "SELL":
        if price >= levels.extension.level_1618:
            return ["Price reached Fibonacci extension target (161.8%)"]
    return []


def mean_pattern_probability(patterns: Sequence[CandlePattern]) -> float:
    """Average pattern probability (0 when nothing was detected)."""
    if not patterns:
        return 0.0
    return sum(p.probability for p in patterns) / len(patterns)


def calculate_targets(
    action: str,
    price: float,
    volatility: float,
    sentiment_strength: float,
    levels: FibonacciLevels,
) -> Tuple[float, float]:
    """Calculate target price and stop loss from volatility and Fibonacci levels.

    - BUY: target is the further of the volatility projection and the
      161.8% extension; stop is the closer of the volatility stop and the
      78.6% retracement
    - SELL: mirrored
    - HOLD: both equal the current price

    Prices are quoted to the cent, so for assets priced below 0.005 both
    values round to 0.0. Callers trading sub-cent assets should rescale
    prices before analysis.

    Returns:
        (target_price, stop_loss) rounded to 2 decimals
    """
    if action == "BUY":
        target = max(price * (1 + volatility * (2 + sentiment_strength)), levels.extension.level_1618)
        stop = max(price * (1 - volatility * 1.5), levels.retracement.level_786)
    elif action == "SELL":
        target = min(price * (1 - volatility * (2 + sentiment_strength)), levels.retracement.level_786)
        stop = min(price * (1 + volatility * 1.5), levels.extension.level_1618)
    else:
        target = price
        stop = price

    return round(target, 2), round(stop, 2)


def build_risk_assessment(
    indicators: TechnicalIndicators,
    sentiment: MarketSentiment,
    patterns: Sequence[CandlePattern],
) -> RiskAssessment:
    """Risk level follows the volatility regime; volatility is the raw score."""
    return RiskAssessment(
        level=sentiment.volatility_regime,
        score=indicators.volatility,
        factors=[
            f"Market Sentiment: {sentiment.sentiment}",
            f"Volatility Regime: {sentiment.volatility_regime}",
            f"Momentum Score: {sentiment.momentum_score:.2f}",
            f"Pattern Reliability: {mean_pattern_probability(patterns) * 100:.1f}%",
        ],
    )


def validate_series(series: Sequence[HistoricalPoint]) -> None:
    """Check the series preconditions.

    Raises:
        ValueError: If the series is empty or not ascending by timestamp
    """
    if not series:
        raise ValueError("series cannot be empty")

    for previous, current in zip(series, series[1:]):
        if current.timestamp < previous.timestamp:
            raise ValueError("series must be ascending by timestamp")


def analyze_trend(
    symbol: str,
    series: Sequence[HistoricalPoint],
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> TradingSuggestion:
    """Generate a trading suggestion for a historical price/volume series.

    Pipeline:
    1. Indicator snapshot (RSI, StochRSI, MACD, Bollinger, volatility, ...)
    2. Candle and double top/bottom patterns
    3. Market sentiment from volume pressure, RSI, MACD and patterns
    4. Fibonacci levels over the series high/low and RSI divergence
    5. Signal evaluators folded into an action, then conflict check
       against sentiment, confidence blend and targets

    Args:
        symbol: Asset symbol (echoed in the result)
        series: Historical points in ascending timestamp order
        now: Reference time for valid_until (defaults to current UTC time)
        settings: Settings override (defaults to get_settings())

    Returns:
        TradingSuggestion

    Raises:
        ValueError: If the series is empty or not ascending by timestamp

    Example:
        >>> suggestion = analyze_trend("BTC", points)
        >>> print(f"{suggestion.action} ({suggestion.confidence:.0%})")
        >>> for reason in suggestion.reasons:
        ...     print(f"  - {reason}")
    """
    validate_series(series)
    settings = settings or get_settings()
    now = now or datetime.now(timezone.utc)

    logger.info(f"Analyzing trend for {symbol} ({len(series)} points)")

    prices = [point.price for point in series]
    volumes = [point.volume for point in series]

    rsi_series = calculate_rsi_series(prices)
    indicators = analyze_technical_indicators(
        series,
        signal_mode=settings.macd_signal_mode,
        rsi_series=rsi_series,
    )
    price = indicators.price
    patterns = detect_candle_patterns(series)
    sentiment = analyze_market_sentiment(
        prices,
        volumes,
        indicators.rsi,
        indicators.histogram,
        patterns,
    )
    fib_levels = calculate_fibonacci_levels(max(prices), min(prices))
    divergence = detect_divergence(prices, rsi_series)

    context = AnalysisContext(
        indicators=indicators,
        patterns=patterns,
        divergence=divergence,
        sentiment=sentiment,
    )
    proposals = [proposal for evaluate in SIGNAL_EVALUATORS for proposal in evaluate(context)]
    action = resolve_action(proposals)

    reasons = [proposal.reason for proposal in proposals]
    reasons.extend(fibonacci_reasons(action, price, fib_levels))
    if indicators.volume_ratio > HIGH_VOLUME_RATIO:
        reasons.append(f"Strong volume confirmation ({indicators.volume_ratio:.2f}x average)")
    reasons.extend(sentiment.factors)

    confidence = (
        calculate_confidence_score(indicators) * 0.4
        + sentiment.strength * 0.3
        + mean_pattern_probability(patterns) * 0.2
        + divergence.strength * 0.1
    )
    confidence = max(0.0, min(1.0, confidence))

    if (not reasons
            or (action == "BUY" and sentiment.sentiment == "BEARISH")
            or (action == "SELL" and sentiment.sentiment == "BULLISH")):
        logger.info(f"{symbol}: conflicting or missing signals, falling back to HOLD")
        action = "HOLD"
        reasons.append(MIXED_SIGNALS_REASON)

    target_price, stop_loss = calculate_targets(
        action,
        price,
        indicators.volatility,
        sentiment.strength,
        fib_levels,
    )

    suggestion = TradingSuggestion(
        symbol=symbol,
        action=action,
        confidence=confidence,
        reasons=reasons,
        target_price=target_price,
        stop_loss=stop_loss,
        risk=build_risk_assessment(indicators, sentiment, patterns),
        market=MarketCondition(
            trend=sentiment.sentiment,
            strength=sentiment.strength,
            volatility=indicators.volatility,
            volume=indicators.volume_ratio,
        ),
        indicators=indicators,
        valid_until=now + timedelta(hours=settings.suggestion_ttl_hours),
    )

    logger.info(
        f"{symbol}: {suggestion.action} (confidence: {suggestion.confidence:.2f}, "
        f"target: {suggestion.target_price}, stop: {suggestion.stop_loss})"
    )

    return suggestion
