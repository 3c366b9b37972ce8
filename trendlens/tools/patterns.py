"""Candlestick, chart pattern, Fibonacci and divergence detection tools.

The input is a point series (price + volume), not OHLC bars. Each proxy
candle is synthesized from two consecutive points: open = prior price,
close = current price, high/low = max/min of the pair.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import numpy as np
import pandas as pd

from trendlens.models.data import Candle, HistoricalPoint
from trendlens.models.patterns import (
    CandlePattern,
    Divergence,
    DoublePattern,
    FibonacciExtension,
    FibonacciLevels,
    FibonacciRetracement,
    PatternDirection,
    PivotPoints,
)

logger = logging.getLogger(__name__)

SCAN_START_INDEX = 20          # first index scanned for patterns
DOUBLE_LOOKBACK = 30           # points reached back for double top/bottom
DOUBLE_TOLERANCE = 0.02        # 2% tolerance for peak/trough matching
DOUBLE_MIN_SEPARATION = 5      # minimum index distance between the two extremes
PROBABILITY_LOOKBACK = 20      # points used for volume/trend context
MAX_PROBABILITY = 0.95
DEFAULT_BASE_PROBABILITY = 0.5
SIDEWAYS_THRESHOLD = 1e-4


@dataclass(frozen=True)
class PatternProfile:
    """Fixed characteristics of a named pattern."""
    direction: PatternDirection
    strength: float
    base_probability: float
    significance: str
    type: str
    timeframe: str


_BULL = PatternDirection.BULLISH
_BEAR = PatternDirection.BEARISH

PATTERN_PROFILES: Dict[str, PatternProfile] = {
    "Doji": PatternProfile(PatternDirection.NEUTRAL, 0.6, 0.55, "minor", "reversal", "short"),
    "Hammer": PatternProfile(_BULL, 0.7, 0.65, "major", "reversal", "medium"),
    "Shooting Star": PatternProfile(_BEAR, 0.65, 0.65, "major", "reversal", "short"),
    "Bullish Engulfing": PatternProfile(_BULL, 0.8, 0.7, "major", "reversal", "medium"),
    "Bearish Engulfing": PatternProfile(_BEAR, 0.8, 0.7, "major", "reversal", "medium"),
    "Morning Star": PatternProfile(_BULL, 0.85, 0.75, "major", "reversal", "long"),
    "Evening Star": PatternProfile(_BEAR, 0.85, 0.75, "major", "reversal", "long"),
    "Three White Soldiers": PatternProfile(_BULL, 0.9, 0.8, "major", "continuation", "long"),
    "Three Black Crows": PatternProfile(_BEAR, 0.9, 0.8, "major", "continuation", "long"),
    "Double Top": PatternProfile(_BEAR, 0.8, 0.7, "major", "reversal", "long"),
    "Double Bottom": PatternProfile(_BULL, 0.8, 0.7, "major", "reversal", "long"),
}


def build_candle(series: Sequence[HistoricalPoint], index: int) -> Candle:
    """Synthesize the proxy candle ending at `index`.

    Raises:
        ValueError: If index has no prior point
    """
    if index < 1 or index >= len(series):
        raise ValueError(f"index must be between 1 and {len(series) - 1}")

    previous = series[index - 1]
    current = series[index]
    return Candle(
        open=previous.price,
        high=max(previous.price, current.price),
        low=min(previous.price, current.price),
        close=current.price,
        volume=current.volume,
    )


def is_doji(candle: Candle) -> bool:
    """Body is less than 10% of the total range."""
    if candle.range <= 0:
        return False
    return candle.body / candle.range < 0.1


def is_hammer(candle: Candle) -> bool:
    """Long lower shadow (> 2x body), short upper shadow (< 0.5x body)."""
    return (
        candle.lower_shadow > candle.body * 2
        and candle.upper_shadow < candle.body * 0.5
        and candle.body > 0
    )


def is_shooting_star(candle: Candle) -> bool:
    """Long upper shadow (> 2x body), short lower shadow (< 0.5x body)."""
    return (
        candle.upper_shadow > candle.body * 2
        and candle.lower_shadow < candle.body * 0.5
        and candle.body > 0
    )


def engulfing_direction(current: Candle, previous: Candle) -> Optional[PatternDirection]:
    """Detect a bullish or bearish engulfing pair.

    The current body must cover the previous body and be more than 10%
    larger. Proxy candles are contiguous (current open equals previous
    close), so the shared edge counts as covered.
    """
    if current.body <= previous.body * 1.1:
        return None

    if (current.is_bullish and previous.is_bearish
            and current.open <= previous.close
            and current.close > previous.open):
        return PatternDirection.BULLISH

    if (current.is_bearish and previous.is_bullish
            and current.open >= previous.close
            and current.close < previous.open):
        return PatternDirection.BEARISH

    return None


def star_direction(current: Candle, middle: Candle, first: Candle) -> Optional[PatternDirection]:
    """Detect a morning star (bullish) or evening star (bearish).

    Requires a small middle "star" (body < 30% of the first body) and a last
    candle that closes beyond the star and past the midpoint of the first.
    """
    if first.body == 0 or middle.body >= first.body * 0.3:
        return None

    if (first.is_bearish and current.is_bullish
            and middle.close < first.close
            and current.close > middle.high
            and current.close > first.midpoint):
        return PatternDirection.BULLISH

    if (first.is_bullish and current.is_bearish
            and middle.close > first.close
            and current.close < middle.low
            and current.close < first.midpoint):
        return PatternDirection.BEARISH

    return None


def soldiers_direction(first: Candle, second: Candle, third: Candle) -> Optional[PatternDirection]:
    """Detect three white soldiers (bullish) or three black crows (bearish)."""
    if first.is_bullish and second.is_bullish and third.is_bullish:
        if (third.close > second.close > first.close
                and third.open > second.open > first.open):
            return PatternDirection.BULLISH

    if first.is_bearish and second.is_bearish and third.is_bearish:
        if (third.close < second.close < first.close
                and third.open < second.open < first.open):
            return PatternDirection.BEARISH

    return None


def find_double_pattern(prices: Sequence[float]) -> Optional[Tuple[str, float, float]]:
    """Find a double top or double bottom in a price window.

    Peaks and troughs are strict local extrema. The first pair of
    consecutive peaks within 2% of each other and at least 5 points apart
    forms a Double Top; otherwise the same rule on troughs forms a Double
    Bottom.

    Returns:
        (pattern name, confirmation level, invalidation level) or None
    """
    peaks = []
    troughs = []

    for i in range(1, len(prices) - 1):
        if prices[i] > prices[i - 1] and prices[i] > prices[i + 1]:
            peaks.append(i)
        if prices[i] < prices[i - 1] and prices[i] < prices[i + 1]:
            troughs.append(i)

    for first, second in zip(peaks, peaks[1:]):
        diff = abs(prices[first] - prices[second]) / prices[first]
        if diff <= DOUBLE_TOLERANCE and second - first >= DOUBLE_MIN_SEPARATION:
            valley = min(prices[first:second])
            return "Double Top", float(valley), float(max(prices[first], prices[second]))

    for first, second in zip(troughs, troughs[1:]):
        diff = abs(prices[first] - prices[second]) / prices[first]
        if diff <= DOUBLE_TOLERANCE and second - first >= DOUBLE_MIN_SEPARATION:
            peak = max(prices[first:second])
            return "Double Bottom", float(peak), float(min(prices[first], prices[second]))

    return None


class PatternContext:
    """Volume and trend context for pattern probabilities over one series.

    Relative changes are computed once for the whole series, and the
    (volume_factor, trend_factor) pair for each scanned index is cached, so
    every pattern found at the same index reuses it.
    """

    def __init__(self, series: Sequence[HistoricalPoint]):
        self.volumes = np.array([point.volume for point in series], dtype=float)
        self.changes = pd.Series(
            [point.price for point in series], dtype=float
        ).pct_change().to_numpy()
        self._factors: Dict[int, Tuple[float, float]] = {}

    def factors(self, index: int) -> Tuple[float, float]:
        """Return (volume_factor, trend_factor) for the window ending at `index`."""
        cached = self._factors.get(index)
        if cached is not None:
            return cached

        start = max(0, index - PROBABILITY_LOOKBACK)
        window_volumes = self.volumes[start: index + 1]

        avg_volume = float(window_volumes.mean())
        relative_volume = window_volumes[-1] / avg_volume if avg_volume > 0 else 1.0
        volume_factor = min(relative_volume, 2.0) / 2

        # First point of the window has no prior change and counts as zero
        mean_change = float(self.changes[start + 1: index + 1].sum()) / (index + 1 - start)
        trend_factor = min(abs(mean_change) * 100, 1.0)

        self._factors[index] = (volume_factor, trend_factor)
        return volume_factor, trend_factor

    def probability(self, pattern: str, index: int) -> float:
        volume_factor, trend_factor = self.factors(index)
        profile = PATTERN_PROFILES.get(pattern)
        base_probability = profile.base_probability if profile else DEFAULT_BASE_PROBABILITY
        return min(
            base_probability * (1 + volume_factor * 0.3 + trend_factor * 0.2),
            MAX_PROBABILITY,
        )


def calculate_pattern_probability(
    series: Sequence[HistoricalPoint],
    pattern: str,
    index: int,
) -> float:
    """Adjust a pattern's base probability for volume and trend context.

    probability = min(base * (1 + volume_factor * 0.3 + trend_factor * 0.2), 0.95)

    where volume_factor = min(latest volume / average volume, 2) / 2 and
    trend_factor = min(|mean relative change| * 100, 1) over the trailing
    21 points. Scans that score many patterns should share one
    `PatternContext` instead.
    """
    return PatternContext(series[: index + 1]).probability(pattern, index)


def _make_pattern(context: PatternContext, name: str, index: int) -> CandlePattern:
    profile = PATTERN_PROFILES[name]
    return CandlePattern(
        pattern=name,
        direction=profile.direction,
        strength=profile.strength,
        probability=context.probability(name, index),
        significance=profile.significance,
        type=profile.type,
        timeframe=profile.timeframe,
        index=index,
    )


def detect_candle_patterns(series: Sequence[HistoricalPoint]) -> List[CandlePattern]:
    """Scan a series for candlestick and double top/bottom patterns.

    Every index from 20 onward is evaluated; a pattern is emitted each time
    its predicate holds, so persistent formations are reported repeatedly.
    Double tops/bottoms are searched in the trailing 31 points once more
    than 30 points of history exist.

    Args:
        series: Historical points in ascending timestamp order

    Returns:
        Detected patterns in scan order (empty for series of 20 points or fewer)

    Example:
        >>> patterns = detect_candle_patterns(points)
        >>> for p in patterns:
        ...     print(f"{p.pattern}: {p.direction.value} ({p.probability:.0%})")
    """
    logger.info(f"Detecting candle patterns in {len(series)} points")

    patterns: List[CandlePattern] = []
    prices = [point.price for point in series]
    context = PatternContext(series)
    candles = {
        i: build_candle(series, i)
        for i in range(SCAN_START_INDEX - 2, len(series))
    }

    for i in range(SCAN_START_INDEX, len(series)):
        current = candles[i]
        previous = candles[i - 1]
        first = candles[i - 2]

        if is_doji(current):
            patterns.append(_make_pattern(context, "Doji", i))

        if is_hammer(current):
            patterns.append(_make_pattern(context, "Hammer", i))

        if is_shooting_star(current):
            patterns.append(_make_pattern(context, "Shooting Star", i))

        engulfing = engulfing_direction(current, previous)
        if engulfing:
            patterns.append(_make_pattern(context, f"{engulfing.value} Engulfing", i))

        star = star_direction(current, previous, first)
        if star:
            name = "Morning Star" if star == PatternDirection.BULLISH else "Evening Star"
            patterns.append(_make_pattern(context, name, i))

        soldiers = soldiers_direction(first, previous, current)
        if soldiers:
            name = (
                "Three White Soldiers" if soldiers == PatternDirection.BULLISH
                else "Three Black Crows"
            )
            patterns.append(_make_pattern(context, name, i))

        if i > DOUBLE_LOOKBACK:
            match = find_double_pattern(prices[i - DOUBLE_LOOKBACK: i + 1])
            if match:
                name, confirmation, invalidation = match
                profile = PATTERN_PROFILES[name]
                patterns.append(DoublePattern(
                    pattern=name,
                    direction=profile.direction,
                    strength=profile.strength,
                    probability=context.probability(name, i),
                    significance=profile.significance,
                    type=profile.type,
                    timeframe=profile.timeframe,
                    index=i,
                    confirmation_level=confirmation,
                    invalidation_level=invalidation,
                ))

    logger.info(f"Detected {len(patterns)} candle patterns")
    return patterns


def calculate_fibonacci_levels(high: float, low: float) -> FibonacciLevels:
    """Calculate Fibonacci retracement/extension levels and pivot points.

    Retracements are measured down from the high, extensions projected up
    from it. The pivot is (high + low + 50% retracement) / 3 with the
    classic R1-R3 / S1-S3 levels around it.

    Args:
        high: Range high
        low: Range low

    Returns:
        FibonacciLevels for the range

    Raises:
        ValueError: If high is below low

    Example:
        >>> fib = calculate_fibonacci_levels(high=100.0, low=0.0)
        >>> fib.retracement.level_618
        38.2
    """
    if high < low:
        raise ValueError("high must be >= low")

    diff = high - low
    retracement = FibonacciRetracement(
        level_0=high,
        level_236=high - (diff * 0.236),
        level_382=high - (diff * 0.382),
        level_500=high - (diff * 0.5),
        level_618=high - (diff * 0.618),
        level_786=high - (diff * 0.786),
        level_100=low,
    )
    extension = FibonacciExtension(
        level_1618=high + (diff * 1.618),
        level_2618=high + (diff * 2.618),
        level_4236=high + (diff * 4.236),
    )

    pivot = (high + low + retracement.level_500) / 3
    pivots = PivotPoints(
        r3=pivot + diff * 2,
        r2=pivot + diff,
        r1=pivot * 2 - low,
        pivot=pivot,
        s1=pivot * 2 - high,
        s2=pivot - diff,
        s3=pivot - diff * 2,
    )

    return FibonacciLevels(retracement=retracement, extension=extension, pivots=pivots)


def calculate_trend_direction(values: Sequence[float]) -> str:
    """Classify the mean step of a sequence as up, down or sideways."""
    if len(values) < 2:
        return "sideways"

    average_change = float(np.mean(np.diff(np.asarray(values, dtype=float))))
    if abs(average_change) < SIDEWAYS_THRESHOLD:
        return "sideways"
    return "up" if average_change > 0 else "down"


def _relative_change(values: Sequence[float]) -> float:
    base = values[0] if values[0] != 0 else 1.0
    return (values[-1] - values[0]) / base


def detect_divergence(
    prices: Sequence[float],
    indicator_values: Sequence[float],
    window: int = 10,
) -> Divergence:
    """Detect divergence between price and an indicator over a recent window.

    - Bullish: price trending down while the indicator trends up
    - Bearish: price trending up while the indicator trends down

    Args:
        prices: Prices in chronological order
        indicator_values: Indicator values aligned with prices (e.g. RSI series)
        window: Number of trailing values compared (default: 10)

    Returns:
        Divergence with type (None when trends agree) and strength (0-1)
    """
    recent_prices = list(prices[-window:])
    recent_indicator = list(indicator_values[-window:])

    if len(recent_prices) < 2 or len(recent_indicator) < 2:
        return Divergence()

    price_trend = calculate_trend_direction(recent_prices)
    indicator_trend = calculate_trend_direction(recent_indicator)

    if price_trend == indicator_trend or "sideways" in (price_trend, indicator_trend):
        return Divergence()

    strength = min(
        abs(_relative_change(recent_prices) - _relative_change(recent_indicator)),
        1.0,
    )
    divergence_type = "bullish" if price_trend == "down" else "bearish"

    logger.debug(f"{divergence_type.capitalize()} divergence detected (strength: {strength:.2f})")
    return Divergence(type=divergence_type, strength=strength)
