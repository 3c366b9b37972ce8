"""Market sentiment analysis tools.

Blends volume-weighted buying/selling pressure, RSI extremes, MACD histogram
sign and directional patterns into a single score and label.
"""

from dataclasses import dataclass
from typing import List, Sequence
import logging
import numpy as np

from trendlens.models.patterns import CandlePattern, PatternDirection
from trendlens.models.response import MarketSentiment
from trendlens.tools.indicators import calculate_volatility

logger = logging.getLogger(__name__)

SENTIMENT_THRESHOLD = 0.1
RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70
PRESSURE_WEIGHT = 0.2
RSI_WEIGHT = 0.15
MACD_WEIGHT = 0.15
PATTERN_WEIGHT = 0.2
HIGH_VOLATILITY = 0.05
MEDIUM_VOLATILITY = 0.03
RECENT_VOLUME_WINDOW = 5


@dataclass(frozen=True)
class VolumeProfile:
    """Volume-weighted price pressure."""
    buying_pressure: float
    selling_pressure: float
    volume_change: float


def analyze_volume_profile(prices: Sequence[float], volumes: Sequence[float]) -> VolumeProfile:
    """Weigh each price move by its volume relative to the series maximum.

    Up moves accumulate buying pressure, down moves selling pressure.
    volume_change compares the mean of the last five volumes with the mean
    of the earlier ones (0 when either side is missing or zero).
    """
    price_array = np.asarray(prices, dtype=float)
    volume_array = np.asarray(volumes, dtype=float)

    if len(price_array) < 2:
        return VolumeProfile(buying_pressure=0.0, selling_pressure=0.0, volume_change=0.0)

    max_volume = float(volume_array.max())
    if max_volume <= 0:
        max_volume = 1.0

    changes = np.diff(price_array)
    weights = volume_array[1:] / max_volume

    buying_pressure = float(np.sum(weights[changes > 0] * changes[changes > 0]))
    selling_pressure = float(np.sum(weights[changes < 0] * np.abs(changes[changes < 0])))

    volume_change = 0.0
    if len(volume_array) > RECENT_VOLUME_WINDOW:
        recent = float(volume_array[-RECENT_VOLUME_WINDOW:].mean())
        earlier = float(volume_array[:-RECENT_VOLUME_WINDOW].mean())
        if earlier > 0:
            volume_change = (recent - earlier) / earlier

    return VolumeProfile(
        buying_pressure=buying_pressure,
        selling_pressure=selling_pressure,
        volume_change=volume_change,
    )


def calculate_momentum_score(
    prices: Sequence[float],
    volume_change: float,
    rsi: float,
    macd_histogram: float,
) -> float:
    """Weighted momentum blend.

    0.4 * total price change + 0.2 * sign(volume change)
    + 0.2 * (rsi - 50) / 50 + 0.2 * sign(histogram)
    """
    total_change = 0.0
    if len(prices) >= 2 and prices[0] != 0:
        total_change = (prices[-1] - prices[0]) / prices[0]

    return float(
        total_change * 0.4
        + np.sign(volume_change) * 0.2
        + (rsi - 50) / 50 * 0.2
        + np.sign(macd_histogram) * 0.2
    )


def classify_volatility(volatility: float) -> str:
    """Map a volatility reading to a LOW/MEDIUM/HIGH regime."""
    if volatility > HIGH_VOLATILITY:
        return "HIGH"
    if volatility > MEDIUM_VOLATILITY:
        return "MEDIUM"
    return "LOW"


def analyze_market_sentiment(
    prices: Sequence[float],
    volumes: Sequence[float],
    rsi: float,
    macd_histogram: float,
    patterns: List[CandlePattern],
) -> MarketSentiment:
    """Analyze overall market sentiment.

    Score contributions:
    - +/-0.2 from whichever side (buying or selling pressure) dominates
    - +/-0.15 for oversold (RSI < 30) or overbought (RSI > 70) conditions
    - +/-0.15 by MACD histogram sign (nothing when exactly zero)
    - +/-strength * probability * 0.2 for each directional pattern

    A score above 0.1 is BULLISH, below -0.1 BEARISH, otherwise NEUTRAL.

    Args:
        prices: Prices in chronological order
        volumes: Volumes aligned with prices
        rsi: Current RSI value
        macd_histogram: Current MACD histogram value
        patterns: Detected candle patterns

    Returns:
        MarketSentiment with label, strength, factors, volatility regime
        and momentum score
    """
    profile = analyze_volume_profile(prices, volumes)
    factors: List[str] = []
    score = 0.0

    if profile.buying_pressure > profile.selling_pressure:
        score += PRESSURE_WEIGHT
        factors.append(f"Strong buying pressure: {profile.buying_pressure:.2f}")
    elif profile.selling_pressure > profile.buying_pressure:
        score -= PRESSURE_WEIGHT
        factors.append(f"Strong selling pressure: {profile.selling_pressure:.2f}")

    if rsi < RSI_OVERSOLD:
        score += RSI_WEIGHT
        factors.append("Oversold conditions (RSI)")
    elif rsi > RSI_OVERBOUGHT:
        score -= RSI_WEIGHT
        factors.append("Overbought conditions (RSI)")

    if macd_histogram > 0:
        score += MACD_WEIGHT
        factors.append("Positive MACD momentum")
    elif macd_histogram < 0:
        score -= MACD_WEIGHT
        factors.append("Negative MACD momentum")

    for pattern in patterns:
        if not pattern.is_directional:
            continue
        contribution = pattern.strength * pattern.probability * PATTERN_WEIGHT
        if pattern.direction == PatternDirection.BULLISH:
            score += contribution
        else:
            score -= contribution
        factors.append(f"{pattern.direction.value} pattern detected: {pattern.pattern}")

    if score > SENTIMENT_THRESHOLD:
        label = "BULLISH"
    elif score < -SENTIMENT_THRESHOLD:
        label = "BEARISH"
    else:
        label = "NEUTRAL"

    volatility = calculate_volatility(list(prices))
    momentum = calculate_momentum_score(prices, profile.volume_change, rsi, macd_histogram)

    logger.info(f"Market sentiment: {label} (score: {score:.3f}, momentum: {momentum:.3f})")

    return MarketSentiment(
        sentiment=label,
        strength=abs(score),
        factors=factors,
        volatility_regime=classify_volatility(volatility),
        momentum_score=momentum,
    )
