"""Technical indicator calculation tools.

All functions are pure functions of the supplied price window (oldest first).
Windows that are too short return documented neutral values instead of
raising, so the suggestion layer always receives a complete snapshot:

- SMA/EMA: 0 when the window is shorter than the period
- RSI/StochRSI: 50 (neutral) when there is not enough history
- Volatility: 0.02 when the window is shorter than the period
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence
import logging
import numpy as np
import pandas as pd

from trendlens.config import get_settings
from trendlens.models.data import HistoricalPoint
from trendlens.models.indicators import BollingerBands, PriceLevels, TechnicalIndicators

logger = logging.getLogger(__name__)

NEUTRAL_RSI = 50.0
DEFAULT_VOLATILITY = 0.02
SUPPORT_RESISTANCE_LOOKBACK = 50


@dataclass(frozen=True)
class MACDResult:
    """MACD line, signal line and histogram."""
    macd: float
    signal: float
    histogram: float


def calculate_sma(prices: Sequence[float], period: int) -> float:
    """Calculate the Simple Moving Average of the last `period` prices.

    Args:
        prices: Prices in chronological order
        period: Number of trailing prices to average

    Returns:
        Arithmetic mean, or 0.0 if fewer than `period` prices are available

    Raises:
        ValueError: If period is invalid
    """
    if period < 1:
        raise ValueError("period must be >= 1")

    if len(prices) < period:
        return 0.0

    return float(np.mean(np.asarray(prices[-period:], dtype=float)))


def calculate_ema_series(prices: Sequence[float], period: int) -> List[float]:
    """Calculate the EMA at every index of the series.

    The EMA is seeded with the SMA of the first `period` prices and then
    follows `ema = (price - ema) * 2 / (period + 1) + ema`. Indices before the
    seed is available hold the 0.0 sentinel.

    Args:
        prices: Prices in chronological order
        period: EMA period

    Returns:
        List of EMA values, one per input price

    Raises:
        ValueError: If period is invalid
    """
    if period < 1:
        raise ValueError("period must be >= 1")

    values = [0.0] * len(prices)
    if len(prices) < period:
        return values

    multiplier = 2 / (period + 1)
    ema = float(np.mean(np.asarray(prices[:period], dtype=float)))
    values[period - 1] = ema

    for i in range(period, len(prices)):
        ema = (prices[i] - ema) * multiplier + ema
        values[i] = float(ema)

    return values


def calculate_ema(prices: Sequence[float], period: int) -> float:
    """Calculate the latest Exponential Moving Average.

    Returns:
        Latest EMA value, or 0.0 if fewer than `period` prices are available
    """
    if len(prices) < period:
        return 0.0
    return calculate_ema_series(prices, period)[-1]


def calculate_rsi(prices: Sequence[float], period: int = 14) -> float:
    """Calculate Relative Strength Index (RSI).

    Average gain and loss are plain means over the trailing `period` price
    changes. When there were no losses the RSI is 100, or 50 if the price
    did not move at all.

    Args:
        prices: Prices in chronological order
        period: RSI period (default: 14)

    Returns:
        RSI value in [0, 100], or 50 if fewer than `period + 1` prices

    Raises:
        ValueError: If period is invalid
    """
    if period < 1:
        raise ValueError("period must be >= 1")

    if len(prices) < period + 1:
        return NEUTRAL_RSI

    deltas = np.diff(np.asarray(prices[-(period + 1):], dtype=float))
    avg_gain = float(np.mean(np.where(deltas > 0, deltas, 0.0)))
    avg_loss = float(np.mean(np.where(deltas < 0, -deltas, 0.0)))

    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else NEUTRAL_RSI

    rs = avg_gain / avg_loss
    return float(100 - (100 / (1 + rs)))


def calculate_rsi_series(prices: Sequence[float], period: int = 14) -> List[float]:
    """Calculate RSI at every index over the trailing window ending there.

    Unlike calculate_rsi() which returns just the latest value, this function
    returns one value per input price (50 until enough history exists).
    All windows are evaluated at once over a sliding view of the deltas.
    """
    if period < 1:
        raise ValueError("period must be >= 1")

    values = np.full(len(prices), NEUTRAL_RSI, dtype=float)
    if len(prices) < period + 1:
        return values.tolist()

    deltas = np.diff(np.asarray(prices, dtype=float))
    windows = np.lib.stride_tricks.sliding_window_view(deltas, period)
    avg_gain = np.where(windows > 0, windows, 0.0).mean(axis=1)
    avg_loss = np.where(windows < 0, -windows, 0.0).mean(axis=1)

    no_loss = avg_loss == 0
    rs = avg_gain / np.where(no_loss, 1.0, avg_loss)
    values[period:] = np.where(
        no_loss,
        np.where(avg_gain > 0, 100.0, NEUTRAL_RSI),
        100 - (100 / (1 + rs)),
    )
    return values.tolist()


def calculate_stoch_rsi(
    prices: Sequence[float],
    period: int = 14,
    rsi_series: Optional[Sequence[float]] = None,
) -> float:
    """Calculate Stochastic RSI.

    Positions the latest RSI within the min/max range of the rolling RSI
    values computed from index `period` onward. A precomputed
    `rsi_series` for the same prices and period is used as-is.

    Returns:
        StochRSI in [0, 100]; 50 when no rolling RSI exists or the range is flat
    """
    if rsi_series is None:
        rsi_series = calculate_rsi_series(prices, period)
    rsi_values = list(rsi_series[period:])
    if not rsi_values:
        return NEUTRAL_RSI

    min_rsi = min(rsi_values)
    max_rsi = max(rsi_values)
    if max_rsi == min_rsi:
        return NEUTRAL_RSI

    return float((rsi_values[-1] - min_rsi) / (max_rsi - min_rsi) * 100)


def calculate_macd(
    prices: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
    signal_mode: str = "series",
) -> MACDResult:
    """Calculate MACD (Moving Average Convergence Divergence).

    MACD line = EMA(fast) - EMA(slow). Unavailable EMAs contribute their 0.0
    sentinel. The signal line depends on `signal_mode`:

    - "series": EMA(signal_period) of the MACD series, taken from the first
      index where the slow EMA exists (0.0 until that series is long enough)
    - "single_point": EMA(signal_period) of the latest MACD value alone,
      which always yields the 0.0 sentinel

    Args:
        prices: Prices in chronological order
        fast_period: Fast EMA period (default: 12)
        slow_period: Slow EMA period (default: 26)
        signal_period: Signal line period (default: 9)
        signal_mode: "series" or "single_point"

    Returns:
        MACDResult with macd, signal and histogram

    Raises:
        ValueError: If signal_mode is unknown
    """
    if signal_mode not in ("series", "single_point"):
        raise ValueError("signal_mode must be 'series' or 'single_point'")

    if len(prices) == 0:
        return MACDResult(macd=0.0, signal=0.0, histogram=0.0)

    fast_series = calculate_ema_series(prices, fast_period)
    slow_series = calculate_ema_series(prices, slow_period)

    macd = fast_series[-1] - slow_series[-1]

    if signal_mode == "series" and len(prices) >= slow_period:
        macd_series = [
            fast - slow
            for fast, slow in zip(fast_series[slow_period - 1:], slow_series[slow_period - 1:])
        ]
        signal = calculate_ema(macd_series, signal_period)
    else:
        signal = calculate_ema([macd], signal_period)

    histogram = macd - signal

    logger.debug(
        f"MACD({fast_period}/{slow_period}/{signal_period}, {signal_mode}): "
        f"{macd:.4f}, Signal: {signal:.4f}, Histogram: {histogram:.4f}"
    )

    return MACDResult(macd=float(macd), signal=float(signal), histogram=float(histogram))


def calculate_bollinger_bands(
    prices: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerBands:
    """Calculate Bollinger Bands.

    Middle band is the mean of the trailing window; the bands sit `std_dev`
    population standard deviations above and below it. Shorter series use
    every available price.

    Raises:
        ValueError: If prices is empty
    """
    if not len(prices):
        raise ValueError("prices cannot be empty")

    window = np.asarray(prices[-period:], dtype=float)
    middle_band = float(window.mean())
    current_std = float(window.std())

    upper_band = middle_band + (std_dev * current_std)
    lower_band = middle_band - (std_dev * current_std)

    logger.debug(
        f"Bollinger Bands({period}, {std_dev}): Upper={upper_band:.2f}, "
        f"Middle={middle_band:.2f}, Lower={lower_band:.2f}"
    )

    return BollingerBands(upper=upper_band, middle=middle_band, lower=lower_band)


def calculate_volatility(prices: Sequence[float], period: int = 20) -> float:
    """Calculate volatility as the std dev of trailing relative returns.

    Returns:
        Population standard deviation of the last `period` day-over-day
        returns, or 0.02 if fewer than `period` prices are available
    """
    if len(prices) < period:
        return DEFAULT_VOLATILITY

    returns = pd.Series(prices, dtype=float).pct_change().dropna().tail(period)
    if returns.empty:
        return 0.0

    return float(returns.std(ddof=0))


def detect_support_resistance(prices: Sequence[float]) -> PriceLevels:
    """Find support/resistance from local extrema of the last 50 prices.

    Support is the lowest local minimum and resistance the highest local
    maximum (strict comparison with both neighbours). Without extrema the
    levels fall back to 5% below/above the latest price.

    Raises:
        ValueError: If prices is empty
    """
    if not len(prices):
        raise ValueError("prices cannot be empty")

    recent = list(prices[-SUPPORT_RESISTANCE_LOOKBACK:])
    local_mins = []
    local_maxs = []

    for i in range(2, len(recent) - 2):
        if recent[i] < recent[i - 1] and recent[i] < recent[i + 1]:
            local_mins.append(recent[i])
        if recent[i] > recent[i - 1] and recent[i] > recent[i + 1]:
            local_maxs.append(recent[i])

    current_price = prices[-1]
    support_level = min(local_mins) if local_mins else current_price * 0.95
    resistance_level = max(local_maxs) if local_maxs else current_price * 1.05

    price_change = (prices[-1] - prices[0]) / prices[0]
    trend_strength = min(abs(price_change), 1.0)

    logger.debug(
        f"Support={support_level:.2f}, Resistance={resistance_level:.2f}, "
        f"Trend strength={trend_strength:.3f} "
        f"({len(local_mins)} minima, {len(local_maxs)} maxima)"
    )

    return PriceLevels(
        support_level=float(support_level),
        resistance_level=float(resistance_level),
        trend_strength=float(trend_strength),
    )


def analyze_technical_indicators(
    series: Sequence[HistoricalPoint],
    signal_mode: Optional[str] = None,
    rsi_series: Optional[Sequence[float]] = None,
) -> TechnicalIndicators:
    """Build the indicator snapshot for a historical series.

    Args:
        series: Historical points in ascending timestamp order
        signal_mode: MACD signal line mode (defaults to settings)
        rsi_series: Precomputed rolling RSI of the series prices, if available

    Returns:
        TechnicalIndicators snapshot

    Raises:
        ValueError: If series is empty

    Example:
        >>> indicators = analyze_technical_indicators(points)
        >>> print(f"RSI: {indicators.rsi:.1f}, MACD: {indicators.macd:.2f}")
    """
    if not series:
        raise ValueError("series cannot be empty")

    logger.info(f"Calculating technical indicators for {len(series)} points")

    mode = signal_mode or get_settings().macd_signal_mode
    prices = [point.price for point in series]
    volumes = np.array([point.volume for point in series], dtype=float)

    macd = calculate_macd(prices, signal_mode=mode)

    # Relative volume (latest vs average)
    avg_volume = float(volumes.mean())
    volume_ratio = float(volumes[-1] / avg_volume) if avg_volume > 0 else 1.0

    indicators = TechnicalIndicators(
        price=prices[-1],
        rsi=calculate_rsi(prices),
        stoch_rsi=calculate_stoch_rsi(prices, rsi_series=rsi_series),
        macd=macd.macd,
        signal=macd.signal,
        histogram=macd.histogram,
        bollinger_bands=calculate_bollinger_bands(prices),
        patterns=detect_support_resistance(prices),
        volatility=calculate_volatility(prices),
        volume_ratio=volume_ratio,
    )

    logger.info(
        f"RSI: {indicators.rsi:.1f}, StochRSI: {indicators.stoch_rsi:.1f}, "
        f"MACD histogram: {indicators.histogram:.4f}, "
        f"Volatility: {indicators.volatility:.4f}, Volume ratio: {volume_ratio:.2f}"
    )

    return indicators


def calculate_confidence_score(indicators: TechnicalIndicators) -> float:
    """Map indicator readings to a 0-1 confidence score.

    Starts at 0.5, applies fixed deltas for oversold/overbought RSI and
    StochRSI, MACD agreement, Bollinger band breaches and volume spikes,
    then scales by (1 + trend strength).

    Returns:
        Confidence score clamped to [0, 1]
    """
    score = 0.5

    # RSI
    if indicators.rsi < 30:
        score += 0.1
    if indicators.rsi > 70:
        score -= 0.1

    # Stochastic RSI
    if indicators.stoch_rsi < 20:
        score += 0.1
    if indicators.stoch_rsi > 80:
        score -= 0.1

    # MACD
    if indicators.histogram > 0 and indicators.macd > 0:
        score += 0.15
    if indicators.histogram < 0 and indicators.macd < 0:
        score -= 0.15

    # Bollinger Bands
    if indicators.price < indicators.bollinger_bands.lower:
        score += 0.1
    if indicators.price > indicators.bollinger_bands.upper:
        score -= 0.1

    # Volume
    if indicators.volume_ratio > 1.5:
        score += 0.1

    score *= 1 + indicators.patterns.trend_strength

    return max(0.0, min(1.0, score))
