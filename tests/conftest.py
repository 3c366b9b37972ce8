"""Pytest configuration and shared fixtures."""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from trendlens.config import get_settings
from trendlens.models.data import HistoricalPoint
from trendlens.models.indicators import BollingerBands, PriceLevels, TechnicalIndicators

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def build_series(
    prices: Sequence[float],
    volumes: Optional[Sequence[float]] = None,
    step: timedelta = timedelta(hours=1),
) -> List[HistoricalPoint]:
    """Build an hourly series from prices (and optional volumes)."""
    if volumes is None:
        volumes = [1000000.0] * len(prices)

    return [
        HistoricalPoint(timestamp=BASE_TIME + step * i, price=price, volume=volume)
        for i, (price, volume) in enumerate(zip(prices, volumes))
    ]


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make sure every test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_series() -> Callable[..., List[HistoricalPoint]]:
    """Factory fixture for custom series."""
    return build_series


@pytest.fixture
def frozen_now() -> datetime:
    """Fixed reference time for deterministic suggestions."""
    return datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def flat_series() -> List[HistoricalPoint]:
    """30 points at a constant price and volume."""
    return build_series([100.0] * 30, [1000.0] * 30)


@pytest.fixture
def uptrend_series() -> List[HistoricalPoint]:
    """40 points rising linearly by 0.5 per point."""
    return build_series([100.0 + i * 0.5 for i in range(40)])


@pytest.fixture
def downtrend_series() -> List[HistoricalPoint]:
    """40 points falling linearly by 0.5 per point."""
    return build_series([100.0 - i * 0.5 for i in range(40)])


@pytest.fixture
def hourly_btc_series() -> List[HistoricalPoint]:
    """24 hourly points from 45000 rising 0.5% of the start price per hour."""
    return build_series(
        [45000.0 * (1 + 0.005 * i) for i in range(24)],
        [1e6] * 24,
    )


@pytest.fixture
def rising_volume_series() -> List[HistoricalPoint]:
    """30 rising points with steadily rising volume."""
    return build_series(
        [100.0 + i for i in range(30)],
        [1000.0 + 100 * i for i in range(30)],
    )


@pytest.fixture
def make_indicators() -> Callable[..., TechnicalIndicators]:
    """Factory for a neutral indicator snapshot with selected overrides."""

    def _make(
        price: float = 100.0,
        rsi: float = 50.0,
        stoch_rsi: float = 50.0,
        macd: float = 0.0,
        histogram: float = 0.0,
        lower: float = 95.0,
        upper: float = 105.0,
        volatility: float = 0.02,
        volume_ratio: float = 1.0,
        trend_strength: float = 0.0,
    ) -> TechnicalIndicators:
        return TechnicalIndicators(
            price=price,
            rsi=rsi,
            stoch_rsi=stoch_rsi,
            macd=macd,
            signal=macd - histogram,
            histogram=histogram,
            bollinger_bands=BollingerBands(upper=upper, middle=(upper + lower) / 2, lower=lower),
            patterns=PriceLevels(
                support_level=price * 0.95,
                resistance_level=price * 1.05,
                trend_strength=trend_strength,
            ),
            volatility=volatility,
            volume_ratio=volume_ratio,
        )

    return _make
