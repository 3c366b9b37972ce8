"""Historical data sources.

The analysis engine never fetches data itself. A HistoricalDataSource is
injected into TrendAnalysisService; InMemoryDataSource serves pre-loaded
series for tests and offline use, and points_from_market_chart() adapts a
CoinGecko-style market_chart payload.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from trendlens.models.data import HistoricalPoint

logger = logging.getLogger(__name__)

# Ticker -> CoinGecko coin id
SYMBOL_TO_COIN_ID: Dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "ADA": "cardano",
    "BNB": "binancecoin",
    "SOL": "solana",
    "DOGE": "dogecoin",
    "XRP": "ripple",
    "DOT": "polkadot",
    "LTC": "litecoin",
    "MATIC": "matic-network",
    "AVAX": "avalanche-2",
}


class HistoricalDataSource(Protocol):
    """Anything that can return a historical series for a symbol."""

    def fetch_history(self, symbol: str, days: int) -> List[HistoricalPoint]:
        """Return points for the last `days` days, ascending by timestamp.

        Raises:
            ValueError: If no data is available for the symbol
        """
        ...


def resolve_coin_id(symbol: str) -> str:
    """Map a ticker (BTC, ETH, ...) to its provider id; unknown tickers pass through lowercased."""
    return SYMBOL_TO_COIN_ID.get(symbol.upper(), symbol.lower())


def points_from_market_chart(payload: Mapping[str, Any]) -> List[HistoricalPoint]:
    """Convert a market_chart payload into historical points.

    The payload carries `prices` and `total_volumes` arrays of
    `[ms_timestamp, value]` pairs. Volumes are matched by position; a missing
    volume becomes 0.

    Args:
        payload: Decoded market_chart JSON

    Returns:
        List of HistoricalPoint in payload order

    Raises:
        ValueError: If the payload has no prices

    Example:
        >>> points = points_from_market_chart({
        ...     "prices": [[1700000000000, 37000.0], [1700003600000, 37100.0]],
        ...     "total_volumes": [[1700000000000, 1.2e9], [1700003600000, 1.1e9]],
        ... })
        >>> len(points)
        2
    """
    prices = payload.get("prices") or []
    volumes = payload.get("total_volumes") or []

    if not prices:
        raise ValueError("No historical data available in market chart payload")

    points = []
    for index, (timestamp_ms, price) in enumerate(prices):
        volume = 0.0
        if index < len(volumes) and volumes[index] and volumes[index][1]:
            volume = float(volumes[index][1])

        points.append(HistoricalPoint(
            timestamp=datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc),
            price=float(price),
            volume=volume,
        ))

    logger.debug(f"Converted {len(points)} market chart points")
    return points


class InMemoryDataSource:
    """Data source backed by series held in memory, keyed by upper-case symbol."""

    def __init__(self, histories: Optional[Mapping[str, Sequence[HistoricalPoint]]] = None):
        self._histories: Dict[str, List[HistoricalPoint]] = {}
        for symbol, series in (histories or {}).items():
            self.add(symbol, series)

    def add(self, symbol: str, series: Sequence[HistoricalPoint]) -> None:
        """Register (or replace) the series for a symbol."""
        self._histories[symbol.upper()] = sorted(series, key=lambda point: point.timestamp)

    def fetch_history(self, symbol: str, days: int) -> List[HistoricalPoint]:
        """Return the points within `days` days of the latest point.

        Raises:
            ValueError: If the symbol is unknown or has no points
        """
        try:
            series = self._histories[symbol.upper()]
        except KeyError:
            raise ValueError(f"No historical data found for {symbol}")

        if not series:
            raise ValueError(f"No historical data found for {symbol}")

        cutoff = series[-1].timestamp - timedelta(days=days)
        return [point for point in series if point.timestamp >= cutoff]
