"""Trend analysis service.

Fetches history through an injected HistoricalDataSource and runs the
analysis engine on it, for one symbol or a batch.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Optional

from trendlens.config import Settings, get_settings
from trendlens.models.response import TradingSuggestion
from trendlens.services.data_source import HistoricalDataSource
from trendlens.tools.analysis import analyze_trend

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TrendAnalysisService:
    """Produces trading suggestions for symbols served by a data source.

    Args:
        data_source: Collaborator providing historical series
        clock: Callable returning the reference time (defaults to UTC now)
        settings: Settings override (defaults to get_settings())
    """

    def __init__(
        self,
        data_source: HistoricalDataSource,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[Settings] = None,
    ):
        self.data_source = data_source
        self.clock = clock or _utc_now
        self.settings = settings or get_settings()

    def analyze_symbol(self, symbol: str, days: Optional[int] = None) -> TradingSuggestion:
        """Fetch history for a symbol and analyze it.

        Raises:
            ValueError: If the data source has no data for the symbol
        """
        symbol = symbol.upper()
        days = days or self.settings.history_days

        logger.info(f"Fetching {days} days of history for {symbol}")
        series = self.data_source.fetch_history(symbol, days)
        if not series:
            raise ValueError(f"No historical data found for {symbol}")

        return analyze_trend(symbol, series, now=self.clock(), settings=self.settings)

    def analyze_symbols(
        self,
        symbols: Iterable[str],
        days: Optional[int] = None,
    ) -> Dict[str, TradingSuggestion]:
        """Analyze several symbols; a symbol that fails is logged and skipped.

        Returns:
            Dict mapping upper-case symbol to its suggestion
        """
        results: Dict[str, TradingSuggestion] = {}
        for symbol in symbols:
            try:
                results[symbol.upper()] = self.analyze_symbol(symbol, days)
            except ValueError as e:
                logger.warning(f"Skipping {symbol}: {e}")

        logger.info(f"Analyzed {len(results)} symbols")
        return results
