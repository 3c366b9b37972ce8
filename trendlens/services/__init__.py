"""Services wiring data sources to the analysis engine."""

from trendlens.services.data_source import (
    HistoricalDataSource,
    InMemoryDataSource,
    SYMBOL_TO_COIN_ID,
    points_from_market_chart,
    resolve_coin_id,
)
from trendlens.services.trend_service import TrendAnalysisService

__all__ = [
    "HistoricalDataSource",
    "InMemoryDataSource",
    "SYMBOL_TO_COIN_ID",
    "points_from_market_chart",
    "resolve_coin_id",
    "TrendAnalysisService",
]
