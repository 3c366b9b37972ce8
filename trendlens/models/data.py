"""Data models for internal use."""

from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator


class HistoricalPoint(BaseModel):
    """Single point of a historical price/volume series.

    Attributes:
        timestamp: Point timestamp, normalized to UTC (naive values are taken as UTC)
        price: Traded price at the timestamp
        volume: Traded volume for the interval
    """

    timestamp: datetime
    price: float = Field(gt=0, allow_inf_nan=False)
    volume: float = Field(ge=0, allow_inf_nan=False)

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        """Normalize timestamp to timezone-aware UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class Candle(BaseModel):
    """Proxy OHLC candle synthesized from consecutive series points.

    Attributes:
        open: Opening price (prior point price)
        high: High of the pair
        low: Low of the pair
        close: Closing price (current point price)
        volume: Volume of the current point
    """

    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    model_config = {"frozen": True}

    @property
    def body(self) -> float:
        return abs(self.close - self.open)

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def upper_shadow(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_shadow(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        return self.close < self.open

    @property
    def midpoint(self) -> float:
        return (self.open + self.close) / 2
