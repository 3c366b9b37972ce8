"""Technical indicator snapshot models."""

from pydantic import BaseModel, Field


class BollingerBands(BaseModel):
    """Bollinger band levels around the moving average.

    Attributes:
        upper: Upper band (middle + k * std dev)
        middle: Simple moving average
        lower: Lower band (middle - k * std dev)
    """

    upper: float = Field(allow_inf_nan=False)
    middle: float = Field(allow_inf_nan=False)
    lower: float = Field(allow_inf_nan=False)

    model_config = {"frozen": True}


class PriceLevels(BaseModel):
    """Support/resistance levels and overall trend strength.

    Attributes:
        support_level: Lowest recent local minimum
        resistance_level: Highest recent local maximum
        trend_strength: Absolute relative change over the window (0-1)
    """

    support_level: float = Field(alias="supportLevel", allow_inf_nan=False)
    resistance_level: float = Field(alias="resistanceLevel", allow_inf_nan=False)
    trend_strength: float = Field(alias="trendStrength", ge=0, le=1)

    model_config = {"frozen": True, "populate_by_name": True}


class TechnicalIndicators(BaseModel):
    """Indicator snapshot derived from a historical window.

    Attributes:
        price: Latest price in the window
        rsi: Relative Strength Index (0-100)
        stoch_rsi: Stochastic RSI (0-100)
        macd: MACD line value
        signal: MACD signal line value
        histogram: MACD histogram (macd - signal)
        bollinger_bands: Bollinger band levels
        patterns: Support/resistance levels and trend strength
        volatility: Standard deviation of relative returns
        volume_ratio: Latest volume over average volume
    """

    price: float = Field(gt=0, allow_inf_nan=False)
    rsi: float = Field(ge=0, le=100)
    stoch_rsi: float = Field(alias="stochRSI", ge=0, le=100)
    macd: float = Field(allow_inf_nan=False)
    signal: float = Field(allow_inf_nan=False)
    histogram: float = Field(allow_inf_nan=False)
    bollinger_bands: BollingerBands = Field(alias="bollingerBands")
    patterns: PriceLevels
    volatility: float = Field(ge=0, allow_inf_nan=False)
    volume_ratio: float = Field(alias="volumeRatio", ge=0, allow_inf_nan=False)

    model_config = {"frozen": True, "populate_by_name": True}
