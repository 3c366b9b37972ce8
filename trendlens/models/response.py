"""Analysis result models returned to callers."""

from datetime import datetime
from typing import List, Literal
from pydantic import BaseModel, Field

from trendlens.models.indicators import TechnicalIndicators

SentimentLabel = Literal["BULLISH", "BEARISH", "NEUTRAL"]
RegimeLevel = Literal["LOW", "MEDIUM", "HIGH"]
Action = Literal["BUY", "SELL", "HOLD"]


class MarketSentiment(BaseModel):
    """Aggregate directional bias derived from volume, momentum and patterns.

    Attributes:
        sentiment: BULLISH, BEARISH or NEUTRAL
        strength: Absolute sentiment score
        factors: Human-readable contributing signals, in evaluation order
        volatility_regime: LOW, MEDIUM or HIGH
        momentum_score: Weighted momentum blend
    """

    sentiment: SentimentLabel
    strength: float = Field(ge=0, allow_inf_nan=False)
    factors: List[str] = Field(default_factory=list)
    volatility_regime: RegimeLevel = Field(alias="volatilityRegime")
    momentum_score: float = Field(alias="momentumScore", allow_inf_nan=False)

    model_config = {"frozen": True, "populate_by_name": True}


class RiskAssessment(BaseModel):
    """Risk level attached to a suggestion.

    Attributes:
        level: LOW, MEDIUM or HIGH (follows the volatility regime)
        score: Volatility used as the raw risk score
        factors: Human-readable risk factors
    """

    level: RegimeLevel
    score: float = Field(ge=0, allow_inf_nan=False)
    factors: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class MarketCondition(BaseModel):
    """Lightweight echo of sentiment and indicators for display."""

    trend: SentimentLabel
    strength: float = Field(ge=0, allow_inf_nan=False)
    volatility: float = Field(ge=0, allow_inf_nan=False)
    volume: float = Field(ge=0, allow_inf_nan=False)

    model_config = {"frozen": True}


class TradingSuggestion(BaseModel):
    """Final BUY/SELL/HOLD suggestion for a symbol.

    Attributes:
        symbol: Asset symbol analyzed
        action: BUY, SELL or HOLD
        confidence: Confidence score (0-1)
        reasons: Ordered explanation of the decision
        target_price: Price target (equals price for HOLD)
        stop_loss: Stop loss (equals price for HOLD)
        risk: Risk assessment
        market: Market condition summary
        indicators: Indicator snapshot the decision was based on
        valid_until: Expiry of the suggestion
    """

    symbol: str
    action: Action
    confidence: float = Field(ge=0, le=1)
    reasons: List[str] = Field(default_factory=list)
    target_price: float = Field(allow_inf_nan=False)
    stop_loss: float = Field(allow_inf_nan=False)
    risk: RiskAssessment
    market: MarketCondition
    indicators: TechnicalIndicators
    valid_until: datetime = Field(alias="validUntil")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "symbol": "BTC",
                    "action": "BUY",
                    "confidence": 0.68,
                    "reasons": [
                        "MACD indicates bullish momentum",
                        "Strong buying pressure: 1843.21",
                    ],
                    "target_price": 52340.5,
                    "stop_loss": 48810.0,
                }
            ]
        },
    }
