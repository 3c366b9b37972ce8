"""Pattern, level and divergence models produced by the pattern detector."""

from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, Field


class PatternDirection(str, Enum):
    """Directional bias carried by a detected pattern."""

    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class CandlePattern(BaseModel):
    """Candlestick or chart pattern detected in a series.

    Attributes:
        pattern: Display name (e.g. "Hammer", "Double Top")
        direction: Directional bias of the pattern
        strength: Intrinsic pattern strength (0-1)
        probability: Context-adjusted success probability (0-1)
        significance: major or minor
        type: reversal or continuation
        timeframe: Expected horizon of the move
        index: Series position where the pattern completed
    """

    pattern: str
    direction: PatternDirection
    strength: float = Field(ge=0, le=1)
    probability: float = Field(ge=0, le=1)
    significance: Literal["major", "minor"]
    type: Literal["reversal", "continuation"]
    timeframe: Literal["short", "medium", "long"]
    index: int = Field(ge=0)

    model_config = {"frozen": True}

    @property
    def is_directional(self) -> bool:
        return self.direction != PatternDirection.NEUTRAL


class DoublePattern(CandlePattern):
    """Double top/bottom with its confirmation and invalidation levels.

    Attributes:
        confirmation_level: Valley between peaks (top) or peak between troughs (bottom)
        invalidation_level: Highest peak (top) or lowest trough (bottom)
    """

    confirmation_level: float = Field(alias="confirmationLevel", gt=0)
    invalidation_level: float = Field(alias="invalidationLevel", gt=0)

    model_config = {"frozen": True, "populate_by_name": True}


class FibonacciRetracement(BaseModel):
    """Retracement levels measured down from the high."""

    level_0: float
    level_236: float
    level_382: float
    level_500: float
    level_618: float
    level_786: float
    level_100: float

    model_config = {"frozen": True}


class FibonacciExtension(BaseModel):
    """Extension levels projected above the high."""

    level_1618: float
    level_2618: float
    level_4236: float

    model_config = {"frozen": True}


class PivotPoints(BaseModel):
    """Classic pivot point with three resistance and support levels."""

    r3: float
    r2: float
    r1: float
    pivot: float
    s1: float
    s2: float
    s3: float

    model_config = {"frozen": True}


class FibonacciLevels(BaseModel):
    """Fibonacci retracements, extensions and pivots for a high/low range."""

    retracement: FibonacciRetracement
    extension: FibonacciExtension
    pivots: PivotPoints

    model_config = {"frozen": True}


class Divergence(BaseModel):
    """Price/indicator divergence over a recent window.

    Attributes:
        type: bullish, bearish, or None when trends agree
        strength: Gap between price and indicator relative changes (0-1)
    """

    type: Optional[Literal["bullish", "bearish"]] = None
    strength: float = Field(0.0, ge=0, le=1)

    model_config = {"frozen": True}
