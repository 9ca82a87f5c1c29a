"""
CONTRACT 1: Candle Input

Input consumed by: Indicator Engine, Pattern Detector, Recommendation Scorer

Candles arrive from the quote feed already ordered by ascending timestamp
with no duplicates. Nothing downstream re-validates the ordering.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================


class Timeframe(str, Enum):
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1w"

    @property
    def seconds(self) -> int:
        return TIMEFRAME_SECONDS[self]

    @property
    def candles_per_day(self) -> float:
        return 86_400 / self.seconds


TIMEFRAME_SECONDS = {
    Timeframe.M1: 60,
    Timeframe.M5: 300,
    Timeframe.M15: 900,
    Timeframe.M30: 1_800,
    Timeframe.H1: 3_600,
    Timeframe.H4: 14_400,
    Timeframe.D1: 86_400,
    Timeframe.W1: 604_800,
}


# =============================================================================
# CANDLES
# =============================================================================


class Candle(BaseModel):
    """Single candlestick data point."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float = Field(..., gt=0)
    high: float = Field(..., gt=0)
    low: float = Field(..., gt=0)
    close: float = Field(..., gt=0)
    volume: float = Field(default=0.0, ge=0)


class SymbolCandles(BaseModel):
    """
    Candle history for one symbol.
    Sent by: API / quote feed
    Received by: Indicator, Pattern and Recommendation services
    """

    symbol: str = Field(..., min_length=1)
    timeframe: Optional[Timeframe] = Field(
        default=None,
        description="Candle interval. When omitted the history is assumed to span 30 days.",
    )
    candles: list[Candle]


class MarketSnapshot(BaseModel):
    """Candle histories for several symbols, analysed independently."""

    timestamp: datetime = Field(default_factory=datetime.now)
    symbols: list[SymbolCandles]

    class Config:
        json_schema_extra = {
            "example": {
                "timestamp": "2026-10-19T10:30:00Z",
                "symbols": [
                    {
                        "symbol": "BTCUSDT",
                        "timeframe": "1h",
                        "candles": [
                            {
                                "timestamp": "2026-10-19T09:00:00Z",
                                "open": 67250.0,
                                "high": 67480.5,
                                "low": 67110.0,
                                "close": 67402.3,
                                "volume": 812.4,
                            }
                        ],
                    }
                ],
            }
        }
