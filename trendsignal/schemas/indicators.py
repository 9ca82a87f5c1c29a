"""
CONTRACT 2: Indicator Engine

Input: ordered candles
Output: IndicatorSet (in process), IndicatorSummary (over the API)

This module performs ALL mathematical calculations.
Pure Python/NumPy.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class IndicatorSummary(BaseModel):
    """
    Latest indicator values for one symbol.

    `latest` holds None for anything not computable with the supplied
    history; `unavailable` says why.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    candle_count: int = Field(..., ge=1)
    current_price: float
    latest: dict[str, Optional[float]]
    available: list[str] = Field(default_factory=list)
    unavailable: dict[str, str] = Field(default_factory=dict)
