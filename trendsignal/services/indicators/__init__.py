"""
Indicator Engine Service

CONTRACT:
    Input:  MarketSnapshot (ordered candles per symbol)
    Output: IndicatorSet per symbol

RESPONSIBILITIES:
    - Moving averages (SMA, EMA)
    - Momentum (RSI, MACD)
    - Volatility (Bollinger Bands, ATR)
    - Trend strength (ADX, +DI, -DI)

Uses NumPy for calculations.
All math is deterministic and reproducible.
"""

from trendsignal.services.indicators.calculations import (
    ADXResult,
    BollingerResult,
    MACDResult,
    OHLCVData,
    adx,
    atr,
    bollinger_bands,
    ema,
    macd,
    rsi,
    sma,
)
from trendsignal.services.indicators.interface import IndicatorServiceInterface
from trendsignal.services.indicators.models import (
    Available,
    IndicatorSet,
    Unavailable,
    unwrap,
)
from trendsignal.services.indicators.series import Series
from trendsignal.services.indicators.service import (
    IndicatorService,
    calculate_all_indicators,
    get_indicator_service,
    summarize_indicators,
)

__all__ = [
    "ADXResult",
    "Available",
    "BollingerResult",
    "IndicatorService",
    "IndicatorServiceInterface",
    "IndicatorSet",
    "MACDResult",
    "OHLCVData",
    "Series",
    "Unavailable",
    "adx",
    "atr",
    "bollinger_bands",
    "calculate_all_indicators",
    "ema",
    "get_indicator_service",
    "macd",
    "rsi",
    "sma",
    "summarize_indicators",
    "unwrap",
]
