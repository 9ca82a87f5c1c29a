"""
TrendSignal Schema Contracts

This module defines all JSON contracts between system components.
These are the authoritative interfaces - all modules must conform to these schemas.
"""

from trendsignal.schemas.market import (
    Candle,
    MarketSnapshot,
    SymbolCandles,
    Timeframe,
)
from trendsignal.schemas.indicators import IndicatorSummary
from trendsignal.schemas.patterns import (
    BreakoutAnalysis,
    DivergenceAnalysis,
    DoublePattern,
    PatternAnalysis,
    PatternDetection,
    PivotPoints,
    PriceLevel,
    SupportResistance,
)
from trendsignal.schemas.recommendation import (
    AlignmentSummary,
    MultiTimeframeResult,
    OverheatWarning,
    Recommendation,
    RecommendationResult,
    ScoringConfig,
    Severity,
    SignalStatus,
)

__all__ = [
    # Market
    "Candle",
    "MarketSnapshot",
    "SymbolCandles",
    "Timeframe",
    # Indicators
    "IndicatorSummary",
    # Patterns
    "BreakoutAnalysis",
    "DivergenceAnalysis",
    "DoublePattern",
    "PatternAnalysis",
    "PatternDetection",
    "PivotPoints",
    "PriceLevel",
    "SupportResistance",
    # Recommendation
    "AlignmentSummary",
    "MultiTimeframeResult",
    "OverheatWarning",
    "Recommendation",
    "RecommendationResult",
    "ScoringConfig",
    "Severity",
    "SignalStatus",
]
