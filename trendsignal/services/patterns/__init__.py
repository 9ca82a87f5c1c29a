"""
Pattern Detector Service

CONTRACT:
    Input:  Ordered candles
    Output: PatternAnalysis / DivergenceAnalysis / BreakoutAnalysis

RESPONSIBILITIES:
    - Pivot points and support/resistance zones
    - Double bottom / double top formations
    - RSI and MACD divergences
    - Volatility squeeze, volume anomaly, consolidation and breakout
"""

from trendsignal.services.patterns.breakout import (
    analyze_breakout,
    detect_active_breakout,
    detect_consolidation,
    detect_volatility_squeeze,
    detect_volume_anomaly,
)
from trendsignal.services.patterns.detectors import (
    analyze_patterns,
    calculate_support_resistance,
    detect_double_bottom,
    detect_double_top,
    find_pivot_points,
    group_price_levels,
    pattern_strength,
)
from trendsignal.services.patterns.divergence import (
    analyze_divergences,
    detect_macd_divergence,
    detect_rsi_divergence,
    divergence_strength,
    find_value_pivots,
)
from trendsignal.services.patterns.service import PatternService, get_pattern_service

__all__ = [
    "PatternService",
    "analyze_breakout",
    "analyze_divergences",
    "analyze_patterns",
    "calculate_support_resistance",
    "detect_active_breakout",
    "detect_consolidation",
    "detect_double_bottom",
    "detect_double_top",
    "detect_macd_divergence",
    "detect_rsi_divergence",
    "detect_volatility_squeeze",
    "detect_volume_anomaly",
    "divergence_strength",
    "find_pivot_points",
    "find_value_pivots",
    "get_pattern_service",
    "group_price_levels",
    "pattern_strength",
]
