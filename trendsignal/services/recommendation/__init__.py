"""
Recommendation Scorer Service

CONTRACT:
    Input:  Ordered candles (+ optional timeframe, ScoringConfig)
    Output: RecommendationResult

RESPONSIBILITIES:
    - Directional sub-scores (trend, MACD, EMA cross, ADX, RSI, Bollinger)
    - Weighted composite score
    - Entry quality and overheat warnings
    - Stop loss from ATR
    - Signal classification
    - Alignment of one symbol across several timeframes

Every weight and threshold comes from ScoringConfig.
"""

from trendsignal.services.recommendation.alignment import align_timeframes
from trendsignal.services.recommendation.interface import RecommendationServiceInterface
from trendsignal.services.recommendation.scoring import (
    adx_score,
    bollinger_score,
    composite_score,
    ema_cross_score,
    long_term_trend_score,
    macd_score,
    rsi_score,
    volume_analysis,
)
from trendsignal.services.recommendation.service import (
    RecommendationService,
    calculate_recommendation,
    get_recommendation_service,
    timeframe_limit,
)
from trendsignal.services.recommendation.signals import (
    classify_signal,
    entry_quality,
    legacy_recommendation,
    overheat_warnings,
    stop_loss,
)

__all__ = [
    "RecommendationService",
    "RecommendationServiceInterface",
    "adx_score",
    "align_timeframes",
    "bollinger_score",
    "calculate_recommendation",
    "classify_signal",
    "composite_score",
    "ema_cross_score",
    "entry_quality",
    "get_recommendation_service",
    "legacy_recommendation",
    "long_term_trend_score",
    "macd_score",
    "overheat_warnings",
    "rsi_score",
    "stop_loss",
    "timeframe_limit",
    "volume_analysis",
]
