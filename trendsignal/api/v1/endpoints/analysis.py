"""
Analysis API Endpoints

Indicators, patterns, divergences, breakouts and recommendations over posted
candle histories, plus recommendations pulled from the configured candle
source, on one timeframe or aligned across several.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from trendsignal.core.config import settings
from trendsignal.schemas.indicators import IndicatorSummary
from trendsignal.schemas.market import SymbolCandles, Timeframe
from trendsignal.schemas.patterns import BreakoutAnalysis, DivergenceAnalysis, PatternAnalysis
from trendsignal.schemas.recommendation import MultiTimeframeResult, RecommendationResult
from trendsignal.services.base import ValidationError
from trendsignal.services.indicators import calculate_all_indicators, summarize_indicators
from trendsignal.services.patterns import get_pattern_service
from trendsignal.services.recommendation import get_recommendation_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_size(request: SymbolCandles) -> None:
    if not request.candles:
        raise ValidationError("AnalysisAPI", "Candle list must not be empty")
    if len(request.candles) > settings.max_candles:
        raise ValidationError(
            "AnalysisAPI",
            f"At most {settings.max_candles} candles per request, got {len(request.candles)}",
        )


@router.post("/indicators", response_model=IndicatorSummary)
async def analyze_indicators(request: SymbolCandles):
    """Latest value of every indicator, with reasons for those unavailable."""
    try:
        _check_size(request)
        indicators = await asyncio.to_thread(calculate_all_indicators, request.candles)
        return summarize_indicators(request.symbol, request.candles, indicators)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Indicator calculation failed for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Indicator calculation failed: {str(e)}")


@router.post("/patterns", response_model=PatternAnalysis)
async def analyze_patterns(request: SymbolCandles):
    """Support/resistance, double bottom/top and a primary pattern signal."""
    try:
        _check_size(request)
        return await get_pattern_service().analyze_symbol(request)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Pattern detection failed for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Pattern detection failed: {str(e)}")


@router.post("/divergences", response_model=DivergenceAnalysis)
async def analyze_divergences(request: SymbolCandles):
    """RSI and MACD divergences combined into one signal."""
    try:
        _check_size(request)
        return await get_pattern_service().divergences_for_symbol(request)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Divergence detection failed for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Divergence detection failed: {str(e)}")


@router.post("/breakout", response_model=BreakoutAnalysis)
async def analyze_breakout(request: SymbolCandles):
    """Squeeze, volume, consolidation and active-breakout signals combined."""
    try:
        _check_size(request)
        return await get_pattern_service().breakout_for_symbol(request)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Breakout analysis failed for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Breakout analysis failed: {str(e)}")


@router.post("/recommendation", response_model=RecommendationResult)
async def recommend(request: SymbolCandles):
    """Score a posted candle history."""
    try:
        _check_size(request)
        return await get_recommendation_service().recommend(request)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Recommendation failed for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Recommendation failed: {str(e)}")


@router.get("/{symbol}/recommendation", response_model=RecommendationResult)
async def recommend_symbol(
    symbol: str,
    timeframe: Optional[Timeframe] = Query(default=None, description="Candle interval"),
    limit: Optional[int] = Query(default=None, ge=1, description="Number of candles"),
):
    """Fetch candles from the candle source, then score them."""
    symbol = symbol.upper().strip()
    timeframe = timeframe or Timeframe(settings.default_timeframe)
    limit = min(limit or settings.default_limit, settings.max_candles)

    try:
        return await get_recommendation_service().recommend_from_source(symbol, timeframe, limit)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Recommendation failed for {symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Recommendation failed: {str(e)}")


@router.get("/{symbol}/multi-timeframe", response_model=MultiTimeframeResult)
async def recommend_multi_timeframe(
    symbol: str,
    timeframes: Optional[list[Timeframe]] = Query(
        default=None, description="Candle intervals, defaults to 1h, 4h and 1d"
    ),
):
    """Score a symbol on several timeframes and report whether they agree."""
    symbol = symbol.upper().strip()

    try:
        return await get_recommendation_service().recommend_multi_timeframe(symbol, timeframes)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Multi-timeframe recommendation failed for {symbol}: {e}")
        raise HTTPException(
            status_code=500, detail=f"Multi-timeframe recommendation failed: {str(e)}"
        )
