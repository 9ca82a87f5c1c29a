"""
Recommendation Scorer Service Implementation

Combines the indicator sub-scores into one weighted score, then decides
whether now is a good moment to act on it:
    Indicators -> Sub-scores -> Composite -> Entry quality + Warnings -> Signal

A symbol can also be scored on several timeframes at once, each fetched
with enough candles to cover about 30 days.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Optional

from trendsignal.core.config import settings
from trendsignal.schemas.market import Candle, MarketSnapshot, SymbolCandles, Timeframe
from trendsignal.schemas.recommendation import (
    IndicatorSnapshot,
    MultiTimeframeResult,
    RecommendationResult,
    ScoreBreakdown,
    ScoringConfig,
    TimeframeError,
    TimeframeRecommendation,
)
from trendsignal.services.base import ServiceError, ValidationError
from trendsignal.services.data_ingestion import CandleSourceInterface, get_candle_source
from trendsignal.services.indicators.models import unwrap
from trendsignal.services.indicators.service import calculate_all_indicators
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
from trendsignal.services.recommendation.signals import (
    classify_signal,
    entry_quality,
    legacy_recommendation,
    overheat_warnings,
    stop_loss,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEFRAMES = (Timeframe.H1, Timeframe.H4, Timeframe.D1)

# About 30 days of candles per timeframe
TIMEFRAME_LIMITS = {
    Timeframe.M1: 43_200,
    Timeframe.M5: 8_640,
    Timeframe.M15: 2880,
    Timeframe.M30: 1440,
    Timeframe.H1: 720,
    Timeframe.H4: 180,
    Timeframe.D1: 30,
    Timeframe.W1: 12,
}
DEFAULT_TIMEFRAME_LIMIT = 180


def calculate_recommendation(
    candles: Sequence[Candle],
    config: Optional[ScoringConfig] = None,
    timeframe: Optional[Timeframe] = None,
) -> RecommendationResult:
    """
    Score a candle history.

    Args:
        candles: Ordered candles, oldest first
        config: Scoring policy, defaults to ScoringConfig()
        timeframe: Candle interval; when omitted the history is assumed
            to span `config.assumed_history_days`

    Raises:
        ValidationError: If candles is empty
    """
    if not candles:
        raise ValidationError("RecommendationScorer", "Candle sequence must not be empty")

    config = config or ScoringConfig()
    indicators = calculate_all_indicators(candles)
    close = candles[-1].close

    macd = unwrap(indicators.macd)
    adx = unwrap(indicators.adx)
    rsi = unwrap(indicators.rsi)
    volume = volume_analysis(candles, config)

    breakdown = ScoreBreakdown(
        long_term_trend=long_term_trend_score(candles, config, timeframe),
        macd=macd_score(macd, config),
        ema_cross=ema_cross_score(
            unwrap(indicators.ema12),
            unwrap(indicators.ema26),
            unwrap(indicators.ema50),
            unwrap(indicators.ema200),
            config,
        ),
        adx=adx_score(adx, config),
        rsi=rsi_score(rsi, config),
        bollinger=bollinger_score(unwrap(indicators.bollinger), close, config),
        volume=volume.score,
    )
    score = composite_score(breakdown, config.weights)

    quality = entry_quality(indicators, candles, config)
    warnings = overheat_warnings(indicators, candles, config, timeframe)

    return RecommendationResult(
        score=round(score, 1),
        recommendation=legacy_recommendation(score, config),
        signal_status=classify_signal(score, quality, warnings, config),
        entry_quality=round(quality, 1),
        warnings=tuple(warnings),
        breakdown=ScoreBreakdown(
            **{name: round(value, 1) for name, value in breakdown.model_dump().items()}
        ),
        stop_loss=stop_loss(indicators, close, config),
        current_price=close,
        volume_analysis=volume,
        indicators=IndicatorSnapshot(
            rsi=rsi.last() if rsi else None,
            adx=adx.adx.last() if adx else None,
            macd_histogram=macd.histogram.last() if macd else None,
        ),
        unavailable=indicators.unavailable(),
        config_version=config.version,
    )


def timeframe_limit(timeframe: Timeframe) -> int:
    """Candles fetched for a timeframe, capped at the request maximum."""
    return min(TIMEFRAME_LIMITS.get(timeframe, DEFAULT_TIMEFRAME_LIMIT), settings.max_candles)


class RecommendationService(RecommendationServiceInterface):
    """
    Recommendation Scorer Service.

    Scores every symbol of a snapshot concurrently. A failing symbol is
    logged and left out of the result.
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        candle_source: Optional[CandleSourceInterface] = None,
    ):
        self.config = config or ScoringConfig()
        self._candle_source = candle_source

    @property
    def candle_source(self) -> CandleSourceInterface:
        if self._candle_source is None:
            self._candle_source = get_candle_source()
        return self._candle_source

    async def execute(self, input_data: MarketSnapshot) -> dict[str, RecommendationResult]:
        tasks = [self.recommend(s) for s in input_data.symbols]
        outputs = await asyncio.gather(*tasks, return_exceptions=True)

        results = {}
        for symbol_data, output in zip(input_data.symbols, outputs):
            if isinstance(output, Exception):
                logger.error(f"Error scoring {symbol_data.symbol}: {output}")
                continue
            results[symbol_data.symbol] = output

        logger.info(f"Scored {len(results)}/{len(input_data.symbols)} symbols")
        return results

    async def recommend(self, symbol_data: SymbolCandles) -> RecommendationResult:
        return await asyncio.to_thread(
            calculate_recommendation,
            symbol_data.candles,
            self.config,
            symbol_data.timeframe,
        )

    async def recommend_from_source(
        self, symbol: str, timeframe: Timeframe, limit: int
    ) -> RecommendationResult:
        candles = await self.candle_source.get_candles(symbol, timeframe, limit)
        logger.debug(f"Fetched {len(candles)} candles for {symbol} ({timeframe.value})")
        return await self.recommend(
            SymbolCandles(symbol=symbol, timeframe=timeframe, candles=candles)
        )

    async def recommend_multi_timeframe(
        self, symbol: str, timeframes: Optional[Sequence[Timeframe]] = None
    ) -> MultiTimeframeResult:
        """
        Score one symbol on several timeframes and summarize their agreement.

        A timeframe that fails is reported in `errors`; the others still count.

        Raises:
            ServiceError: If no timeframe could be scored
        """
        timeframes = list(dict.fromkeys(timeframes or DEFAULT_TIMEFRAMES))
        tasks = [
            self.recommend_from_source(symbol, tf, timeframe_limit(tf)) for tf in timeframes
        ]
        outputs = await asyncio.gather(*tasks, return_exceptions=True)

        results, errors = [], []
        for timeframe, output in zip(timeframes, outputs):
            if isinstance(output, Exception):
                logger.error(f"Error scoring {symbol} on {timeframe.value}: {output}")
                errors.append(TimeframeError(timeframe=timeframe, error=str(output)))
                continue
            results.append(TimeframeRecommendation(timeframe=timeframe, result=output))

        if not results:
            raise ServiceError(
                self.name,
                f"No timeframe could be scored for {symbol}",
                {"errors": [e.model_dump(mode="json") for e in errors]},
            )

        logger.info(f"Scored {symbol} on {len(results)}/{len(timeframes)} timeframes")
        return align_timeframes(symbol, results, errors, self.config)

    async def health_check(self) -> bool:
        return await self.candle_source.health_check()


# Singleton instance
_service_instance: Optional[RecommendationService] = None


def get_recommendation_service() -> RecommendationService:
    """Get or create recommendation service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = RecommendationService()
    return _service_instance
