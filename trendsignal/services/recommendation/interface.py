"""
Recommendation Scorer Service Interface

Turns candle histories into recommendations.
"""

from abc import abstractmethod
from collections.abc import Sequence
from typing import Optional

from trendsignal.services.base import BaseService
from trendsignal.schemas.market import MarketSnapshot, SymbolCandles, Timeframe
from trendsignal.schemas.recommendation import MultiTimeframeResult, RecommendationResult


class RecommendationServiceInterface(
    BaseService[MarketSnapshot, dict[str, RecommendationResult]]
):
    """
    Recommendation Scorer Service Contract.

    INPUT: MarketSnapshot
        - symbols: Ordered candles per symbol, optional timeframe

    OUTPUT: dict[str, RecommendationResult]
        - Key: symbol name
        - Value: score, signal status, entry quality, warnings, stop loss

    PIPELINE:
        candles -> Indicator Engine -> sub-scores -> composite
                                    -> entry quality / warnings -> signal status
    """

    @property
    def name(self) -> str:
        return "RecommendationService"

    @abstractmethod
    async def execute(self, input_data: MarketSnapshot) -> dict[str, RecommendationResult]:
        """Score all symbols in snapshot."""
        pass

    @abstractmethod
    async def recommend(self, symbol_data: SymbolCandles) -> RecommendationResult:
        """
        Score a single symbol.

        Raises:
            ValidationError: If the candle list is empty
        """
        pass

    @abstractmethod
    async def recommend_from_source(
        self, symbol: str, timeframe: Timeframe, limit: int
    ) -> RecommendationResult:
        """Fetch candles from the configured candle source, then score them."""
        pass

    @abstractmethod
    async def recommend_multi_timeframe(
        self, symbol: str, timeframes: Optional[Sequence[Timeframe]] = None
    ) -> MultiTimeframeResult:
        """Score one symbol on several timeframes and report their alignment."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
