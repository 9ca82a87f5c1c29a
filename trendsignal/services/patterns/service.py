"""
Pattern Detector Service Implementation

Async wrapper running the pattern, divergence and breakout detectors per symbol.
"""

import asyncio
import logging
from typing import Optional

from trendsignal.schemas.market import MarketSnapshot, SymbolCandles
from trendsignal.schemas.patterns import BreakoutAnalysis, DivergenceAnalysis, PatternAnalysis
from trendsignal.services.base import BaseService
from trendsignal.services.indicators.service import calculate_all_indicators
from trendsignal.services.patterns.breakout import analyze_breakout
from trendsignal.services.patterns.detectors import analyze_patterns
from trendsignal.services.patterns.divergence import analyze_divergences

logger = logging.getLogger(__name__)


class PatternService(BaseService[MarketSnapshot, dict[str, PatternAnalysis]]):
    """
    Pattern Detector Service.

    INPUT: MarketSnapshot
    OUTPUT: dict[symbol, PatternAnalysis]

    Never fails for short history; a symbol with too few candles gets an
    empty analysis.
    """

    @property
    def name(self) -> str:
        return "PatternService"

    async def execute(self, input_data: MarketSnapshot) -> dict[str, PatternAnalysis]:
        """Detect patterns for all symbols in snapshot."""
        tasks = [self.analyze_symbol(s) for s in input_data.symbols]
        outputs = await asyncio.gather(*tasks, return_exceptions=True)

        results = {}
        for symbol_data, output in zip(input_data.symbols, outputs):
            if isinstance(output, Exception):
                logger.error(f"Error detecting patterns for {symbol_data.symbol}: {output}")
                continue
            results[symbol_data.symbol] = output
        return results

    async def analyze_symbol(self, symbol_data: SymbolCandles) -> PatternAnalysis:
        return await asyncio.to_thread(analyze_patterns, symbol_data.candles)

    async def divergences(self, input_data: MarketSnapshot) -> dict[str, DivergenceAnalysis]:
        """RSI/MACD divergences for all symbols in snapshot."""
        tasks = [self.divergences_for_symbol(s) for s in input_data.symbols]
        outputs = await asyncio.gather(*tasks, return_exceptions=True)

        results = {}
        for symbol_data, output in zip(input_data.symbols, outputs):
            if isinstance(output, Exception):
                logger.error(f"Error detecting divergences for {symbol_data.symbol}: {output}")
                continue
            results[symbol_data.symbol] = output
        return results

    async def divergences_for_symbol(self, symbol_data: SymbolCandles) -> DivergenceAnalysis:
        def run() -> DivergenceAnalysis:
            indicators = calculate_all_indicators(symbol_data.candles)
            return analyze_divergences(symbol_data.candles, indicators)

        return await asyncio.to_thread(run)

    async def breakout_for_symbol(self, symbol_data: SymbolCandles) -> BreakoutAnalysis:
        return await asyncio.to_thread(analyze_breakout, symbol_data.candles)

    async def health_check(self) -> bool:
        return True


# Singleton instance
_service_instance: Optional[PatternService] = None


def get_pattern_service() -> PatternService:
    """Get or create pattern service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = PatternService()
    return _service_instance
