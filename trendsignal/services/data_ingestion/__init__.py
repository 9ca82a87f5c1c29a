"""
Data Ingestion Layer

CONTRACT:
    Input:  symbol, timeframe, limit
    Output: list[Candle] ordered by ascending timestamp

The live exchange client lives outside this package; MockCandleSource
stands in for it during development.
"""

from typing import Optional

from trendsignal.core.config import settings
from trendsignal.services.data_ingestion.interface import CandleSourceInterface
from trendsignal.services.data_ingestion.mock_data import (
    MockCandleSource,
    generate_mock_candles,
)

# Singleton instance
_source_instance: Optional[CandleSourceInterface] = None


def get_candle_source() -> CandleSourceInterface:
    """Get or create the configured candle source."""
    global _source_instance
    if _source_instance is None:
        _source_instance = MockCandleSource(seed=settings.mock_seed)
    return _source_instance


def set_candle_source(source: Optional[CandleSourceInterface]) -> None:
    """Install a different candle source (None resets to the default)."""
    global _source_instance
    _source_instance = source


__all__ = [
    "CandleSourceInterface",
    "MockCandleSource",
    "generate_mock_candles",
    "get_candle_source",
    "set_candle_source",
]
