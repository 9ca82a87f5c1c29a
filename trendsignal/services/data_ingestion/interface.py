"""
Candle Source Interface

Boundary to the quote feed. Implementations return candles ordered by
ascending timestamp; nothing downstream re-checks the ordering.
"""

from abc import ABC, abstractmethod

from trendsignal.schemas.market import Candle, Timeframe


class CandleSourceInterface(ABC):
    """
    Quote feed contract.

    INPUT: symbol, timeframe, limit
    OUTPUT: list[Candle], oldest first, at most `limit` long
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def get_candles(self, symbol: str, timeframe: Timeframe, limit: int) -> list[Candle]:
        """Fetch the most recent `limit` candles for a symbol."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check connectivity to the feed."""
        pass
