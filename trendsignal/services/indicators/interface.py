"""
Indicator Engine Service Interface

Defines the contract for the indicator calculation layer.
"""

from abc import abstractmethod
from typing import TYPE_CHECKING

from trendsignal.services.base import BaseService
from trendsignal.schemas.market import MarketSnapshot, SymbolCandles

if TYPE_CHECKING:
    from trendsignal.services.indicators.models import IndicatorSet


class IndicatorServiceInterface(BaseService[MarketSnapshot, dict[str, "IndicatorSet"]]):
    """
    Indicator Engine Service Contract.

    INPUT: MarketSnapshot
        - symbols: List of SymbolCandles with ordered candles

    OUTPUT: dict[str, IndicatorSet]
        - Key: symbol name
        - Value: Every indicator, Available or Unavailable
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    @abstractmethod
    async def execute(self, input_data: MarketSnapshot) -> dict[str, "IndicatorSet"]:
        """Calculate indicators for all symbols in snapshot."""
        pass

    @abstractmethod
    async def calculate_for_symbol(self, symbol_data: SymbolCandles) -> "IndicatorSet":
        """
        Calculate indicators for a single symbol.

        Args:
            symbol_data: Ordered candles for the symbol

        Returns:
            IndicatorSet with every indicator Available or Unavailable
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        pass
