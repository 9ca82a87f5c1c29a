"""
Indicator Availability

Each aggregated indicator is either Available (with its computed value) or
Unavailable (with the reason it could not be computed). Consumers branch on
the variant instead of probing for missing fields.
"""

from dataclasses import dataclass, fields
from typing import Generic, Optional, TypeVar, Union

from trendsignal.services.indicators.calculations import (
    ADXResult,
    BollingerResult,
    MACDResult,
)
from trendsignal.services.indicators.series import Series

T = TypeVar("T")


@dataclass(frozen=True)
class Available(Generic[T]):
    value: T

    @property
    def is_available(self) -> bool:
        return True


@dataclass(frozen=True)
class Unavailable:
    name: str
    reason: str
    required: int
    supplied: int

    @property
    def is_available(self) -> bool:
        return False


IndicatorResult = Union[Available[T], Unavailable]


def unwrap(result: IndicatorResult[T]) -> Optional[T]:
    """Value of an Available result, None otherwise."""
    if isinstance(result, Available):
        return result.value
    return None


@dataclass(frozen=True)
class IndicatorSet:
    """Every indicator the scorer consumes, computed from one candle history."""

    sma20: IndicatorResult[Series]
    sma50: IndicatorResult[Series]
    sma200: IndicatorResult[Series]
    ema12: IndicatorResult[Series]
    ema26: IndicatorResult[Series]
    ema50: IndicatorResult[Series]
    ema200: IndicatorResult[Series]
    rsi: IndicatorResult[Series]
    macd: IndicatorResult[MACDResult]
    bollinger: IndicatorResult[BollingerResult]
    atr: IndicatorResult[Series]
    adx: IndicatorResult[ADXResult]

    def items(self) -> list[tuple[str, IndicatorResult]]:
        return [(f.name, getattr(self, f.name)) for f in fields(self)]

    def unavailable(self) -> dict[str, str]:
        """Indicator name -> reason, for every indicator that degraded."""
        return {
            name: result.reason
            for name, result in self.items()
            if isinstance(result, Unavailable)
        }

    def available_names(self) -> list[str]:
        return [name for name, result in self.items() if isinstance(result, Available)]
