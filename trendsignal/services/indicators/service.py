"""
Indicator Engine Service Implementation

Calculates all technical indicators from candle data.
Pure Python/NumPy calculations.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Optional

from trendsignal.schemas.indicators import IndicatorSummary
from trendsignal.schemas.market import Candle, MarketSnapshot, SymbolCandles
from trendsignal.services.base import InsufficientDataError, ValidationError
from trendsignal.services.indicators.calculations import (
    OHLCVData,
    adx,
    atr,
    bollinger_bands,
    ema,
    macd,
    rsi,
    sma,
)
from trendsignal.services.indicators.interface import IndicatorServiceInterface
from trendsignal.services.indicators.models import (
    Available,
    IndicatorResult,
    IndicatorSet,
    Unavailable,
    unwrap,
)

logger = logging.getLogger(__name__)

# Minimum history per aggregated indicator
RSI_PERIOD = 14
MACD_FAST, MACD_SLOW, MACD_SIGNAL = 12, 26, 9
BOLLINGER_PERIOD, BOLLINGER_STD = 20, 2.0
ATR_PERIOD = 14
ADX_PERIOD = 14


def _compute(
    name: str,
    required: int,
    supplied: int,
    fn: Callable[[], object],
    diagnostics: logging.Logger,
) -> IndicatorResult:
    """Run one indicator, degrading to Unavailable instead of raising."""
    if supplied < required:
        diagnostics.debug(f"{name} unavailable: needs {required} candles, got {supplied}")
        return Unavailable(
            name=name,
            reason=f"needs {required} candles, got {supplied}",
            required=required,
            supplied=supplied,
        )
    try:
        return Available(fn())
    except InsufficientDataError as e:
        diagnostics.warning(f"{name} could not be calculated: {e.message}")
        return Unavailable(
            name=name, reason=e.message, required=e.required, supplied=e.available
        )


def calculate_all_indicators(
    candles: Sequence[Candle],
    diagnostics: Optional[logging.Logger] = None,
) -> IndicatorSet:
    """
    Calculate every indicator the scorer needs.

    Indicators whose minimum history is not met become Unavailable; the
    call itself only fails for an empty candle sequence.
    """
    if not candles:
        raise ValidationError("IndicatorEngine", "Candle sequence must not be empty")

    diagnostics = diagnostics or logger
    data = OHLCVData.from_candles(candles)
    closes, highs, lows = data.closes, data.highs, data.lows
    n = len(closes)

    def run(name: str, required: int, fn: Callable[[], object]) -> IndicatorResult:
        return _compute(name, required, n, fn, diagnostics)

    return IndicatorSet(
        sma20=run("sma20", 20, lambda: sma(closes, 20)),
        sma50=run("sma50", 50, lambda: sma(closes, 50)),
        sma200=run("sma200", 200, lambda: sma(closes, 200)),
        ema12=run("ema12", 12, lambda: ema(closes, 12)),
        ema26=run("ema26", 26, lambda: ema(closes, 26)),
        ema50=run("ema50", 50, lambda: ema(closes, 50)),
        ema200=run("ema200", 200, lambda: ema(closes, 200)),
        rsi=run("rsi", RSI_PERIOD + 1, lambda: rsi(closes, RSI_PERIOD)),
        macd=run(
            "macd",
            MACD_SLOW + MACD_SIGNAL,
            lambda: macd(closes, MACD_FAST, MACD_SLOW, MACD_SIGNAL),
        ),
        bollinger=run(
            "bollinger",
            BOLLINGER_PERIOD,
            lambda: bollinger_bands(closes, BOLLINGER_PERIOD, BOLLINGER_STD),
        ),
        atr=run("atr", ATR_PERIOD + 1, lambda: atr(highs, lows, closes, ATR_PERIOD)),
        adx=run("adx", 2 * ADX_PERIOD, lambda: adx(highs, lows, closes, ADX_PERIOD)),
    )


class IndicatorService(IndicatorServiceInterface):
    """
    Indicator Engine Service.

    Calculates technical indicators for every symbol in a snapshot.
    Symbols are independent, so they are computed concurrently.
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    async def execute(self, input_data: MarketSnapshot) -> dict[str, IndicatorSet]:
        """Calculate indicators for all symbols in snapshot."""
        tasks = [self.calculate_for_symbol(s) for s in input_data.symbols]
        outputs = await asyncio.gather(*tasks, return_exceptions=True)

        results = {}
        for symbol_data, output in zip(input_data.symbols, outputs):
            if isinstance(output, Exception):
                # Log error but continue with other symbols
                logger.error(f"Error calculating indicators for {symbol_data.symbol}: {output}")
                continue
            results[symbol_data.symbol] = output
        return results

    async def calculate_for_symbol(self, symbol_data: SymbolCandles) -> IndicatorSet:
        """Calculate all indicators for a single symbol."""
        return await asyncio.to_thread(calculate_all_indicators, symbol_data.candles)

    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        return True


# Singleton instance
_service_instance: Optional[IndicatorService] = None


def get_indicator_service() -> IndicatorService:
    """Get or create indicator service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = IndicatorService()
    return _service_instance


def summarize_indicators(
    symbol: str, candles: Sequence[Candle], indicators: IndicatorSet
) -> IndicatorSummary:
    """Flatten an IndicatorSet into its latest values."""
    macd_result = unwrap(indicators.macd)
    bollinger = unwrap(indicators.bollinger)
    adx_result = unwrap(indicators.adx)

    def last(series) -> Optional[float]:
        return series.last() if series is not None else None

    latest = {
        name: last(unwrap(getattr(indicators, name)))
        for name in ("sma20", "sma50", "sma200", "ema12", "ema26", "ema50", "ema200", "rsi", "atr")
    }
    latest.update(
        macd_line=last(macd_result.macd_line) if macd_result else None,
        macd_signal=last(macd_result.signal_line) if macd_result else None,
        macd_histogram=last(macd_result.histogram) if macd_result else None,
        bollinger_upper=last(bollinger.upper) if bollinger else None,
        bollinger_middle=last(bollinger.middle) if bollinger else None,
        bollinger_lower=last(bollinger.lower) if bollinger else None,
        adx=last(adx_result.adx) if adx_result else None,
        plus_di=last(adx_result.plus_di) if adx_result else None,
        minus_di=last(adx_result.minus_di) if adx_result else None,
    )

    return IndicatorSummary(
        symbol=symbol,
        candle_count=len(candles),
        current_price=candles[-1].close,
        latest=latest,
        available=indicators.available_names(),
        unavailable=indicators.unavailable(),
    )
