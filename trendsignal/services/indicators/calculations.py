"""
Technical Indicator Calculations

Pure NumPy implementations of technical indicators.
All math is deterministic: same input, bit-identical output.

Every function returns series aligned with its input (see `Series`) and
raises InsufficientDataError when the minimum history is not met.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

import numpy as np

from trendsignal.schemas.market import Candle
from trendsignal.services.base import InsufficientDataError
from trendsignal.services.indicators.series import Series

ArrayLike = Union[Sequence[float], np.ndarray]


@dataclass(frozen=True)
class OHLCVData:
    """OHLCV data arrays for calculations."""

    opens: np.ndarray
    highs: np.ndarray
    lows: np.ndarray
    closes: np.ndarray
    volumes: np.ndarray

    @classmethod
    def from_candles(cls, candles: Sequence[Candle]) -> "OHLCVData":
        return cls(
            opens=np.array([c.open for c in candles], dtype=float),
            highs=np.array([c.high for c in candles], dtype=float),
            lows=np.array([c.low for c in candles], dtype=float),
            closes=np.array([c.close for c in candles], dtype=float),
            volumes=np.array([c.volume for c in candles], dtype=float),
        )


@dataclass(frozen=True)
class MACDResult:
    """MACD line, signal line and histogram."""

    macd_line: Series
    signal_line: Series
    histogram: Series


@dataclass(frozen=True)
class BollingerResult:
    """Bollinger middle/upper/lower bands."""

    middle: Series
    upper: Series
    lower: Series


@dataclass(frozen=True)
class ADXResult:
    """ADX with its directional components."""

    adx: Series
    plus_di: Series
    minus_di: Series


def _as_array(data: ArrayLike) -> np.ndarray:
    return np.asarray(data, dtype=float)


def _require(indicator: str, required: int, available: int) -> None:
    if available < required:
        raise InsufficientDataError(indicator, required, available)


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"Period must be positive, got {period}")


# =============================================================================
# MOVING AVERAGES
# =============================================================================


def _sma_array(data: np.ndarray, period: int) -> np.ndarray:
    result = np.full(len(data), np.nan)
    for i in range(period - 1, len(data)):
        result[i] = np.mean(data[i - period + 1 : i + 1])
    return result


def _ema_array(data: np.ndarray, period: int) -> np.ndarray:
    result = np.full(len(data), np.nan)
    multiplier = 2 / (period + 1)

    # Seed with SMA of the first window
    result[period - 1] = np.mean(data[:period])

    for i in range(period, len(data)):
        result[i] = result[i - 1] + multiplier * (data[i] - result[i - 1])

    return result


def sma(data: ArrayLike, period: int) -> Series:
    """Simple Moving Average. `period - 1` leading nulls."""
    _check_period(period)
    values = _as_array(data)
    _require(f"SMA({period})", period, len(values))
    return Series.from_array(_sma_array(values, period))


def ema(data: ArrayLike, period: int) -> Series:
    """Exponential Moving Average seeded with the SMA of the first window."""
    _check_period(period)
    values = _as_array(data)
    _require(f"EMA({period})", period, len(values))
    return Series.from_array(_ema_array(values, period))


# =============================================================================
# MOMENTUM INDICATORS
# =============================================================================


def rsi(closes: ArrayLike, period: int = 14) -> Series:
    """
    Relative Strength Index with Wilder smoothing.

    The first value sits at index `period` since index 0 has no delta.
    """
    _check_period(period)
    closes = _as_array(closes)
    _require(f"RSI({period})", period + 1, len(closes))

    deltas = np.diff(closes)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = np.mean(gains[:period])
    avg_loss = np.mean(losses[:period])

    result = np.full(len(closes), np.nan)
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result[i + 1] = _rsi_value(avg_gain, avg_loss)

    return Series.from_array(result)


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def macd(
    closes: ArrayLike,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """
    MACD (Moving Average Convergence Divergence).

    The signal EMA runs over the defined MACD values only and is scattered
    back onto their original positions.
    """
    for period in (fast_period, slow_period, signal_period):
        _check_period(period)
    closes = _as_array(closes)
    _require("MACD", slow_period + signal_period, len(closes))

    fast_ema = _ema_array(closes, fast_period)
    slow_ema = _ema_array(closes, slow_period)

    macd_line = fast_ema - slow_ema
    defined = ~np.isnan(macd_line)

    signal_line = Series.realigned(defined, _ema_array(macd_line[defined], signal_period))

    histogram = macd_line - signal_line.to_array()

    return MACDResult(
        macd_line=Series.from_array(macd_line),
        signal_line=signal_line,
        histogram=Series.from_array(histogram),
    )


# =============================================================================
# VOLATILITY INDICATORS
# =============================================================================


def bollinger_bands(
    closes: ArrayLike, period: int = 20, std_dev: float = 2.0
) -> BollingerResult:
    """Bollinger Bands using the population standard deviation."""
    _check_period(period)
    closes = _as_array(closes)
    _require(f"Bollinger({period})", period, len(closes))

    middle = _sma_array(closes, period)

    std = np.full(len(closes), np.nan)
    for i in range(period - 1, len(closes)):
        std[i] = np.std(closes[i - period + 1 : i + 1])

    upper = middle + (std_dev * std)
    lower = middle - (std_dev * std)

    return BollingerResult(
        middle=Series.from_array(middle),
        upper=Series.from_array(upper),
        lower=Series.from_array(lower),
    )


def true_range(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike) -> np.ndarray:
    """True range for candles 1..n-1 (candle 0 has no previous close)."""
    highs, lows, closes = _as_array(highs), _as_array(lows), _as_array(closes)
    prev_close = closes[:-1]
    return np.maximum.reduce(
        [
            highs[1:] - lows[1:],
            np.abs(highs[1:] - prev_close),
            np.abs(lows[1:] - prev_close),
        ]
    )


def atr(
    highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 14
) -> Series:
    """
    Average True Range.

    Index 0 is null; index 1 holds the seed (mean of the first `period`
    true ranges) and every later true range feeds the EMA recurrence.
    """
    _check_period(period)
    closes = _as_array(closes)
    _require(f"ATR({period})", period + 1, len(closes))

    tr = true_range(highs, lows, closes)
    multiplier = 2 / (period + 1)

    result = np.full(len(closes), np.nan)
    value = np.mean(tr[:period])
    result[1] = value

    for k in range(1, len(tr)):
        value = value + multiplier * (tr[k] - value)
        result[k + 1] = value

    return Series.from_array(result)


# =============================================================================
# TREND INDICATORS
# =============================================================================


def _wilder_sum(values: np.ndarray, period: int) -> np.ndarray:
    """Wilder smoothing seeded with the sum of the first window."""
    result = np.empty(len(values) - period + 1)
    result[0] = np.sum(values[:period])
    for k in range(1, len(result)):
        result[k] = result[k - 1] - (result[k - 1] / period) + values[period - 1 + k]
    return result


def directional_movement(
    highs: ArrayLike, lows: ArrayLike
) -> tuple[np.ndarray, np.ndarray]:
    """
    +DM and -DM for candles 1..n-1.

    At most one of the two is non-zero per step; ties give zero for both.
    """
    highs, lows = _as_array(highs), _as_array(lows)
    up_move = highs[1:] - highs[:-1]
    down_move = lows[:-1] - lows[1:]

    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)
    return plus_dm, minus_dm


def adx(
    highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 14
) -> ADXResult:
    """
    Average Directional Index.

    +DI/-DI are defined from index `period`, ADX from `2 * period - 1`.
    """
    _check_period(period)
    closes = _as_array(closes)
    n = len(closes)
    _require(f"ADX({period})", 2 * period, n)

    plus_dm, minus_dm = directional_movement(highs, lows)
    tr = true_range(highs, lows, closes)

    smoothed_plus_dm = _wilder_sum(plus_dm, period)
    smoothed_minus_dm = _wilder_sum(minus_dm, period)
    smoothed_tr = _wilder_sum(tr, period)

    with np.errstate(divide="ignore", invalid="ignore"):
        plus_di = np.where(smoothed_tr != 0, 100 * smoothed_plus_dm / smoothed_tr, 0.0)
        minus_di = np.where(smoothed_tr != 0, 100 * smoothed_minus_dm / smoothed_tr, 0.0)

        di_sum = plus_di + minus_di
        dx = np.where(di_sum != 0, 100 * np.abs(plus_di - minus_di) / di_sum, 0.0)

    adx_values = _ema_array(dx, period)

    # Smoothed window k ends at candle `period + k`
    plus_full = np.full(n, np.nan)
    minus_full = np.full(n, np.nan)
    adx_full = np.full(n, np.nan)
    plus_full[period:] = plus_di
    minus_full[period:] = minus_di
    adx_full[period:] = adx_values

    return ADXResult(
        adx=Series.from_array(adx_full),
        plus_di=Series.from_array(plus_full),
        minus_di=Series.from_array(minus_full),
    )
