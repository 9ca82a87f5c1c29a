"""Candle builders shared by the test modules."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from trendsignal.schemas.market import Candle
from trendsignal.services.indicators.models import IndicatorSet, Unavailable

START = datetime(2026, 1, 1, tzinfo=timezone.utc)
FIXED_END = datetime(2026, 10, 1, tzinfo=timezone.utc)


def make_candles(
    closes: list[float],
    spread: Optional[float] = None,
    volumes: Optional[list[float]] = None,
    step: timedelta = timedelta(hours=1),
) -> list[Candle]:
    """
    Candles from a close path.

    With `spread`, high/low sit `spread` above/below the close. Without it,
    open is the previous close and high/low are the candle body.
    """
    candles = []
    for i, close in enumerate(closes):
        if spread is not None:
            open_, high, low = close, close + spread, close - spread
        else:
            open_ = closes[i - 1] if i > 0 else close
            high, low = max(open_, close), min(open_, close)
        candles.append(
            Candle(
                timestamp=START + step * i,
                open=open_,
                high=high,
                low=low,
                close=close,
                volume=volumes[i] if volumes else 1000.0,
            )
        )
    return candles


def trend_closes(n: int, rate: float, start: float = 100.0) -> list[float]:
    return [start * rate**i for i in range(n)]


def indicator_set(**overrides) -> IndicatorSet:
    """IndicatorSet with every indicator Unavailable unless overridden."""
    names = (
        "sma20", "sma50", "sma200", "ema12", "ema26", "ema50", "ema200",
        "rsi", "macd", "bollinger", "atr", "adx",
    )
    fields = {
        name: Unavailable(name=name, reason="not supplied", required=1, supplied=0)
        for name in names
    }
    fields.update(overrides)
    return IndicatorSet(**fields)


def double_bottom_closes(confirmed: bool = True) -> list[float]:
    """
    120 closes with lows of 95 at 70 and 90 and a peak of 105 at 80.

    The tail either rallies through the neckline or stalls at 100.
    """
    closes = [100.0] * 66
    closes += [99.0, 98.0, 97.0, 96.0, 95.0]  # 66..70
    closes += [96.0 + k for k in range(10)]  # 71..80, peak 105
    closes += [104.0 - k for k in range(10)]  # 81..90, low 95
    if confirmed:
        closes += [96.0 + k for k in range(29)]  # 91..119, ends at 124
    else:
        closes += [96.0, 97.0, 98.0, 99.0] + [100.0] * 25
    return closes

