"""
Divergence Detection

Price vs indicator divergences (RSI, MACD histogram).

- Bullish: price makes a lower low, indicator a higher low
- Bearish: price makes a higher high, indicator a lower high
- Hidden bullish: price higher low, indicator lower low (trend continuation)
- Hidden bearish: price lower high, indicator higher high (trend continuation)
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from trendsignal.schemas.market import Candle
from trendsignal.schemas.patterns import (
    CombinedDivergence,
    Divergence,
    DivergenceAnalysis,
    DivergenceDetection,
    DivergencePoint,
    DivergenceSummary,
    DivergenceType,
    PatternSignal,
)
from trendsignal.services.indicators.models import IndicatorSet, unwrap

LOOKBACK = 50
PIVOT_WINDOW = 3
RSI_INDEX_TOLERANCE = 3
MACD_INDEX_TOLERANCE = 5
MAX_CANDLES_AGO = 10
RECENT_PIVOTS = 3
CONFIRMATION_BONUS = 15


@dataclass(frozen=True)
class ValuePivot:
    index: int
    value: float


def find_value_pivots(
    values: Sequence[Optional[float]], window: int = 5
) -> tuple[list[ValuePivot], list[ValuePivot]]:
    """
    Local highs and lows of a plain value sequence.

    Missing values are never pivots and are ignored as neighbors.
    """
    highs: list[ValuePivot] = []
    lows: list[ValuePivot] = []

    if len(values) < window * 2 + 1:
        return highs, lows

    for i in range(window, len(values) - window):
        current = values[i]
        if current is None:
            continue

        neighbors = [
            values[j]
            for j in range(i - window, i + window + 1)
            if j != i and values[j] is not None
        ]
        if all(v < current for v in neighbors):
            highs.append(ValuePivot(i, current))
        if all(v > current for v in neighbors):
            lows.append(ValuePivot(i, current))

    return highs, lows


def divergence_strength(
    prev_price: float, curr_price: float, prev_ind: float, curr_ind: float
) -> float:
    price_change = abs((curr_price - prev_price) / prev_price)
    indicator_change = abs((curr_ind - prev_ind) / (abs(prev_ind) or 1))
    return min(100.0, max(0.0, (price_change + indicator_change) * 500))


# Description and signal text per divergence type
_RULES = {
    DivergenceType.BULLISH: (
        "Price makes a lower low, {name} makes a higher low",
        "Possible reversal upwards",
    ),
    DivergenceType.HIDDEN_BULLISH: (
        "Price makes a higher low, {name} makes a lower low",
        "Uptrend may continue",
    ),
    DivergenceType.BEARISH: (
        "Price makes a higher high, {name} makes a lower high",
        "Possible reversal downwards",
    ),
    DivergenceType.HIDDEN_BEARISH: (
        "Price makes a lower high, {name} makes a higher high",
        "Downtrend may continue",
    ),
}


def _nearest(pivots: list[ValuePivot], index: int, tolerance: int) -> Optional[ValuePivot]:
    return next((p for p in pivots if abs(p.index - index) <= tolerance), None)


def _match_pairs(
    price_pivots: list[ValuePivot],
    indicator_pivots: list[ValuePivot],
    tolerance: int,
):
    """Yield (prev_price, curr_price, prev_ind, curr_ind) for consecutive price pivots."""
    if len(price_pivots) < 2 or len(indicator_pivots) < 2:
        return

    prices = price_pivots[-RECENT_PIVOTS:]
    indicators = indicator_pivots[-RECENT_PIVOTS:]

    for prev, curr in zip(prices, prices[1:]):
        prev_ind = _nearest(indicators, prev.index, tolerance)
        curr_ind = _nearest(indicators, curr.index, tolerance)
        if prev_ind is not None and curr_ind is not None:
            yield prev, curr, prev_ind, curr_ind


def _detect(
    candles: Sequence[Candle],
    values: Sequence[Optional[float]],
    name: str,
    tolerance: int,
    include_hidden: bool,
    lookback: int,
) -> DivergenceDetection:
    if len(candles) < lookback:
        return DivergenceDetection()

    start = max(0, len(candles) - lookback)
    recent = candles[start:]
    prices = [c.close for c in recent]
    recent_values = list(values[start:])

    price_highs, price_lows = find_value_pivots(prices, PIVOT_WINDOW)
    ind_highs, ind_lows = find_value_pivots(recent_values, PIVOT_WINDOW)

    divergences: list[Divergence] = []

    def add(kind: DivergenceType, prev, curr, prev_ind, curr_ind) -> None:
        description, signal = _RULES[kind]
        divergences.append(
            Divergence(
                type=kind,
                indicator=name,
                strength=divergence_strength(
                    prev.value, curr.value, prev_ind.value, curr_ind.value
                ),
                description=description.format(name=name),
                signal=signal,
                price_points=[
                    DivergencePoint(index=start + p.index, value=p.value) for p in (prev, curr)
                ],
                indicator_points=[
                    DivergencePoint(index=start + p.index, value=p.value)
                    for p in (prev_ind, curr_ind)
                ],
                candles_ago=len(recent) - curr.index,
            )
        )

    for prev, curr, prev_ind, curr_ind in _match_pairs(price_lows, ind_lows, tolerance):
        if curr.value < prev.value and curr_ind.value > prev_ind.value:
            add(DivergenceType.BULLISH, prev, curr, prev_ind, curr_ind)
        if include_hidden and curr.value > prev.value and curr_ind.value < prev_ind.value:
            add(DivergenceType.HIDDEN_BULLISH, prev, curr, prev_ind, curr_ind)

    for prev, curr, prev_ind, curr_ind in _match_pairs(price_highs, ind_highs, tolerance):
        if curr.value > prev.value and curr_ind.value < prev_ind.value:
            add(DivergenceType.BEARISH, prev, curr, prev_ind, curr_ind)
        if include_hidden and curr.value < prev.value and curr_ind.value > prev_ind.value:
            add(DivergenceType.HIDDEN_BEARISH, prev, curr, prev_ind, curr_ind)

    recent_divergences = sorted(
        (d for d in divergences if d.candles_ago <= MAX_CANDLES_AGO),
        key=lambda d: d.strength,
        reverse=True,
    )

    return DivergenceDetection(
        found=bool(recent_divergences),
        divergences=recent_divergences,
        summary=summarize_divergences(recent_divergences),
    )


def detect_rsi_divergence(
    candles: Sequence[Candle],
    rsi_values: Sequence[Optional[float]],
    lookback: int = LOOKBACK,
) -> DivergenceDetection:
    """Regular and hidden divergences between close and RSI."""
    return _detect(candles, rsi_values, "RSI", RSI_INDEX_TOLERANCE, True, lookback)


def detect_macd_divergence(
    candles: Sequence[Candle],
    histogram: Sequence[Optional[float]],
    lookback: int = LOOKBACK,
) -> DivergenceDetection:
    """Regular divergences between close and the MACD histogram."""
    return _detect(candles, histogram, "MACD", MACD_INDEX_TOLERANCE, False, lookback)


def summarize_divergences(divergences: list[Divergence]) -> DivergenceSummary:
    if not divergences:
        return DivergenceSummary()

    bullish = [d for d in divergences if d.type.is_bullish]
    bearish = [d for d in divergences if not d.type.is_bullish]
    strongest = divergences[0]

    if len(bullish) > len(bearish):
        signal = PatternSignal.BULLISH
        message = f"{len(bullish)} bullish divergence(s) detected - possible reversal upwards"
    elif len(bearish) > len(bullish):
        signal = PatternSignal.BEARISH
        message = f"{len(bearish)} bearish divergence(s) detected - possible reversal downwards"
    else:
        signal = PatternSignal.BULLISH if strongest.type.is_bullish else PatternSignal.BEARISH
        message = f"Mixed divergences - strongest: {strongest.type.value}"

    return DivergenceSummary(
        has_divergence=True,
        primary_signal=signal,
        message=message,
        strongest=strongest,
        bullish_count=len(bullish),
        bearish_count=len(bearish),
    )


def analyze_divergences(
    candles: Sequence[Candle], indicators: IndicatorSet
) -> DivergenceAnalysis:
    """
    Combine RSI and MACD divergences into one signal and a 0-100 score.

    Agreement between RSI and MACD on a regular divergence adds a
    confirmation bonus in that direction.
    """
    rsi_series = unwrap(indicators.rsi)
    macd_result = unwrap(indicators.macd)

    rsi_div = (
        detect_rsi_divergence(candles, rsi_series)
        if rsi_series is not None
        else DivergenceDetection()
    )
    macd_div = (
        detect_macd_divergence(candles, macd_result.histogram)
        if macd_result is not None
        else DivergenceDetection()
    )

    all_divergences = rsi_div.divergences + macd_div.divergences

    signal = PatternSignal.NEUTRAL
    score = 50.0
    message = "No divergence detected"

    if all_divergences:
        bullish = [d for d in all_divergences if d.type.is_bullish]
        bearish = [d for d in all_divergences if not d.type.is_bullish]
        bullish_score = sum(d.strength for d in bullish)
        bearish_score = sum(d.strength for d in bearish)

        if bullish_score > bearish_score:
            signal = PatternSignal.BULLISH
            score = min(100.0, 50 + bullish_score / 2)
            if any(d.type == DivergenceType.BULLISH for d in bullish):
                message = "Bullish divergence detected - possible reversal upwards"
            else:
                message = "Hidden bullish divergence - uptrend may continue"
        elif bearish_score > bullish_score:
            signal = PatternSignal.BEARISH
            score = max(0.0, 50 - bearish_score / 2)
            if any(d.type == DivergenceType.BEARISH for d in bearish):
                message = "Bearish divergence detected - possible reversal downwards"
            else:
                message = "Hidden bearish divergence - downtrend may continue"

    def has(detection: DivergenceDetection, kind: DivergenceType) -> bool:
        return any(d.type == kind for d in detection.divergences)

    confirmation = False
    if has(rsi_div, DivergenceType.BULLISH) and has(macd_div, DivergenceType.BULLISH):
        confirmation = True
        message = "Strong signal: RSI and MACD both show bullish divergence"
        score = min(100.0, score + CONFIRMATION_BONUS)
    elif has(rsi_div, DivergenceType.BEARISH) and has(macd_div, DivergenceType.BEARISH):
        confirmation = True
        message = "Strong signal: RSI and MACD both show bearish divergence"
        score = max(0.0, score - CONFIRMATION_BONUS)

    return DivergenceAnalysis(
        rsi=rsi_div,
        macd=macd_div,
        combined=CombinedDivergence(
            has_divergence=bool(all_divergences),
            signal=signal,
            score=round(score),
            message=message,
            confirmation=confirmation,
            total_divergences=len(all_divergences),
        ),
    )
