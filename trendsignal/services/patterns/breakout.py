"""
Breakout Detection

Early "breakout imminent" signals from four independent detectors:
- Volatility squeeze: Bollinger bandwidth far below its recent average
- Volume anomaly: spikes, rising volume, accumulation at a stable price
- Consolidation: price held inside a narrow range
- Active breakout: the close already beyond the prior range

Like the other detectors this never raises for short history; a detector
without enough candles reports None.
"""

from collections.abc import Sequence
from typing import Optional

import numpy as np

from trendsignal.schemas.market import Candle
from trendsignal.schemas.patterns import (
    ActiveBreakout,
    BreakoutAnalysis,
    BreakoutDirection,
    BreakoutLevels,
    BreakoutProbability,
    BreakoutSignal,
    BreakoutSignalType,
    BreakoutStatus,
    Consolidation,
    PatternSignal,
    VolatilitySqueeze,
    VolumeAnomaly,
    VolumeTrend,
)
from trendsignal.services.indicators.calculations import OHLCVData, atr, bollinger_bands

MIN_CANDLES = 50
ATR_PERIOD = 14

SQUEEZE_WEIGHT = 0.35
VOLUME_WEIGHT = 0.25
CONSOLIDATION_WEIGHT = 0.25
ACTIVE_BREAKOUT_BONUS = 20
COMBINATION_BONUS = 10  # Per signal beyond the first, up to two

HIGH_PROBABILITY_SCORE = 70
MEDIUM_PROBABILITY_SCORE = 50

# Candles at the end of the history that may be the breakout itself
BREAKOUT_CANDLES = 3


# =============================================================================
# DETECTORS
# =============================================================================


def detect_volatility_squeeze(
    candles: Sequence[Candle],
    period: int = 20,
    std_dev: float = 2.0,
    lookback: int = 50,
    threshold: float = 0.6,
) -> Optional[VolatilitySqueeze]:
    """
    Bollinger bandwidth against its average over the last `lookback` bands.

    A squeeze is a current bandwidth under `threshold` times that average.
    The score grows as the ratio falls: 0 at 1.0, 100 at a third of it.
    """
    if len(candles) < period + lookback - 1:
        return None

    closes = np.array([c.close for c in candles], dtype=float)
    bands = bollinger_bands(closes, period, std_dev)
    upper = bands.upper.to_array()[period - 1 :]
    lower = bands.lower.to_array()[period - 1 :]
    middle = bands.middle.to_array()[period - 1 :]

    bandwidth = (upper - lower) / middle * 100
    current = float(bandwidth[-1])
    average = float(bandwidth[-lookback:].mean())

    if average > 0:
        ratio = current / average
        below = bandwidth / average < threshold
        # Trailing run of bands under the threshold
        duration = int(np.argmin(below[::-1])) if not below.all() else len(below)
    else:
        ratio, duration = 1.0, 0

    score = round(max(0.0, min(100.0, (1 - ratio) * 150)))
    detected = ratio < threshold

    width = upper[-1] - lower[-1]
    percent_b = float((closes[-1] - lower[-1]) / width) if width > 0 else 0.5
    if percent_b > 0.5:
        direction = PatternSignal.BULLISH
    elif percent_b < 0.5:
        direction = PatternSignal.BEARISH
    else:
        direction = PatternSignal.NEUTRAL

    if detected:
        message = (
            f"Volatility squeeze: bandwidth at {ratio * 100:.0f}% of average, "
            "breakout likely"
        )
    else:
        message = f"No squeeze (bandwidth at {ratio * 100:.0f}% of average)"

    return VolatilitySqueeze(
        detected=detected,
        score=score,
        bandwidth=round(current, 2),
        average_bandwidth=round(average, 2),
        bandwidth_ratio=round(ratio, 2),
        duration=duration,
        percent_b=round(percent_b, 2),
        direction=direction,
        message=message,
    )


def detect_volume_anomaly(
    candles: Sequence[Candle],
    lookback: int = 20,
    spike_threshold: float = 2.0,
    accumulation_period: int = 10,
    stable_percent: float = 3.0,
) -> Optional[VolumeAnomaly]:
    """
    Volume spikes, a rising volume trend and accumulation.

    Accumulation is heavier volume in the second half of the last
    `accumulation_period` candles while the close moved less than
    `stable_percent`.
    """
    if len(candles) < lookback + accumulation_period:
        return None

    volumes = np.array([c.volume for c in candles[-lookback:]], dtype=float)
    average = float(volumes.mean())
    current = candles[-1].volume
    ratio = current / average if average > 0 else 0.0
    spike = ratio >= spike_threshold

    half = lookback // 2
    first_half, second_half = volumes[:half].sum(), volumes[half:].sum()
    if second_half > first_half * 1.2:
        trend = VolumeTrend.RISING
    elif second_half < first_half * 0.8:
        trend = VolumeTrend.FALLING
    else:
        trend = VolumeTrend.STABLE

    window = candles[-accumulation_period:]
    price_change = abs((window[-1].close - window[0].close) / window[0].close * 100)
    split = accumulation_period // 2
    early = sum(c.volume for c in window[:split])
    late = sum(c.volume for c in window[split:])
    accumulating = price_change < stable_percent and late > early * 1.3

    score = 0
    if ratio >= 1.5:
        score += 30
    if ratio >= 2.0:
        score += 20
    if trend == VolumeTrend.RISING:
        score += 25
    if accumulating:
        score += 25
    score = min(100, score)

    if accumulating:
        message = "Accumulation: volume rising while price holds steady"
    elif spike:
        message = f"Volume spike at {ratio * 100:.0f}% of average"
    elif trend == VolumeTrend.RISING:
        message = "Rising volume, interest is growing"
    else:
        message = "Normal volume"

    return VolumeAnomaly(
        detected=score >= 50 or spike,
        score=score,
        current_volume=current,
        average_volume=round(average, 2),
        volume_ratio=round(ratio, 2),
        spike=spike,
        trend=trend,
        accumulating=accumulating,
        message=message,
    )


def detect_consolidation(
    candles: Sequence[Candle],
    period: int = 20,
    range_threshold: float = 5.0,
    min_duration: int = 10,
    max_duration: int = 50,
) -> Optional[Consolidation]:
    """
    High/low range of the last `period` candles.

    Duration counts back from the last candle while every candle stays
    within 1% of that range, up to `max_duration` candles.
    """
    if len(candles) < period:
        return None

    recent = candles[-period:]
    range_high = max(c.high for c in recent)
    range_low = min(c.low for c in recent)
    close = candles[-1].close

    range_percent = (range_high - range_low) / range_low * 100
    consolidating = range_percent < range_threshold

    duration = 0
    for candle in reversed(candles[-max_duration:]):
        if candle.high > range_high * 1.01 or candle.low < range_low * 0.99:
            break
        duration += 1

    width = range_high - range_low
    position = (close - range_low) / width if width > 0 else 0.5
    near_top, near_bottom = position > 0.8, position < 0.2

    score = 0
    if consolidating:
        score += 40
    if duration >= min_duration:
        score += 30
    if near_top or near_bottom:
        score += 30

    if near_top:
        direction = BreakoutDirection.UP
    elif near_bottom:
        direction = BreakoutDirection.DOWN
    else:
        direction = BreakoutDirection.UNKNOWN

    detected = consolidating and duration >= min_duration
    if detected:
        edge = {
            BreakoutDirection.UP: "price at the top edge, upside break possible",
            BreakoutDirection.DOWN: "price at the bottom edge",
            BreakoutDirection.UNKNOWN: "waiting for a break",
        }[direction]
        message = (
            f"Consolidating for {duration} candles in a "
            f"{range_percent:.1f}% range, {edge}"
        )
    else:
        message = f"No clear consolidation (range {range_percent:.1f}%)"

    return Consolidation(
        detected=detected,
        score=min(100, score),
        range_high=range_high,
        range_low=range_low,
        range_percent=round(range_percent, 2),
        duration=duration,
        position=round(position, 2),
        near_top=near_top,
        near_bottom=near_bottom,
        direction=direction,
        message=message,
    )


def detect_active_breakout(
    candles: Sequence[Candle],
    lookback: int = 20,
    threshold_percent: float = 1.5,
    volume_confirmation: float = 1.5,
) -> Optional[ActiveBreakout]:
    """
    Whether the last close already broke the range.

    The range is the `lookback` candles before the last three. A break is
    confirmed when the last candle's volume is at least
    `volume_confirmation` times the range average.
    """
    if len(candles) < lookback + 5:
        return None

    range_candles = candles[-lookback - BREAKOUT_CANDLES : -BREAKOUT_CANDLES]
    range_high = max(c.high for c in range_candles)
    range_low = min(c.low for c in range_candles)
    close = candles[-1].close

    average_volume = sum(c.volume for c in range_candles) / len(range_candles)
    ratio = candles[-1].volume / average_volume if average_volume > 0 else 0.0
    confirmed = ratio >= volume_confirmation

    direction: Optional[BreakoutDirection] = None
    distance = 0.0
    percent = 0.0
    if close > range_high * (1 + threshold_percent / 100):
        direction = BreakoutDirection.UP
        distance = close - range_high
        percent = distance / range_high * 100
    elif close < range_low * (1 - threshold_percent / 100):
        direction = BreakoutDirection.DOWN
        distance = range_low - close
        percent = distance / range_low * 100

    if direction is None:
        return ActiveBreakout(
            detected=False,
            status=BreakoutStatus.NONE,
            strength=0,
            range_high=range_high,
            range_low=range_low,
            volume_ratio=round(ratio, 2),
            volume_confirmed=confirmed,
            message="No active breakout",
        )

    data = OHLCVData.from_candles(candles)
    atr_value = atr(data.highs, data.lows, data.closes, ATR_PERIOD).last()
    strength = min(100, percent * 20 + (40 if confirmed else 0))

    label = "Breakout" if direction == BreakoutDirection.UP else "Breakdown"
    side = "above" if direction == BreakoutDirection.UP else "below"
    if confirmed:
        status = BreakoutStatus.CONFIRMED
        message = (
            f"{label} confirmed: {percent:.2f}% {side} the range "
            f"on {ratio * 100:.0f}% volume"
        )
    else:
        status = BreakoutStatus.UNCONFIRMED
        message = (
            f"{label} {percent:.2f}% {side} the range, "
            f"volume still weak ({ratio * 100:.0f}%)"
        )

    return ActiveBreakout(
        detected=True,
        status=status,
        direction=direction,
        strength=round(strength),
        range_high=range_high,
        range_low=range_low,
        breakout_percent=round(percent, 2),
        volume_ratio=round(ratio, 2),
        volume_confirmed=confirmed,
        atr_multiple=round(distance / atr_value, 2) if atr_value else None,
        message=message,
    )


# =============================================================================
# COMPOSITE
# =============================================================================


_SQUEEZE_DIRECTION = {
    PatternSignal.BULLISH: BreakoutDirection.UP,
    PatternSignal.BEARISH: BreakoutDirection.DOWN,
}


def _probability(score: int) -> BreakoutProbability:
    if score >= HIGH_PROBABILITY_SCORE:
        return BreakoutProbability.HIGH
    if score >= MEDIUM_PROBABILITY_SCORE:
        return BreakoutProbability.MEDIUM
    return BreakoutProbability.LOW


def _likely_direction(
    squeeze: Optional[VolatilitySqueeze],
    consolidation: Optional[Consolidation],
    active: Optional[ActiveBreakout],
) -> BreakoutDirection:
    if active is not None and active.direction is not None:
        return active.direction
    if (squeeze and squeeze.direction == PatternSignal.BULLISH) or (
        consolidation and consolidation.near_top
    ):
        return BreakoutDirection.UP
    if (squeeze and squeeze.direction == PatternSignal.BEARISH) or (
        consolidation and consolidation.near_bottom
    ):
        return BreakoutDirection.DOWN
    return BreakoutDirection.UNKNOWN


def _summary(
    score: int,
    signal_count: int,
    direction: BreakoutDirection,
    active: Optional[ActiveBreakout],
) -> str:
    if active is not None and active.status == BreakoutStatus.CONFIRMED:
        side = "upside" if active.direction == BreakoutDirection.UP else "downside"
        return f"Active {side} breakout with volume confirmation"
    if score >= HIGH_PROBABILITY_SCORE:
        return (
            f"Breakout imminent: {signal_count} signals, "
            f"likely direction {direction.value}"
        )
    if score >= MEDIUM_PROBABILITY_SCORE:
        return f"Breakout possible: {signal_count} signal(s) active, watch closely"
    return "No breakout setup detected"


def analyze_breakout(candles: Sequence[Candle]) -> BreakoutAnalysis:
    """
    Combine the four detectors into one 0-100 breakout score.

    Detected squeeze, volume and consolidation signals add their scores at
    weights 0.35/0.25/0.25. An active breakout lifts the score to at least
    its strength plus 20 and is listed first. Two or more signals add 10,
    three or more another 10.
    """
    if len(candles) < MIN_CANDLES:
        return BreakoutAnalysis(
            score=0,
            probability=BreakoutProbability.LOW,
            likely_direction=BreakoutDirection.UNKNOWN,
            summary="Not enough data for breakout analysis",
            candles_analyzed=len(candles),
        )

    squeeze = detect_volatility_squeeze(candles)
    volume = detect_volume_anomaly(candles)
    consolidation = detect_consolidation(candles)
    active = detect_active_breakout(candles)

    score = 0.0
    signals: list[BreakoutSignal] = []

    if squeeze and squeeze.detected:
        score += squeeze.score * SQUEEZE_WEIGHT
        signals.append(
            BreakoutSignal(
                type=BreakoutSignalType.SQUEEZE,
                score=squeeze.score,
                message=squeeze.message,
                direction=_SQUEEZE_DIRECTION.get(
                    squeeze.direction, BreakoutDirection.UNKNOWN
                ),
            )
        )
    if volume and volume.detected:
        score += volume.score * VOLUME_WEIGHT
        signals.append(
            BreakoutSignal(
                type=BreakoutSignalType.VOLUME, score=volume.score, message=volume.message
            )
        )
    if consolidation and consolidation.detected:
        score += consolidation.score * CONSOLIDATION_WEIGHT
        signals.append(
            BreakoutSignal(
                type=BreakoutSignalType.CONSOLIDATION,
                score=consolidation.score,
                message=consolidation.message,
                direction=consolidation.direction,
            )
        )
    if active and active.detected:
        score = max(score, active.strength + ACTIVE_BREAKOUT_BONUS)
        signals.insert(
            0,
            BreakoutSignal(
                type=BreakoutSignalType.ACTIVE_BREAKOUT,
                score=active.strength,
                message=active.message,
                direction=active.direction,
                confirmed=active.status == BreakoutStatus.CONFIRMED,
            ),
        )

    if len(signals) >= 2:
        score += COMBINATION_BONUS
    if len(signals) >= 3:
        score += COMBINATION_BONUS
    final_score = min(100, round(score))

    direction = _likely_direction(squeeze, consolidation, active)
    data = OHLCVData.from_candles(candles)
    atr_value = atr(data.highs, data.lows, data.closes, ATR_PERIOD).last()

    return BreakoutAnalysis(
        score=final_score,
        probability=_probability(final_score),
        likely_direction=direction,
        summary=_summary(final_score, len(signals), direction, active),
        signals=tuple(signals),
        squeeze=squeeze,
        volume=volume,
        consolidation=consolidation,
        active_breakout=active,
        levels=BreakoutLevels(
            resistance=consolidation.range_high,
            support=consolidation.range_low,
            current_price=candles[-1].close,
            atr=atr_value,
        ),
        candles_analyzed=len(candles),
    )
