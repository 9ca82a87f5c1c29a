"""
Directional Sub-Scores

Each analysis returns 0-100 centered on the configured neutral score
(50 by default). Missing input short-circuits to neutral so an
unavailable indicator dilutes the composite instead of blocking it.
"""

import math
from collections.abc import Sequence
from typing import Optional

from trendsignal.schemas.market import Candle, Timeframe
from trendsignal.schemas.recommendation import (
    ChangeTier,
    ScoreBreakdown,
    ScoreWeights,
    ScoringConfig,
    VolumeAnalysis,
)
from trendsignal.services.indicators.calculations import (
    ADXResult,
    BollingerResult,
    MACDResult,
)
from trendsignal.services.indicators.series import Series

RSI_MIDLINE = 50.0


def clamp(score: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, score))


# =============================================================================
# INDICATOR SCORES
# =============================================================================


def macd_score(
    macd: Optional[MACDResult], config: Optional[ScoringConfig] = None
) -> float:
    """Histogram sign and momentum, MACD vs signal, MACD vs zero."""
    config = config or ScoringConfig()
    points = config.points
    if macd is None:
        return config.neutral

    last = macd.histogram.last_index()
    if last is None:
        return config.neutral

    histogram = macd.histogram[last]
    line = macd.macd_line[last]
    signal = macd.signal_line[last]
    previous = macd.histogram[last - 1] if last > 0 else None

    score = config.neutral

    if histogram > 0:
        score += points.macd_histogram
        if previous is not None and histogram > previous:
            score += points.macd_momentum
    elif histogram < 0:
        score -= points.macd_histogram
        if previous is not None and histogram < previous:
            score -= points.macd_momentum

    if line > signal:
        score += points.macd_signal
    elif line < signal:
        score -= points.macd_signal

    score += points.macd_zero_line if line > 0 else -points.macd_zero_line

    return clamp(score)


def _cross_points(
    fast: Series, slow: Series, points: float, fresh_points: float
) -> float:
    """Points for fast vs slow ordering, plus a bonus if it just flipped."""
    fast_index, slow_index = fast.last_index(), slow.last_index()
    fast_value, slow_value = fast[fast_index], slow[slow_index]

    prev_fast = fast[fast_index - 1] if fast_index > 0 else None
    prev_slow = slow[slow_index - 1] if slow_index > 0 else None
    has_previous = prev_fast is not None and prev_slow is not None

    if fast_value > slow_value:
        if has_previous and prev_fast <= prev_slow:
            return points + fresh_points
        return points

    if has_previous and prev_fast >= prev_slow:
        return -(points + fresh_points)
    return -points


def ema_cross_score(
    ema12: Optional[Series],
    ema26: Optional[Series],
    ema50: Optional[Series],
    ema200: Optional[Series],
    config: Optional[ScoringConfig] = None,
) -> float:
    """Short (12/26) and long (50/200) crosses plus full-stack alignment."""
    config = config or ScoringConfig()
    points = config.points
    series = (ema12, ema26, ema50, ema200)
    if any(s is None or s.last_index() is None for s in series):
        return config.neutral

    score = config.neutral
    score += _cross_points(ema12, ema26, points.short_cross, points.short_fresh_cross)
    score += _cross_points(ema50, ema200, points.long_cross, points.long_fresh_cross)

    v12, v26, v50, v200 = (s.last() for s in series)
    if v12 > v26 > v50 > v200:
        score += points.alignment
    elif v12 < v26 < v50 < v200:
        score -= points.alignment

    return clamp(score)


def adx_score(adx: Optional[ADXResult], config: ScoringConfig) -> float:
    """Trend strength signed by the dominant directional index."""
    neutral = config.neutral
    if adx is None:
        return neutral

    value = adx.adx.last()
    if value is None or value < config.adx_trend:
        return neutral

    plus_di, minus_di = adx.plus_di.last(), adx.minus_di.last()
    score = neutral

    if plus_di is not None and minus_di is not None:
        if plus_di > minus_di:
            score = neutral + value / 2
        elif minus_di > plus_di:
            score = neutral - value / 2
    elif value > config.adx_strong_trend:
        score = config.adx_without_di_score

    return clamp(score)


def rsi_score(rsi: Optional[Series], config: ScoringConfig) -> float:
    """Piecewise linear: oversold is bullish, overbought bearish."""
    value = rsi.last() if rsi is not None else None
    if value is None:
        return config.neutral

    overbought, oversold = config.rsi_overbought, config.rsi_oversold
    extreme, normal = config.points.rsi_extreme, config.points.rsi_normal
    score = config.neutral

    if value > overbought:
        score -= extreme * (value - overbought) / (100 - overbought)
    elif value < oversold:
        score += extreme * (oversold - value) / oversold
    elif value < RSI_MIDLINE:
        score += normal * (RSI_MIDLINE - value) / (RSI_MIDLINE - oversold)
    else:
        score -= normal * (value - RSI_MIDLINE) / (overbought - RSI_MIDLINE)

    return clamp(score)


def band_position(bollinger: BollingerResult, close: float) -> Optional[float]:
    """(close - lower) / (upper - lower), None when undefined or zero width."""
    upper, lower = bollinger.upper.last(), bollinger.lower.last()
    if upper is None or lower is None:
        return None
    width = upper - lower
    if width == 0:
        return None
    return (close - lower) / width


def bollinger_score(
    bollinger: Optional[BollingerResult], close: float, config: ScoringConfig
) -> float:
    if bollinger is None or bollinger.middle.last() is None:
        return config.neutral

    position = band_position(bollinger, close)
    if position is None:
        return config.neutral

    points = config.points.bollinger
    score = config.neutral
    if position > config.bollinger_upper_extreme:
        score -= points
    elif position < config.bollinger_lower_extreme:
        score += points
    elif position < 0.5:
        score += points * (1 - position / 0.5)
    else:
        score -= points * (position - 0.5) / 0.5

    return clamp(score)


# =============================================================================
# LONG-TERM TREND
# =============================================================================


def candles_per_day(
    candle_count: int, config: ScoringConfig, timeframe: Optional[Timeframe] = None
) -> float:
    """Candle density, from the timeframe when known, else from history length."""
    if timeframe is not None:
        return timeframe.candles_per_day
    return candle_count / config.assumed_history_days


def _tier_points(change: float, config: ScoringConfig) -> float:
    if change > 0:
        tiers: Sequence[ChangeTier] = config.gain_tiers
        for tier in tiers:
            if change > tier.threshold:
                return tier.points
        return tiers[-1].points

    tiers = config.loss_tiers
    for tier in tiers:
        if change < tier.threshold:
            return tier.points
    return tiers[-1].points


def long_term_trend_score(
    candles: Sequence[Candle],
    config: ScoringConfig,
    timeframe: Optional[Timeframe] = None,
) -> float:
    """
    Percent change over multi-day windows, losses weighted harder than gains.

    Adds a flat penalty when every window is down (bonus when every window
    is up) and a further penalty when the close sits far below the
    high of the longest window.
    """
    n = len(candles)
    if n < config.trend_min_candles:
        return config.neutral

    current = candles[-1].close
    density = candles_per_day(n, config, timeframe)
    score = config.neutral
    changes: list[float] = []

    for window in config.trend_windows:
        back = math.floor(window.days * density)
        if not 0 < back < n:
            continue
        past = candles[n - back - 1].close
        change = (current - past) / past * 100
        changes.append(change)
        score += _tier_points(change, config) * window.weight

    if len(changes) == len(config.trend_windows) and changes:
        threshold = config.consistent_trend_percent
        if all(c < -threshold for c in changes):
            score -= config.consistent_downtrend_penalty
        elif all(c > threshold for c in changes):
            score += config.consistent_uptrend_bonus

    high_window = math.floor(config.high_window_days * density)
    if n > high_window:
        recent_high = max([current] + [c.high for c in candles[n - high_window :]])
        distance = (current - recent_high) / recent_high * 100
        if distance < config.below_high_percent:
            score -= config.below_high_penalty

    return clamp(score)


# =============================================================================
# VOLUME
# =============================================================================


def volume_analysis(candles: Sequence[Candle], config: ScoringConfig) -> VolumeAnalysis:
    """Share of recent volume traded on up candles."""
    lookback = config.volume_lookback
    if len(candles) < lookback:
        return VolumeAnalysis(score=config.neutral)

    recent = candles[-lookback:]
    bullish = sum(c.volume for c in recent if c.close > c.open)
    total = sum(c.volume for c in recent)
    if total == 0:
        return VolumeAnalysis(score=config.neutral)

    ratio = bullish / total
    score = config.neutral
    if ratio > 0.6:
        score += config.points.volume * (ratio - 0.6) / 0.4
    elif ratio < 0.4:
        score -= config.points.volume * (0.4 - ratio) / 0.4

    return VolumeAnalysis(
        score=round(clamp(score), 1),
        bullish_ratio=round(ratio * 100),
        avg_volume=total / lookback,
    )


# =============================================================================
# COMPOSITE
# =============================================================================


def composite_score(breakdown: ScoreBreakdown, weights: ScoreWeights) -> float:
    """Weighted sum of the six directional sub-scores. Volume has no weight."""
    return (
        breakdown.long_term_trend * weights.long_term_trend
        + breakdown.macd * weights.macd
        + breakdown.ema_cross * weights.ema_cross
        + breakdown.adx * weights.adx
        + breakdown.rsi * weights.rsi
        + breakdown.bollinger * weights.bollinger
    )
