"""
Entry Quality, Overheat Warnings and Signal Classification

The directional score says where the trend points; these rules decide
whether now is a good moment to act on it.
"""

import math
from collections.abc import Sequence
from typing import Optional

from trendsignal.schemas.market import Candle, Timeframe
from trendsignal.schemas.recommendation import (
    OverheatWarning,
    Recommendation,
    ScoringConfig,
    Severity,
    SignalStatus,
    StopLoss,
    WarningTier,
)
from trendsignal.services.indicators.models import IndicatorSet, unwrap
from trendsignal.services.recommendation.scoring import band_position, clamp

WARNING_MESSAGES = {
    "RSI_EXTREME": "RSI at {value:.1f} - extremely overbought, high pullback risk",
    "RSI_OVERBOUGHT": "RSI at {value:.1f} - strongly overbought",
    "RSI_ELEVATED": "RSI at {value:.1f} - overbought",
    "ABOVE_BOLLINGER": "Price {value:.1f}% above the upper Bollinger band",
    "RAPID_MOVE_EXTREME": "+{value:.1f}% in 24h - extreme pullback risk",
    "RAPID_MOVE": "+{value:.1f}% in 24h - elevated pullback risk",
    "STRONG_MOVE": "+{value:.1f}% in 24h - strong move",
    "EXTENDED_FROM_EMA": "Price {value:.1f}% above EMA20 - strongly extended",
    "ABOVE_EMA": "Price {value:.1f}% above EMA20",
    "ADX_EXTREME": "ADX at {value:.1f} - trend may be exhausted",
}


def _last(series) -> Optional[float]:
    return series.last() if series is not None else None


def sma20_distance(indicators: IndicatorSet, close: float) -> Optional[float]:
    """Percent distance of the close above the 20-period average."""
    sma20 = _last(unwrap(indicators.sma20))
    if not sma20:
        return None
    return (close - sma20) / sma20 * 100


# =============================================================================
# ENTRY QUALITY
# =============================================================================


def entry_quality(
    indicators: IndicatorSet, candles: Sequence[Candle], config: ScoringConfig
) -> float:
    """
    How good an entry the current candle is, independent of trend direction.

    Ideal: a strong uptrend (ADX > 25, +DI > -DI) pulling back to RSI 40-55
    near the 20-period average on light volume.
    """
    score = config.neutral
    points = config.entry_points
    close = candles[-1].close

    rsi = _last(unwrap(indicators.rsi))
    adx_result = unwrap(indicators.adx)
    adx = _last(adx_result.adx) if adx_result else None
    plus_di = _last(adx_result.plus_di) if adx_result else None
    minus_di = _last(adx_result.minus_di) if adx_result else None
    has_di = plus_di is not None and minus_di is not None

    # RSI in the context of the trend
    if adx is not None and adx > config.adx_strong_trend and has_di:
        if plus_di > minus_di:
            if rsi is not None:
                if 40 <= rsi <= 55:
                    score += points.pullback_zone
                elif 55 < rsi <= 65:
                    score += points.acceptable_zone
                elif rsi > 75:
                    score += points.strongly_overbought
                elif rsi > config.rsi_overbought:
                    score += points.overbought
                elif rsi < 40:
                    score += points.oversold_in_uptrend
        elif minus_di > plus_di:
            score += points.downtrend
            if rsi is not None and rsi < config.rsi_oversold:
                score += points.bounce

    # Distance to the 20-period average
    distance = sma20_distance(indicators, close)
    if distance is not None:
        if 0 <= distance <= 2:
            score += points.sma_test
        elif 2 < distance <= 5:
            score += points.sma_near
        elif distance > 15:
            score += points.sma_strongly_extended
        elif distance > 10:
            score += points.sma_extended

    # Bollinger position
    bollinger = unwrap(indicators.bollinger)
    position = band_position(bollinger, close) if bollinger else None
    if position is not None:
        uptrend = (
            adx is not None and adx > config.adx_trend and has_di and plus_di > minus_di
        )
        if position > 0.9:
            score += points.upper_band
        elif position < 0.3 and uptrend:
            score += points.lower_band_uptrend
        elif 0.4 <= position <= 0.6:
            score += points.mid_band

    # Light volume on a pullback
    lookback = config.volume_lookback
    if len(candles) >= lookback and rsi is not None and rsi < 55:
        avg_volume = sum(c.volume for c in candles[-lookback:]) / lookback
        if candles[-1].volume < avg_volume * config.low_volume_ratio:
            score += points.low_volume_pullback

    return clamp(score)


# =============================================================================
# OVERHEAT WARNINGS
# =============================================================================


def _warning(tier: WarningTier, value: float) -> OverheatWarning:
    return OverheatWarning(
        type=tier.type,
        severity=tier.severity,
        value=round(value, 1),
        message=WARNING_MESSAGES[tier.type].format(value=value),
    )


def _first_tier(tiers: Sequence[WarningTier], value: float) -> Optional[WarningTier]:
    return next((t for t in tiers if value > t.threshold), None)


def move_window(
    config: ScoringConfig, timeframe: Optional[Timeframe] = None
) -> Optional[int]:
    """
    Offset from the end of the candle holding the reference close for the 24h move.

    Without a timeframe this is `move_window_candles` (candles[-24]); with
    one it is the candle exactly one day before the last. None when a
    single candle spans more than a day, since no close lies 24h back.
    """
    if timeframe is None:
        return config.move_window_candles
    if timeframe.candles_per_day < 1:
        return None
    return math.floor(timeframe.candles_per_day) + 1


def overheat_warnings(
    indicators: IndicatorSet,
    candles: Sequence[Candle],
    config: ScoringConfig,
    timeframe: Optional[Timeframe] = None,
) -> list[OverheatWarning]:
    warnings: list[OverheatWarning] = []
    close = candles[-1].close

    rsi = _last(unwrap(indicators.rsi))
    if rsi is not None:
        tier = _first_tier(config.rsi_warnings, rsi)
        if tier:
            warnings.append(_warning(tier, rsi))

    bollinger = unwrap(indicators.bollinger)
    upper = _last(bollinger.upper) if bollinger else None
    if upper and close > upper:
        above = WarningTier(threshold=0, type="ABOVE_BOLLINGER", severity=Severity.MEDIUM)
        warnings.append(_warning(above, (close - upper) / upper * 100))

    window = move_window(config, timeframe)
    if window is not None and len(candles) >= max(window, config.move_window_candles):
        past = candles[-window].close
        change = (close - past) / past * 100
        tier = _first_tier(config.move_warnings, change)
        if tier:
            warnings.append(_warning(tier, change))

    distance = sma20_distance(indicators, close)
    if distance is not None:
        tier = _first_tier(config.extension_warnings, distance)
        if tier:
            warnings.append(_warning(tier, distance))

    adx_result = unwrap(indicators.adx)
    adx = _last(adx_result.adx) if adx_result else None
    if adx is not None and adx > config.adx_extreme:
        extreme = WarningTier(
            threshold=config.adx_extreme, type="ADX_EXTREME", severity=Severity.MEDIUM
        )
        warnings.append(_warning(extreme, adx))

    return warnings


# =============================================================================
# STOP LOSS
# =============================================================================


def stop_loss(indicators: IndicatorSet, close: float, config: ScoringConfig) -> StopLoss:
    """Close -/+ a multiple of the latest ATR for long/short positions."""
    atr = _last(unwrap(indicators.atr))
    if atr is None:
        return StopLoss()

    distance = config.stop_loss_atr_multiplier * atr
    long_stop = close - distance
    short_stop = close + distance

    return StopLoss(
        stop_loss_long=long_stop,
        stop_loss_short=short_stop,
        stop_loss_percent_long=(close - long_stop) / close * 100,
        stop_loss_percent_short=(short_stop - close) / close * 100,
        atr=atr,
    )


# =============================================================================
# CLASSIFICATION
# =============================================================================


def classify_signal(
    score: float,
    entry_quality: float,
    warnings: Sequence[OverheatWarning],
    config: Optional[ScoringConfig] = None,
) -> SignalStatus:
    """
    Map composite score, entry quality and warning severities to an action.

    Pure function: no state is carried between calls.
    """
    config = config or ScoringConfig()
    has_high = any(w.severity == Severity.HIGH for w in warnings)

    if score >= config.strong_buy_score:
        if has_high:
            return SignalStatus.WATCH_FOR_PULLBACK
        if entry_quality >= config.strong_entry_quality:
            return SignalStatus.STRONG_BUY_NOW
        if entry_quality >= config.partial_entry_quality:
            return SignalStatus.BUY_PARTIAL
        return SignalStatus.WATCH_FOR_PULLBACK

    if score >= config.buy_score:
        if entry_quality >= config.mild_entry_quality and not has_high:
            return SignalStatus.BUY_PARTIAL
        return SignalStatus.HOLD

    if score >= config.hold_score:
        return SignalStatus.HOLD
    if score >= config.sell_score:
        return SignalStatus.SELL
    return SignalStatus.STRONG_SELL


def legacy_recommendation(
    score: float, config: Optional[ScoringConfig] = None
) -> Recommendation:
    config = config or ScoringConfig()
    if score >= config.strong_buy_score:
        return Recommendation.STRONG_BUY
    if score >= config.buy_score:
        return Recommendation.BUY
    if score >= config.hold_score:
        return Recommendation.HOLD
    if score >= config.sell_score:
        return Recommendation.SELL
    return Recommendation.STRONG_SELL
