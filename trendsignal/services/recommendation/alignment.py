"""
Multi-Timeframe Alignment

A signal is stronger when every timeframe agrees. Takes the per-timeframe
recommendations for one symbol and reports how well they line up.
"""

from collections.abc import Sequence
from typing import Optional

from trendsignal.schemas.recommendation import (
    Alignment,
    AlignmentSummary,
    Confidence,
    MultiTimeframeResult,
    Recommendation,
    ScoringConfig,
    Severity,
    TimeframeAction,
    TimeframeError,
    TimeframeRecommendation,
    TimeframeWarning,
)

BULLISH = (Recommendation.STRONG_BUY, Recommendation.BUY)
BEARISH = (Recommendation.SELL, Recommendation.STRONG_SELL)

DOWNGRADE_NOTE = " (downgraded for overheat warnings)"


def _alignment(
    bullish: int, bearish: int, strong_buy: int, total: int
) -> tuple[Alignment, Confidence]:
    if strong_buy == total:
        return Alignment.ALL_STRONG_BUY, Confidence.VERY_HIGH
    if bullish == total:
        return Alignment.ALL_BULLISH, Confidence.HIGH
    if bearish == total:
        return Alignment.ALL_BEARISH, Confidence.HIGH

    # At most one dissenting timeframe still counts as medium confidence
    if bullish > bearish:
        confidence = Confidence.MEDIUM if bullish >= total - 1 else Confidence.LOW
        return Alignment.MOSTLY_BULLISH, confidence
    if bearish > bullish:
        confidence = Confidence.MEDIUM if bearish >= total - 1 else Confidence.LOW
        return Alignment.MOSTLY_BEARISH, confidence
    return Alignment.CONFLICTING, Confidence.LOW


def _action(
    alignment: Alignment, entry_quality: float, config: ScoringConfig
) -> tuple[TimeframeAction, str]:
    if alignment == Alignment.ALL_STRONG_BUY:
        if entry_quality >= config.aligned_strong_entry_quality:
            return (
                TimeframeAction.STRONG_BUY_NOW,
                "All timeframes strong buy with a good entry",
            )
        return (
            TimeframeAction.WATCH_FOR_PULLBACK,
            "All timeframes strong buy but entry quality is low, wait for a pullback",
        )
    if alignment == Alignment.ALL_BULLISH:
        if entry_quality >= config.aligned_partial_entry_quality:
            return (
                TimeframeAction.BUY_PARTIAL,
                "All timeframes bullish, a partial position is possible",
            )
        return (
            TimeframeAction.WATCH,
            "All timeframes bullish but the entry is poor, watch",
        )
    if alignment == Alignment.ALL_BEARISH:
        return TimeframeAction.SELL, "All timeframes bearish"
    if alignment == Alignment.CONFLICTING:
        return TimeframeAction.WAIT, "Timeframes give conflicting signals"
    if alignment == Alignment.MOSTLY_BULLISH:
        return TimeframeAction.WATCH, "Mostly bullish, but not on every timeframe"
    return TimeframeAction.WAIT, "No clear direction"


def _unique_warnings(
    results: Sequence[TimeframeRecommendation],
) -> list[TimeframeWarning]:
    """Every warning type once, tagged with the first timeframe that raised it."""
    seen: set[str] = set()
    warnings = []
    for item in results:
        for warning in item.result.warnings:
            if warning.type in seen:
                continue
            seen.add(warning.type)
            warnings.append(
                TimeframeWarning(**warning.model_dump(), timeframe=item.timeframe)
            )
    return warnings


def align_timeframes(
    symbol: str,
    results: Sequence[TimeframeRecommendation],
    errors: Sequence[TimeframeError] = (),
    config: Optional[ScoringConfig] = None,
) -> MultiTimeframeResult:
    """
    Summarize how the timeframes of one symbol agree.

    Raises:
        ValueError: If no timeframe was scored
    """
    if not results:
        raise ValueError(f"No timeframe could be scored for {symbol}")

    config = config or ScoringConfig()
    total = len(results)
    recommendations = [item.result.recommendation for item in results]
    bullish = sum(r in BULLISH for r in recommendations)
    bearish = sum(r in BEARISH for r in recommendations)
    strong_buy = sum(r == Recommendation.STRONG_BUY for r in recommendations)

    scores = [item.result.score for item in results]
    average_score = sum(scores) / total
    average_entry = sum(item.result.entry_quality for item in results) / total

    alignment, confidence = _alignment(bullish, bearish, strong_buy, total)
    action, reason = _action(alignment, average_entry, config)

    warnings = _unique_warnings(results)
    has_high = any(w.severity == Severity.HIGH for w in warnings)
    if has_high and action == TimeframeAction.STRONG_BUY_NOW:
        action = TimeframeAction.WATCH_FOR_PULLBACK
        reason += DOWNGRADE_NOTE

    buy_side = config.buy_score
    aligned = all(s >= buy_side for s in scores) or all(s < buy_side for s in scores)

    return MultiTimeframeResult(
        symbol=symbol,
        timeframes=tuple(results),
        errors=tuple(errors),
        summary=AlignmentSummary(
            average_score=round(average_score, 1),
            average_entry_quality=round(average_entry, 1),
            alignment=alignment,
            confidence=confidence,
            all_bullish=bullish == total,
            all_bearish=bearish == total,
            all_strong_buy=strong_buy == total,
            bullish_count=bullish,
            bearish_count=bearish,
            aligned=aligned,
        ),
        action=action,
        action_reason=reason,
        warnings=tuple(warnings),
        config_version=config.version,
    )
