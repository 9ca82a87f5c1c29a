"""
Pattern Detection Algorithms

Pivot points, support/resistance zones and double bottom/top formations.
Never raises for short history: not enough candles means "not found".
"""

from collections.abc import Sequence
from typing import Optional

from trendsignal.schemas.market import Candle
from trendsignal.schemas.patterns import (
    DoublePattern,
    LevelType,
    PatternAnalysis,
    PatternDetection,
    PatternPoint,
    PatternSignal,
    PatternSummary,
    PatternType,
    PivotKind,
    PivotPoint,
    PivotPoints,
    PriceLevel,
    SRPosition,
    SRSummary,
    SupportResistance,
)

MIN_CANDLES = 50
AT_LEVEL_PERCENT = 2.0
DOUBLE_PATTERN_PIVOT_WINDOW = 3
MAX_PATTERNS = 3


# =============================================================================
# PIVOTS & ZONES
# =============================================================================


def find_pivot_points(candles: Sequence[Candle], window: int = 5) -> PivotPoints:
    """
    Find local highs and lows.

    A candle is a high-pivot when its high is strictly above every other
    high in [i - window, i + window]; plateaus yield no pivot.
    """
    if len(candles) < window * 2 + 1:
        return PivotPoints()

    highs: list[PivotPoint] = []
    lows: list[PivotPoint] = []

    for i in range(window, len(candles) - window):
        current = candles[i]
        neighbors = [candles[j] for j in range(i - window, i + window + 1) if j != i]

        if all(c.high < current.high for c in neighbors):
            highs.append(
                PivotPoint(
                    index=i,
                    price=current.high,
                    timestamp=current.timestamp,
                    kind=PivotKind.HIGH,
                )
            )
        if all(c.low > current.low for c in neighbors):
            lows.append(
                PivotPoint(
                    index=i,
                    price=current.low,
                    timestamp=current.timestamp,
                    kind=PivotKind.LOW,
                )
            )

    return PivotPoints(highs=highs, lows=lows)


def group_price_levels(
    pivots: Sequence[PivotPoint], tolerance: float = 0.015
) -> list[list[PivotPoint]]:
    """
    Cluster pivots by price.

    Single greedy pass over pivots sorted by price: a pivot joins the
    current cluster while within `tolerance` of the cluster's running mean.
    """
    if not pivots:
        return []

    ordered = sorted(pivots, key=lambda p: p.price)
    groups: list[list[PivotPoint]] = []
    current = [ordered[0]]

    for pivot in ordered[1:]:
        mean = sum(p.price for p in current) / len(current)
        if abs(pivot.price - mean) / mean <= tolerance:
            current.append(pivot)
        else:
            groups.append(current)
            current = [pivot]

    groups.append(current)
    return groups


def _create_level(
    group: list[PivotPoint], current_price: float, total_candles: int
) -> PriceLevel:
    mean = sum(p.price for p in group) / len(group)
    touches = len(group)
    last_touch = max(p.index for p in group)
    first_touch = min(p.index for p in group)

    recency = last_touch / total_candles
    strength = min(100, touches * 25 + recency * 25)

    price = round(mean, 2)
    return PriceLevel(
        price=price,
        touches=touches,
        strength=round(strength),
        source=group[0].kind,
        type=LevelType.SUPPORT if price < current_price else LevelType.RESISTANCE,
        first_touch_index=first_touch,
        last_touch_index=last_touch,
        distance_percent=round((mean - current_price) / current_price * 100, 1),
    )


def _sr_summary(
    current_price: float,
    support: Optional[PriceLevel],
    resistance: Optional[PriceLevel],
) -> SRSummary:
    if support is None and resistance is None:
        return SRSummary(
            position=SRPosition.UNKNOWN,
            message="No clear support/resistance levels detected",
        )

    dist_support = abs(support.distance_percent) if support else float("inf")
    dist_resistance = abs(resistance.distance_percent) if resistance else float("inf")

    if dist_support < AT_LEVEL_PERCENT:
        position = SRPosition.AT_SUPPORT
        message = f"Price near support (${support.price}) - potential buy zone"
    elif dist_resistance < AT_LEVEL_PERCENT:
        position = SRPosition.AT_RESISTANCE
        message = f"Price near resistance (${resistance.price}) - potential sell zone"
    elif dist_support < dist_resistance:
        position = SRPosition.NEAR_SUPPORT
        message = f"Price closer to support (${support.price}, {dist_support:.1f}% away)"
    else:
        position = SRPosition.NEAR_RESISTANCE
        message = f"Price closer to resistance (${resistance.price}, {dist_resistance:.1f}% away)"

    risk_reward = None
    if support is not None and resistance is not None:
        potential_loss = current_price - support.price
        potential_gain = resistance.price - current_price
        if potential_loss > 0:
            risk_reward = round(potential_gain / potential_loss, 2)

    return SRSummary(
        position=position,
        message=message,
        risk_reward=risk_reward,
        distance_to_support=dist_support if support else None,
        distance_to_resistance=dist_resistance if resistance else None,
    )


def calculate_support_resistance(
    candles: Sequence[Candle],
    lookback: int = 5,
    tolerance: float = 0.015,
    min_touches: int = 2,
    max_levels: int = 5,
) -> SupportResistance:
    """
    Support and resistance zones from clustered pivots.

    Zones with fewer than `min_touches` pivots are dropped. Each side is
    sorted nearest-first and capped at `max_levels`.
    """
    if len(candles) < MIN_CANDLES:
        return SupportResistance()

    current_price = candles[-1].close
    pivots = find_pivot_points(candles, lookback)

    levels = [
        _create_level(group, current_price, len(candles))
        for pivots_of_kind in (pivots.highs, pivots.lows)
        for group in group_price_levels(pivots_of_kind, tolerance)
        if len(group) >= min_touches
    ]

    support = sorted(
        (lvl for lvl in levels if lvl.price < current_price),
        key=lambda lvl: lvl.price,
        reverse=True,
    )[:max_levels]
    resistance = sorted(
        (lvl for lvl in levels if lvl.price > current_price),
        key=lambda lvl: lvl.price,
    )[:max_levels]

    nearest_support = support[0] if support else None
    nearest_resistance = resistance[0] if resistance else None

    return SupportResistance(
        support=support,
        resistance=resistance,
        current_price=current_price,
        nearest_support=nearest_support,
        nearest_resistance=nearest_resistance,
        summary=_sr_summary(current_price, nearest_support, nearest_resistance),
    )


# =============================================================================
# DOUBLE BOTTOM / TOP
# =============================================================================


def pattern_strength(
    confirmed: bool, height: float, price_diff: float, candles_between: int
) -> int:
    """Score a double pattern from 0 to 100."""
    strength = 0.0

    if confirmed:
        strength += 40

    strength += min(30, height * 300)
    strength += max(0, 20 - price_diff * 500)

    # 15-30 candles apart is the ideal spacing
    if 15 <= candles_between <= 30:
        strength += 10
    elif 10 <= candles_between <= 40:
        strength += 5

    return min(100, round(strength))


def _detect_double(
    candles: Sequence[Candle],
    kind: PatternType,
    tolerance: float,
    min_middle: float,
    lookback_candles: int,
    min_candles_between: int,
    max_candles_between: int,
) -> PatternDetection:
    if len(candles) < lookback_candles:
        return PatternDetection()

    offset = len(candles) - lookback_candles
    recent = candles[offset:]
    current_price = recent[-1].close
    pivots = find_pivot_points(recent, DOUBLE_PATTERN_PIVOT_WINDOW)

    is_bottom = kind == PatternType.DOUBLE_BOTTOM
    extremes = pivots.lows if is_bottom else pivots.highs
    opposites = pivots.highs if is_bottom else pivots.lows

    if len(extremes) < 2:
        return PatternDetection()

    patterns: list[DoublePattern] = []

    for i, first in enumerate(extremes[:-1]):
        for second in extremes[i + 1 :]:
            candles_between = second.index - first.index
            if not min_candles_between <= candles_between <= max_candles_between:
                continue

            price_diff = abs(first.price - second.price) / first.price
            if price_diff > tolerance:
                continue

            middle = [p for p in opposites if first.index < p.index < second.index]
            if not middle:
                continue

            average = (first.price + second.price) / 2
            if is_bottom:
                neckline = max(middle, key=lambda p: p.price).price
                height = (neckline - average) / average
                confirmed = current_price > neckline
                target = neckline + (neckline - average)
            else:
                neckline = min(middle, key=lambda p: p.price).price
                height = (average - neckline) / average
                confirmed = current_price < neckline
                target = neckline - (average - neckline)

            if height < min_middle:
                continue

            patterns.append(
                DoublePattern(
                    type=kind,
                    signal=PatternSignal.BULLISH if is_bottom else PatternSignal.BEARISH,
                    confirmed=confirmed,
                    first=_pattern_point(first, offset, len(candles)),
                    second=_pattern_point(second, offset, len(candles)),
                    neckline=round(neckline, 2),
                    average_extreme=round(average, 2),
                    target_price=round(target, 2),
                    target_percent=round((target - current_price) / current_price * 100, 1),
                    pattern_height=round(height * 100, 1),
                    strength=pattern_strength(confirmed, height, price_diff, candles_between),
                    description=_describe(kind, confirmed),
                )
            )

    patterns.sort(key=lambda p: p.strength, reverse=True)

    return PatternDetection(
        found=bool(patterns),
        patterns=patterns[:MAX_PATTERNS],
        best_pattern=patterns[0] if patterns else None,
    )


def _pattern_point(pivot: PivotPoint, offset: int, total: int) -> PatternPoint:
    index = offset + pivot.index
    return PatternPoint(price=pivot.price, index=index, candles_ago=total - index)


def _describe(kind: PatternType, confirmed: bool) -> str:
    if kind == PatternType.DOUBLE_BOTTOM:
        if confirmed:
            return "Double bottom confirmed - bullish reversal signal"
        return "Double bottom forming - wait for a break above the neckline"
    if confirmed:
        return "Double top confirmed - bearish reversal signal"
    return "Double top forming - wait for a break below the neckline"


def detect_double_bottom(
    candles: Sequence[Candle],
    tolerance: float = 0.02,
    min_middle_height: float = 0.03,
    lookback_candles: int = 100,
    min_candles_between: int = 5,
    max_candles_between: int = 50,
) -> PatternDetection:
    """
    Detect a double bottom (W formation).

    Two lows within `tolerance` of each other with a high between them at
    least `min_middle_height` above their mean. Confirmed once the close is
    above that neckline.
    """
    return _detect_double(
        candles,
        PatternType.DOUBLE_BOTTOM,
        tolerance,
        min_middle_height,
        lookback_candles,
        min_candles_between,
        max_candles_between,
    )


def detect_double_top(
    candles: Sequence[Candle],
    tolerance: float = 0.02,
    min_middle_depth: float = 0.03,
    lookback_candles: int = 100,
    min_candles_between: int = 5,
    max_candles_between: int = 50,
) -> PatternDetection:
    """
    Detect a double top (M formation).

    Mirror of `detect_double_bottom`: confirmed once the close is below the
    lowest low between the two highs.
    """
    return _detect_double(
        candles,
        PatternType.DOUBLE_TOP,
        tolerance,
        min_middle_depth,
        lookback_candles,
        min_candles_between,
        max_candles_between,
    )


# =============================================================================
# COMPOSITE
# =============================================================================


def analyze_patterns(candles: Sequence[Candle]) -> PatternAnalysis:
    """
    Run every pattern detector and pick a primary signal.

    Priority: confirmed bottom, confirmed top, forming bottom, forming top,
    then proximity to a support or resistance level.
    """
    if len(candles) < MIN_CANDLES:
        return PatternAnalysis(
            support_resistance=SupportResistance(),
            double_bottom=PatternDetection(),
            double_top=PatternDetection(),
            summary=PatternSummary(
                has_pattern=False,
                primary_signal=PatternSignal.NEUTRAL,
                message="Not enough data for pattern analysis",
            ),
        )

    sr = calculate_support_resistance(candles)
    double_bottom = detect_double_bottom(candles)
    double_top = detect_double_top(candles)

    primary_signal = PatternSignal.NEUTRAL
    message = "No active patterns detected"
    has_pattern = True

    if double_bottom.best_pattern and double_bottom.best_pattern.confirmed:
        primary_signal = PatternSignal.BULLISH
        message = double_bottom.best_pattern.description
    elif double_top.best_pattern and double_top.best_pattern.confirmed:
        primary_signal = PatternSignal.BEARISH
        message = double_top.best_pattern.description
    elif double_bottom.found:
        primary_signal = PatternSignal.POTENTIAL_BULLISH
        message = double_bottom.best_pattern.description
    elif double_top.found:
        primary_signal = PatternSignal.POTENTIAL_BEARISH
        message = double_top.best_pattern.description
    else:
        has_pattern = False
        if sr.summary.position == SRPosition.AT_SUPPORT:
            primary_signal = PatternSignal.POTENTIAL_BULLISH
            message = sr.summary.message
        elif sr.summary.position == SRPosition.AT_RESISTANCE:
            primary_signal = PatternSignal.POTENTIAL_BEARISH
            message = sr.summary.message

    return PatternAnalysis(
        support_resistance=sr,
        double_bottom=double_bottom,
        double_top=double_top,
        summary=PatternSummary(
            has_pattern=has_pattern,
            primary_signal=primary_signal,
            message=message,
            sr_position=sr.summary.position,
            risk_reward=sr.summary.risk_reward,
        ),
    )
