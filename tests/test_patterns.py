"""Tests for pivots, support/resistance, double patterns and divergences."""

import math

import pytest

from helpers import double_bottom_closes, indicator_set, make_candles
from trendsignal.schemas.patterns import (
    DivergenceType,
    PatternSignal,
    PatternType,
    PivotKind,
    PivotPoint,
    SRPosition,
)
from trendsignal.services.indicators import Available, MACDResult, Series
from trendsignal.services.patterns import (
    analyze_divergences,
    analyze_patterns,
    calculate_support_resistance,
    detect_double_bottom,
    detect_double_top,
    detect_macd_divergence,
    detect_rsi_divergence,
    divergence_strength,
    find_pivot_points,
    find_value_pivots,
    group_price_levels,
    pattern_strength,
)


def sine_closes(n: int) -> list[float]:
    """Period-20 oscillation between 90 and 110."""
    return [100 + 10 * math.sin(2 * math.pi * i / 20) for i in range(n)]


def widening_closes(n: int = 120) -> list[float]:
    """Period-20 oscillation whose amplitude grows by 4 every cycle, from 4."""
    return [
        100 + (4 + 4 * (i // 20)) * math.sin(2 * math.pi * i / 20) for i in range(n)
    ]


class TestPivotPoints:
    """Local highs and lows."""

    def test_single_peak(self):
        """A strict maximum is a high pivot."""
        closes = [1, 2, 3, 4, 5, 10, 5, 4, 3, 2, 1]
        pivots = find_pivot_points(make_candles([float(c) for c in closes], spread=0.5))
        assert [p.index for p in pivots.highs] == [5]
        assert pivots.highs[0].price == 10.5
        assert pivots.highs[0].kind == PivotKind.HIGH
        assert pivots.lows == ()

    def test_plateau_is_not_a_pivot(self):
        """Equal neighbors fail the strict comparison."""
        closes = [1, 2, 3, 4, 10, 10, 4, 3, 2, 1, 1]
        pivots = find_pivot_points(make_candles([float(c) for c in closes], spread=0.5))
        assert pivots.highs == ()

    def test_too_short(self):
        """Fewer than 2 * window + 1 candles gives no pivots."""
        pivots = find_pivot_points(make_candles([1.0] * 10, spread=0.5), window=5)
        assert pivots.highs == () and pivots.lows == ()


class TestPriceLevels:
    """Clustering pivots into zones."""

    def _pivot(self, price, index=0):
        return PivotPoint(index=index, price=price, kind=PivotKind.LOW)

    def test_groups_by_running_mean(self):
        """Nearby pivots cluster, distant ones start a new group."""
        pivots = [self._pivot(p) for p in (100.0, 110.0, 101.0, 100.5)]
        groups = group_price_levels(pivots, tolerance=0.015)
        assert [len(g) for g in groups] == [3, 1]
        assert groups[1][0].price == 110.0

    def test_empty(self):
        """No pivots, no groups."""
        assert group_price_levels([]) == []

    def test_oscillation_levels(self):
        """A steady oscillation gives one support and one resistance zone."""
        sr = calculate_support_resistance(make_candles(sine_closes(120), spread=0.5))
        assert len(sr.support) == 1
        assert len(sr.resistance) == 1
        assert sr.support[0].price == pytest.approx(89.5, abs=0.01)
        assert sr.support[0].touches == 5
        assert sr.resistance[0].price == pytest.approx(110.5, abs=0.01)
        assert sr.resistance[0].touches == 6
        assert sr.resistance[0].strength == 100
        assert sr.summary.position == SRPosition.NEAR_SUPPORT
        assert sr.summary.risk_reward == pytest.approx(1.83, abs=0.01)

    def test_at_support(self):
        """A close within 2% of support is AT_SUPPORT."""
        sr = calculate_support_resistance(make_candles(sine_closes(116), spread=0.5))
        assert sr.summary.position == SRPosition.AT_SUPPORT
        assert sr.nearest_support.price == pytest.approx(89.5, abs=0.01)

    def test_short_history_is_empty(self):
        """Under 50 candles nothing is reported."""
        sr = calculate_support_resistance(make_candles(sine_closes(49), spread=0.5))
        assert sr.support == () and sr.resistance == ()
        assert sr.current_price is None
        assert sr.summary.position == SRPosition.UNKNOWN

    def test_max_levels_caps_each_side(self):
        """Only the nearest `max_levels` zones survive on each side."""
        candles = make_candles(widening_closes(), spread=0.5)
        sr = calculate_support_resistance(candles, min_touches=1, max_levels=2)
        assert [lvl.price for lvl in sr.support] == pytest.approx([91.5, 87.5], abs=0.01)
        assert [lvl.price for lvl in sr.resistance] == pytest.approx(
            [95.5, 104.5], abs=0.01
        )

    def test_default_cap_is_five(self):
        """Seven resistance zones are cut to the five nearest."""
        candles = make_candles(widening_closes(), spread=0.5)
        sr = calculate_support_resistance(candles, min_touches=1)
        assert len(sr.support) == 4
        assert len(sr.resistance) == 5
        assert sr.resistance[-1].price == pytest.approx(116.5, abs=0.01)


class TestDoublePatterns:
    """Double bottom and double top detection."""

    def test_pattern_strength(self):
        """Strength combines confirmation, height, symmetry and spacing."""
        assert pattern_strength(True, 0.05, 0.0, 20) == 85
        assert pattern_strength(False, 0.2, 0.01, 12) == 50
        assert pattern_strength(False, 0.03, 0.05, 45) == 9

    def test_confirmed_double_bottom(self):
        """Two equal lows 20 candles apart with a 10% high between them."""
        candles = make_candles(double_bottom_closes(), spread=0.5)
        result = detect_double_bottom(candles)
        assert result.found
        best = result.best_pattern
        assert best.type == PatternType.DOUBLE_BOTTOM
        assert best.first.index == 70
        assert best.second.index == 90
        assert best.second.candles_ago == 30
        assert best.neckline == pytest.approx(105.5)
        assert best.confirmed == (candles[-1].close > best.neckline)
        assert best.confirmed
        assert best.target_price == pytest.approx(116.5)
        assert best.strength == 100

    def test_forming_double_bottom(self):
        """Without a break of the neckline the pattern is only forming."""
        candles = make_candles(double_bottom_closes(confirmed=False), spread=0.5)
        best = detect_double_bottom(candles).best_pattern
        assert best is not None
        assert best.confirmed == (candles[-1].close > best.neckline)
        assert not best.confirmed
        assert best.strength == 60

    def test_double_top_mirror(self):
        """Mirrored prices give a confirmed double top."""
        closes = [200.0 - c for c in double_bottom_closes()]
        candles = make_candles(closes, spread=0.5)
        result = detect_double_top(candles)
        assert result.found
        assert result.best_pattern.neckline == pytest.approx(94.5)
        assert result.best_pattern.confirmed
        assert result.best_pattern.signal == PatternSignal.BEARISH
        assert not detect_double_bottom(candles).found

    def test_keeps_three_strongest(self):
        """Seven qualifying pairs are cut to the three strongest."""
        result = detect_double_bottom(make_candles(sine_closes(120), spread=0.5))
        assert result.found
        assert len(result.patterns) == 3
        strengths = [p.strength for p in result.patterns]
        assert strengths == sorted(strengths, reverse=True)
        assert result.best_pattern == result.patterns[0]

    def test_needs_lookback_candles(self):
        """Fewer than the lookback window finds nothing."""
        candles = make_candles(double_bottom_closes()[-99:], spread=0.5)
        assert not detect_double_bottom(candles).found


class TestAnalyzePatterns:
    """Primary signal selection."""

    def test_confirmed_bottom_is_bullish(self):
        """A confirmed double bottom takes priority."""
        analysis = analyze_patterns(make_candles(double_bottom_closes(), spread=0.5))
        assert analysis.summary.has_pattern
        assert analysis.summary.primary_signal == PatternSignal.BULLISH
        assert analysis.summary.message.startswith("Double bottom confirmed")

    def test_forming_bottom_is_potential(self):
        """Forming patterns give a potential signal."""
        analysis = analyze_patterns(make_candles(sine_closes(116), spread=0.5))
        assert analysis.summary.primary_signal == PatternSignal.POTENTIAL_BULLISH
        assert analysis.summary.has_pattern
        assert analysis.summary.sr_position == SRPosition.AT_SUPPORT

    def test_confirmed_top_outranks_forming_bottom(self):
        """A break below the top's neckline wins over a forming bottom."""
        candles = make_candles(sine_closes(106) + [85.0], spread=0.5)
        analysis = analyze_patterns(candles)
        assert analysis.double_bottom.found
        assert not analysis.double_bottom.best_pattern.confirmed
        assert analysis.double_top.best_pattern.confirmed
        assert analysis.summary.has_pattern
        assert analysis.summary.primary_signal == PatternSignal.BEARISH
        assert analysis.summary.message.startswith("Double top confirmed")

    def test_at_resistance_without_pattern(self):
        """No double pattern, close within 2% of resistance: potential bearish."""
        # Old oscillation, then a 100-candle climb with no pivots
        closes = sine_closes(60) + [97.0 + 0.12 * k for k in range(100)]
        analysis = analyze_patterns(make_candles(closes, spread=0.5))
        assert not analysis.double_bottom.found
        assert not analysis.double_top.found
        assert not analysis.summary.has_pattern
        assert analysis.summary.sr_position == SRPosition.AT_RESISTANCE
        assert analysis.summary.primary_signal == PatternSignal.POTENTIAL_BEARISH
        assert analysis.summary.message.startswith("Price near resistance")

    def test_short_history(self):
        """Under 50 candles the analysis is neutral."""
        analysis = analyze_patterns(make_candles([100.0] * 49, spread=0.5))
        assert not analysis.summary.has_pattern
        assert analysis.summary.primary_signal == PatternSignal.NEUTRAL
        assert analysis.summary.message == "Not enough data for pattern analysis"


def _dip(values, index, depth, shoulders):
    values[index - 1] = values[index + 1] = shoulders
    values[index] = depth


def divergence_data(second_price, second_indicator):
    """50 candles with price and indicator dips at 30 and 42."""
    closes = [100.0] * 50
    closes[28], closes[29], closes[30], closes[31], closes[32] = 96, 93, 90, 93, 96
    closes[40], closes[41], closes[43], closes[44] = (
        second_price + 10,
        second_price + 5,
        second_price + 5,
        second_price + 10,
    )
    closes[42] = second_price

    indicator = [50.0] * 50
    _dip(indicator, 30, 25.0, 35.0)
    _dip(indicator, 42, second_indicator, second_indicator + 10)
    return make_candles(closes, spread=0.5), indicator


class TestDivergence:
    """Price vs indicator divergences."""

    def test_value_pivots_skip_missing(self):
        """None values are skipped, both as candidates and as neighbors."""
        values = [None, None, 5.0, 4.0, 1.0, 4.0, 5.0, None]
        highs, lows = find_value_pivots(values, window=2)
        assert [p.index for p in lows] == [4]
        assert [p.index for p in highs] == [2]

    def test_strength(self):
        """Strength scales the combined relative changes."""
        assert divergence_strength(100, 95, 30, 35) == 100.0
        assert divergence_strength(100, 99, 50, 51) == pytest.approx(15.0)

    def test_bullish_rsi_divergence(self):
        """Lower low in price, higher low in RSI."""
        candles, rsi = divergence_data(85.0, 30.0)
        result = detect_rsi_divergence(candles, rsi)
        assert result.found
        divergence = result.divergences[0]
        assert divergence.type == DivergenceType.BULLISH
        assert divergence.indicator == "RSI"
        assert [p.index for p in divergence.price_points] == [30, 42]
        assert divergence.candles_ago == 8
        assert result.summary.primary_signal == PatternSignal.BULLISH

    def test_hidden_divergence_is_rsi_only(self):
        """Higher low in price with a lower low in the indicator."""
        candles, values = divergence_data(93.0, 20.0)
        rsi_result = detect_rsi_divergence(candles, values)
        assert rsi_result.divergences[0].type == DivergenceType.HIDDEN_BULLISH
        assert not detect_macd_divergence(candles, values).found

    def test_short_history(self):
        """Fewer candles than the lookback finds nothing."""
        candles, rsi = divergence_data(85.0, 30.0)
        assert not detect_rsi_divergence(candles[:49], rsi[:49]).found

    def test_confirmation_bonus(self):
        """RSI and MACD agreeing on a bullish divergence is confirmed."""
        candles, values = divergence_data(85.0, 30.0)
        histogram = Series(values)
        macd_result = MACDResult(macd_line=histogram, signal_line=histogram, histogram=histogram)
        indicators = indicator_set(
            rsi=Available(Series(values)), macd=Available(macd_result)
        )
        analysis = analyze_divergences(candles, indicators)
        assert analysis.combined.confirmation
        assert analysis.combined.signal == PatternSignal.BULLISH
        assert analysis.combined.score == 100
        assert analysis.combined.total_divergences == 2

    def test_no_indicators(self):
        """Unavailable indicators give a neutral result."""
        candles, _ = divergence_data(85.0, 30.0)
        analysis = analyze_divergences(candles, indicator_set())
        assert not analysis.combined.has_divergence
        assert analysis.combined.score == 50
        assert analysis.combined.signal == PatternSignal.NEUTRAL
