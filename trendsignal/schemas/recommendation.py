"""
CONTRACT 3: Recommendation Scorer

Input: ordered candles + ScoringConfig
Output: RecommendationResult

The scorer does no I/O. Every weight and threshold it uses lives in
ScoringConfig so that policy can be tuned and versioned on its own.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from trendsignal.schemas.market import Timeframe


# =============================================================================
# ENUMS
# =============================================================================


class Severity(str, Enum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class SignalStatus(str, Enum):
    STRONG_BUY_NOW = "STRONG_BUY_NOW"  # Trend and entry both good
    BUY_PARTIAL = "BUY_PARTIAL"  # Partial position
    WATCH_FOR_PULLBACK = "WATCH_FOR_PULLBACK"  # Trend good, entry poor or overheated
    HOLD = "HOLD"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"


class Recommendation(str, Enum):
    """Legacy five-level recommendation derived from the score alone."""

    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"


class Alignment(str, Enum):
    ALL_STRONG_BUY = "ALL_STRONG_BUY"
    ALL_BULLISH = "ALL_BULLISH"
    ALL_BEARISH = "ALL_BEARISH"
    MOSTLY_BULLISH = "MOSTLY_BULLISH"
    MOSTLY_BEARISH = "MOSTLY_BEARISH"
    CONFLICTING = "CONFLICTING"


class Confidence(str, Enum):
    VERY_HIGH = "VERY_HIGH"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class TimeframeAction(str, Enum):
    """Action suggested once every timeframe has been scored."""

    STRONG_BUY_NOW = "STRONG_BUY_NOW"
    BUY_PARTIAL = "BUY_PARTIAL"
    WATCH_FOR_PULLBACK = "WATCH_FOR_PULLBACK"
    WATCH = "WATCH"
    SELL = "SELL"
    WAIT = "WAIT"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# =============================================================================
# CONFIGURATION
# =============================================================================


class ScoreWeights(_Frozen):
    """Composite weights. Must sum to 1."""

    long_term_trend: float = Field(default=0.30, ge=0, le=1)
    macd: float = Field(default=0.20, ge=0, le=1)
    ema_cross: float = Field(default=0.20, ge=0, le=1)
    adx: float = Field(default=0.15, ge=0, le=1)
    rsi: float = Field(default=0.10, ge=0, le=1)
    bollinger: float = Field(default=0.05, ge=0, le=1)

    @model_validator(mode="after")
    def check_total(self) -> "ScoreWeights":
        total = (
            self.long_term_trend
            + self.macd
            + self.ema_cross
            + self.adx
            + self.rsi
            + self.bollinger
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Score weights must sum to 1, got {total:.4f}")
        return self


class TrendWindow(_Frozen):
    days: int = Field(..., gt=0)
    weight: float = Field(..., ge=0)


class ChangeTier(_Frozen):
    """Points applied (times the window weight) once a change passes `threshold`."""

    threshold: float
    points: float


class WarningTier(_Frozen):
    threshold: float
    type: str
    severity: Severity


class ScorePoints(_Frozen):
    """Points the directional sub-scores add to or take from neutral."""

    macd_histogram: float = 20
    macd_momentum: float = 10
    macd_signal: float = 15
    macd_zero_line: float = 5

    short_cross: float = 15  # EMA12 vs EMA26
    short_fresh_cross: float = 10
    long_cross: float = 10  # EMA50 vs EMA200
    long_fresh_cross: float = 5
    alignment: float = 5

    rsi_extreme: float = 30
    rsi_normal: float = 15
    bollinger: float = 20
    volume: float = 25


class EntryPoints(_Frozen):
    """Entry-quality adjustments. Negative values penalize."""

    pullback_zone: float = 25
    acceptable_zone: float = 10
    strongly_overbought: float = -35
    overbought: float = -25
    oversold_in_uptrend: float = 15
    downtrend: float = -20
    bounce: float = 15

    sma_test: float = 15
    sma_near: float = 5
    sma_extended: float = -10
    sma_strongly_extended: float = -20

    upper_band: float = -15
    lower_band_uptrend: float = 10
    mid_band: float = 5
    low_volume_pullback: float = 5


class ScoringConfig(_Frozen):
    """Versioned scoring policy."""

    version: str = "1.0"
    weights: ScoreWeights = ScoreWeights()
    # Starting point of every sub-score and of entry quality
    neutral: float = Field(default=50.0, ge=0, le=100)
    points: ScorePoints = ScorePoints()
    entry_points: EntryPoints = EntryPoints()

    # Signal classification
    strong_buy_score: float = 60
    buy_score: float = 50
    hold_score: float = 40
    sell_score: float = 30
    strong_entry_quality: float = 60
    partial_entry_quality: float = 45
    mild_entry_quality: float = 55

    # Long-term trend
    assumed_history_days: int = 30
    trend_min_candles: int = 30
    trend_windows: tuple[TrendWindow, ...] = (
        TrendWindow(days=7, weight=0.25),
        TrendWindow(days=14, weight=0.35),
        TrendWindow(days=30, weight=0.40),
    )
    # Ordered strongest first; the last tier is the floor for any gain or loss
    gain_tiers: tuple[ChangeTier, ...] = (
        ChangeTier(threshold=20, points=15),
        ChangeTier(threshold=10, points=12),
        ChangeTier(threshold=5, points=8),
        ChangeTier(threshold=0, points=4),
    )
    loss_tiers: tuple[ChangeTier, ...] = (
        ChangeTier(threshold=-20, points=-35),
        ChangeTier(threshold=-10, points=-30),
        ChangeTier(threshold=-5, points=-20),
        ChangeTier(threshold=0, points=-10),
    )
    consistent_trend_percent: float = 3
    consistent_downtrend_penalty: float = 20
    consistent_uptrend_bonus: float = 10
    high_window_days: int = 30
    below_high_percent: float = -15
    below_high_penalty: float = 10

    # Indicator thresholds
    adx_trend: float = 20
    adx_strong_trend: float = 25
    adx_without_di_score: float = 55
    rsi_overbought: float = 70
    rsi_oversold: float = 30
    bollinger_upper_extreme: float = 0.95
    bollinger_lower_extreme: float = 0.05

    # Stop loss
    stop_loss_atr_multiplier: float = 2.0

    # Volume
    volume_lookback: int = 20
    low_volume_ratio: float = 0.7

    # Overheat warnings, most severe first within each group
    rsi_warnings: tuple[WarningTier, ...] = (
        WarningTier(threshold=80, type="RSI_EXTREME", severity=Severity.HIGH),
        WarningTier(threshold=75, type="RSI_OVERBOUGHT", severity=Severity.HIGH),
        WarningTier(threshold=70, type="RSI_ELEVATED", severity=Severity.MEDIUM),
    )
    move_warnings: tuple[WarningTier, ...] = (
        WarningTier(threshold=50, type="RAPID_MOVE_EXTREME", severity=Severity.HIGH),
        WarningTier(threshold=30, type="RAPID_MOVE", severity=Severity.HIGH),
        WarningTier(threshold=20, type="STRONG_MOVE", severity=Severity.MEDIUM),
    )
    extension_warnings: tuple[WarningTier, ...] = (
        WarningTier(threshold=20, type="EXTENDED_FROM_EMA", severity=Severity.HIGH),
        WarningTier(threshold=15, type="ABOVE_EMA", severity=Severity.MEDIUM),
    )
    move_window_candles: int = 24
    adx_extreme: float = 50

    # Multi-timeframe action
    aligned_strong_entry_quality: float = 55
    aligned_partial_entry_quality: float = 50


# =============================================================================
# OUTPUT
# =============================================================================


class OverheatWarning(_Frozen):
    type: str
    severity: Severity
    value: float
    message: str


class ScoreBreakdown(_Frozen):
    """Per-indicator sub-scores, each 0-100 around a neutral 50."""

    long_term_trend: float
    macd: float
    ema_cross: float
    adx: float
    rsi: float
    bollinger: float
    volume: float  # Reported only, weight 0


class StopLoss(_Frozen):
    stop_loss_long: Optional[float] = None
    stop_loss_short: Optional[float] = None
    stop_loss_percent_long: Optional[float] = None
    stop_loss_percent_short: Optional[float] = None
    atr: Optional[float] = None


class VolumeAnalysis(_Frozen):
    score: float = 50.0
    bullish_ratio: int = 50  # Percent of volume on up candles
    avg_volume: float = 0.0


class IndicatorSnapshot(_Frozen):
    rsi: Optional[float] = None
    adx: Optional[float] = None
    macd_histogram: Optional[float] = None


class RecommendationResult(_Frozen):
    """Final scorer output. Immutable once produced."""

    score: float = Field(..., ge=0, le=100)
    recommendation: Recommendation
    signal_status: SignalStatus
    entry_quality: float = Field(..., ge=0, le=100)
    warnings: tuple[OverheatWarning, ...] = ()
    breakdown: ScoreBreakdown
    stop_loss: StopLoss
    current_price: float
    volume_analysis: VolumeAnalysis
    indicators: IndicatorSnapshot
    unavailable: dict[str, str] = Field(default_factory=dict)
    config_version: str


# =============================================================================
# MULTI-TIMEFRAME
# =============================================================================


class TimeframeRecommendation(_Frozen):
    timeframe: Timeframe
    result: RecommendationResult


class TimeframeError(_Frozen):
    timeframe: Timeframe
    error: str


class TimeframeWarning(OverheatWarning):
    timeframe: Timeframe  # First timeframe that raised this warning type


class AlignmentSummary(_Frozen):
    average_score: float
    average_entry_quality: float
    alignment: Alignment
    confidence: Confidence
    all_bullish: bool
    all_bearish: bool
    all_strong_buy: bool
    bullish_count: int
    bearish_count: int
    aligned: bool  # Every score on the same side of the buy threshold


class MultiTimeframeResult(_Frozen):
    """One symbol scored on several timeframes, and whether they agree."""

    symbol: str
    timeframes: tuple[TimeframeRecommendation, ...]
    errors: tuple[TimeframeError, ...] = ()
    summary: AlignmentSummary
    action: TimeframeAction
    action_reason: str
    warnings: tuple[TimeframeWarning, ...] = ()
    config_version: str
