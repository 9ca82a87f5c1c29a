"""
CONTRACT 2: Pattern Detector Output

Input: ordered candles
Output: PatternAnalysis, DivergenceAnalysis, BreakoutAnalysis

Absence of a pattern is a normal outcome and is reported as
`found=False`, never as an error.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================


class PivotKind(str, Enum):
    HIGH = "high"
    LOW = "low"


class LevelType(str, Enum):
    SUPPORT = "support"
    RESISTANCE = "resistance"


class SRPosition(str, Enum):
    AT_SUPPORT = "AT_SUPPORT"
    AT_RESISTANCE = "AT_RESISTANCE"
    NEAR_SUPPORT = "NEAR_SUPPORT"
    NEAR_RESISTANCE = "NEAR_RESISTANCE"
    UNKNOWN = "UNKNOWN"


class PatternType(str, Enum):
    DOUBLE_BOTTOM = "DOUBLE_BOTTOM"
    DOUBLE_TOP = "DOUBLE_TOP"


class PatternSignal(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    POTENTIAL_BULLISH = "POTENTIAL_BULLISH"
    POTENTIAL_BEARISH = "POTENTIAL_BEARISH"
    NEUTRAL = "NEUTRAL"


class DivergenceType(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    HIDDEN_BULLISH = "HIDDEN_BULLISH"
    HIDDEN_BEARISH = "HIDDEN_BEARISH"

    @property
    def is_bullish(self) -> bool:
        return self in (DivergenceType.BULLISH, DivergenceType.HIDDEN_BULLISH)


class BreakoutDirection(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    UNKNOWN = "UNKNOWN"


class BreakoutStatus(str, Enum):
    CONFIRMED = "CONFIRMED"  # Beyond the range on heavy volume
    UNCONFIRMED = "UNCONFIRMED"
    NONE = "NONE"


class BreakoutProbability(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class VolumeTrend(str, Enum):
    RISING = "RISING"
    FALLING = "FALLING"
    STABLE = "STABLE"


class BreakoutSignalType(str, Enum):
    ACTIVE_BREAKOUT = "ACTIVE_BREAKOUT"
    SQUEEZE = "SQUEEZE"
    VOLUME = "VOLUME"
    CONSOLIDATION = "CONSOLIDATION"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# =============================================================================
# PIVOTS & LEVELS
# =============================================================================


class PivotPoint(_Frozen):
    """Local extremum over a symmetric window of candles."""

    index: int
    price: float
    timestamp: Optional[datetime] = None
    kind: PivotKind


class PivotPoints(_Frozen):
    highs: tuple[PivotPoint, ...] = ()
    lows: tuple[PivotPoint, ...] = ()


class PriceLevel(_Frozen):
    """A cluster of pivots acting as support or resistance."""

    price: float
    touches: int
    strength: int = Field(..., ge=0, le=100)
    source: PivotKind  # Which pivot kind formed the zone
    type: LevelType
    first_touch_index: int
    last_touch_index: int
    distance_percent: float


class SRSummary(_Frozen):
    position: SRPosition
    message: str
    risk_reward: Optional[float] = None
    distance_to_support: Optional[float] = None
    distance_to_resistance: Optional[float] = None


class SupportResistance(_Frozen):
    support: tuple[PriceLevel, ...] = ()
    resistance: tuple[PriceLevel, ...] = ()
    current_price: Optional[float] = None
    nearest_support: Optional[PriceLevel] = None
    nearest_resistance: Optional[PriceLevel] = None
    summary: SRSummary = SRSummary(
        position=SRPosition.UNKNOWN,
        message="No clear support/resistance levels detected",
    )


# =============================================================================
# DOUBLE BOTTOM / TOP
# =============================================================================


class PatternPoint(_Frozen):
    price: float
    index: int
    candles_ago: int


class DoublePattern(_Frozen):
    """Double bottom (W) or double top (M) formation."""

    type: PatternType
    signal: PatternSignal
    confirmed: bool
    first: PatternPoint
    second: PatternPoint
    neckline: float
    average_extreme: float  # Mean of the two lows (bottom) or highs (top)
    target_price: float
    target_percent: float
    pattern_height: float  # Percent
    strength: int = Field(..., ge=0, le=100)
    description: str


class PatternDetection(_Frozen):
    found: bool = False
    patterns: tuple[DoublePattern, ...] = ()
    best_pattern: Optional[DoublePattern] = None


class PatternSummary(_Frozen):
    has_pattern: bool
    primary_signal: PatternSignal
    message: str
    sr_position: Optional[SRPosition] = None
    risk_reward: Optional[float] = None


class PatternAnalysis(_Frozen):
    support_resistance: SupportResistance
    double_bottom: PatternDetection
    double_top: PatternDetection
    summary: PatternSummary


# =============================================================================
# DIVERGENCES
# =============================================================================


class DivergencePoint(_Frozen):
    index: int
    value: float


class Divergence(_Frozen):
    type: DivergenceType
    indicator: str  # "RSI" or "MACD"
    strength: float = Field(..., ge=0, le=100)
    description: str
    signal: str
    price_points: tuple[DivergencePoint, ...]
    indicator_points: tuple[DivergencePoint, ...]
    candles_ago: int


class DivergenceSummary(_Frozen):
    has_divergence: bool = False
    primary_signal: Optional[PatternSignal] = None
    message: str = "No divergence detected"
    strongest: Optional[Divergence] = None
    bullish_count: int = 0
    bearish_count: int = 0


class DivergenceDetection(_Frozen):
    found: bool = False
    divergences: tuple[Divergence, ...] = ()
    summary: DivergenceSummary = DivergenceSummary()


class CombinedDivergence(_Frozen):
    has_divergence: bool
    signal: PatternSignal
    score: int = Field(..., ge=0, le=100)
    message: str
    confirmation: bool = False
    total_divergences: int = 0


class DivergenceAnalysis(_Frozen):
    rsi: DivergenceDetection
    macd: DivergenceDetection
    combined: CombinedDivergence


# =============================================================================
# BREAKOUT
# =============================================================================


class VolatilitySqueeze(_Frozen):
    """Bollinger bandwidth contraction relative to its recent average."""

    detected: bool
    score: int = Field(..., ge=0, le=100)
    bandwidth: float  # Percent of the middle band
    average_bandwidth: float
    bandwidth_ratio: float
    duration: int  # Trailing candles below the squeeze threshold
    percent_b: float
    direction: PatternSignal
    message: str


class VolumeAnomaly(_Frozen):
    detected: bool
    score: int = Field(..., ge=0, le=100)
    current_volume: float
    average_volume: float
    volume_ratio: float
    spike: bool
    trend: VolumeTrend
    accumulating: bool  # Volume rising while price holds steady
    message: str


class Consolidation(_Frozen):
    detected: bool
    score: int = Field(..., ge=0, le=100)
    range_high: float
    range_low: float
    range_percent: float
    duration: int
    position: float  # 0 at the range low, 1 at the range high
    near_top: bool
    near_bottom: bool
    direction: BreakoutDirection
    message: str


class ActiveBreakout(_Frozen):
    """Close beyond the range of the candles before the last three."""

    detected: bool
    status: BreakoutStatus
    direction: Optional[BreakoutDirection] = None
    strength: int = Field(..., ge=0, le=100)
    range_high: float
    range_low: float
    breakout_percent: float = 0.0
    volume_ratio: float
    volume_confirmed: bool
    atr_multiple: Optional[float] = None  # Distance past the range in ATRs
    message: str


class BreakoutSignal(_Frozen):
    type: BreakoutSignalType
    score: int
    message: str
    direction: Optional[BreakoutDirection] = None
    confirmed: Optional[bool] = None


class BreakoutLevels(_Frozen):
    resistance: float
    support: float
    current_price: float
    atr: Optional[float] = None


class BreakoutAnalysis(_Frozen):
    score: int = Field(..., ge=0, le=100)
    probability: BreakoutProbability
    likely_direction: BreakoutDirection
    summary: str
    signals: tuple[BreakoutSignal, ...] = ()
    squeeze: Optional[VolatilitySqueeze] = None
    volume: Optional[VolumeAnomaly] = None
    consolidation: Optional[Consolidation] = None
    active_breakout: Optional[ActiveBreakout] = None
    levels: Optional[BreakoutLevels] = None
    candles_analyzed: int
