"""Tests for the async service wrappers and the candle source."""

from datetime import timedelta

import pytest

from helpers import FIXED_END, make_candles, trend_closes
from trendsignal.schemas.market import Candle, MarketSnapshot, SymbolCandles, Timeframe
from trendsignal.schemas.recommendation import ScoringConfig
from trendsignal.services.base import ServiceError
from trendsignal.services.data_ingestion import (
    CandleSourceInterface,
    MockCandleSource,
    generate_mock_candles,
    get_candle_source,
    set_candle_source,
)
from trendsignal.services.indicators import IndicatorService, IndicatorSet
from trendsignal.services.patterns import PatternService
from trendsignal.services.recommendation import RecommendationService, timeframe_limit


class RecordingSource(CandleSourceInterface):
    """Rising candles; records each request and fails for `failing` timeframes."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.requests: list[tuple[str, Timeframe, int]] = []

    @property
    def name(self) -> str:
        return "recording"

    async def get_candles(self, symbol: str, timeframe: Timeframe, limit: int) -> list[Candle]:
        self.requests.append((symbol, timeframe, limit))
        if timeframe in self.failing:
            raise ConnectionError(f"feed down for {timeframe.value}")
        return make_candles(trend_closes(limit, 1.001))

    async def health_check(self) -> bool:
        return True


def _snapshot(mock_candles) -> MarketSnapshot:
    return MarketSnapshot(
        symbols=[
            SymbolCandles(symbol="BTCUSDT", timeframe=Timeframe.H1, candles=mock_candles),
            SymbolCandles(symbol="EMPTY", candles=[]),
        ]
    )


class TestMockCandleSource:
    """Deterministic random-walk candles."""

    def test_deterministic(self):
        """Same seed, symbol and end time give the same candles."""
        first = generate_mock_candles("ETHUSDT", Timeframe.H1, 50, seed=1, end_time=FIXED_END)
        second = generate_mock_candles("ETHUSDT", Timeframe.H1, 50, seed=1, end_time=FIXED_END)
        assert first == second

    def test_seed_changes_output(self):
        """A different seed gives a different walk."""
        first = generate_mock_candles("ETHUSDT", Timeframe.H1, 50, seed=1, end_time=FIXED_END)
        second = generate_mock_candles("ETHUSDT", Timeframe.H1, 50, seed=2, end_time=FIXED_END)
        assert first != second

    def test_ordered_and_consistent(self):
        """Candles ascend in time and respect high >= open/close >= low."""
        candles = generate_mock_candles("SOLUSDT", Timeframe.M15, 100, end_time=FIXED_END)
        assert len(candles) == 100
        for previous, current in zip(candles, candles[1:]):
            assert current.timestamp - previous.timestamp == timedelta(minutes=15)
        for candle in candles:
            assert candle.high >= max(candle.open, candle.close)
            assert candle.low <= min(candle.open, candle.close)
            assert candle.low > 0

    @pytest.mark.asyncio
    async def test_source(self):
        """The source returns `limit` candles and reports healthy."""
        source = MockCandleSource(seed=3, end_time=FIXED_END)
        candles = await source.get_candles("BTCUSDT", Timeframe.H4, 30)
        assert len(candles) == 30
        assert await source.health_check()

    def test_set_candle_source(self):
        """The singleton can be replaced and reset."""
        custom = MockCandleSource(seed=9)
        set_candle_source(custom)
        try:
            assert get_candle_source() is custom
        finally:
            set_candle_source(None)
        assert isinstance(get_candle_source(), MockCandleSource)


class TestIndicatorService:
    """Concurrent indicator calculation."""

    @pytest.mark.asyncio
    async def test_execute_skips_failed_symbols(self, mock_candles):
        """A symbol with no candles is logged and left out."""
        results = await IndicatorService().execute(_snapshot(mock_candles))
        assert set(results) == {"BTCUSDT"}
        assert isinstance(results["BTCUSDT"], IndicatorSet)

    @pytest.mark.asyncio
    async def test_health(self):
        """Pure computation is always healthy."""
        assert await IndicatorService().health_check()


class TestPatternService:
    """Concurrent pattern and divergence detection."""

    @pytest.mark.asyncio
    async def test_execute(self, mock_candles):
        """Short history is an empty analysis, not a failure."""
        results = await PatternService().execute(_snapshot(mock_candles))
        assert set(results) == {"BTCUSDT", "EMPTY"}
        assert results["EMPTY"].summary.message == "Not enough data for pattern analysis"

    @pytest.mark.asyncio
    async def test_divergences(self, mock_candles):
        """Divergences need indicators, so the empty symbol is dropped."""
        results = await PatternService().divergences(_snapshot(mock_candles))
        assert set(results) == {"BTCUSDT"}
        assert 0 <= results["BTCUSDT"].combined.score <= 100

    @pytest.mark.asyncio
    async def test_breakout(self, mock_candles):
        """Breakout analysis runs on the posted candles."""
        analysis = await PatternService().breakout_for_symbol(
            SymbolCandles(symbol="BTCUSDT", candles=mock_candles)
        )
        assert analysis.candles_analyzed == 720
        assert 0 <= analysis.score <= 100
        assert analysis.squeeze is not None


class TestRecommendationService:
    """Scoring through the service."""

    @pytest.mark.asyncio
    async def test_execute(self, mock_candles):
        """Each valid symbol gets a result."""
        results = await RecommendationService().execute(_snapshot(mock_candles))
        assert set(results) == {"BTCUSDT"}

    @pytest.mark.asyncio
    async def test_recommend_uses_config(self):
        """The service config reaches the scorer."""
        service = RecommendationService(config=ScoringConfig(version="svc"))
        result = await service.recommend(
            SymbolCandles(symbol="TEST", candles=make_candles([100.0] * 40))
        )
        assert result.config_version == "svc"

    @pytest.mark.asyncio
    async def test_recommend_from_source(self):
        """Candles are pulled from the injected source."""
        source = MockCandleSource(seed=5, end_time=FIXED_END)
        service = RecommendationService(candle_source=source)
        result = await service.recommend_from_source("BTCUSDT", Timeframe.H1, 300)
        expected = generate_mock_candles("BTCUSDT", Timeframe.H1, 300, 5, FIXED_END)
        assert result.current_price == expected[-1].close
        assert await service.health_check()


class TestMultiTimeframe:
    """One symbol scored on several timeframes."""

    def test_timeframe_limits(self):
        """About 30 days per timeframe, capped at the request maximum."""
        assert timeframe_limit(Timeframe.H1) == 720
        assert timeframe_limit(Timeframe.H4) == 180
        assert timeframe_limit(Timeframe.D1) == 30
        assert timeframe_limit(Timeframe.M15) == 1000
        assert timeframe_limit(Timeframe.M1) == 1000

    @pytest.mark.asyncio
    async def test_default_timeframes(self):
        """1h, 4h and 1d are fetched with their own limits."""
        source = RecordingSource()
        service = RecommendationService(candle_source=source)
        result = await service.recommend_multi_timeframe("BTCUSDT")
        assert sorted(source.requests, key=lambda r: r[2]) == [
            ("BTCUSDT", Timeframe.D1, 30),
            ("BTCUSDT", Timeframe.H4, 180),
            ("BTCUSDT", Timeframe.H1, 720),
        ]
        assert [item.timeframe for item in result.timeframes] == [
            Timeframe.H1, Timeframe.H4, Timeframe.D1,
        ]
        assert result.errors == ()
        assert result.symbol == "BTCUSDT"

    @pytest.mark.asyncio
    async def test_duplicate_timeframes_fetched_once(self):
        """Repeated timeframes are scored once."""
        source = RecordingSource()
        service = RecommendationService(candle_source=source)
        result = await service.recommend_multi_timeframe(
            "BTCUSDT", [Timeframe.H4, Timeframe.H4]
        )
        assert len(source.requests) == 1
        assert len(result.timeframes) == 1

    @pytest.mark.asyncio
    async def test_failed_timeframe_is_reported(self):
        """A failing timeframe lands in errors; the others still count."""
        service = RecommendationService(candle_source=RecordingSource(failing={Timeframe.D1}))
        result = await service.recommend_multi_timeframe("BTCUSDT")
        assert [item.timeframe for item in result.timeframes] == [Timeframe.H1, Timeframe.H4]
        assert len(result.errors) == 1
        assert result.errors[0].timeframe == Timeframe.D1
        assert "feed down" in result.errors[0].error

    @pytest.mark.asyncio
    async def test_all_timeframes_failing(self):
        """No scored timeframe is a service error."""
        source = RecordingSource(failing={Timeframe.H1, Timeframe.H4})
        service = RecommendationService(candle_source=source)
        with pytest.raises(ServiceError) as exc_info:
            await service.recommend_multi_timeframe("BTCUSDT", [Timeframe.H1, Timeframe.H4])
        assert len(exc_info.value.details["errors"]) == 2

    @pytest.mark.asyncio
    async def test_config_version(self):
        """The service config reaches the summary."""
        service = RecommendationService(
            config=ScoringConfig(version="mtf"), candle_source=RecordingSource()
        )
        result = await service.recommend_multi_timeframe("ETHUSDT", [Timeframe.H1])
        assert result.config_version == "mtf"
        assert result.timeframes[0].result.config_version == "mtf"
