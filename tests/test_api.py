"""Tests for the HTTP API."""

from helpers import FIXED_END, make_candles
from trendsignal.schemas.market import Timeframe
from trendsignal.services.data_ingestion import generate_mock_candles


def _payload(candles, symbol="BTCUSDT", timeframe="1h"):
    return {
        "symbol": symbol,
        "timeframe": timeframe,
        "candles": [c.model_dump(mode="json") for c in candles],
    }


MOCK = generate_mock_candles("BTCUSDT", Timeframe.H1, 300, seed=11, end_time=FIXED_END)


class TestHealth:
    """Service endpoints."""

    def test_health(self, client):
        """Health reports the app and the candle source."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["candle_source"] is True

    def test_root(self, client):
        """Root points at the docs."""
        assert client.get("/").json()["docs"] == "/docs"


class TestAnalysisEndpoints:
    """Analysis over posted candles."""

    def test_indicators(self, client):
        """Latest indicator values are returned."""
        response = client.post("/api/v1/analysis/indicators", json=_payload(MOCK))
        assert response.status_code == 200
        data = response.json()
        assert data["candle_count"] == 300
        assert data["latest"]["rsi"] is not None
        assert data["unavailable"] == {}

    def test_indicators_short_history(self, client):
        """Short history reports unavailable indicators instead of failing."""
        candles = make_candles([100.0 + i for i in range(10)])
        response = client.post("/api/v1/analysis/indicators", json=_payload(candles))
        assert response.status_code == 200
        assert "rsi" in response.json()["unavailable"]

    def test_patterns(self, client):
        """Pattern analysis has a summary."""
        response = client.post("/api/v1/analysis/patterns", json=_payload(MOCK))
        assert response.status_code == 200
        assert "primary_signal" in response.json()["summary"]

    def test_divergences(self, client):
        """Divergence analysis has a combined score."""
        response = client.post("/api/v1/analysis/divergences", json=_payload(MOCK))
        assert response.status_code == 200
        assert 0 <= response.json()["combined"]["score"] <= 100

    def test_breakout(self, client):
        """Breakout analysis has a score and levels."""
        response = client.post("/api/v1/analysis/breakout", json=_payload(MOCK))
        assert response.status_code == 200
        data = response.json()
        assert 0 <= data["score"] <= 100
        assert data["candles_analyzed"] == 300
        assert data["levels"]["current_price"] == MOCK[-1].close

    def test_breakout_short_history(self, client):
        """Short history is an empty analysis, not an error."""
        candles = make_candles([100.0 + i for i in range(10)])
        response = client.post("/api/v1/analysis/breakout", json=_payload(candles))
        assert response.status_code == 200
        assert response.json()["summary"] == "Not enough data for breakout analysis"

    def test_recommendation(self, client):
        """A posted history is scored."""
        response = client.post("/api/v1/analysis/recommendation", json=_payload(MOCK))
        assert response.status_code == 200
        data = response.json()
        assert 0 <= data["score"] <= 100
        assert data["config_version"] == "1.0"
        assert set(data["breakdown"]) == {
            "long_term_trend", "macd", "ema_cross", "adx", "rsi", "bollinger", "volume",
        }

    def test_empty_candles(self, client):
        """An empty history is a 400."""
        response = client.post("/api/v1/analysis/recommendation", json=_payload([]))
        assert response.status_code == 400

    def test_too_many_candles(self, client):
        """Histories above the configured maximum are a 400."""
        candles = generate_mock_candles("BTCUSDT", Timeframe.M1, 1001, end_time=FIXED_END)
        response = client.post("/api/v1/analysis/indicators", json=_payload(candles, timeframe="1m"))
        assert response.status_code == 400

    def test_invalid_candle(self, client):
        """A non-positive price fails request validation."""
        payload = _payload(MOCK[:5])
        payload["candles"][0]["close"] = -1
        response = client.post("/api/v1/analysis/recommendation", json=payload)
        assert response.status_code == 422


class TestSymbolRecommendation:
    """Recommendation from the candle source."""

    def test_symbol_recommendation(self, client):
        """Candles come from the mock source."""
        response = client.get(
            "/api/v1/analysis/btcusdt/recommendation", params={"timeframe": "1h", "limit": 300}
        )
        assert response.status_code == 200
        assert response.json()["unavailable"] == {}

    def test_invalid_timeframe(self, client):
        """Unknown timeframes are rejected."""
        response = client.get(
            "/api/v1/analysis/BTCUSDT/recommendation", params={"timeframe": "7m"}
        )
        assert response.status_code == 422

    def test_invalid_limit(self, client):
        """Limit must be positive."""
        response = client.get(
            "/api/v1/analysis/BTCUSDT/recommendation", params={"limit": 0}
        )
        assert response.status_code == 422


class TestMultiTimeframe:
    """Recommendation across timeframes from the candle source."""

    def test_default_timeframes(self, client):
        """1h, 4h and 1d are scored by default."""
        response = client.get("/api/v1/analysis/btcusdt/multi-timeframe")
        assert response.status_code == 200
        data = response.json()
        assert data["symbol"] == "BTCUSDT"
        assert [item["timeframe"] for item in data["timeframes"]] == ["1h", "4h", "1d"]
        assert data["errors"] == []
        assert data["summary"]["alignment"] in {
            "ALL_STRONG_BUY", "ALL_BULLISH", "ALL_BEARISH",
            "MOSTLY_BULLISH", "MOSTLY_BEARISH", "CONFLICTING",
        }

    def test_selected_timeframes(self, client):
        """Repeated query parameters select the timeframes."""
        response = client.get(
            "/api/v1/analysis/BTCUSDT/multi-timeframe",
            params=[("timeframes", "15m"), ("timeframes", "1h")],
        )
        assert response.status_code == 200
        assert [item["timeframe"] for item in response.json()["timeframes"]] == ["15m", "1h"]

    def test_invalid_timeframe(self, client):
        """Unknown timeframes are rejected."""
        response = client.get(
            "/api/v1/analysis/BTCUSDT/multi-timeframe", params={"timeframes": "7m"}
        )
        assert response.status_code == 422
