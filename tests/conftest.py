"""Shared fixtures."""

import pytest
from fastapi.testclient import TestClient

from helpers import FIXED_END, make_candles, trend_closes
from trendsignal.main import app
from trendsignal.schemas.market import Candle, Timeframe
from trendsignal.services.data_ingestion import generate_mock_candles


@pytest.fixture
def uptrend_candles() -> list[Candle]:
    """721 hourly candles rising 0.1% per candle."""
    return make_candles(trend_closes(721, 1.001))


@pytest.fixture
def downtrend_candles() -> list[Candle]:
    """721 hourly candles falling 0.1% per candle."""
    return make_candles(trend_closes(721, 0.999))


@pytest.fixture
def mock_candles() -> list[Candle]:
    """720 deterministic random-walk candles."""
    return generate_mock_candles("BTCUSDT", Timeframe.H1, 720, seed=7, end_time=FIXED_END)


@pytest.fixture
def short_candles() -> list[Candle]:
    """14 candles: too few for RSI, ATR and ADX."""
    return make_candles([100.0 + i for i in range(14)])


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
