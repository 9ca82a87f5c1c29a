"""
Mock Candle Source

Generates a seeded random walk so the API runs without an exchange
connection. The same (seed, symbol, timeframe, limit, end time) always
yields the same candles.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from trendsignal.schemas.market import Candle, Timeframe
from trendsignal.services.data_ingestion.interface import CandleSourceInterface

# Base prices for common symbols
SYMBOL_BASE_PRICES = {
    "BTCUSDT": 67000.0,
    "ETHUSDT": 3500.0,
    "BNBUSDT": 580.0,
    "SOLUSDT": 150.0,
    "XRPUSDT": 0.52,
    "ADAUSDT": 0.45,
    "DOGEUSDT": 0.15,
    "AVAXUSDT": 35.0,
    "DOTUSDT": 7.0,
    "LINKUSDT": 15.0,
}


def get_base_price(symbol: str, rng: random.Random) -> float:
    """Get base price for a symbol."""
    return SYMBOL_BASE_PRICES.get(symbol, 1.0 + rng.random() * 100)


def generate_mock_candles(
    symbol: str,
    timeframe: Timeframe,
    limit: int,
    seed: int = 42,
    end_time: Optional[datetime] = None,
) -> list[Candle]:
    """Generate `limit` mock candles ending at `end_time`."""
    rng = random.Random(f"{seed}:{symbol}:{timeframe.value}")
    if end_time is None:
        end_time = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)

    interval = timedelta(seconds=timeframe.seconds)
    price = get_base_price(symbol, rng)
    timestamp = end_time - interval * limit
    candles = []

    for _ in range(limit):
        volatility = price * 0.02  # 2% volatility
        # Random walk with a slight upward drift
        change = (rng.random() - 0.49) * volatility

        open_price = price
        close_price = max(open_price + change, open_price * 0.5)
        high_price = max(open_price, close_price) + rng.random() * volatility * 0.5
        low_price = min(open_price, close_price) - rng.random() * volatility * 0.5
        low_price = max(low_price, min(open_price, close_price) * 0.9)

        candles.append(
            Candle(
                timestamp=timestamp,
                open=open_price,
                high=high_price,
                low=low_price,
                close=close_price,
                volume=rng.uniform(100.0, 5_000.0),
            )
        )

        price = close_price
        timestamp += interval

    return candles


class MockCandleSource(CandleSourceInterface):
    """Deterministic random-walk candles for development and tests."""

    def __init__(self, seed: int = 42, end_time: Optional[datetime] = None):
        self.seed = seed
        self.end_time = end_time

    @property
    def name(self) -> str:
        return "MockCandleSource"

    async def get_candles(self, symbol: str, timeframe: Timeframe, limit: int) -> list[Candle]:
        return generate_mock_candles(symbol, timeframe, limit, self.seed, self.end_time)

    async def health_check(self) -> bool:
        return True
