"""Shared candle fixtures.

``dip_candles`` is an hourly EUR/USD series: a tight two-price range for
107 candles, a sell-off into candle 120 (RSI ≈ 22, close under the lower
Bollinger Band, stochastic pinned low), then a steady recovery.
"""

from datetime import datetime, timedelta, timezone

import pytest

from signalcore.strategy.models import Candle

DIP_INDEX = 120

_SELL_OFF = [
    1.0990, 1.0980, 1.1000, 1.0990, 1.0980, 1.0970, 1.0990,
    1.0980, 1.0970, 1.0960, 1.0950, 1.0940, 1.0930, 1.0900,
]


def hourly_timestamp(i: int) -> str:
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(hours=i)
    return ts.strftime("%Y-%m-%dT%H:%M:%SZ")


def candles_from_closes(closes: list[float], wick: float = 0.0003) -> list[Candle]:
    """Open = previous close; high/low extend *wick* beyond the body."""
    candles = []
    prev = closes[0]
    for i, close in enumerate(closes):
        o = prev
        candles.append(Candle(
            timestamp=hourly_timestamp(i),
            open=o,
            high=round(max(o, close) + wick, 5),
            low=round(min(o, close) - wick, 5),
            close=close,
            volume=1000.0,
        ))
        prev = close
    return candles


def dip_closes(length: int = 150) -> list[float]:
    closes = [1.1000 if i % 2 == 0 else 1.1002 for i in range(107)]
    closes += _SELL_OFF
    while len(closes) < length:
        closes.append(round(closes[-1] + 0.0010, 4))
    return closes[:length]


@pytest.fixture
def dip_candles() -> list[Candle]:
    return candles_from_closes(dip_closes())


@pytest.fixture
def dip_rows(dip_candles) -> list[dict]:
    """The dip series as plain dicts (API request bodies)."""
    return [
        {
            "timestamp": c.timestamp,
            "open": c.open,
            "high": c.high,
            "low": c.low,
            "close": c.close,
            "volume": c.volume,
        }
        for c in dip_candles
    ]
