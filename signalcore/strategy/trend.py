"""Trend detection — EMA-ordering trend state and candle-count momentum.

Provides two detection modes:
- ``detect_trend()``: price vs EMA(fast) vs EMA(slow) ordering, with
  "reversal forming" states when price has crossed the fast EMA but the
  EMAs have not yet realigned.
- ``detect_momentum()``: counts higher highs / lower lows over a short
  window.
"""

from dataclasses import dataclass
from typing import Literal

from signalcore.strategy.indicators import calculate_ema
from signalcore.strategy.models import Candle


TrendDirection = Literal[
    "uptrend", "downtrend", "bullish_reversal", "bearish_reversal", "flat",
]


@dataclass(frozen=True)
class TrendState:
    """Snapshot of the current trend classification and EMA values."""

    direction: TrendDirection
    ema_fast_value: float
    ema_slow_value: float
    slope: float  # ema_fast - ema_slow (positive = bullish bias)


@dataclass(frozen=True)
class MomentumState:
    """Higher-high / lower-low counts over the momentum window."""

    direction: Literal["bullish", "bearish", "flat"]
    higher_highs: int
    lower_lows: int


def detect_trend(
    closes: list[float],
    ema_fast: int = 20,
    ema_slow: int = 50,
) -> TrendState:
    """Classify trend direction from price and dual-EMA ordering.

    Rules:
        - **uptrend**: price > EMA(fast) > EMA(slow).
        - **downtrend**: price < EMA(fast) < EMA(slow).
        - **bullish_reversal**: price > EMA(fast) but EMA(fast) ≤ EMA(slow).
        - **bearish_reversal**: price < EMA(fast) but EMA(fast) ≥ EMA(slow).
        - **flat**: price sits exactly on EMA(fast), or no data.
    """
    if not closes:
        return TrendState(direction="flat", ema_fast_value=0.0,
                          ema_slow_value=0.0, slope=0.0)

    ema_f = calculate_ema(closes, ema_fast)
    ema_s = calculate_ema(closes, ema_slow)
    price = closes[-1]

    if price > ema_f and ema_f > ema_s:
        direction = "uptrend"
    elif price < ema_f and ema_f < ema_s:
        direction = "downtrend"
    elif price > ema_f:
        direction = "bullish_reversal"
    elif price < ema_f:
        direction = "bearish_reversal"
    else:
        direction = "flat"

    return TrendState(
        direction=direction,
        ema_fast_value=ema_f,
        ema_slow_value=ema_s,
        slope=ema_f - ema_s,
    )


def detect_momentum(
    candles: list[Candle],
    lookback: int = 20,
    threshold: int = 12,
) -> MomentumState:
    """Count higher highs and lower lows over the last *lookback* candles.

    A candle makes a higher high when its high exceeds the previous
    candle's high (lower low likewise).  More than *threshold* of either
    sets the direction; if both qualify the larger count wins and a tie
    is flat.
    """
    if len(candles) < 2:
        return MomentumState(direction="flat", higher_highs=0, lower_lows=0)

    start = max(1, len(candles) - lookback)
    higher_highs = 0
    lower_lows = 0
    for i in range(start, len(candles)):
        if candles[i].high > candles[i - 1].high:
            higher_highs += 1
        if candles[i].low < candles[i - 1].low:
            lower_lows += 1

    bullish = higher_highs > threshold
    bearish = lower_lows > threshold
    if bullish and (not bearish or higher_highs > lower_lows):
        direction = "bullish"
    elif bearish and (not bullish or lower_lows > higher_highs):
        direction = "bearish"
    else:
        direction = "flat"

    return MomentumState(
        direction=direction,
        higher_highs=higher_highs,
        lower_lows=lower_lows,
    )
