"""Technical indicators — RSI, EMA, MACD, Bollinger, Stochastic, ATR. Pure functions, no I/O.

Every indicator degrades to a neutral reading when the window is shorter
than its period instead of raising, so a snapshot is always complete.
"""

import math
from typing import Optional

from signalcore.config import IndicatorConfig
from signalcore.strategy.models import (
    BollingerBands,
    Candle,
    IndicatorSnapshot,
    MACDReading,
    StochasticReading,
)
from signalcore.strategy.sr_levels import find_sr_levels


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(closes: list[float], period: int = 14) -> float:
    """Relative Strength Index of the last *period* close-to-close changes.

    Algorithm:
        1. Take the last *period* deltas ``close[i] - close[i-1]``.
        2. avg_gain / avg_loss = mean of the positive / |negative| deltas.
        3. RSI = 100 - 100 / (1 + avg_gain / avg_loss).

    Returns 50.0 with fewer than ``period + 1`` closes and 100.0 when the
    average loss is zero.
    """
    if len(closes) < period + 1:
        return 50.0

    gains = 0.0
    losses = 0.0
    for i in range(len(closes) - period, len(closes)):
        change = closes[i] - closes[i - 1]
        if change > 0:
            gains += change
        else:
            losses -= change

    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


# ── EMA ──────────────────────────────────────────────────────────────────


def calculate_ema_series(values: list[float], period: int) -> list[float]:
    """Running Exponential Moving Average, same length as *values*.

    Seeded with the SMA of the first *period* values, then
    ``ema = (x - ema) * k + ema`` with ``k = 2 / (period + 1)``.
    Entries before the seed are ``float('nan')``; if *values* is shorter
    than *period* the whole series is NaN.
    """
    ema: list[float] = [float("nan")] * len(values)
    if len(values) < period:
        return ema

    k = 2.0 / (period + 1)
    current = sum(values[:period]) / period
    ema[period - 1] = current
    for i in range(period, len(values)):
        current = (values[i] - current) * k + current
        ema[i] = current
    return ema


def calculate_ema(values: list[float], period: int) -> float:
    """Latest EMA value.

    Returns the last raw value when the window is shorter than *period*
    (0.0 for an empty window).
    """
    if len(values) < period:
        return values[-1] if values else 0.0
    return calculate_ema_series(values, period)[-1]


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    closes: list[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDReading:
    """MACD line, signal and histogram.

    line   = EMA(fast) - EMA(slow) at the last close
    signal = EMA(signal) over the MACD-line history, i.e. the value of
             ``EMA(fast) - EMA(slow)`` at every index from *slow* onward
    hist   = line - signal

    Both EMA series are built once, so the history costs one linear pass.
    With fewer than *signal* history values the signal equals the line.
    """
    line = calculate_ema(closes, fast) - calculate_ema(closes, slow)

    fast_series = calculate_ema_series(closes, fast)
    slow_series = calculate_ema_series(closes, slow)
    history = [
        fast_series[i] - slow_series[i]
        for i in range(slow, len(closes))
    ]

    if len(history) >= signal:
        signal_value = calculate_ema(history, signal)
    else:
        signal_value = line

    return MACDReading(value=line, signal=signal_value, histogram=line - signal_value)


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    closes: list[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerBands:
    """Bollinger Bands over the last *period* closes.

    Middle = SMA, upper/lower = middle ± *std_dev* × population σ.
    A window shorter than *period* gives a flat band at the last close.
    """
    if len(closes) < period:
        last = closes[-1] if closes else 0.0
        return BollingerBands(upper=last, middle=last, lower=last)

    window = closes[-period:]
    sma = sum(window) / period
    variance = sum((x - sma) ** 2 for x in window) / period
    sigma = math.sqrt(variance)
    return BollingerBands(
        upper=sma + std_dev * sigma,
        middle=sma,
        lower=sma - std_dev * sigma,
    )


# ── Stochastic ───────────────────────────────────────────────────────────


def _raw_k(highs: list[float], lows: list[float], close: float) -> float:
    highest = max(highs)
    lowest = min(lows)
    if highest == lowest:
        return 50.0
    k = (close - lowest) / (highest - lowest) * 100.0
    # Guard against float drift outside the window's range
    return min(100.0, max(0.0, k))


def calculate_stochastic(
    highs: list[float],
    lows: list[float],
    closes: list[float],
    period: int = 14,
    smoothing: int = 3,
) -> StochasticReading:
    """Stochastic oscillator %K / %D.

    %K = (close - lowest low) / (highest high - lowest low) × 100 over the
    last *period* candles.  %D = simple mean of the last *smoothing* %K
    values (each computed on its own trailing window), or %K when fewer are
    available.  Returns 50/50 for a short window or a degenerate range.
    """
    n = len(closes)
    if n < period:
        return StochasticReading(k=50.0, d=50.0)
    if max(highs[-period:]) == min(lows[-period:]):
        return StochasticReading(k=50.0, d=50.0)

    k_history: list[float] = []
    for end in range(max(period, n - smoothing + 1), n + 1):
        k_history.append(
            _raw_k(highs[end - period:end], lows[end - period:end], closes[end - 1])
        )

    k = k_history[-1]
    if len(k_history) >= smoothing:
        d = sum(k_history[-smoothing:]) / smoothing
    else:
        d = k
    return StochasticReading(k=k, d=d)


# ── ATR ──────────────────────────────────────────────────────────────────


def calculate_atr(
    highs: list[float],
    lows: list[float],
    closes: list[float],
    period: int = 14,
) -> float:
    """Average True Range: mean of the last *period* true ranges.

    ``TR = max(high - low, |high - prev_close|, |low - prev_close|)``

    Returns 0.0 with fewer than ``period + 1`` candles.
    """
    n = len(closes)
    if n < period + 1:
        return 0.0

    total = 0.0
    for i in range(n - period, n):
        total += max(
            highs[i] - lows[i],
            abs(highs[i] - closes[i - 1]),
            abs(lows[i] - closes[i - 1]),
        )
    return total / period


# ── Snapshot ─────────────────────────────────────────────────────────────


def compute_snapshot(
    candles: list[Candle],
    index: Optional[int] = None,
    config: IndicatorConfig = IndicatorConfig(),
) -> IndicatorSnapshot:
    """Compute every indicator for the window ending at ``candles[index]``.

    Only ``candles[max(0, index - lookback) : index + 1]`` is read, so a
    snapshot never sees candles after *index*.  *index* defaults to the
    last candle.
    """
    if not candles:
        raise ValueError("compute_snapshot needs at least one candle")
    if index is None:
        index = len(candles) - 1
    if not 0 <= index < len(candles):
        raise IndexError(f"index {index} out of range for {len(candles)} candles")

    window = candles[max(0, index - config.lookback):index + 1]
    closes = [c.close for c in window]
    highs = [c.high for c in window]
    lows = [c.low for c in window]
    price = closes[-1]

    support, resistance = find_sr_levels(
        highs,
        lows,
        price,
        lookback=config.sr_lookback,
        swing_window=config.sr_swing_window,
        max_levels=config.sr_max_levels,
    )

    return IndicatorSnapshot(
        rsi=calculate_rsi(closes, config.rsi_period),
        macd=calculate_macd(
            closes, config.macd_fast, config.macd_slow, config.macd_signal,
        ),
        ema_fast=calculate_ema(closes, config.ema_fast),
        ema_mid=calculate_ema(closes, config.ema_mid),
        ema_slow=calculate_ema(closes, config.ema_slow),
        ema_long=calculate_ema(closes, config.ema_long),
        bollinger=calculate_bollinger(
            closes, config.bollinger_period, config.bollinger_std,
        ),
        stochastic=calculate_stochastic(
            highs, lows, closes,
            config.stochastic_period, config.stochastic_smoothing,
        ),
        atr=calculate_atr(highs, lows, closes, config.atr_period),
        support_levels=tuple(support),
        resistance_levels=tuple(resistance),
    )
