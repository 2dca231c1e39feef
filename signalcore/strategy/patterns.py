"""Pattern detection — candlestick, chart, trend and proximity tags. Pure functions, no I/O.

Scans the trailing window ending at the evaluated candle for candlestick,
chart, trend, momentum and proximity patterns.  Output is a list of label
strings; scoring happens elsewhere.
"""

from typing import Literal, Optional

from signalcore.config import PatternConfig
from signalcore.strategy.models import Candle
from signalcore.strategy.sr_levels import find_sr_levels, find_swing_highs, find_swing_lows
from signalcore.strategy.trend import detect_momentum, detect_trend


PatternDirection = Literal["bullish", "bearish", "neutral"]

DOJI = "Doji"
BULLISH_ENGULFING = "Bullish Engulfing"
BEARISH_ENGULFING = "Bearish Engulfing"
DOUBLE_TOP = "Double Top"
DOUBLE_BOTTOM = "Double Bottom"
UPTREND = "Uptrend"
DOWNTREND = "Downtrend"
BULLISH_REVERSAL = "Bullish Reversal Forming"
BEARISH_REVERSAL = "Bearish Reversal Forming"
BULLISH_MOMENTUM = "Bullish Momentum"
BEARISH_MOMENTUM = "Bearish Momentum"
NEAR_SUPPORT = "Near Support"
NEAR_RESISTANCE = "Near Resistance"

# label → (group, direction)
PATTERN_CATALOG: dict[str, tuple[str, PatternDirection]] = {
    DOJI: ("candlestick", "neutral"),
    BULLISH_ENGULFING: ("candlestick", "bullish"),
    BEARISH_ENGULFING: ("candlestick", "bearish"),
    DOUBLE_TOP: ("chart", "bearish"),
    DOUBLE_BOTTOM: ("chart", "bullish"),
    UPTREND: ("trend", "bullish"),
    DOWNTREND: ("trend", "bearish"),
    BULLISH_REVERSAL: ("trend", "bullish"),
    BEARISH_REVERSAL: ("trend", "bearish"),
    BULLISH_MOMENTUM: ("momentum", "bullish"),
    BEARISH_MOMENTUM: ("momentum", "bearish"),
    NEAR_SUPPORT: ("proximity", "bullish"),
    NEAR_RESISTANCE: ("proximity", "bearish"),
}


def pattern_direction(label: str) -> PatternDirection:
    """Implied direction of a pattern label (``neutral`` if unknown)."""
    entry = PATTERN_CATALOG.get(label)
    return entry[1] if entry else "neutral"


def pattern_group(label: str) -> Optional[str]:
    entry = PATTERN_CATALOG.get(label)
    return entry[0] if entry else None


# ── Candlestick patterns ─────────────────────────────────────────────────


def _is_doji(candle: Candle, body_ratio: float) -> bool:
    rng = candle.high - candle.low
    if rng <= 0:
        return False
    return abs(candle.close - candle.open) / rng < body_ratio


def _engulfing(prev: Candle, curr: Candle) -> Optional[str]:
    """Return the engulfing label for *curr* over *prev*, if any.

    The current body must contain the previous body, be strictly larger,
    and point the opposite way.
    """
    prev_body = abs(prev.close - prev.open)
    curr_body = abs(curr.close - curr.open)
    if curr_body <= prev_body:
        return None

    if (prev.close < prev.open and curr.close > curr.open
            and curr.open <= prev.close and curr.close >= prev.open):
        return BULLISH_ENGULFING
    if (prev.close > prev.open and curr.close < curr.open
            and curr.open >= prev.close and curr.close <= prev.open):
        return BEARISH_ENGULFING
    return None


# ── Chart patterns ───────────────────────────────────────────────────────


def _double_extreme(
    swings: list[tuple[int, float]],
    tolerance: float,
    min_separation: int,
) -> bool:
    """True when the last two swings are far enough apart and within tolerance."""
    if len(swings) < 2:
        return False
    (idx1, val1), (idx2, val2) = swings[-2], swings[-1]
    if idx2 - idx1 < min_separation:
        return False
    return abs(val2 - val1) <= abs(val1) * tolerance


# ── Detector ─────────────────────────────────────────────────────────────


def detect_patterns(
    candles: list[Candle],
    index: Optional[int] = None,
    config: PatternConfig = PatternConfig(),
    sr_levels: Optional[tuple[list[float], list[float]]] = None,
) -> list[str]:
    """Detect pattern labels for the window ending at ``candles[index]``.

    Args:
        candles: Candle history, oldest-first.
        index: Evaluated candle; defaults to the last one.  Candles after
            it are never read.
        config: Detector thresholds.
        sr_levels: Pre-computed ``(support, resistance)`` levels.  When
            omitted they are computed from the ``config.sr_lookback``
            candles ending at *index*.

    Returns:
        Pattern labels (see ``PATTERN_CATALOG``).  Empty when fewer than
        ``config.window`` candles end at *index*.
    """
    if index is None:
        index = len(candles) - 1
    if index + 1 < config.window:
        return []

    history = candles[:index + 1]
    window = history[-config.window:]
    closes = [c.close for c in window]
    highs = [c.high for c in window]
    lows = [c.low for c in window]
    price = closes[-1]
    patterns: list[str] = []

    # Doji in any of the last few candles
    for candle in window[-config.doji_lookback:]:
        if _is_doji(candle, config.doji_body_ratio):
            patterns.append(DOJI)
            break

    engulfing = _engulfing(window[-2], window[-1])
    if engulfing:
        patterns.append(engulfing)

    if _double_extreme(
        find_swing_highs(highs, config.swing_window),
        config.double_tolerance,
        config.double_min_separation,
    ):
        patterns.append(DOUBLE_TOP)
    if _double_extreme(
        find_swing_lows(lows, config.swing_window),
        config.double_tolerance,
        config.double_min_separation,
    ):
        patterns.append(DOUBLE_BOTTOM)

    trend = detect_trend(closes, config.trend_fast, config.trend_slow)
    trend_label = {
        "uptrend": UPTREND,
        "downtrend": DOWNTREND,
        "bullish_reversal": BULLISH_REVERSAL,
        "bearish_reversal": BEARISH_REVERSAL,
    }.get(trend.direction)
    if trend_label:
        patterns.append(trend_label)

    momentum = detect_momentum(
        window, config.momentum_lookback, config.momentum_threshold,
    )
    if momentum.direction == "bullish":
        patterns.append(BULLISH_MOMENTUM)
    elif momentum.direction == "bearish":
        patterns.append(BEARISH_MOMENTUM)

    if sr_levels is None:
        recent = history[-config.sr_lookback:]
        sr_levels = find_sr_levels(
            [c.high for c in recent],
            [c.low for c in recent],
            price,
            lookback=config.sr_lookback,
            swing_window=config.sr_swing_window,
        )
    support, resistance = sr_levels
    proximity = 2 * config.double_tolerance * price
    if any(abs(price - level) <= proximity for level in support):
        patterns.append(NEAR_SUPPORT)
    if any(abs(price - level) <= proximity for level in resistance):
        patterns.append(NEAR_RESISTANCE)

    return patterns
