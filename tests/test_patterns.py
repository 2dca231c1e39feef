"""Deterministic tests for the pattern detector and trend classification."""

from datetime import datetime, timedelta, timezone

import pytest

from signalcore.config import PatternConfig
from signalcore.strategy.models import Candle
from signalcore.strategy.patterns import (
    BEARISH_ENGULFING,
    BEARISH_MOMENTUM,
    BULLISH_ENGULFING,
    BULLISH_MOMENTUM,
    BULLISH_REVERSAL,
    DOJI,
    DOUBLE_BOTTOM,
    DOUBLE_TOP,
    DOWNTREND,
    NEAR_RESISTANCE,
    NEAR_SUPPORT,
    UPTREND,
    detect_patterns,
    pattern_direction,
    pattern_group,
)
from signalcore.strategy.trend import detect_momentum, detect_trend


# ── Candle fixtures ──────────────────────────────────────────────────────


def _ts(i: int) -> str:
    t = datetime(2024, 3, 4, tzinfo=timezone.utc) + timedelta(hours=i)
    return t.strftime("%Y-%m-%dT%H:%M:%SZ")


def _make_candle(i: int, o: float, h: float, l: float, c: float) -> Candle:
    return Candle(timestamp=_ts(i), open=o, high=h, low=l, close=c)


def _flat(n: int, price: float = 1.1000) -> list[Candle]:
    """Zero-body candles with a 3-pip wick either side."""
    return [_make_candle(i, price, price + 0.0003, price - 0.0003, price) for i in range(n)]


def _from_closes(closes: list[float], wick: float = 0.0002) -> list[Candle]:
    candles = []
    prev = closes[0]
    for i, c in enumerate(closes):
        candles.append(_make_candle(i, prev, max(prev, c) + wick, min(prev, c) - wick, c))
        prev = c
    return candles


def _rising(n: int = 60) -> list[Candle]:
    return _from_closes([1.1000 + 0.0005 * i for i in range(n)])


def _falling(n: int = 60) -> list[Candle]:
    return _from_closes([1.1000 - 0.0005 * i for i in range(n)])


# ── Window ───────────────────────────────────────────────────────────────


class TestWindow:
    def test_fewer_than_window_is_empty(self):
        assert detect_patterns(_flat(49)) == []

    def test_exact_window_is_scanned(self):
        assert DOJI in detect_patterns(_flat(50))

    def test_index_ignores_later_candles(self):
        candles = _rising(80)
        assert detect_patterns(candles, index=55) == detect_patterns(candles[:56])

    def test_index_before_window_is_empty(self):
        assert detect_patterns(_rising(80), index=30) == []


# ── Candlestick patterns ─────────────────────────────────────────────────


class TestCandlestick:
    def test_doji_in_flat_series(self):
        assert DOJI in detect_patterns(_flat(60))

    def test_no_doji_with_real_bodies(self):
        assert DOJI not in detect_patterns(_rising())

    def test_bullish_engulfing(self):
        candles = _flat(48)
        candles.append(_make_candle(48, 1.1010, 1.1013, 1.0997, 1.1000))  # bearish
        candles.append(_make_candle(49, 1.0998, 1.1018, 1.0995, 1.1015))  # engulfs
        patterns = detect_patterns(candles)
        assert BULLISH_ENGULFING in patterns
        assert BEARISH_ENGULFING not in patterns

    def test_bearish_engulfing(self):
        candles = _flat(48)
        candles.append(_make_candle(48, 1.1000, 1.1013, 1.0997, 1.1010))  # bullish
        candles.append(_make_candle(49, 1.1012, 1.1015, 1.0992, 1.0995))  # engulfs
        assert BEARISH_ENGULFING in detect_patterns(candles)

    def test_equal_bodies_do_not_engulf(self):
        candles = _flat(48)
        candles.append(_make_candle(48, 1.1010, 1.1013, 1.0997, 1.1000))
        candles.append(_make_candle(49, 1.1000, 1.1013, 1.0997, 1.1010))
        assert BULLISH_ENGULFING not in detect_patterns(candles)


# ── Chart patterns ───────────────────────────────────────────────────────


class TestDoubleTopBottom:
    def _with_spikes(self, first: int, second: int, high1: float, high2: float):
        candles = _flat(50)
        for idx, high in ((first, high1), (second, high2)):
            c = candles[idx]
            candles[idx] = _make_candle(idx, c.open, high, c.low, c.close)
        return candles

    def test_double_top(self):
        patterns = detect_patterns(self._with_spikes(30, 40, 1.1050, 1.1045))
        assert DOUBLE_TOP in patterns
        assert DOUBLE_BOTTOM not in patterns

    def test_swings_too_close(self):
        assert DOUBLE_TOP not in detect_patterns(self._with_spikes(30, 33, 1.1050, 1.1050))

    def test_swings_too_far_apart_in_price(self):
        # 2 % of 1.1050 is 0.0221; these differ by 0.0350
        assert DOUBLE_TOP not in detect_patterns(self._with_spikes(30, 40, 1.1050, 1.1400))

    def test_double_bottom(self):
        candles = _flat(50)
        for idx in (25, 38):
            c = candles[idx]
            candles[idx] = _make_candle(idx, c.open, c.high, 1.0950, c.close)
        assert DOUBLE_BOTTOM in detect_patterns(candles)


# ── Trend and momentum ───────────────────────────────────────────────────


class TestTrendTags:
    def test_rising_series(self):
        patterns = detect_patterns(_rising())
        assert UPTREND in patterns
        assert BULLISH_MOMENTUM in patterns

    def test_falling_series(self):
        patterns = detect_patterns(_falling())
        assert DOWNTREND in patterns
        assert BEARISH_MOMENTUM in patterns

    def test_bullish_reversal_forming(self):
        closes = [1.2000 - 0.0010 * i for i in range(49)]
        closes.append(closes[-1] + 0.0200)
        patterns = detect_patterns(_from_closes(closes))
        assert BULLISH_REVERSAL in patterns
        assert UPTREND not in patterns

    def test_detect_trend_flat_on_empty(self):
        assert detect_trend([]).direction == "flat"

    def test_momentum_counts(self):
        state = detect_momentum(_rising(30))
        assert state.direction == "bullish"
        assert state.higher_highs == 20
        assert state.lower_lows == 0

    def test_momentum_below_threshold_is_flat(self):
        assert detect_momentum(_flat(30)).direction == "flat"


# ── Proximity ────────────────────────────────────────────────────────────


class TestProximity:
    def test_near_supplied_support(self):
        patterns = detect_patterns(_flat(60), sr_levels=([1.0990], []))
        assert NEAR_SUPPORT in patterns
        assert NEAR_RESISTANCE not in patterns

    def test_far_level_ignored(self):
        patterns = detect_patterns(_flat(60), sr_levels=([0.9000], [1.3000]))
        assert NEAR_SUPPORT not in patterns
        assert NEAR_RESISTANCE not in patterns

    def test_no_levels(self):
        patterns = detect_patterns(_flat(60), sr_levels=([], []))
        assert NEAR_SUPPORT not in patterns

    def _old_swing_low(self) -> list[Candle]:
        """Flat series with a single swing low ten candles before the window."""
        candles = _flat(60)
        c = candles[5]
        candles[5] = _make_candle(5, c.open, c.high, 1.0990, c.close)
        return candles

    def test_computed_levels_use_sr_lookback(self):
        assert NEAR_SUPPORT in detect_patterns(self._old_swing_low())
        short = PatternConfig(sr_lookback=40)
        assert NEAR_SUPPORT not in detect_patterns(self._old_swing_low(), config=short)

    def test_computed_levels_use_swing_window(self):
        wide = PatternConfig(sr_swing_window=6)
        assert NEAR_SUPPORT not in detect_patterns(self._old_swing_low(), config=wide)


# ── Catalog ──────────────────────────────────────────────────────────────


class TestCatalog:
    @pytest.mark.parametrize("label,direction", [
        (DOUBLE_TOP, "bearish"),
        (DOUBLE_BOTTOM, "bullish"),
        (DOJI, "neutral"),
        (NEAR_SUPPORT, "bullish"),
        ("Something Else", "neutral"),
    ])
    def test_direction(self, label, direction):
        assert pattern_direction(label) == direction

    def test_group(self):
        assert pattern_group(BULLISH_ENGULFING) == "candlestick"
        assert pattern_group(UPTREND) == "trend"
        assert pattern_group("Something Else") is None
