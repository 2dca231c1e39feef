"""Tests for the backtest engine and statistics."""

import math
import time

import pytest

from signalcore.backtest.engine import BacktestEngine
from signalcore.backtest.models import Trade
from signalcore.backtest.stats import (
    _max_drawdown,
    _profit_factor,
    calculate_stats,
    cumulative_pips,
)
from signalcore.config import BacktestConfig, Config
from signalcore.errors import CandleValidationError, InsufficientHistoryError
from signalcore.strategy.models import Candle


# ── Helpers ──────────────────────────────────────────────────────────────


def _trade(pips: float, patterns=("Doji",)) -> Trade:
    return Trade(
        entry_time="2024-01-01T00:00:00Z",
        entry_price=1.1,
        exit_time="2024-01-01T05:00:00Z",
        exit_price=1.1 + pips / 10_000,
        direction="BUY",
        outcome="WIN" if pips > 0 else "LOSS",
        pips=pips,
        confidence=80.0,
        patterns=tuple(patterns),
        stop_loss=1.099,
        take_profit=1.103,
        exit_reason="timeout",
    )


def _index_of(candles: list[Candle], timestamp: str) -> int:
    return next(i for i, c in enumerate(candles) if c.timestamp == timestamp)


# ── Statistics ───────────────────────────────────────────────────────────


class TestStats:
    def test_cumulative_and_drawdown(self):
        pips = [10, 5, -20, 8]
        assert cumulative_pips(pips) == [10, 15, -5, 3]
        assert _max_drawdown(pips) == pytest.approx(20)

    def test_opening_loss_counts_as_drawdown(self):
        assert _max_drawdown([-5, 2]) == pytest.approx(5)

    def test_profit_factor(self):
        assert _profit_factor([10, 5, -20, 8]) == pytest.approx(23 / 20)
        assert _profit_factor([10, 5]) == math.inf
        assert _profit_factor([]) == 0.0
        assert _profit_factor([0.0]) == 0.0

    def test_calculate_stats(self):
        trades = [
            _trade(10, ("Doji", "Uptrend")),
            _trade(5, ("Uptrend",)),
            _trade(-20, ("Doji",)),
            _trade(8),
        ]
        stats = calculate_stats(trades)
        assert stats["total_trades"] == 4
        assert stats["wins"] == 3
        assert stats["losses"] == 1
        assert stats["win_rate"] == pytest.approx(0.75)
        assert stats["total_pips"] == pytest.approx(3)
        assert stats["avg_pips_per_trade"] == pytest.approx(0.75)
        assert stats["max_drawdown_pips"] == pytest.approx(20)
        doji = stats["pattern_stats"]["Doji"]
        assert (doji.wins, doji.losses) == (2, 1)
        assert doji.win_rate == pytest.approx(2 / 3)

    def test_empty(self):
        stats = calculate_stats([])
        assert stats["total_trades"] == 0
        assert stats["profit_factor"] == 0.0
        assert stats["pattern_stats"] == {}


# ── Engine ───────────────────────────────────────────────────────────────


class TestEngine:
    def test_finds_dip_buy(self, dip_candles):
        result = BacktestEngine().run(dip_candles)
        assert result.total_trades >= 1
        assert any(t.direction == "BUY" for t in result.trades)
        assert result.period_start == dip_candles[0].timestamp
        assert result.period_end == dip_candles[-1].timestamp
        assert result.weight_table_version == "2024.1"
        assert not result.aborted

    def test_trades_are_consistent(self, dip_candles):
        result = BacktestEngine().run(dip_candles)
        for t in result.trades:
            entry = _index_of(dip_candles, t.entry_time)
            exit_ = _index_of(dip_candles, t.exit_time)
            assert 100 <= entry <= len(dip_candles) - 25
            assert entry < exit_ <= entry + 24
            assert t.outcome in ("WIN", "LOSS")
            sign = 1 if t.direction == "BUY" else -1
            assert t.pips == pytest.approx(sign * (t.exit_price - t.entry_price) / 0.0001)

    def test_cooldown_between_entries(self, dip_candles):
        result = BacktestEngine().run(dip_candles)
        entries = [_index_of(dip_candles, t.entry_time) for t in result.trades]
        for a, b in zip(entries, entries[1:]):
            assert b - a >= 4

    def test_idempotent(self, dip_candles):
        engine = BacktestEngine()
        assert engine.run(dip_candles).to_dict() == engine.run(dip_candles).to_dict()

    def test_max_trades(self, dip_candles):
        result = BacktestEngine().run(dip_candles, max_trades=1)
        assert result.total_trades == 1

    def test_reported_trades_capped(self, dip_candles):
        config = Config(backtest=BacktestConfig(max_reported_trades=0))
        result = BacktestEngine(config).run(dip_candles)
        assert result.total_trades >= 1
        assert result.trades == ()

    def test_should_stop_aborts(self, dip_candles):
        result = BacktestEngine().run(dip_candles, should_stop=lambda: True)
        assert result.aborted
        assert result.total_trades == 0
        assert result.evaluated_bars == 0

    def test_past_deadline_aborts(self, dip_candles):
        result = BacktestEngine().run(dip_candles, deadline=time.monotonic() - 1)
        assert result.aborted

    def test_insufficient_history(self, dip_candles):
        with pytest.raises(InsufficientHistoryError):
            BacktestEngine().run(dip_candles[:124])

    def test_minimum_history_runs(self, dip_candles):
        result = BacktestEngine().run(dip_candles[:125])
        assert result.evaluated_bars == 1

    def test_malformed_candles(self, dip_candles):
        candles = list(dip_candles)
        candles[50], candles[51] = candles[51], candles[50]
        with pytest.raises(CandleValidationError) as exc_info:
            BacktestEngine().run(candles)
        assert exc_info.value.index == 51

    def test_to_dict_shape(self, dip_candles):
        data = BacktestEngine().run(dip_candles).to_dict()
        assert set(data) >= {
            "period", "trades", "total_trades", "wins", "losses", "win_rate",
            "total_pips", "avg_pips_per_trade", "profit_factor",
            "max_drawdown_pips", "pattern_stats", "aborted",
        }
        assert data["wins"] + data["losses"] == data["total_trades"]
