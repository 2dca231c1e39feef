"""Backtest data models — simulated trades and the aggregate result."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Trade:
    """One simulated trade, opened at a signal candle's close."""

    entry_time: str
    entry_price: float
    exit_time: str
    exit_price: float
    direction: str  # "BUY" or "SELL"
    outcome: str  # "WIN" or "LOSS"
    pips: float
    confidence: float
    patterns: tuple[str, ...]
    stop_loss: float
    take_profit: float
    exit_reason: str  # "stop_loss", "take_profit" or "timeout"

    def to_dict(self) -> dict:
        return {
            "entry_time": self.entry_time,
            "entry_price": self.entry_price,
            "exit_time": self.exit_time,
            "exit_price": self.exit_price,
            "direction": self.direction,
            "outcome": self.outcome,
            "pips": self.pips,
            "confidence": self.confidence,
            "patterns": list(self.patterns),
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "exit_reason": self.exit_reason,
        }


@dataclass(frozen=True)
class PatternStats:
    """Win/loss tally for one pattern label across all trades."""

    wins: int = 0
    losses: int = 0

    @property
    def win_rate(self) -> float:
        total = self.wins + self.losses
        return self.wins / total if total else 0.0

    def to_dict(self) -> dict:
        return {"wins": self.wins, "losses": self.losses, "win_rate": self.win_rate}


@dataclass(frozen=True)
class BacktestResult:
    """Aggregate outcome of one replay.

    ``trades`` holds only the most recent trades; every statistic covers
    the full set.
    """

    period_start: Optional[str]
    period_end: Optional[str]
    trades: tuple[Trade, ...] = ()
    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    total_pips: float = 0.0
    avg_pips_per_trade: float = 0.0
    profit_factor: float = 0.0
    max_drawdown_pips: float = 0.0
    pattern_stats: dict[str, PatternStats] = field(default_factory=dict)
    evaluated_bars: int = 0
    aborted: bool = False
    weight_table_version: str = ""

    def to_dict(self) -> dict:
        return {
            "period": {"start": self.period_start, "end": self.period_end},
            "trades": [t.to_dict() for t in self.trades],
            "total_trades": self.total_trades,
            "wins": self.wins,
            "losses": self.losses,
            "win_rate": self.win_rate,
            "total_pips": self.total_pips,
            "avg_pips_per_trade": self.avg_pips_per_trade,
            "profit_factor": self.profit_factor,
            "max_drawdown_pips": self.max_drawdown_pips,
            "pattern_stats": {
                name: stats.to_dict()
                for name, stats in sorted(self.pattern_stats.items())
            },
            "evaluated_bars": self.evaluated_bars,
            "aborted": self.aborted,
            "weight_table_version": self.weight_table_version,
        }
