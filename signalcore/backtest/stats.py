"""Backtest statistics — pure functions for trade-series analysis."""

import math

from signalcore.backtest.models import PatternStats, Trade


def calculate_stats(trades: list[Trade]) -> dict:
    """Compute summary statistics over every closed trade.

    Returns:
        Dict with ``total_trades``, ``wins``, ``losses``, ``win_rate``
        (fraction), ``total_pips``, ``avg_pips_per_trade``,
        ``profit_factor``, ``max_drawdown_pips`` and ``pattern_stats``.
    """
    if not trades:
        return {
            "total_trades": 0,
            "wins": 0,
            "losses": 0,
            "win_rate": 0.0,
            "total_pips": 0.0,
            "avg_pips_per_trade": 0.0,
            "profit_factor": 0.0,
            "max_drawdown_pips": 0.0,
            "pattern_stats": {},
        }

    pips = [t.pips for t in trades]
    total = len(trades)
    wins = sum(1 for t in trades if t.outcome == "WIN")
    losses = total - wins
    total_pips = sum(pips)

    return {
        "total_trades": total,
        "wins": wins,
        "losses": losses,
        "win_rate": wins / total,
        "total_pips": total_pips,
        "avg_pips_per_trade": total_pips / total,
        "profit_factor": _profit_factor(pips),
        "max_drawdown_pips": _max_drawdown(pips),
        "pattern_stats": pattern_breakdown(trades),
    }


def pattern_breakdown(trades: list[Trade]) -> dict[str, PatternStats]:
    """Wins and losses per pattern label present at entry."""
    tally: dict[str, list[int]] = {}
    for t in trades:
        for label in t.patterns:
            counts = tally.setdefault(label, [0, 0])
            if t.outcome == "WIN":
                counts[0] += 1
            else:
                counts[1] += 1
    return {
        label: PatternStats(wins=w, losses=l)
        for label, (w, l) in tally.items()
    }


# ── Helpers ──────────────────────────────────────────────────────────────


def cumulative_pips(pips: list[float]) -> list[float]:
    """Running total of a pips series."""
    curve: list[float] = []
    running = 0.0
    for p in pips:
        running += p
        curve.append(running)
    return curve


def _profit_factor(pips: list[float]) -> float:
    """Gross profit ÷ gross loss.

    ``math.inf`` when there are profits but no losses, 0.0 when there are
    neither.
    """
    gross_profit = sum(p for p in pips if p > 0)
    gross_loss = abs(sum(p for p in pips if p < 0))
    if gross_loss > 0:
        return gross_profit / gross_loss
    return math.inf if gross_profit > 0 else 0.0


def _max_drawdown(pips: list[float]) -> float:
    """Maximum drawdown from the cumulative pips curve.

    The peak starts at 0, so an opening loss counts as drawdown.
    Returns the largest peak-to-trough decline as a positive number.
    """
    peak = 0.0
    max_dd = 0.0
    for cumulative in cumulative_pips(pips):
        if cumulative > peak:
            peak = cumulative
        dd = peak - cumulative
        if dd > max_dd:
            max_dd = dd
    return max_dd
