"""CLI report — prints evaluation and backtest results to the console."""

import math

from signalcore.backtest.models import BacktestResult
from signalcore.strategy.evaluator import SignalEvaluation


def _fmt_factor(value: float) -> str:
    if math.isinf(value):
        return "∞"
    return f"{value:.2f}"


def print_evaluation(evaluation: SignalEvaluation, symbol: str) -> str:
    """Format and print one evaluation.

    Returns:
        The formatted string (also printed to stdout).
    """
    decision = evaluation.decision
    snap = evaluation.snapshot
    lines = [
        "──────────────── SignalCore Evaluation ────────────────",
        f"  Symbol:      {symbol}",
        f"  Candle:      {evaluation.timestamp}",
        f"  Price:       {evaluation.price:.5f}",
        f"  Decision:    {decision.direction}",
        f"  Confidence:  {decision.confidence:.0f}",
        f"  Scores:      buy {decision.buy_score:.2f} / sell {decision.sell_score:.2f}",
        f"  RSI:         {snap.rsi:.1f}",
        f"  Stochastic:  K {snap.stochastic.k:.1f} / D {snap.stochastic.d:.1f}",
        f"  ATR:         {snap.atr:.5f}",
        f"  Patterns:    {', '.join(evaluation.patterns) or 'none'}",
    ]
    for reason in decision.reasons:
        lines.append(f"    + {reason}")
    for conflict in decision.conflicts:
        lines.append(f"    ! conflict: {conflict}")
    for rejection in decision.rejections:
        lines.append(f"    - {rejection}")
    if evaluation.levels is not None:
        lv = evaluation.levels
        lines += [
            f"  Stop Loss:   {lv.stop_loss:.5f}",
            f"  Target 1:    {lv.take_profit_1:.5f}",
            f"  Target 2:    {lv.take_profit_2:.5f}",
            f"  R:R:         {lv.risk_reward_label}",
        ]
    lines.append("───────────────────────────────────────────────────────")
    output = "\n".join(lines)
    print(output)
    return output


def print_backtest(result: BacktestResult) -> str:
    """Format and print backtest statistics.

    Returns:
        The formatted string (also printed to stdout).
    """
    lines = [
        "──────────────── SignalCore Backtest ────────────────",
        f"  Period:         {result.period_start} → {result.period_end}",
        f"  Weights:        {result.weight_table_version}",
        f"  Bars evaluated: {result.evaluated_bars}",
        f"  Trades:         {result.total_trades} ({result.wins}W / {result.losses}L)",
        f"  Win Rate:       {result.win_rate * 100:.1f}%",
        f"  Total Pips:     {result.total_pips:+.1f}",
        f"  Avg Pips:       {result.avg_pips_per_trade:+.1f}",
        f"  Profit Factor:  {_fmt_factor(result.profit_factor)}",
        f"  Max Drawdown:   {result.max_drawdown_pips:.1f} pips",
    ]
    if result.aborted:
        lines.append("  Status:         ABORTED (partial result)")
    if result.pattern_stats:
        lines.append("  Patterns:")
        for name, stats in sorted(result.pattern_stats.items()):
            lines.append(
                f"    {name:<26} {stats.wins:>3}W {stats.losses:>3}L  "
                f"{stats.win_rate * 100:5.1f}%"
            )
    lines.append("─────────────────────────────────────────────────────")
    output = "\n".join(lines)
    print(output)
    return output
