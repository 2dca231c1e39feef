"""Backtest engine — replays historical candles through the live pipeline.

Walks the series bar by bar, evaluating each candle with exactly the
evaluator the live scan uses, and resolves every signal over the
following candles.  No orders are placed.
"""

import logging
import time
from typing import Callable, Optional

from signalcore.backtest.models import BacktestResult, Trade
from signalcore.backtest.stats import calculate_stats
from signalcore.config import Config
from signalcore.errors import InsufficientHistoryError
from signalcore.risk.outcome import resolve_trade
from signalcore.strategy.evaluator import evaluate_at
from signalcore.strategy.models import BUY, Candle, validate_candles
from signalcore.strategy.weights import DEFAULT_WEIGHT_TABLE, PatternWeightTable

logger = logging.getLogger("signalcore.backtest")


class BacktestEngine:
    """Simulates the signal strategy on historical candles.

    Args:
        config: Engine configuration (indicator, scorer and backtest settings).
        weight_table: The same table the live path uses.
    """

    def __init__(
        self,
        config: Config = Config(),
        weight_table: PatternWeightTable = DEFAULT_WEIGHT_TABLE,
    ) -> None:
        self._config = config
        self._weights = weight_table

    @property
    def required_candles(self) -> int:
        bt = self._config.backtest
        return bt.warmup + bt.lookout + 1

    # ── Public API ───────────────────────────────────────────────────────

    def run(
        self,
        candles: list[Candle],
        max_trades: Optional[int] = None,
        deadline: Optional[float] = None,
        should_stop: Optional[Callable[[], bool]] = None,
        min_confidence: Optional[float] = None,
    ) -> BacktestResult:
        """Execute a full backtest.

        Args:
            candles: Validated-on-entry candle series, oldest first.
            max_trades: Stop after this many trades (default from config).
            deadline: ``time.monotonic()`` value after which the run stops.
            should_stop: Polled at every index; ``True`` stops the run.
            min_confidence: Overrides the scorer's confidence gate.

        Returns:
            ``BacktestResult``; ``aborted`` is set when the deadline or
            ``should_stop`` ended the run early.

        Raises:
            CandleValidationError: If the series is malformed.
            InsufficientHistoryError: If there are fewer than
                ``warmup + lookout + 1`` candles.
        """
        bt = self._config.backtest
        if max_trades is None:
            max_trades = bt.max_trades

        validate_candles(candles)
        if len(candles) < self.required_candles:
            raise InsufficientHistoryError(self.required_candles, len(candles))

        logger.info(
            "Backtest start: %d candles (%s → %s), weights %s",
            len(candles), candles[0].timestamp, candles[-1].timestamp,
            self._weights.version,
        )

        trades: list[Trade] = []
        last_entry: Optional[int] = None
        evaluated = 0
        aborted = False

        for i in range(bt.warmup, len(candles) - bt.lookout):
            if len(trades) >= max_trades:
                break
            if (deadline is not None and time.monotonic() >= deadline) or (
                should_stop is not None and should_stop()
            ):
                aborted = True
                logger.warning(
                    "Backtest aborted at index %d with %d trades", i, len(trades),
                )
                break

            if last_entry is not None and i - last_entry < bt.cooldown:
                continue

            evaluation = evaluate_at(
                candles, i,
                config=self._config,
                weight_table=self._weights,
                min_confidence=min_confidence,
            )
            evaluated += 1
            if not evaluation.decision.is_signal:
                continue

            trade = self._simulate(candles, i, evaluation)
            trades.append(trade)
            last_entry = i

        stats = calculate_stats(trades)
        result = BacktestResult(
            period_start=candles[0].timestamp,
            period_end=candles[-1].timestamp,
            trades=tuple(trades[-bt.max_reported_trades:]) if bt.max_reported_trades else (),
            total_trades=stats["total_trades"],
            wins=stats["wins"],
            losses=stats["losses"],
            win_rate=stats["win_rate"],
            total_pips=stats["total_pips"],
            avg_pips_per_trade=stats["avg_pips_per_trade"],
            profit_factor=stats["profit_factor"],
            max_drawdown_pips=stats["max_drawdown_pips"],
            pattern_stats=stats["pattern_stats"],
            evaluated_bars=evaluated,
            aborted=aborted,
            weight_table_version=self._weights.version,
        )

        logger.info(
            "Backtest complete: %dW/%dL, %.1f%% win rate, %.1f pips",
            result.wins, result.losses, result.win_rate * 100, result.total_pips,
        )
        return result

    # ── Helpers ──────────────────────────────────────────────────────────

    def _simulate(self, candles: list[Candle], index: int, evaluation) -> Trade:
        """Open a trade at ``candles[index]`` and resolve it over the lookout."""
        bt = self._config.backtest
        direction = evaluation.decision.direction
        levels = evaluation.levels
        entry = candles[index]

        resolution = resolve_trade(
            direction,
            entry.close,
            levels,
            candles[index + 1:index + 1 + bt.lookout],
            max_bars=bt.lookout,
            expired=True,
        )

        delta = resolution.exit_price - entry.close
        if direction != BUY:
            delta = -delta

        return Trade(
            entry_time=entry.timestamp,
            entry_price=entry.close,
            exit_time=resolution.exit_time,
            exit_price=resolution.exit_price,
            direction=direction,
            outcome=resolution.outcome,
            pips=delta / bt.pip_size,
            confidence=evaluation.decision.confidence,
            patterns=evaluation.patterns,
            stop_loss=levels.stop_loss,
            take_profit=levels.take_profit_1,
            exit_reason=resolution.exit_reason,
        )
