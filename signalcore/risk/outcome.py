"""Trade resolution — walks future candles to a stop, target or timeout.

Shared by live opportunity tracking and the backtest so both apply the
same exit rules.
"""

from dataclasses import dataclass
from typing import Literal, Optional

from signalcore.risk.sl_tp import RiskLevels
from signalcore.strategy.models import BUY, SELL, Candle

Outcome = Literal["WIN", "LOSS", "PENDING"]
ExitReason = Literal["stop_loss", "take_profit", "timeout"]

WIN: Outcome = "WIN"
LOSS: Outcome = "LOSS"
PENDING: Outcome = "PENDING"


@dataclass(frozen=True)
class TradeResolution:
    """How (and whether) a trade closed."""

    outcome: Outcome
    exit_price: Optional[float] = None
    exit_time: Optional[str] = None
    exit_reason: Optional[ExitReason] = None
    bars_held: int = 0

    @property
    def is_closed(self) -> bool:
        return self.outcome != PENDING


def _timeout(direction: str, entry_price: float, candle: Candle, bars: int) -> TradeResolution:
    profit = candle.close - entry_price if direction == BUY else entry_price - candle.close
    return TradeResolution(
        outcome=WIN if profit > 0 else LOSS,
        exit_price=candle.close,
        exit_time=candle.timestamp,
        exit_reason="timeout",
        bars_held=bars,
    )


def resolve_trade(
    direction: str,
    entry_price: float,
    levels: RiskLevels,
    future_candles: list[Candle],
    max_bars: int = 24,
    expired: bool = False,
) -> TradeResolution:
    """Resolve a trade against the candles that follow its entry.

    Rules, per candle in order:
        1. Stop touched (BUY: low ≤ SL, SELL: high ≥ SL) → LOSS at SL.
           The stop wins when one candle touches both levels.
        2. TP1 touched (BUY: high ≥ TP1, SELL: low ≤ TP1) → WIN at TP1.

    If neither is touched by the *max_bars*-th candle, or *expired* is set
    and the candles run out first, the trade closes at that candle's
    close: WIN when in profit, LOSS otherwise.  Anything else is PENDING.

    Raises ``ValueError`` for a direction other than BUY/SELL.
    """
    if direction not in (BUY, SELL):
        raise ValueError(f"direction must be 'BUY' or 'SELL', got '{direction}'")

    window = future_candles[:max_bars]
    for bars, candle in enumerate(window, start=1):
        if direction == BUY:
            stopped = candle.low <= levels.stop_loss
            target = candle.high >= levels.take_profit_1
        else:
            stopped = candle.high >= levels.stop_loss
            target = candle.low <= levels.take_profit_1

        if stopped:
            return TradeResolution(
                outcome=LOSS,
                exit_price=levels.stop_loss,
                exit_time=candle.timestamp,
                exit_reason="stop_loss",
                bars_held=bars,
            )
        if target:
            return TradeResolution(
                outcome=WIN,
                exit_price=levels.take_profit_1,
                exit_time=candle.timestamp,
                exit_reason="take_profit",
                bars_held=bars,
            )

    if window and (len(window) >= max_bars or expired):
        return _timeout(direction, entry_price, window[-1], len(window))

    return TradeResolution(outcome=PENDING, bars_held=len(window))
