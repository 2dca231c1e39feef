"""Exception hierarchy for the signal engine."""


class SignalCoreError(Exception):
    """Base class for all engine errors."""


class CandleValidationError(SignalCoreError, ValueError):
    """A candle series violates an OHLC or ordering invariant."""

    def __init__(self, index: int, message: str) -> None:
        self.index = index
        super().__init__(f"Candle {index}: {message}")


class InsufficientHistoryError(SignalCoreError, ValueError):
    """Not enough candles to run the requested operation."""

    def __init__(self, required: int, got: int, what: str = "backtest") -> None:
        self.required = required
        self.got = got
        super().__init__(
            f"Need at least {required} candles for {what}, got {got}"
        )
