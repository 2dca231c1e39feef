"""SignalCore — tiered technical-signal engine and backtest simulator."""

__version__ = "0.1.0"
