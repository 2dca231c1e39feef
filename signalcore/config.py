"""SignalCore — engine configuration.

Loads ``SIGNAL_*`` variables from the environment (and an optional .env
file) into typed, immutable config objects.  Every field has a default,
so an empty environment yields the standard rule set.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from signalcore.strategy.weights import PatternWeightTable


@dataclass(frozen=True)
class IndicatorConfig:
    """Indicator periods and window sizes."""

    rsi_period: int = 14
    ema_fast: int = 9
    ema_mid: int = 21
    ema_slow: int = 50
    ema_long: int = 200
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    bollinger_period: int = 20
    bollinger_std: float = 2.0
    stochastic_period: int = 14
    stochastic_smoothing: int = 3
    atr_period: int = 14
    sr_lookback: int = 100
    sr_swing_window: int = 2
    sr_max_levels: int = 3
    lookback: int = 200  # trailing candles fed to the snapshot


@dataclass(frozen=True)
class PatternConfig:
    """Pattern detector thresholds."""

    window: int = 50
    doji_body_ratio: float = 0.1
    doji_lookback: int = 3
    double_tolerance: float = 0.02  # fraction of the first extreme's price
    double_min_separation: int = 5
    swing_window: int = 2
    trend_fast: int = 20
    trend_slow: int = 50
    momentum_lookback: int = 20
    momentum_threshold: int = 12
    sr_lookback: int = 100  # used only when S/R levels are not supplied
    sr_swing_window: int = 2


@dataclass(frozen=True)
class ScorerConfig:
    """Decision gates for the tiered scorer."""

    score_threshold: float = 1.5
    min_score_advantage: float = 0.5
    min_confidence: float = 60.0
    max_conflicts: int = 2
    min_reasons: int = 2


@dataclass(frozen=True)
class BacktestConfig:
    """Backtest simulator parameters."""

    warmup: int = 100
    cooldown: int = 4
    lookout: int = 24
    max_trades: int = 500
    max_reported_trades: int = 100
    pip_size: float = 0.0001


@dataclass(frozen=True)
class Config:
    """Root configuration object."""

    symbol: str = "EUR/USD"
    timeframe: str = "1h"
    log_level: str = "INFO"
    api_port: int = 8080
    weight_table_path: Optional[str] = None
    indicators: IndicatorConfig = field(default_factory=IndicatorConfig)
    patterns: PatternConfig = field(default_factory=PatternConfig)
    scorer: ScorerConfig = field(default_factory=ScorerConfig)
    backtest: BacktestConfig = field(default_factory=BacktestConfig)

    @property
    def history_window(self) -> int:
        """Candles needed (ending at the evaluated one) for a full evaluation."""
        return max(
            self.indicators.lookback,
            self.indicators.sr_lookback,
            self.patterns.window,
        ) + 1


# ── Environment parsing ──────────────────────────────────────────────────


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'") from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` naming the variable when a value cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    indicators = IndicatorConfig(
        rsi_period=_env_int("SIGNAL_RSI_PERIOD", 14),
        bollinger_period=_env_int("SIGNAL_BOLLINGER_PERIOD", 20),
        stochastic_period=_env_int("SIGNAL_STOCHASTIC_PERIOD", 14),
        atr_period=_env_int("SIGNAL_ATR_PERIOD", 14),
        lookback=_env_int("SIGNAL_LOOKBACK", 200),
    )
    scorer = ScorerConfig(
        score_threshold=_env_float("SIGNAL_SCORE_THRESHOLD", 1.5),
        min_confidence=_env_float("SIGNAL_MIN_CONFIDENCE", 60.0),
        max_conflicts=_env_int("SIGNAL_MAX_CONFLICTS", 2),
    )
    backtest = BacktestConfig(
        warmup=_env_int("SIGNAL_WARMUP", 100),
        cooldown=_env_int("SIGNAL_COOLDOWN", 4),
        lookout=_env_int("SIGNAL_LOOKOUT", 24),
        max_trades=_env_int("SIGNAL_MAX_TRADES", 500),
    )

    if backtest.lookout < 1:
        raise ValueError("SIGNAL_LOOKOUT must be at least 1")

    return Config(
        symbol=os.environ.get("SIGNAL_SYMBOL", "EUR/USD"),
        timeframe=os.environ.get("SIGNAL_TIMEFRAME", "1h"),
        log_level=os.environ.get("SIGNAL_LOG_LEVEL", "INFO"),
        api_port=_env_int("SIGNAL_API_PORT", 8080),
        weight_table_path=os.environ.get("SIGNAL_WEIGHT_TABLE_PATH") or None,
        indicators=indicators,
        scorer=scorer,
        backtest=backtest,
    )


def load_weight_table(path: str) -> PatternWeightTable:
    """Read a JSON weight table (``{"version": ..., "entries": [...]}``)."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return PatternWeightTable.from_dict(data)
