"""Strategy data models — typed representations of engine inputs and outputs."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from signalcore.errors import CandleValidationError


Direction = Literal["BUY", "SELL", "NONE"]

BUY: Direction = "BUY"
SELL: Direction = "SELL"
NONE: Direction = "NONE"


@dataclass(frozen=True)
class Candle:
    """A single candlestick bar.

    ``timestamp`` is an ISO-8601 UTC string; a series is ordered by it.
    """

    timestamp: str
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None


@dataclass(frozen=True)
class MACDReading:
    value: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float


@dataclass(frozen=True)
class StochasticReading:
    k: float
    d: float


@dataclass(frozen=True)
class IndicatorSnapshot:
    """All indicator readings for the window ending at one candle."""

    rsi: float
    macd: MACDReading
    ema_fast: float
    ema_mid: float
    ema_slow: float
    ema_long: float
    bollinger: BollingerBands
    stochastic: StochasticReading
    atr: float
    support_levels: tuple[float, ...] = ()
    resistance_levels: tuple[float, ...] = ()

    def to_dict(self) -> dict:
        return {
            "rsi": self.rsi,
            "macd": {
                "value": self.macd.value,
                "signal": self.macd.signal,
                "histogram": self.macd.histogram,
            },
            "ema_fast": self.ema_fast,
            "ema_mid": self.ema_mid,
            "ema_slow": self.ema_slow,
            "ema_long": self.ema_long,
            "bollinger": {
                "upper": self.bollinger.upper,
                "middle": self.bollinger.middle,
                "lower": self.bollinger.lower,
            },
            "stochastic": {"k": self.stochastic.k, "d": self.stochastic.d},
            "atr": self.atr,
            "support_levels": list(self.support_levels),
            "resistance_levels": list(self.resistance_levels),
        }


@dataclass(frozen=True)
class ConditionMatch:
    """One technical condition that fired, with its tier and weight."""

    condition_id: str
    side: Direction
    tier: int
    weight: float
    reason: str


@dataclass(frozen=True)
class SignalDecision:
    """Outcome of one scorer evaluation.

    ``metadata`` carries display-only data (pattern statistics rows,
    commentary).  Nothing in the scorer reads it.
    """

    direction: Direction
    confidence: float
    reasons: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()
    rejections: tuple[str, ...] = ()
    buy_score: float = 0.0
    sell_score: float = 0.0
    matches: tuple[ConditionMatch, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_signal(self) -> bool:
        return self.direction in (BUY, SELL)

    def to_dict(self) -> dict:
        return {
            "direction": self.direction,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "conflicts": list(self.conflicts),
            "rejections": list(self.rejections),
            "buy_score": self.buy_score,
            "sell_score": self.sell_score,
            "matches": [
                {
                    "condition_id": m.condition_id,
                    "side": m.side,
                    "tier": m.tier,
                    "weight": m.weight,
                    "reason": m.reason,
                }
                for m in self.matches
            ],
            "metadata": dict(self.metadata),
        }


# ── Instrument metadata ──────────────────────────────────────────────────

INSTRUMENT_PIP_VALUES: dict[str, float] = {
    "EUR/USD": 0.0001,
    "GBP/USD": 0.0001,
    "USD/JPY": 0.01,
    "USD/CHF": 0.0001,
    "AUD/USD": 0.0001,
    "USD/CAD": 0.0001,
    "XAU/USD": 0.01,
}
DEFAULT_PIP_VALUE = 0.0001

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def pip_value(symbol: Optional[str]) -> float:
    """Price size of one pip for *symbol*; 0.0001 for unknown instruments."""
    return INSTRUMENT_PIP_VALUES.get(symbol or "", DEFAULT_PIP_VALUE)


# ── Construction and validation ──────────────────────────────────────────


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Raises ``ValueError`` when *value* is not ISO-8601.
    """
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def normalize_timestamp(value: str) -> str:
    """Rewrite *value* as a ``YYYY-MM-DDTHH:MM:SSZ`` UTC string."""
    return parse_timestamp(value).strftime(TIMESTAMP_FORMAT)


def candle_from_dict(row: dict) -> Candle:
    """Build a ``Candle`` from a loosely-typed mapping.

    Accepts either ``timestamp`` or ``time`` as the time key and normalises
    it to UTC.  Raises ``KeyError`` / ``ValueError`` on missing or
    non-numeric fields.
    """
    ts = row.get("timestamp", row.get("time"))
    if ts is None:
        raise KeyError("timestamp")
    volume = row.get("volume")
    return Candle(
        timestamp=normalize_timestamp(ts),
        open=float(row["open"]),
        high=float(row["high"]),
        low=float(row["low"]),
        close=float(row["close"]),
        volume=float(volume) if volume is not None else None,
    )


def validate_candles(candles: list[Candle]) -> None:
    """Check the OHLC and ordering invariants of a candle series.

    Prices must be finite and positive, ``high``/``low`` must bound the
    body, and timestamps must strictly increase in UTC.  Raises
    ``CandleValidationError`` naming the first offending index.
    """
    prev: Optional[datetime] = None
    prev_text = ""
    for i, c in enumerate(candles):
        for name in ("open", "high", "low", "close"):
            value = getattr(c, name)
            if not math.isfinite(value) or value <= 0:
                raise CandleValidationError(i, f"{name} must be a positive number, got {value}")
        if c.high < max(c.open, c.close):
            raise CandleValidationError(i, "high is below open/close")
        if c.low > min(c.open, c.close):
            raise CandleValidationError(i, "low is above open/close")
        try:
            ts = parse_timestamp(c.timestamp)
        except ValueError:
            raise CandleValidationError(i, f"invalid timestamp {c.timestamp!r}") from None
        if prev is not None and ts <= prev:
            raise CandleValidationError(
                i, f"timestamp {c.timestamp} does not follow {prev_text}"
            )
        prev, prev_text = ts, c.timestamp
