"""Pattern weight table — maps each scorable condition to a tier and weight.

The table is a single immutable, versioned object.  The scorer, the live
evaluator and the backtest engine all receive the same instance, so a
live decision and a replayed one can never use different weights.

Tiers reflect the historical reliability of each condition class:

    1  proven edge (RSI extremes, Bollinger touches)   — required to fire
    2  neutral (Stochastic extremes)
    3  weak edge (MACD cross, engulfing, tag majority, RSI approach)
    4  counter-predictive (EMA alignment)               — penalised
"""

from dataclasses import dataclass
from typing import Optional

from signalcore.strategy.models import BUY, SELL, Direction


@dataclass(frozen=True)
class PatternWeightEntry:
    """Static ``(tier, weight)`` assignment for one condition."""

    condition_id: str
    side: Direction
    tier: int
    weight: float
    label: str
    expected_win_rate: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "condition_id": self.condition_id,
            "side": self.side,
            "tier": self.tier,
            "weight": self.weight,
            "label": self.label,
            "expected_win_rate": self.expected_win_rate,
        }


@dataclass(frozen=True)
class PatternWeightTable:
    """Versioned, read-only collection of ``PatternWeightEntry`` rows."""

    version: str
    entries: tuple[PatternWeightEntry, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for e in self.entries:
            if e.condition_id in seen:
                raise ValueError(f"Duplicate condition '{e.condition_id}' in weight table")
            if e.tier not in (1, 2, 3, 4):
                raise ValueError(
                    f"Condition '{e.condition_id}' has tier {e.tier}; expected 1-4"
                )
            if e.side not in (BUY, SELL):
                raise ValueError(
                    f"Condition '{e.condition_id}' has side '{e.side}'; expected BUY or SELL"
                )
            seen.add(e.condition_id)

    def entry(self, condition_id: str) -> Optional[PatternWeightEntry]:
        """Return the entry for *condition_id*, or ``None`` if absent."""
        for e in self.entries:
            if e.condition_id == condition_id:
                return e
        return None

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "entries": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PatternWeightTable":
        """Build a table from its ``to_dict()`` form.

        Raises ``KeyError`` / ``ValueError`` on malformed input.
        """
        entries = tuple(
            PatternWeightEntry(
                condition_id=str(row["condition_id"]),
                side=str(row["side"]).upper(),
                tier=int(row["tier"]),
                weight=float(row["weight"]),
                label=str(row.get("label", row["condition_id"])),
                expected_win_rate=(
                    float(row["expected_win_rate"])
                    if row.get("expected_win_rate") is not None
                    else None
                ),
            )
            for row in data["entries"]
        )
        return cls(version=str(data["version"]), entries=entries)


DEFAULT_WEIGHT_TABLE = PatternWeightTable(
    version="2024.1",
    entries=(
        # Tier 1
        PatternWeightEntry("rsi_oversold", BUY, 1, 1.5, "RSI oversold", 52.4),
        PatternWeightEntry("rsi_overbought", SELL, 1, 1.5, "RSI overbought", 52.16),
        PatternWeightEntry("bb_lower_touch", BUY, 1, 1.3, "Price below lower Bollinger Band", 52.06),
        PatternWeightEntry("bb_upper_touch", SELL, 1, 1.3, "Price above upper Bollinger Band", 51.67),
        # Tier 2
        PatternWeightEntry("stochastic_oversold", BUY, 2, 1.0, "Stochastic oversold", 50.0),
        PatternWeightEntry("stochastic_overbought", SELL, 2, 1.0, "Stochastic overbought", 50.0),
        # Tier 3
        PatternWeightEntry("macd_bullish_cross", BUY, 3, 0.5, "MACD bullish cross", 47.85),
        PatternWeightEntry("macd_bearish_cross", SELL, 3, 0.5, "MACD bearish cross", 47.39),
        PatternWeightEntry("bullish_engulfing", BUY, 3, 0.5, "Bullish Engulfing", 48.39),
        PatternWeightEntry("bearish_engulfing", SELL, 3, 0.5, "Bearish Engulfing", 48.24),
        PatternWeightEntry("bullish_tag_majority", BUY, 3, 0.5, "Bullish pattern majority"),
        PatternWeightEntry("bearish_tag_majority", SELL, 3, 0.5, "Bearish pattern majority"),
        PatternWeightEntry("rsi_approaching_oversold", BUY, 3, 0.3, "RSI approaching oversold"),
        PatternWeightEntry("rsi_approaching_overbought", SELL, 3, 0.3, "RSI approaching overbought"),
        # Tier 4
        PatternWeightEntry("golden_cross", BUY, 4, -0.5, "Golden Cross alignment", 45.89),
        PatternWeightEntry("death_cross", SELL, 4, -0.5, "Death Cross alignment", 45.87),
    ),
)
