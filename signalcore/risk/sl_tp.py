"""Stop-loss and take-profit calculation — pure math, no I/O.

ATR-multiple bands keyed on signal confidence.  Every band keeps TP1 at
least three times as far from entry as the stop:

    Confidence   SL×    TP1×   TP2×
    ≥ 80         0.8    3.0    4.5
    ≥ 70         1.0    3.0    4.5
    otherwise    1.2    3.6    5.0
"""

from dataclasses import dataclass

from signalcore.strategy.models import BUY, SELL


@dataclass(frozen=True)
class RiskBand:
    min_confidence: float
    sl_mult: float
    tp1_mult: float
    tp2_mult: float


RISK_BANDS: tuple[RiskBand, ...] = (
    RiskBand(80.0, 0.8, 3.0, 4.5),
    RiskBand(70.0, 1.0, 3.0, 4.5),
    RiskBand(0.0, 1.2, 3.6, 5.0),
)


@dataclass(frozen=True)
class RiskLevels:
    """Computed stop-loss and take-profit levels for a trade."""

    stop_loss: float
    take_profit_1: float
    take_profit_2: float
    reward_risk_ratio: float

    @property
    def risk_reward_label(self) -> str:
        return f"1:{self.reward_risk_ratio:.1f}"

    def to_dict(self) -> dict:
        return {
            "stop_loss": self.stop_loss,
            "take_profit_1": self.take_profit_1,
            "take_profit_2": self.take_profit_2,
            "reward_risk_ratio": self.reward_risk_ratio,
            "risk_reward": self.risk_reward_label,
        }


def risk_band(confidence: float) -> RiskBand:
    """The band that applies to *confidence*."""
    for band in RISK_BANDS:
        if confidence >= band.min_confidence:
            return band
    return RISK_BANDS[-1]


def calculate_risk_levels(
    entry_price: float,
    atr: float,
    direction: str,
    confidence: float,
) -> RiskLevels:
    """Calculate SL / TP1 / TP2 from ATR multiples.

    - **BUY**:  SL = entry − ATR × SL×, TPn = entry + ATR × TPn×
    - **SELL**: mirrored.

    Args:
        entry_price: Trade entry price.
        atr: Current ATR value (0 collapses every level onto entry).
        direction: ``"BUY"`` or ``"SELL"``.
        confidence: Signal confidence, 0-95.

    Raises:
        ValueError: If *direction* is not BUY/SELL or *atr* is negative.
    """
    if direction not in (BUY, SELL):
        raise ValueError(f"direction must be 'BUY' or 'SELL', got '{direction}'")
    if atr < 0:
        raise ValueError(f"atr must be non-negative, got {atr}")

    band = risk_band(confidence)
    sign = 1.0 if direction == BUY else -1.0

    return RiskLevels(
        stop_loss=entry_price - sign * atr * band.sl_mult,
        take_profit_1=entry_price + sign * atr * band.tp1_mult,
        take_profit_2=entry_price + sign * atr * band.tp2_mult,
        reward_risk_ratio=band.tp1_mult / band.sl_mult,
    )
