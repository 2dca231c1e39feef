"""Live evaluation pipeline — one candle in, one scored decision out.

``evaluate_at`` is the single entry point used by both the live scan and
the backtest replay: it slices the history so that nothing after the
evaluated candle is visible, then runs indicators → patterns → scorer →
risk levels.
"""

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from signalcore.config import Config
from signalcore.errors import InsufficientHistoryError
from signalcore.risk.sl_tp import RiskLevels, calculate_risk_levels
from signalcore.strategy.indicators import compute_snapshot
from signalcore.strategy.models import (
    Candle,
    IndicatorSnapshot,
    SignalDecision,
    parse_timestamp,
    pip_value,
    validate_candles,
)
from signalcore.strategy.patterns import detect_patterns
from signalcore.strategy.scorer import score_signal
from signalcore.strategy.session_filter import is_forex_market_open
from signalcore.strategy.weights import DEFAULT_WEIGHT_TABLE, PatternWeightTable

logger = logging.getLogger("signalcore.evaluator")

OPPORTUNITY_TTL_HOURS = 4
DUPLICATE_MIN_MOVE_PIPS = 15.0
REVERSAL_COOLDOWN = timedelta(hours=1)
REVERSAL_CONFIDENCE_MARGIN = 10.0


@dataclass(frozen=True)
class SignalEvaluation:
    """Everything computed for one evaluated candle."""

    timestamp: str
    price: float
    snapshot: IndicatorSnapshot
    patterns: tuple[str, ...]
    decision: SignalDecision
    levels: Optional[RiskLevels] = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "price": self.price,
            "indicators": self.snapshot.to_dict(),
            "patterns": list(self.patterns),
            "decision": self.decision.to_dict(),
            "levels": self.levels.to_dict() if self.levels else None,
        }


# ── Pattern statistics (display only) ────────────────────────────────────


def match_pattern_stats(
    decision: SignalDecision,
    rows: list[dict],
    symbol: Optional[str] = None,
) -> list[dict]:
    """Pick the statistics rows that describe the decision's conditions.

    A row matches a condition when its ``pattern_name`` equals the
    condition id and its ``signal_type`` equals the condition's side.  A
    row for *symbol* is preferred over a generic row (no ``symbol``).
    """
    matched: list[dict] = []
    for m in decision.matches:
        candidates = [
            r for r in rows
            if r.get("pattern_name") == m.condition_id
            and r.get("signal_type") == m.side
        ]
        specific = [r for r in candidates if symbol and r.get("symbol") == symbol]
        generic = [r for r in candidates if r.get("symbol") is None]
        if specific:
            matched.append(specific[0])
        elif generic:
            matched.append(generic[0])
    return matched


# ── Evaluation ───────────────────────────────────────────────────────────


def evaluate_at(
    candles: list[Candle],
    index: int,
    config: Config = Config(),
    weight_table: PatternWeightTable = DEFAULT_WEIGHT_TABLE,
    pattern_stats: Optional[list[dict]] = None,
    min_confidence: Optional[float] = None,
) -> SignalEvaluation:
    """Evaluate the candle at *index* using only candles up to it.

    The candle series is assumed to be validated by the caller.
    """
    if not 0 <= index < len(candles):
        raise IndexError(f"index {index} out of range for {len(candles)} candles")

    window = candles[max(0, index - config.history_window + 1):index + 1]
    current = window[-1]

    snapshot = compute_snapshot(window, config=config.indicators)
    patterns = detect_patterns(
        window,
        config=config.patterns,
        sr_levels=(list(snapshot.support_levels), list(snapshot.resistance_levels)),
    )
    decision = score_signal(
        snapshot,
        patterns,
        current.close,
        weight_table=weight_table,
        config=config.scorer,
        min_confidence=min_confidence,
    )

    if pattern_stats:
        matched = match_pattern_stats(decision, pattern_stats, config.symbol)
        if matched:
            decision = dataclasses.replace(
                decision, metadata={**decision.metadata, "pattern_stats": matched},
            )

    levels = None
    if decision.is_signal:
        levels = calculate_risk_levels(
            current.close, snapshot.atr, decision.direction, decision.confidence,
        )

    return SignalEvaluation(
        timestamp=current.timestamp,
        price=current.close,
        snapshot=snapshot,
        patterns=tuple(patterns),
        decision=decision,
        levels=levels,
    )


def scan_latest(
    candles: list[Candle],
    config: Config = Config(),
    weight_table: PatternWeightTable = DEFAULT_WEIGHT_TABLE,
    pattern_stats: Optional[list[dict]] = None,
    min_confidence: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Optional[SignalEvaluation]:
    """Validate *candles* and evaluate the newest one.

    Returns ``None`` while the forex market is closed.

    Raises:
        InsufficientHistoryError: If *candles* is empty.
        CandleValidationError: If the series is malformed.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    is_open, reason = is_forex_market_open(now)
    if not is_open:
        logger.info("Scan skipped: %s", reason)
        return None

    if not candles:
        raise InsufficientHistoryError(1, 0, "evaluation")
    validate_candles(candles)

    evaluation = evaluate_at(
        candles,
        len(candles) - 1,
        config=config,
        weight_table=weight_table,
        pattern_stats=pattern_stats,
        min_confidence=min_confidence,
    )
    logger.info(
        "%s %s @ %.5f → %s (confidence %.0f)",
        config.symbol, evaluation.timestamp, evaluation.price,
        evaluation.decision.direction, evaluation.decision.confidence,
    )
    return evaluation


# ── Opportunity record ───────────────────────────────────────────────────


def describe_evaluation(evaluation: SignalEvaluation, symbol: str) -> str:
    """Human-readable reasoning text for an opportunity."""
    decision = evaluation.decision
    snap = evaluation.snapshot
    hist = snap.macd.histogram
    lines = [
        f"{decision.direction} opportunity detected on {symbol} "
        f"with {decision.confidence:.0f}% confidence.",
        "",
        "Confirming factors:",
        *[f"• {r}" for r in decision.reasons],
        "",
        "Technical snapshot:",
        f"• RSI: {snap.rsi:.1f}",
        f"• MACD Histogram: {'+' if hist > 0 else ''}{hist:.5f}",
        f"• Stochastic %K: {snap.stochastic.k:.1f}",
        f"• ATR: {snap.atr:.5f}",
    ]
    return "\n".join(lines)


def build_opportunity(
    evaluation: SignalEvaluation,
    symbol: str,
    now: datetime,
    ttl_hours: int = OPPORTUNITY_TTL_HOURS,
    previous_signal: Optional[dict] = None,
) -> dict:
    """Opportunity record for a BUY/SELL evaluation.

    *previous_signal* is the opposite-direction opportunity this one
    replaces (see ``check_reversal``); it marks the record as a reversal.
    Raises ``ValueError`` for a NONE decision.
    """
    decision = evaluation.decision
    if not decision.is_signal or evaluation.levels is None:
        raise ValueError("build_opportunity needs a BUY or SELL evaluation")

    levels = evaluation.levels
    previous = None
    if previous_signal is not None:
        created = previous_signal.get("created_at")
        previous = {
            "signal_type": previous_signal.get("signal_type"),
            "confidence": previous_signal.get("confidence"),
            "created_at": created.isoformat() if isinstance(created, datetime) else created,
        }
    return {
        "symbol": symbol,
        "signal_type": decision.direction,
        "confidence": decision.confidence,
        "entry_price": evaluation.price,
        "current_price": evaluation.price,
        "stop_loss": levels.stop_loss,
        "take_profit_1": levels.take_profit_1,
        "take_profit_2": levels.take_profit_2,
        "risk_reward": levels.risk_reward_label,
        "patterns_detected": list(evaluation.patterns),
        "technical_indicators": evaluation.snapshot.to_dict(),
        "pattern_stats": list(decision.metadata.get("pattern_stats", [])),
        "reasoning": describe_evaluation(evaluation, symbol),
        "is_reversal": previous is not None,
        "previous_signal": previous,
        "status": "ACTIVE",
        "created_at": now.isoformat(),
        "expires_at": (now + timedelta(hours=ttl_hours)).isoformat(),
    }


# ── Live de-duplication ──────────────────────────────────────────────────


def is_duplicate_opportunity(
    evaluation: SignalEvaluation,
    recent_entry_prices: list[float],
    symbol: Optional[str] = None,
    min_move_pips: float = DUPLICATE_MIN_MOVE_PIPS,
) -> bool:
    """True when a recent same-direction opportunity sits within *min_move_pips*.

    *recent_entry_prices* are the entry prices of the caller's recent
    opportunities in the same direction, newest first.  Pips are measured
    with the pip size of *symbol* (0.01 for JPY quotes).
    """
    if not recent_entry_prices:
        return False
    moved = abs(evaluation.price - recent_entry_prices[0]) / pip_value(symbol)
    return moved < min_move_pips


def check_reversal(
    evaluation: SignalEvaluation,
    opposite: Optional[dict],
    now: datetime,
) -> tuple[bool, bool]:
    """Decide whether a signal may replace an active opposite-direction one.

    *opposite* is the most recent ACTIVE opportunity on the other side
    (a ``build_opportunity`` record, or any mapping with ``confidence``
    and ``created_at``), or ``None``.  An opposite signal younger than one
    hour blocks the new one unless its confidence is at least 10 points
    higher.

    Returns:
        ``(allowed, is_reversal)``.  When *is_reversal* is true the caller
        expires the opposite opportunity.
    """
    if opposite is None:
        return True, False

    created = opposite["created_at"]
    if not isinstance(created, datetime):
        created = parse_timestamp(created)
    elif created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    age = now - created
    required = float(opposite["confidence"]) + REVERSAL_CONFIDENCE_MARGIN
    if age < REVERSAL_COOLDOWN and evaluation.decision.confidence < required:
        logger.info(
            "Reversal blocked: %s signal is %s old, confidence %.0f < %.0f",
            opposite.get("signal_type", "opposite"), age,
            evaluation.decision.confidence, required,
        )
        return False, False
    return True, True
