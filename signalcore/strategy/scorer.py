"""Tiered signal scoring — pure functions, no I/O.

Turns an indicator snapshot plus pattern tags into a BUY / SELL / NONE
decision.  Every weight comes from the injected ``PatternWeightTable``;
conditions missing from the table are ignored.

Decision flow:
    1. Match conditions and bucket them by side.
    2. A side is eligible only with a Tier-1 match, a score at or above
       the threshold, and a clear lead over the opposite side.
    3. Too many conflicts veto the signal.
    4. Confidence is built from tier counts plus confluence bonuses and
       gated by ``min_confidence`` / ``min_reasons``.
"""

import logging
from typing import Optional

from signalcore.config import ScorerConfig
from signalcore.strategy.models import (
    BUY,
    NONE,
    SELL,
    ConditionMatch,
    Direction,
    IndicatorSnapshot,
    SignalDecision,
)
from signalcore.strategy.patterns import (
    BEARISH_ENGULFING,
    BULLISH_ENGULFING,
    pattern_direction,
    pattern_group,
)
from signalcore.strategy.weights import DEFAULT_WEIGHT_TABLE, PatternWeightTable

logger = logging.getLogger("signalcore.scorer")

MAX_CONFIDENCE = 95.0
BASE_CONFIDENCE = 50.0
TIER_POINTS = {1: 12.0, 2: 5.0, 3: 2.0, 4: -10.0}
RSI_BB_BONUS = 15.0
RSI_STOCH_BONUS = 10.0

RSI_OVERSOLD = 30.0
RSI_OVERBOUGHT = 70.0
RSI_APPROACH_LOW = 40.0
RSI_APPROACH_HIGH = 60.0
STOCH_OVERSOLD = 20.0
STOCH_OVERBOUGHT = 80.0


def _clamp(value: float, low: float = 0.0, high: float = MAX_CONFIDENCE) -> float:
    return max(low, min(high, value))


def _opposite(side: Direction) -> Direction:
    return SELL if side == BUY else BUY


# ── Condition matching ───────────────────────────────────────────────────


def _tag_counts(patterns: list[str]) -> tuple[int, int]:
    """Bullish / bearish tag counts, engulfing tags excluded."""
    bullish = 0
    bearish = 0
    for label in patterns:
        if label in (BULLISH_ENGULFING, BEARISH_ENGULFING):
            continue
        direction = pattern_direction(label)
        if direction == "bullish":
            bullish += 1
        elif direction == "bearish":
            bearish += 1
    return bullish, bearish


def match_conditions(
    snapshot: IndicatorSnapshot,
    patterns: list[str],
    price: float,
) -> dict[str, str]:
    """Return ``{condition_id: reason}`` for every condition that holds.

    Independent of any weight table.
    """
    fired: dict[str, str] = {}
    rsi = snapshot.rsi
    bands = snapshot.bollinger
    stoch = snapshot.stochastic
    macd = snapshot.macd

    if rsi < RSI_OVERSOLD:
        fired["rsi_oversold"] = f"RSI oversold ({rsi:.1f})"
    elif rsi < RSI_APPROACH_LOW:
        fired["rsi_approaching_oversold"] = f"RSI approaching oversold ({rsi:.1f})"
    if rsi > RSI_OVERBOUGHT:
        fired["rsi_overbought"] = f"RSI overbought ({rsi:.1f})"
    elif rsi > RSI_APPROACH_HIGH:
        fired["rsi_approaching_overbought"] = f"RSI approaching overbought ({rsi:.1f})"

    if price < bands.lower:
        fired["bb_lower_touch"] = "Price below lower Bollinger Band"
    if price > bands.upper:
        fired["bb_upper_touch"] = "Price above upper Bollinger Band"

    if stoch.k < STOCH_OVERSOLD and stoch.d < STOCH_OVERSOLD:
        fired["stochastic_oversold"] = f"Stochastic oversold (K={stoch.k:.1f}, D={stoch.d:.1f})"
    if stoch.k > STOCH_OVERBOUGHT and stoch.d > STOCH_OVERBOUGHT:
        fired["stochastic_overbought"] = f"Stochastic overbought (K={stoch.k:.1f}, D={stoch.d:.1f})"

    if macd.histogram > 0 and macd.value > macd.signal:
        fired["macd_bullish_cross"] = "MACD bullish cross"
    if macd.histogram < 0 and macd.value < macd.signal:
        fired["macd_bearish_cross"] = "MACD bearish cross"

    if BULLISH_ENGULFING in patterns:
        fired["bullish_engulfing"] = "Bullish Engulfing pattern"
    if BEARISH_ENGULFING in patterns:
        fired["bearish_engulfing"] = "Bearish Engulfing pattern"

    bullish, bearish = _tag_counts(patterns)
    if bullish >= 2 and bullish > bearish:
        fired["bullish_tag_majority"] = f"{bullish} bullish patterns vs {bearish} bearish"
    if bearish >= 2 and bearish > bullish:
        fired["bearish_tag_majority"] = f"{bearish} bearish patterns vs {bullish} bullish"

    ema_mid = snapshot.ema_mid
    ema_slow = snapshot.ema_slow
    if price > ema_mid and price > ema_slow and ema_mid > ema_slow:
        fired["golden_cross"] = "Golden Cross alignment (price > EMA21 > EMA50)"
    if price < ema_mid and price < ema_slow and ema_mid < ema_slow:
        fired["death_cross"] = "Death Cross alignment (price < EMA21 < EMA50)"

    return fired


# ── Conflicts ────────────────────────────────────────────────────────────


def detect_conflicts(fired: dict[str, str], patterns: list[str]) -> list[str]:
    """Informational conflicts between opposing evidence."""
    conflicts: list[str] = []

    buy_t1 = "rsi_oversold" in fired or "bb_lower_touch" in fired
    sell_t1 = "rsi_overbought" in fired or "bb_upper_touch" in fired
    if buy_t1 and sell_t1:
        conflicts.append("tier1_both_sides")

    if ("rsi_oversold" in fired and "stochastic_overbought" in fired) or (
        "rsi_overbought" in fired and "stochastic_oversold" in fired
    ):
        conflicts.append("oscillator_divergence")

    bullish_groups: set[str] = set()
    bearish_groups: set[str] = set()
    for label in patterns:
        group = pattern_group(label)
        if group is None:
            continue
        direction = pattern_direction(label)
        if direction == "bullish":
            bullish_groups.add(group)
        elif direction == "bearish":
            bearish_groups.add(group)
    if len(bullish_groups) >= 2 and len(bearish_groups) >= 2:
        conflicts.append("tag_groups")

    if ("macd_bullish_cross" in fired and "death_cross" in fired) or (
        "macd_bearish_cross" in fired and "golden_cross" in fired
    ):
        conflicts.append("macd_against_trend")

    return conflicts


# ── Confidence ───────────────────────────────────────────────────────────


def _confidence(side: Direction, matches: list[ConditionMatch]) -> float:
    ids = {m.condition_id for m in matches}
    confidence = BASE_CONFIDENCE
    for m in matches:
        confidence += TIER_POINTS[m.tier]
    confidence = _clamp(confidence)

    if side == BUY:
        rsi_extreme = "rsi_oversold" in ids
        bb_touch = "bb_lower_touch" in ids
        stoch_extreme = "stochastic_oversold" in ids
    else:
        rsi_extreme = "rsi_overbought" in ids
        bb_touch = "bb_upper_touch" in ids
        stoch_extreme = "stochastic_overbought" in ids

    if rsi_extreme and bb_touch:
        confidence += RSI_BB_BONUS
    if rsi_extreme and stoch_extreme:
        confidence += RSI_STOCH_BONUS
    return _clamp(confidence)


# ── Scorer ───────────────────────────────────────────────────────────────


def score_signal(
    snapshot: IndicatorSnapshot,
    patterns: list[str],
    price: float,
    weight_table: PatternWeightTable = DEFAULT_WEIGHT_TABLE,
    config: ScorerConfig = ScorerConfig(),
    min_confidence: Optional[float] = None,
) -> SignalDecision:
    """Score one evaluation into a ``SignalDecision``.

    Never raises for "no signal": a NONE decision lists its
    ``rejections``.  *min_confidence* overrides ``config.min_confidence``.
    """
    if min_confidence is None:
        min_confidence = config.min_confidence

    fired = match_conditions(snapshot, patterns, price)
    matches: list[ConditionMatch] = []
    for condition_id, reason in fired.items():
        entry = weight_table.entry(condition_id)
        if entry is None:
            continue
        matches.append(ConditionMatch(
            condition_id=condition_id,
            side=entry.side,
            tier=entry.tier,
            weight=entry.weight,
            reason=reason,
        ))

    by_side: dict[str, list[ConditionMatch]] = {BUY: [], SELL: []}
    for m in matches:
        by_side[m.side].append(m)
    scores = {side: sum(m.weight for m in by_side[side]) for side in (BUY, SELL)}
    conflicts = detect_conflicts(fired, patterns)

    logger.debug(
        "Scores: buy=%.2f sell=%.2f matches=%s conflicts=%s",
        scores[BUY], scores[SELL], [m.condition_id for m in matches], conflicts,
    )

    def _decision(direction, confidence, reasons=(), rejections=()):
        return SignalDecision(
            direction=direction,
            confidence=confidence,
            reasons=tuple(reasons),
            conflicts=tuple(conflicts),
            rejections=tuple(rejections),
            buy_score=scores[BUY],
            sell_score=scores[SELL],
            matches=tuple(matches),
        )

    # ── Eligibility ──────────────────────────────────────────────────
    rejections: list[str] = []
    eligible: list[Direction] = []
    for side in (BUY, SELL):
        score = scores[side]
        advantage = score - scores[_opposite(side)]
        if not any(m.tier == 1 for m in by_side[side]):
            rejections.append(f"{side}: no Tier-1 condition")
        elif score < config.score_threshold:
            rejections.append(
                f"{side}: score {score:.2f} below threshold {config.score_threshold:.2f}"
            )
        elif advantage < config.min_score_advantage:
            rejections.append(
                f"{side}: lead {advantage:.2f} below {config.min_score_advantage:.2f}"
            )
        else:
            eligible.append(side)

    if not eligible:
        return _decision(NONE, 0.0, rejections=rejections)
    if len(eligible) == 2 and scores[BUY] == scores[SELL]:
        return _decision(NONE, 0.0, rejections=["BUY and SELL scores tied"])
    side = max(eligible, key=lambda s: scores[s])

    if len(conflicts) > config.max_conflicts:
        return _decision(NONE, 0.0, rejections=[
            f"{len(conflicts)} conflicts exceed the limit of {config.max_conflicts}"
        ])

    # ── Confidence and final gates ───────────────────────────────────
    side_matches = by_side[side]
    confidence = _confidence(side, side_matches)
    reasons = [m.reason for m in side_matches if m.weight > 0]

    gate_failures: list[str] = []
    if confidence < min_confidence:
        gate_failures.append(
            f"{side}: confidence {confidence:.0f} below minimum {min_confidence:.0f}"
        )
    if len(reasons) < config.min_reasons:
        gate_failures.append(
            f"{side}: {len(reasons)} reason(s), need {config.min_reasons}"
        )
    if gate_failures:
        return _decision(NONE, confidence, reasons=reasons, rejections=gate_failures)

    return _decision(side, confidence, reasons=reasons)
