"""API routers — /weights, /evaluate, /backtest endpoints.

No business logic.  Parses request bodies into candles and delegates to
the evaluator and the backtest engine.
"""

import dataclasses
import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, HTTPException

from signalcore.backtest.engine import BacktestEngine
from signalcore.config import Config
from signalcore.data import filter_period
from signalcore.errors import SignalCoreError
from signalcore.strategy.evaluator import build_opportunity, evaluate_at
from signalcore.strategy.models import Candle, candle_from_dict, validate_candles
from signalcore.strategy.session_filter import is_forex_market_open
from signalcore.strategy.weights import DEFAULT_WEIGHT_TABLE, PatternWeightTable

logger = logging.getLogger("signalcore.api")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_config: Config = Config()
_weight_table: PatternWeightTable = DEFAULT_WEIGHT_TABLE


def configure_routers(
    config: Optional[Config] = None,
    weight_table: Optional[PatternWeightTable] = None,
) -> None:
    """Inject configuration from the application startup.

    Args:
        config: Engine configuration; defaults are used when omitted.
        weight_table: Pattern weight table shared by every request.
    """
    global _config, _weight_table  # noqa: PLW0603
    _config = config or Config()
    _weight_table = weight_table or DEFAULT_WEIGHT_TABLE


# ── Helpers ──────────────────────────────────────────────────────────────


def json_safe(value: Any) -> Any:
    """Recursively replace non-finite floats with ``None``."""
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {k: json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    return value


def _parse_candles(body: dict) -> list[Candle]:
    rows = body.get("candles")
    if not isinstance(rows, list) or not rows:
        raise HTTPException(status_code=422, detail="'candles' must be a non-empty list")
    candles: list[Candle] = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise HTTPException(status_code=422, detail=f"Candle {i}: expected an object")
        try:
            candles.append(candle_from_dict(row))
        except (KeyError, TypeError, ValueError) as exc:
            raise HTTPException(
                status_code=422, detail=f"Candle {i}: invalid or missing field {exc}",
            ) from None
    return candles


def _optional_number(body: dict, key: str, low: float, high: float) -> Optional[float]:
    if body.get(key) is None:
        return None
    try:
        value = float(body[key])
    except (TypeError, ValueError):
        raise HTTPException(status_code=422, detail=f"{key} must be a number") from None
    if not low <= value <= high:
        raise HTTPException(status_code=422, detail=f"{key} must be {low:g}–{high:g}")
    return value


# ── Routes ───────────────────────────────────────────────────────────────


@router.get("/weights")
async def get_weights():
    """Return the active pattern weight table."""
    return _weight_table.to_dict()


@router.post("/evaluate")
async def post_evaluate(body: dict):
    """Evaluate the newest candle of the posted series.

    Body: ``{"candles": [...], "min_confidence"?, "pattern_stats"?, "symbol"?}``.
    """
    candles = _parse_candles(body)
    min_confidence = _optional_number(body, "min_confidence", 0.0, 100.0)
    pattern_stats = body.get("pattern_stats") or None
    if pattern_stats is not None and not isinstance(pattern_stats, list):
        raise HTTPException(status_code=422, detail="pattern_stats must be a list")

    config = _config
    if body.get("symbol"):
        config = dataclasses.replace(config, symbol=str(body["symbol"]))

    try:
        validate_candles(candles)
        evaluation = evaluate_at(
            candles,
            len(candles) - 1,
            config=config,
            weight_table=_weight_table,
            pattern_stats=pattern_stats,
            min_confidence=min_confidence,
        )
    except SignalCoreError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None

    now = datetime.now(timezone.utc)
    market_open, market_reason = is_forex_market_open(now)
    response = evaluation.to_dict()
    response["symbol"] = config.symbol
    response["market"] = {"open": market_open, "reason": market_reason}
    response["opportunity"] = (
        build_opportunity(evaluation, config.symbol, now)
        if evaluation.decision.is_signal else None
    )
    return json_safe(response)


@router.post("/backtest")
async def post_backtest(body: dict):
    """Replay the posted series and return backtest statistics.

    Body: ``{"candles": [...], "max_trades"?, "start"?, "end"?, "min_confidence"?}``.
    """
    candles = _parse_candles(body)
    max_trades = _optional_number(body, "max_trades", 1, 10_000)
    if max_trades is not None and not max_trades.is_integer():
        raise HTTPException(status_code=422, detail="max_trades must be a whole number")
    min_confidence = _optional_number(body, "min_confidence", 0.0, 100.0)

    try:
        candles = filter_period(candles, body.get("start"), body.get("end"))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid period: {exc}") from None

    engine = BacktestEngine(_config, _weight_table)
    try:
        result = engine.run(
            candles,
            max_trades=int(max_trades) if max_trades is not None else None,
            min_confidence=min_confidence,
        )
    except SignalCoreError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None

    logger.info(
        "Backtest via API: %d trades over %d candles", result.total_trades, len(candles),
    )
    return json_safe(result.to_dict())
