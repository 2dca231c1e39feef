"""Candle loading — CSV files and period filtering for the CLI and API.

CSV columns: ``timestamp`` (or ``time``), ``open``, ``high``, ``low``,
``close`` and an optional ``volume``.  Timestamps are normalised to
``YYYY-MM-DDTHH:MM:SSZ`` UTC strings so that string order is time order.
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

import pandas as pd

from signalcore.strategy.models import TIMESTAMP_FORMAT, Candle

logger = logging.getLogger("signalcore.data")

_REQUIRED = ("open", "high", "low", "close")


def _to_utc(value) -> pd.Timestamp:
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def _period_bounds(
    start: Optional[str], end: Optional[str],
) -> tuple[Optional[pd.Timestamp], Optional[pd.Timestamp]]:
    """Inclusive start and exclusive end; a date-only *end* covers that whole day."""
    lo = _to_utc(start) if start else None
    hi = None
    if end:
        hi = _to_utc(end)
        if len(end) <= 10:
            hi = hi + timedelta(days=1)
        else:
            hi = hi + timedelta(microseconds=1)
    return lo, hi


def candles_from_frame(df: pd.DataFrame) -> list[Candle]:
    """Convert a candle DataFrame to ``Candle`` objects, oldest first.

    Raises ``ValueError`` when a required column is missing.
    """
    if df.empty:
        return []

    df = df.copy()
    if "timestamp" not in df.columns and "time" in df.columns:
        df = df.rename(columns={"time": "timestamp"})
    missing = [c for c in ("timestamp", *_REQUIRED) if c not in df.columns]
    if missing:
        raise ValueError(f"Candle data is missing column(s): {', '.join(missing)}")

    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df = df.sort_values("timestamp", kind="stable").reset_index(drop=True)
    has_volume = "volume" in df.columns

    candles: list[Candle] = []
    for row in df.itertuples(index=False):
        volume = getattr(row, "volume") if has_volume else None
        candles.append(Candle(
            timestamp=row.timestamp.strftime(TIMESTAMP_FORMAT),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=None if volume is None or pd.isna(volume) else float(volume),
        ))
    return candles


def load_candles_csv(
    path: str | Path,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> list[Candle]:
    """Read candles from a CSV file, optionally limited to ``[start, end]``."""
    df = pd.read_csv(path)
    candles = filter_period(candles_from_frame(df), start, end)
    logger.info("Loaded %d candles from %s", len(candles), path)
    return candles


def filter_period(
    candles: list[Candle],
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> list[Candle]:
    """Keep the candles whose timestamp falls within ``[start, end]``.

    A date-only *end* (``YYYY-MM-DD``) includes every candle of that day.
    """
    if not start and not end:
        return list(candles)
    lo, hi = _period_bounds(start, end)
    kept: list[Candle] = []
    for c in candles:
        ts = _to_utc(c.timestamp)
        if lo is not None and ts < lo:
            continue
        if hi is not None and ts >= hi:
            continue
        kept.append(c)
    return kept
