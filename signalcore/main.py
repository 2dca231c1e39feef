"""SignalCore — application entry point.

Boots the FastAPI server and provides the CLI entry point for the
serve, evaluate and backtest modes.
"""

import logging

from fastapi import FastAPI

from signalcore import __version__
from signalcore.api.routers import router

app = FastAPI(title="SignalCore API", version=__version__)
app.include_router(router)

logger = logging.getLogger("signalcore")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok", "version": __version__}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli(argv=None) -> int:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse

    from signalcore.config import load_config, load_weight_table
    from signalcore.strategy.weights import DEFAULT_WEIGHT_TABLE

    parser = argparse.ArgumentParser(description="SignalCore signal engine")
    parser.add_argument(
        "--mode",
        choices=["serve", "evaluate", "backtest"],
        default="serve",
        help="Run mode (default: serve)",
    )
    parser.add_argument("--csv", help="Candle CSV file (evaluate / backtest)")
    parser.add_argument("--start", help="Backtest start date (YYYY-MM-DD)")
    parser.add_argument("--end", help="Backtest end date (YYYY-MM-DD)")
    parser.add_argument("--max-trades", type=int, help="Backtest trade limit")
    parser.add_argument("--min-confidence", type=float, help="Override the confidence gate")
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument("--port", type=int, help="API port (serve mode)")
    args = parser.parse_args(argv)

    config = load_config(args.env_file)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    weight_table = DEFAULT_WEIGHT_TABLE
    if config.weight_table_path:
        weight_table = load_weight_table(config.weight_table_path)
        logger.info("Loaded weight table %s from %s",
                    weight_table.version, config.weight_table_path)

    if args.mode == "serve":
        _serve(config, weight_table, args.port or config.api_port)
        return 0

    if not args.csv:
        parser.error(f"--csv is required in {args.mode} mode")

    if args.mode == "evaluate":
        _run_evaluate(config, weight_table, args.csv, args.min_confidence)
    else:
        _run_backtest(
            config, weight_table, args.csv,
            args.start, args.end, args.max_trades, args.min_confidence,
        )
    return 0


def _serve(config, weight_table, port: int) -> None:
    """Start the API server."""
    import uvicorn

    from signalcore.api.routers import configure_routers

    configure_routers(config=config, weight_table=weight_table)
    logger.info("SignalCore API listening on http://localhost:%d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level=config.log_level.lower())


def _run_evaluate(config, weight_table, csv_path: str, min_confidence) -> None:
    """Evaluate the newest candle of a CSV file and print the result."""
    from signalcore.cli.report import print_evaluation
    from signalcore.data import load_candles_csv
    from signalcore.errors import InsufficientHistoryError
    from signalcore.strategy.evaluator import evaluate_at
    from signalcore.strategy.models import validate_candles

    candles = load_candles_csv(csv_path)
    if not candles:
        raise InsufficientHistoryError(1, 0, "evaluation")
    validate_candles(candles)
    evaluation = evaluate_at(
        candles, len(candles) - 1,
        config=config, weight_table=weight_table, min_confidence=min_confidence,
    )
    print_evaluation(evaluation, config.symbol)


def _run_backtest(
    config, weight_table, csv_path: str, start, end, max_trades, min_confidence,
) -> None:
    """Replay a CSV file through the backtest engine and print statistics."""
    from signalcore.backtest.engine import BacktestEngine
    from signalcore.cli.report import print_backtest
    from signalcore.data import load_candles_csv

    candles = load_candles_csv(csv_path, start=start, end=end)
    engine = BacktestEngine(config, weight_table)
    result = engine.run(candles, max_trades=max_trades, min_confidence=min_confidence)
    print_backtest(result)


if __name__ == "__main__":
    raise SystemExit(_run_cli())
