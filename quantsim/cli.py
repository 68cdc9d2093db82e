"""Command-line backtest runner.

Loads a price series (CSV file or a seeded synthetic walk), builds the
configured strategy, runs the backtest and prints the evaluation report.

Usage:
    quantsim --csv data/SPY.csv --symbol SPY --strategy moving_average
    python -m quantsim --synthetic-days 750 --strategy ml --seed 7 --save-model
"""

from __future__ import annotations

import argparse
import random
import sys
from datetime import date
from pathlib import Path

from pydantic import ValidationError

from quantsim.backtesting.engine import run_backtest
from quantsim.backtesting.metrics import format_report
from quantsim.backtesting.schemas import BacktestConfig, BacktestResult
from quantsim.common.config import Settings, get_settings
from quantsim.common.exceptions import QuantSimError
from quantsim.common.logging import configure_log_level, get_logger
from quantsim.common.schemas import PricePoint
from quantsim.data.loader import generate_synthetic_series, load_price_csv
from quantsim.strategies.ml_strategy import ModelDrivenStrategy
from quantsim.strategies.registry import create_strategy

logger = get_logger("SYSTEM")

DEFAULT_SYNTHETIC_DAYS = 500
DEFAULT_SYNTHETIC_START = date(2020, 1, 1)
TOP_FEATURES = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quantsim", description="Backtest a trading strategy")
    parser.add_argument(
        "--csv",
        help="Price CSV (Date,Open,High,Low,Close,Volume); relative paths fall back to data_dir",
    )
    parser.add_argument("--symbol", default="SYNTH", help="Symbol to stamp on loaded prices")
    parser.add_argument("--start", type=date.fromisoformat, help="First date (YYYY-MM-DD)")
    parser.add_argument("--end", type=date.fromisoformat, help="Last date (YYYY-MM-DD)")
    parser.add_argument("--strategy", help="Strategy name (default: configured strategy_type)")
    parser.add_argument(
        "--synthetic-days",
        type=int,
        default=DEFAULT_SYNTHETIC_DAYS,
        help="Length of the synthetic series when no --csv is given",
    )
    parser.add_argument("--seed", type=int, help="Seed for the model and synthetic data")
    parser.add_argument(
        "--save-model",
        action="store_true",
        help="Persist the trained model to the configured model_dir",
    )
    return parser


def resolve_csv_path(csv: str, settings: Settings) -> Path:
    """A relative path that does not exist as given is looked up under data_dir."""
    path = Path(csv)
    if path.is_absolute() or path.exists():
        return path
    return Path(settings.data_dir) / path


def load_prices(args: argparse.Namespace, settings: Settings) -> list[PricePoint]:
    """Prices from --csv, or a synthetic series seeded by --seed."""
    if args.csv:
        return load_price_csv(
            resolve_csv_path(args.csv, settings),
            args.symbol,
            start=args.start,
            end=args.end,
            date_format=settings.date_format,
        )

    rng = random.Random(args.seed if args.seed is not None else settings.random_seed)
    prices = generate_synthetic_series(
        args.symbol,
        args.start or DEFAULT_SYNTHETIC_START,
        args.synthetic_days,
        rng=rng,
    )
    if args.end is not None:
        prices = [p for p in prices if p.date <= args.end]
    return prices


def render_result(result: BacktestResult) -> str:
    """Report text plus model diagnostics when present."""
    lines = [
        f"Symbol: {result.symbol}  Strategy: {result.strategy}  "
        f"Days: {result.total_days_simulated}  Signals: {len(result.signals)}  "
        f"Trades: {len(result.trades)}",
        format_report(result.report),
    ]

    if result.feature_importance:
        ranked = sorted(result.feature_importance.items(), key=lambda kv: kv[1], reverse=True)
        lines.append("Top feature importances")
        lines.extend(f"  {name:<12} {weight:.4f}" for name, weight in ranked[:TOP_FEATURES])

    if result.prediction_errors:
        lines.append(
            f"Prediction MSE: {result.prediction_errors['mse']:.4f}  "
            f"MAE: {result.prediction_errors['mae']:.4f}"
        )

    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
        if args.seed is not None:
            settings = settings.model_copy(update={"random_seed": args.seed})
        configure_log_level(settings.log_level)

        prices = load_prices(args, settings)
        strategy = create_strategy(args.strategy, settings)
        result = run_backtest(prices, strategy, BacktestConfig.from_settings(settings))

        if args.save_model and isinstance(strategy, ModelDrivenStrategy):
            strategy.regressor.save()
    except (QuantSimError, ValidationError) as exc:
        logger.error("Backtest failed", extra={"data": {"error": str(exc)}})
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(render_result(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
