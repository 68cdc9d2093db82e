"""Backtesting engine: train, signal, simulate, evaluate.

The engine is entirely synchronous. All prices are pre-loaded in memory and
no I/O occurs during a run.

Usage:
    from quantsim.backtesting.engine import run_backtest

    result = run_backtest(prices, strategy, config)
"""

from __future__ import annotations

import time

from quantsim.backtesting.exceptions import InsufficientDataError
from quantsim.backtesting.metrics import compute_report, simulate
from quantsim.backtesting.schemas import BacktestConfig, BacktestResult
from quantsim.common.exceptions import QuantSimError
from quantsim.common.logging import get_logger
from quantsim.common.metrics import BACKTEST_RUNS_TOTAL
from quantsim.common.schemas import MetricReport, PricePoint
from quantsim.prediction.evaluation import prediction_errors
from quantsim.prediction.exceptions import ModelNotTrainedError
from quantsim.strategies.base import TradingStrategy, generate_signals

logger = get_logger("BACKTEST")


def run_backtest(
    prices: list[PricePoint],
    strategy: TradingStrategy,
    config: BacktestConfig | None = None,
    training_prices: list[PricePoint] | None = None,
) -> BacktestResult:
    """Run a full backtest of ``strategy`` over ``prices``.

    Args:
        prices: Price series to trade (sorted ascending here).
        strategy: Signal generator; trained first if it needs a model.
        config: Evaluation parameters; defaults when None.
        training_prices: Series to fit the model on. Defaults to ``prices``.

    Returns:
        BacktestResult with signals, trajectory, trades and the metric report.

    Raises:
        InsufficientDataError: If the series is empty, or a prediction is
            needed from a model the training series was too short to fit.
            A series too short to predict on yields no signals and a zero report.
    """
    config = config or BacktestConfig()
    try:
        result = _run(prices, strategy, config, training_prices)
    except QuantSimError:
        BACKTEST_RUNS_TOTAL.labels(strategy=strategy.name, outcome="error").inc()
        raise

    BACKTEST_RUNS_TOTAL.labels(strategy=strategy.name, outcome="success").inc()
    return result


def _run(
    prices: list[PricePoint],
    strategy: TradingStrategy,
    config: BacktestConfig,
    training_prices: list[PricePoint] | None,
) -> BacktestResult:
    start_time = time.monotonic()

    if not prices:
        raise InsufficientDataError(
            "No price data to backtest",
            context={"strategy": strategy.name},
        )

    ordered = sorted(prices, key=lambda p: p.date)
    symbol = ordered[0].symbol

    training_samples = 0
    if strategy.requires_training and not strategy.is_trained:
        training_set = sorted(training_prices or ordered, key=lambda p: p.date)
        training_samples = strategy.train_model(training_set)
        if training_samples == 0:
            logger.warning(
                "Strategy model left untrained",
                extra={"data": {"strategy": strategy.name, "points": len(training_set)}},
            )

    strategy.reset_state()
    observations = strategy.prepare_observations(ordered)
    try:
        signals = generate_signals(strategy, observations)
    except ModelNotTrainedError as e:
        raise InsufficientDataError(
            "Not enough data to train the strategy model",
            context={"strategy": strategy.name, "points": len(training_prices or ordered)},
        ) from e

    simulation = simulate(ordered, signals, config)
    report = compute_report(simulation, config) if signals else MetricReport()

    predictions = strategy.prediction_trajectory
    errors = prediction_errors(predictions, ordered) if predictions else None

    duration = time.monotonic() - start_time

    logger.info(
        "Backtest completed",
        extra={
            "data": {
                "symbol": symbol,
                "strategy": strategy.name,
                "days": len(ordered),
                "signals": len(signals),
                "trades": len(simulation.trades),
                "final_value": round(simulation.final_value, 2),
                "duration_s": round(duration, 4),
            }
        },
    )

    return BacktestResult(
        symbol=symbol,
        strategy=strategy.name,
        config=config,
        signals=signals,
        report=report,
        steps=simulation.steps,
        trades=simulation.trades,
        predictions=predictions,
        feature_importance=strategy.feature_importance(),
        prediction_errors=errors,
        training_samples=training_samples,
        total_days_simulated=len(ordered),
        duration_seconds=round(duration, 4),
    )
