"""Metrics calculator for backtest results.

Computes performance statistics from a simulated value/trade trajectory:
- Annualized return
- Sharpe ratio (daily returns, sample standard deviation)
- Maximum drawdown
- Win rate (closed trades plus a synthetic close for an open position)

Every metric is also reachable by name through METRIC_REGISTRY.

Usage:
    from quantsim.backtesting.metrics import evaluate_strategy

    report = evaluate_strategy(prices, signals, config)
"""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import date

import numpy as np

from quantsim.backtesting.exceptions import BacktestError
from quantsim.backtesting.schemas import BacktestConfig, SimulationResult
from quantsim.backtesting.simulator import PortfolioSimulator, build_trade
from quantsim.common.logging import get_logger
from quantsim.common.schemas import MetricReport, PricePoint, Trade, TradeSignal

logger = get_logger("METRICS")

MetricFn = Callable[[list[PricePoint], dict[date, TradeSignal], BacktestConfig | None], float]


# ─── Simulation ───


def simulate(
    prices: list[PricePoint],
    signals: dict[date, TradeSignal],
    config: BacktestConfig | None = None,
) -> SimulationResult:
    """Sort the series ascending and replay the signals through a fresh account."""
    config = config or BacktestConfig()
    ordered = sorted(prices, key=lambda p: p.date)
    simulator = PortfolioSimulator(
        initial_capital=config.initial_capital,
        transaction_fee=config.transaction_fee,
    )
    return simulator.run(ordered, signals)


# ─── Metric Calculations ───


def _annualized_return(result: SimulationResult) -> float:
    """Compound annual growth rate of the account.

    Uses calendar days between the first and last step over 365.0 and
    compounds in log space.

    Returns:
        Annualized return as a fraction. 0.0 when the series spans no time,
        -1.0 when the account is wiped out, and inf when the compounded
        growth exceeds the float range.
    """
    if not result.steps:
        return 0.0

    days = (result.steps[-1].date - result.steps[0].date).days
    if days == 0:
        return 0.0

    years = days / 365.0
    total_return = (result.final_value - result.initial_capital) / result.initial_capital
    if total_return <= -1.0:
        return -1.0

    try:
        return math.expm1(math.log1p(total_return) / years)
    except OverflowError:
        logger.warning(
            "Annualized return overflows",
            extra={"data": {"total_return": total_return, "days": days}},
        )
        return math.inf


def _max_drawdown(result: SimulationResult) -> float:
    """Largest peak-to-trough decline as a fraction of the running peak.

    Returns:
        Drawdown in [0, 1] (0.0 if the value never fell below its peak).
    """
    values = result.values
    if not values:
        return 0.0

    peak = values[0]
    max_dd = 0.0
    for value in values:
        if value > peak:
            peak = value
        if peak > 0:
            max_dd = max(max_dd, (peak - value) / peak)

    return max_dd


def _sharpe_ratio(result: SimulationResult, config: BacktestConfig) -> float:
    """Annualized Sharpe ratio from per-step returns.

    annual_return = mean(daily) * tdpy and annual_risk = std(daily, ddof=1)
    * sqrt(tdpy); a zero previous value contributes no return.

    Returns:
        (annual_return - risk_free_rate) / annual_risk, or 0.0 with fewer
        than two returns or no variability.
    """
    values = result.values
    daily_returns = [
        (cur - prev) / prev for prev, cur in zip(values, values[1:], strict=False) if prev != 0
    ]
    if len(daily_returns) < 2:
        return 0.0

    returns = np.asarray(daily_returns, dtype=np.float64)
    tdpy = config.trading_days_per_year
    annual_return = float(returns.mean()) * tdpy
    annual_risk = float(returns.std(ddof=1)) * math.sqrt(tdpy)

    if annual_risk < 1e-12:
        return 0.0

    return (annual_return - config.risk_free_rate) / annual_risk


def closing_trades(result: SimulationResult) -> list[Trade]:
    """Closed round trips plus a synthetic close at the last price for an open position."""
    trades = list(result.trades)
    if result.open_position is not None and result.steps:
        last = result.steps[-1]
        trades.append(
            build_trade(
                result.open_position,
                last.date,
                last.price,
                result.transaction_fee,
                synthetic=True,
            )
        )
    return trades


def _win_rate(result: SimulationResult) -> float:
    """Fraction of round trips with a positive fee-adjusted return."""
    trades = closing_trades(result)
    if not trades:
        return 0.0
    return sum(1 for t in trades if t.won) / len(trades)


# ─── Public Metric Functions ───


def annualized_return(prices, signals, config: BacktestConfig | None = None) -> float:
    """Annualized return of following ``signals`` over ``prices``."""
    if not prices or not signals:
        return 0.0
    return _annualized_return(simulate(prices, signals, config))


def sharpe_ratio(prices, signals, config: BacktestConfig | None = None) -> float:
    """Annualized Sharpe ratio of following ``signals`` over ``prices``."""
    if not prices or not signals:
        return 0.0
    config = config or BacktestConfig()
    return _sharpe_ratio(simulate(prices, signals, config), config)


def max_drawdown(prices, signals, config: BacktestConfig | None = None) -> float:
    """Maximum drawdown of following ``signals`` over ``prices``."""
    if not prices or not signals:
        return 0.0
    return _max_drawdown(simulate(prices, signals, config))


def win_rate(prices, signals, config: BacktestConfig | None = None) -> float:
    """Win rate of following ``signals`` over ``prices``."""
    if not prices or not signals:
        return 0.0
    return _win_rate(simulate(prices, signals, config))


METRIC_REGISTRY: dict[str, MetricFn] = {
    "annual_return": annualized_return,
    "annualized_return": annualized_return,
    "sharpe": sharpe_ratio,
    "sharpe_ratio": sharpe_ratio,
    "max_drawdown": max_drawdown,
    "maximum_drawdown": max_drawdown,
    "win_rate": win_rate,
}


def get_metric(name: str) -> MetricFn:
    """Look up a metric by name or alias (case-insensitive).

    Raises:
        BacktestError: If the name is not registered.
    """
    metric = METRIC_REGISTRY.get(name.strip().lower())
    if metric is None:
        raise BacktestError(
            f"Unsupported evaluation metric: {name}",
            context={"metric": name, "available": sorted(METRIC_REGISTRY)},
        )
    return metric


def evaluate_metric(
    name: str,
    prices: list[PricePoint],
    signals: dict[date, TradeSignal],
    config: BacktestConfig | None = None,
) -> float:
    """Compute a single named metric."""
    return get_metric(name)(prices, signals, config)


# ─── Aggregate Report ───


def compute_report(result: SimulationResult, config: BacktestConfig) -> MetricReport:
    """Compute all four metrics from one simulated run."""
    return MetricReport(
        annualized_return=_annualized_return(result),
        sharpe_ratio=_sharpe_ratio(result, config),
        max_drawdown=_max_drawdown(result),
        win_rate=_win_rate(result),
    )


def evaluate_strategy(
    prices: list[PricePoint],
    signals: dict[date, TradeSignal],
    config: BacktestConfig | None = None,
) -> MetricReport:
    """Simulate once and report every metric.

    Args:
        prices: Price series (any order; sorted ascending here).
        signals: Sparse date → signal mapping.
        config: Evaluation parameters; defaults when None.

    Returns:
        MetricReport; all zeros for an empty series or empty signal map.
    """
    if not prices or not signals:
        logger.warning(
            "Nothing to evaluate",
            extra={"data": {"prices": len(prices), "signals": len(signals)}},
        )
        return MetricReport()

    config = config or BacktestConfig()
    report = compute_report(simulate(prices, signals, config), config)

    logger.info(
        "Strategy evaluated",
        extra={"data": report.model_dump()},
    )
    return report


def format_report(report: MetricReport) -> str:
    """Human-readable multi-line summary of a MetricReport."""
    return "\n".join(
        [
            "Strategy evaluation",
            f"  Annualized return: {report.annualized_return * 100:.2f}%",
            f"  Sharpe ratio:      {report.sharpe_ratio:.2f}",
            f"  Maximum drawdown:  {report.max_drawdown * 100:.2f}%",
            f"  Win rate:          {report.win_rate * 100:.2f}%",
        ]
    )
