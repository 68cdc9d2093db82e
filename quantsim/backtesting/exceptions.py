"""Backtesting-specific exceptions."""

from __future__ import annotations

from quantsim.common.exceptions import QuantSimError


class BacktestError(QuantSimError):
    """General backtesting error (bad config, unknown metric, engine failure, etc.)."""


class InsufficientDataError(QuantSimError):
    """Not enough historical data to run the requested backtest."""
