"""Backtesting module — historical simulation of trading strategies.

Replays a strategy's signals against a daily price series with a
single-position account and scores the result with risk-adjusted metrics.
"""

from __future__ import annotations
