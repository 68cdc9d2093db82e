"""Prometheus metrics definitions for quantsim.

All metric objects are centralized here as module-level singletons.
Import what you need from anywhere in the codebase:

    from quantsim.common.metrics import BACKTEST_RUNS_TOTAL

Exposition is left to the embedding process (e.g. prometheus_client.start_http_server).
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# ─── Backtest Metrics ───

BACKTEST_RUNS_TOTAL = Counter(
    "quantsim_backtest_runs_total",
    "Total backtest runs",
    labelnames=["strategy", "outcome"],
)

SIGNALS_GENERATED_TOTAL = Counter(
    "quantsim_signals_generated_total",
    "Non-HOLD trade signals emitted by strategies",
    labelnames=["strategy", "signal"],
)

TRADES_CLOSED_TOTAL = Counter(
    "quantsim_trades_closed_total",
    "Round-trip trades closed by the portfolio simulator",
    labelnames=["outcome"],
)

# ─── Model Metrics ───

MODEL_TRAINING_DURATION_SECONDS = Histogram(
    "quantsim_model_training_duration_seconds",
    "Ensemble regressor training duration in seconds",
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0),
)
