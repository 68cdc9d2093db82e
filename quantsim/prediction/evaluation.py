"""Prediction-quality metrics for the price model.

Scores a prediction trajectory (date → predicted close) against the
realized closes. Uses scikit-learn's regression metrics.
"""

from __future__ import annotations

from datetime import date

import numpy as np
from sklearn import metrics as sk_metrics

from quantsim.common.schemas import PricePoint


def mean_squared_error(predictions, actuals) -> float:
    """Mean of squared prediction errors.

    Raises:
        ValueError: If the sequences differ in length or are empty.
    """
    pred, act = _as_pair(predictions, actuals)
    return float(sk_metrics.mean_squared_error(act, pred))


def mean_absolute_error(predictions, actuals) -> float:
    """Mean of absolute prediction errors.

    Raises:
        ValueError: If the sequences differ in length or are empty.
    """
    pred, act = _as_pair(predictions, actuals)
    return float(sk_metrics.mean_absolute_error(act, pred))


def prediction_errors(
    trajectory: dict[date, float],
    prices: list[PricePoint],
) -> dict[str, float]:
    """Align predictions with actual closes by date and score them.

    Dates without a matching price are ignored.

    Returns:
        {"mse", "mae", "count"}; errors are 0.0 when nothing aligns.
    """
    closes = {p.date: p.close for p in prices}
    aligned = [(pred, closes[d]) for d, pred in sorted(trajectory.items()) if d in closes]
    if not aligned:
        return {"mse": 0.0, "mae": 0.0, "count": 0}

    pred = [a[0] for a in aligned]
    act = [a[1] for a in aligned]
    return {
        "mse": round(mean_squared_error(pred, act), 6),
        "mae": round(mean_absolute_error(pred, act), 6),
        "count": len(aligned),
    }


def _as_pair(predictions, actuals) -> tuple[np.ndarray, np.ndarray]:
    pred = np.asarray(predictions, dtype=np.float64)
    act = np.asarray(actuals, dtype=np.float64)
    if pred.shape != act.shape:
        raise ValueError("Predictions and actuals must have the same length")
    if pred.size == 0:
        raise ValueError("Predictions and actuals must not be empty")
    return pred, act
