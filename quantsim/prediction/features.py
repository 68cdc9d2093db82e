"""Feature engineering for the price-level regression model.

Pure module with no I/O. Turns a current observation plus its trailing
history (most-recent-first) into a fixed-length feature vector.

Layout for lookback_window = N (N + 10 slots):
    value                      current observation
    lag_1 .. lag_N             most recent history values, padded with value
    delta_1, rel_delta_1       change vs. the most recent history point
    sma_5, sma_5_gap           5-point moving average and value - average
    sma_10, sma_10_gap
    sma_20, sma_20_gap
    std_5                      population std of the 5 most recent points

Usage:
    from quantsim.prediction.features import FeatureExtractor

    extractor = FeatureExtractor(lookback_window=10)
    vector = extractor.extract(current, history)
"""

from __future__ import annotations

import math

import numpy as np

from quantsim.common.schemas import NormalizedObservation
from quantsim.prediction.exceptions import FeatureExtractionError

# Moving-average windows, in output order.
SMA_WINDOWS: tuple[int, ...] = (5, 10, 20)

# Points used for the trailing volatility feature.
VOLATILITY_WINDOW: int = 5

# Slots that follow the lag block: delta pair, 3 SMA pairs, std.
NUM_INDICATOR_FEATURES: int = 2 + 2 * len(SMA_WINDOWS) + 1


def build_feature_names(lookback_window: int) -> list[str]:
    """Feature names matching the output order of FeatureExtractor.extract."""
    names = ["value"]
    names.extend(f"lag_{i}" for i in range(1, lookback_window + 1))
    names.extend(["delta_1", "rel_delta_1"])
    for window in SMA_WINDOWS:
        names.extend([f"sma_{window}", f"sma_{window}_gap"])
    names.append(f"std_{VOLATILITY_WINDOW}")
    return names


class FeatureExtractor:
    """Builds fixed-length feature vectors from an observation and its history."""

    def __init__(self, lookback_window: int = 10) -> None:
        if lookback_window < 1:
            raise FeatureExtractionError(
                "lookback_window must be >= 1", context={"lookback_window": lookback_window}
            )
        self.lookback_window = lookback_window
        self.feature_names = build_feature_names(lookback_window)

    @property
    def num_features(self) -> int:
        """Length of every vector this extractor produces."""
        return len(self.feature_names)

    def extract(
        self,
        current: NormalizedObservation,
        history: list[NormalizedObservation],
    ) -> np.ndarray:
        """Extract the feature vector for ``current``.

        Short history is padded, never rejected.

        Args:
            current: The observation being scored.
            history: Preceding observations, most recent first (may be empty).

        Returns:
            1-D float64 array of shape (num_features,).

        Raises:
            FeatureExtractionError: If current/history is None or holds non-finite values.
        """
        if current is None or history is None:
            raise FeatureExtractionError("Current observation and history are required")

        value = float(current.value)
        past = [float(h.value) for h in history]
        if not math.isfinite(value) or not all(math.isfinite(v) for v in past):
            raise FeatureExtractionError(
                "Non-finite value in feature input",
                context={"date": str(current.date), "history_len": len(past)},
            )

        features: list[float] = [value]

        # Lag block, padded with the current value.
        lags = past[: self.lookback_window]
        features.extend(lags)
        features.extend([value] * (self.lookback_window - len(lags)))

        # Change vs. the most recent point.
        if past:
            delta = value - past[0]
            rel_delta = delta / past[0] if past[0] != 0 else 0.0
        else:
            delta = 0.0
            rel_delta = 0.0
        features.extend([delta, rel_delta])

        # Moving averages, each paired with the gap to the current value.
        for window in SMA_WINDOWS:
            if len(past) >= window:
                sma = sum(past[:window]) / window
                features.extend([sma, value - sma])
            else:
                features.extend([value, 0.0])

        # Trailing volatility.
        if len(past) >= VOLATILITY_WINDOW:
            features.append(float(np.std(past[:VOLATILITY_WINDOW])))
        else:
            features.append(0.0)

        return np.array(features, dtype=np.float64)
