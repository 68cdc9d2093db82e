"""Prediction engine — feature extraction and the bagged-tree price model.

Orchestrates: observation + history → feature vector → ensemble prediction.
"""

from __future__ import annotations

from quantsim.prediction.features import FeatureExtractor
from quantsim.prediction.forest import EnsembleRegressor

__all__ = ["EnsembleRegressor", "FeatureExtractor"]
