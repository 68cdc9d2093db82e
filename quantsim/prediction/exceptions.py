"""Prediction-specific exceptions.

The strategy and backtest layers can catch PredictionError to handle any
model failure; the narrower classes also derive from the builtin that
matches their meaning.
"""

from __future__ import annotations

from quantsim.common.exceptions import QuantSimError


class PredictionError(QuantSimError):
    """Base exception for prediction module errors."""


class InvalidTrainingDataError(PredictionError, ValueError):
    """Raised when features/labels are empty, mismatched or ragged."""


class ModelNotTrainedError(PredictionError, RuntimeError):
    """Raised when predicting or saving before the model has been trained."""


class ModelPersistenceError(PredictionError):
    """Raised when a model blob cannot be written or read back."""


class FeatureExtractionError(PredictionError, ValueError):
    """Raised when a feature vector cannot be built from malformed input."""
