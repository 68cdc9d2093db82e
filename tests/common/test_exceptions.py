"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from quantsim.backtesting.exceptions import BacktestError, InsufficientDataError
from quantsim.common.exceptions import DataLoadError, QuantSimError, StrategyConfigError
from quantsim.prediction.exceptions import (
    FeatureExtractionError,
    InvalidTrainingDataError,
    ModelNotTrainedError,
    ModelPersistenceError,
    PredictionError,
)


class TestQuantSimError:
    """Test the base exception."""

    def test_message_only(self):
        assert str(QuantSimError("boom")) == "boom"

    def test_context_in_str(self):
        err = QuantSimError("bad input", context={"symbol": "AAPL"})
        assert "AAPL" in str(err)
        assert err.context == {"symbol": "AAPL"}

    def test_secret_context_redacted(self):
        err = QuantSimError("auth failed", context={"api_token": "xyz-123", "symbol": "SPY"})
        text = str(err)
        assert "xyz-123" not in text
        assert "[REDACTED]" in text
        assert "SPY" in text

    def test_context_defaults_to_empty(self):
        assert QuantSimError("x").context == {}


class TestHierarchy:
    """Domain errors share the base and the matching builtin."""

    @pytest.mark.parametrize(
        "exc_type",
        [
            DataLoadError,
            StrategyConfigError,
            PredictionError,
            InvalidTrainingDataError,
            ModelNotTrainedError,
            ModelPersistenceError,
            FeatureExtractionError,
            BacktestError,
            InsufficientDataError,
        ],
    )
    def test_all_derive_from_base(self, exc_type):
        assert issubclass(exc_type, QuantSimError)

    def test_value_errors(self):
        for exc_type in (InvalidTrainingDataError, FeatureExtractionError, StrategyConfigError):
            assert issubclass(exc_type, ValueError)

    def test_not_trained_is_runtime_error(self):
        assert issubclass(ModelNotTrainedError, RuntimeError)
