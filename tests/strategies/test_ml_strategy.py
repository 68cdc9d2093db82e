"""Tests for the model-driven strategy."""

from __future__ import annotations

import numpy as np
import pytest

from quantsim.backtesting.engine import run_backtest
from quantsim.common.exceptions import StrategyConfigError
from quantsim.common.schemas import TradeSignal
from quantsim.data.loader import history_before, to_observations
from quantsim.prediction.exceptions import ModelNotTrainedError
from quantsim.prediction.forest import EnsembleRegressor
from quantsim.strategies.base import generate_signals
from quantsim.strategies.ml_strategy import ModelDrivenStrategy
from tests.factories import make_history, make_observation


class FixedRegressor(EnsembleRegressor):
    """Regressor stand-in that always predicts the same price."""

    def __init__(self, value: float) -> None:
        super().__init__(num_trees=1)
        self.value = value
        self.calls = 0

    def is_available(self) -> bool:
        return True

    def predict(self, features) -> float:
        self.calls += 1
        return self.value


def _strategy(lookback: int = 10, seed: int = 5) -> ModelDrivenStrategy:
    regressor = EnsembleRegressor(num_trees=10, max_depth=6, seed=seed)
    return ModelDrivenStrategy(regressor=regressor, lookback_window=lookback)


class TestTrainModel:
    """Tests for ModelDrivenStrategy.train_model()."""

    def test_sample_count(self, trending_prices):
        strategy = _strategy(lookback=10)
        assert strategy.train_model(trending_prices) == len(trending_prices) - 10
        assert strategy.is_trained

    def test_too_short_series(self, trending_prices, capfd):
        strategy = _strategy(lookback=10)
        assert strategy.train_model(trending_prices[:10]) == 0
        assert not strategy.is_trained
        assert "Not enough data to train model" in capfd.readouterr().out

    def test_exactly_lookback_plus_one(self, trending_prices):
        assert _strategy(lookback=10).train_model(trending_prices[:11]) == 1

    def test_regressor_gets_feature_names(self, trending_prices):
        strategy = _strategy(lookback=3)
        strategy.train_model(trending_prices)
        assert set(strategy.feature_importance()) <= set(strategy.extractor.feature_names)

    def test_deterministic_training(self, trending_prices):
        a, b = _strategy(seed=3), _strategy(seed=3)
        a.train_model(trending_prices)
        b.train_model(trending_prices)
        obs = to_observations(trending_prices)
        sig_a = generate_signals(a, obs)
        sig_b = generate_signals(b, obs)
        assert sig_a == sig_b
        assert a.prediction_trajectory == b.prediction_trajectory


class TestGenerateSignal:
    """Tests for ModelDrivenStrategy.generate_signal()."""

    def test_hold_below_lookback(self):
        regressor = FixedRegressor(1000.0)
        strategy = ModelDrivenStrategy(regressor=regressor, lookback_window=5)
        signal = strategy.generate_signal(make_observation(100.0), make_history([100.0] * 4))
        assert signal is TradeSignal.HOLD
        assert regressor.calls == 0

    @pytest.mark.parametrize(
        ("predicted", "expected"),
        [
            (102.0, TradeSignal.BUY),
            (101.0, TradeSignal.HOLD),
            (99.5, TradeSignal.HOLD),
            (98.0, TradeSignal.SELL),
        ],
    )
    def test_thresholds(self, predicted, expected):
        strategy = ModelDrivenStrategy(regressor=FixedRegressor(predicted), lookback_window=3)
        signal = strategy.generate_signal(make_observation(100.0), make_history([100.0] * 3))
        assert signal is expected

    def test_zero_current_value_holds(self):
        strategy = ModelDrivenStrategy(regressor=FixedRegressor(5.0), lookback_window=1)
        assert strategy.generate_signal(make_observation(0.0), make_history([1.0])) is TradeSignal.HOLD

    def test_records_trajectory(self):
        strategy = ModelDrivenStrategy(regressor=FixedRegressor(105.0), lookback_window=2)
        current = make_observation(100.0)
        strategy.generate_signal(current, make_history([100.0, 100.0]))
        assert strategy.prediction_trajectory == {current.date: 105.0}

    def test_reset_state_clears_trajectory(self):
        strategy = ModelDrivenStrategy(regressor=FixedRegressor(105.0), lookback_window=1)
        strategy.generate_signal(make_observation(100.0), make_history([100.0]))
        strategy.reset_state()
        assert strategy.prediction_trajectory == {}

    def test_untrained_model_raises(self):
        strategy = _strategy(lookback=1)
        with pytest.raises(ModelNotTrainedError):
            strategy.generate_signal(make_observation(100.0), make_history([100.0]))

    def test_trained_signals_on_raw_prices(self, trending_prices):
        strategy = _strategy(lookback=10)
        strategy.train_model(trending_prices)
        observations = strategy.prepare_observations(trending_prices)
        assert observations[0].value == trending_prices[0].close

        for i in range(10, 15):
            signal = strategy.generate_signal(observations[i], history_before(observations, i))
            assert signal in (TradeSignal.BUY, TradeSignal.SELL, TradeSignal.HOLD)
        assert len(strategy.prediction_trajectory) == 5
        assert all(np.isfinite(v) for v in strategy.prediction_trajectory.values())


class TestSetParameters:
    """Tests for ModelDrivenStrategy.set_parameters()."""

    def test_thresholds(self):
        strategy = ModelDrivenStrategy(regressor=FixedRegressor(1.0))
        strategy.set_parameters({"buyThreshold": 0.05, "sell_threshold": -0.03})
        assert strategy.buy_threshold == 0.05
        assert strategy.sell_threshold == -0.03

    def test_invalid_threshold_order(self):
        strategy = ModelDrivenStrategy(regressor=FixedRegressor(1.0))
        with pytest.raises(StrategyConfigError):
            strategy.set_parameters({"buyThreshold": -0.05, "sellThreshold": 0.05})

    def test_lookback_rebuilds_extractor(self):
        strategy = ModelDrivenStrategy(regressor=EnsembleRegressor(num_trees=1))
        strategy.set_parameters({"lookbackWindow": 4})
        assert strategy.lookback_window == 4
        assert strategy.extractor.num_features == 14
        assert strategy.regressor.feature_names == strategy.extractor.feature_names

    def test_lookback_change_after_training_warns(self, trending_prices, capfd):
        strategy = _strategy(lookback=5)
        strategy.train_model(trending_prices)
        capfd.readouterr()
        strategy.set_parameters({"lookback_window": 6})
        assert "Lookback changed after training" in capfd.readouterr().out
        assert not strategy.is_trained

        result = run_backtest(trending_prices, strategy)
        assert result.training_samples == len(trending_prices) - 6
        assert strategy.regressor.metadata["num_features"] == strategy.extractor.num_features
        assert len(result.predictions) == len(trending_prices) - 6
