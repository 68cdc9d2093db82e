"""Model-driven strategy backed by the bagged-tree price regressor.

The regressor learns to reproduce the close price from the trailing price
window, and the strategy trades on the gap between the predicted and the
current price:

    predicted_change = (predicted - current) / current
    BUY  if predicted_change > buy_threshold
    SELL if predicted_change < sell_threshold

NOTE: labels are the raw close of the scored day, not a forward return, so
predicted_change is sensitive to drift in the price level. Switching to
return labels changes every signal, so it needs an explicit decision first.

This strategy consumes raw close observations (value = close) so that
features, labels and the current value share one scale.
"""

from __future__ import annotations

from datetime import date

import numpy as np

from quantsim.common.exceptions import StrategyConfigError
from quantsim.common.logging import get_logger
from quantsim.common.schemas import NormalizedObservation, PricePoint, TradeSignal
from quantsim.data.loader import to_observations
from quantsim.prediction.features import FeatureExtractor
from quantsim.prediction.forest import EnsembleRegressor
from quantsim.strategies.base import TradingStrategy, read_param

logger = get_logger("STRATEGY")

DEFAULT_LOOKBACK_WINDOW = 10
DEFAULT_BUY_THRESHOLD = 0.01  # predicted change > +1%
DEFAULT_SELL_THRESHOLD = -0.01  # predicted change < -1%


class ModelDrivenStrategy(TradingStrategy):
    """Trades on the ensemble regressor's predicted price change."""

    name = "ml"
    requires_training = True

    def __init__(
        self,
        regressor: EnsembleRegressor | None = None,
        extractor: FeatureExtractor | None = None,
        buy_threshold: float = DEFAULT_BUY_THRESHOLD,
        sell_threshold: float = DEFAULT_SELL_THRESHOLD,
        lookback_window: int = DEFAULT_LOOKBACK_WINDOW,
    ) -> None:
        _validate_thresholds(buy_threshold, sell_threshold)
        self.extractor = extractor or FeatureExtractor(lookback_window)
        self.regressor = regressor or EnsembleRegressor()
        self.regressor.set_feature_names(self.extractor.feature_names)
        self.buy_threshold = buy_threshold
        self.sell_threshold = sell_threshold
        self._feature_cache: dict[date, np.ndarray] = {}
        self._predictions: dict[date, float] = {}

    @property
    def lookback_window(self) -> int:
        """History length required before the model is consulted."""
        return self.extractor.lookback_window

    @property
    def is_trained(self) -> bool:
        return self.regressor.is_available()

    @property
    def prediction_trajectory(self) -> dict[date, float]:
        """Predicted price per scored date, in scoring order."""
        return dict(self._predictions)

    def feature_importance(self) -> dict[str, float]:
        """Normalized split-usage weight per feature name."""
        return self.regressor.feature_importance()

    def reset_state(self) -> None:
        """Drop cached features and recorded predictions."""
        self._feature_cache.clear()
        self._predictions.clear()

    def prepare_observations(self, prices: list[PricePoint]) -> list[NormalizedObservation]:
        return to_observations(prices)

    def set_parameters(self, params: dict[str, float]) -> None:
        lookback = read_param(params, "lookbackWindow", "lookback_window")
        buy = read_param(params, "buyThreshold", "buy_threshold")
        sell = read_param(params, "sellThreshold", "sell_threshold")

        buy_threshold = float(buy) if buy is not None else self.buy_threshold
        sell_threshold = float(sell) if sell is not None else self.sell_threshold
        _validate_thresholds(buy_threshold, sell_threshold)
        self.buy_threshold = buy_threshold
        self.sell_threshold = sell_threshold

        if lookback is not None and int(lookback) != self.lookback_window:
            if self.is_trained:
                logger.warning(
                    "Lookback changed after training; discarding the trained model",
                    extra={"data": {"old": self.lookback_window, "new": int(lookback)}},
                )
            self.extractor = FeatureExtractor(int(lookback))
            self.regressor.reset()
            self.regressor.set_feature_names(self.extractor.feature_names)
            self.reset_state()

        logger.info(
            "Model strategy configured",
            extra={
                "data": {
                    "lookback_window": self.lookback_window,
                    "buy_threshold": self.buy_threshold,
                    "sell_threshold": self.sell_threshold,
                }
            },
        )

    def train_model(self, prices: list[PricePoint]) -> int:
        """Train the regressor on an ascending price series.

        The series is walked most-recent-first: sample i is point i scored
        against the ``lookback_window`` points that precede it in time,
        labelled with point i's own close.

        Args:
            prices: Price series ordered ascending by date.

        Returns:
            Number of training samples; 0 when the series is too short.
        """
        lookback = self.lookback_window
        if len(prices) < lookback + 1:
            logger.error(
                "Not enough data to train model",
                extra={"data": {"points": len(prices), "min_required": lookback + 1}},
            )
            return 0

        newest_first = list(reversed(prices))
        observations = to_observations(newest_first)
        num_samples = len(newest_first) - lookback

        rows: list[np.ndarray] = []
        labels: list[float] = []
        for i in range(num_samples):
            history = observations[i + 1 : i + 1 + lookback]
            rows.append(self.extractor.extract(observations[i], history))
            labels.append(newest_first[i].close)

        self.regressor.train(np.vstack(rows), np.array(labels, dtype=np.float64))
        self.reset_state()

        logger.info(
            "Model training completed",
            extra={"data": {"samples": num_samples, "lookback_window": lookback}},
        )
        return num_samples

    def generate_signal(
        self,
        current: NormalizedObservation,
        history: list[NormalizedObservation],
    ) -> TradeSignal:
        if len(history) < self.lookback_window:
            return TradeSignal.HOLD

        features = self._feature_cache.get(current.date)
        if features is None:
            features = self.extractor.extract(current, history)
            self._feature_cache[current.date] = features

        predicted = self.regressor.predict(features)
        self._predictions[current.date] = predicted

        if current.value == 0:
            return TradeSignal.HOLD

        predicted_change = (predicted - current.value) / current.value
        if predicted_change > self.buy_threshold:
            return TradeSignal.BUY
        if predicted_change < self.sell_threshold:
            return TradeSignal.SELL
        return TradeSignal.HOLD


def _validate_thresholds(buy_threshold: float, sell_threshold: float) -> None:
    if sell_threshold > buy_threshold:
        raise StrategyConfigError(
            "sell_threshold must not exceed buy_threshold",
            context={"buy_threshold": buy_threshold, "sell_threshold": sell_threshold},
        )
