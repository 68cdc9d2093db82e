"""Strategy interface and the per-date signal loop.

A strategy sees one observation at a time together with every earlier
observation, most recent first. Strategies that need a fitted model declare
``requires_training = True`` and implement ``train_model``; the backtest
engine checks that capability instead of the concrete type.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from quantsim.common.logging import get_logger
from quantsim.common.metrics import SIGNALS_GENERATED_TOTAL
from quantsim.common.schemas import NormalizedObservation, PricePoint, TradeSignal
from quantsim.data.loader import history_before, standardize

logger = get_logger("STRATEGY")


class TradingStrategy(ABC):
    """Base class for signal generators."""

    name: str = "strategy"
    requires_training: bool = False

    @abstractmethod
    def generate_signal(
        self,
        current: NormalizedObservation,
        history: list[NormalizedObservation],
    ) -> TradeSignal:
        """Decide BUY/SELL/HOLD for ``current`` given most-recent-first history."""

    @abstractmethod
    def set_parameters(self, params: dict[str, float]) -> None:
        """Apply named numeric parameters (camelCase or snake_case keys)."""

    @property
    def is_trained(self) -> bool:
        """Whether the strategy is ready to generate signals."""
        return True

    def train_model(self, prices: list[PricePoint]) -> int:
        """Fit any underlying model; returns the number of training samples."""
        return 0

    def reset_state(self) -> None:
        """Forget per-run caches before a new pass over a series."""

    def prepare_observations(self, prices: list[PricePoint]) -> list[NormalizedObservation]:
        """Map an ascending price series to the observations this strategy consumes."""
        return standardize(prices)

    @property
    def prediction_trajectory(self) -> dict[date, float]:
        """Model predictions recorded during signal generation (none by default)."""
        return {}

    def feature_importance(self) -> dict[str, float]:
        """Per-feature weights of the underlying model (none by default)."""
        return {}


def generate_signals(
    strategy: TradingStrategy,
    observations: list[NormalizedObservation],
) -> dict[date, TradeSignal]:
    """Run a strategy over ascending observations.

    Args:
        strategy: The signal generator.
        observations: Observations ordered ascending by date.

    Returns:
        Sparse mapping of date → signal; HOLD dates are omitted.
    """
    signals: dict[date, TradeSignal] = {}
    for i, current in enumerate(observations):
        signal = strategy.generate_signal(current, history_before(observations, i))
        if signal is not TradeSignal.HOLD:
            signals[current.date] = signal
            SIGNALS_GENERATED_TOTAL.labels(strategy=strategy.name, signal=signal.value).inc()

    logger.info(
        "Signals generated",
        extra={
            "data": {
                "strategy": strategy.name,
                "observations": len(observations),
                "buy": sum(1 for s in signals.values() if s is TradeSignal.BUY),
                "sell": sum(1 for s in signals.values() if s is TradeSignal.SELL),
            }
        },
    )
    return signals


def read_param(params: dict[str, float], *keys: str) -> float | None:
    """Return the first present value among ``keys`` (e.g. "shortWindow", "short_window")."""
    for key in keys:
        if key in params:
            return params[key]
    return None
