"""Strategy registry — maps configured strategy names to constructors.

Callers build a registry (usually ``default_registry()``) and pass it to
``create_strategy``; nothing is looked up through module-level state, so
tests and embedders can register their own strategies in isolation.

Usage:
    from quantsim.strategies.registry import create_strategy

    strategy = create_strategy("ml", settings)
"""

from __future__ import annotations

from collections.abc import Callable

from quantsim.common.config import Settings, get_settings
from quantsim.common.exceptions import StrategyConfigError
from quantsim.prediction.features import FeatureExtractor
from quantsim.prediction.forest import EnsembleRegressor
from quantsim.strategies.base import TradingStrategy
from quantsim.strategies.crossover import MovingAverageCrossoverStrategy
from quantsim.strategies.ml_strategy import ModelDrivenStrategy

StrategyFactory = Callable[[Settings], TradingStrategy]


class StrategyRegistry:
    """Name → factory lookup. Names are case-insensitive."""

    def __init__(self) -> None:
        self._factories: dict[str, StrategyFactory] = {}

    def register(self, name: str, factory: StrategyFactory, *aliases: str) -> None:
        """Register a factory under a name and optional aliases."""
        for key in (name, *aliases):
            self._factories[key.lower()] = factory

    def names(self) -> list[str]:
        """All registered names and aliases, sorted."""
        return sorted(self._factories)

    def create(self, name: str, settings: Settings) -> TradingStrategy:
        """Build the strategy registered under ``name``.

        Raises:
            StrategyConfigError: If no strategy is registered under that name.
        """
        factory = self._factories.get(name.lower())
        if factory is None:
            raise StrategyConfigError(
                f"Unsupported strategy type: {name}", context={"available": self.names()}
            )
        return factory(settings)


def build_crossover_strategy(settings: Settings) -> MovingAverageCrossoverStrategy:
    """Crossover strategy from the configured windows."""
    return MovingAverageCrossoverStrategy(
        short_window=settings.short_window,
        long_window=settings.long_window,
    )


def build_model_driven_strategy(settings: Settings) -> ModelDrivenStrategy:
    """Model strategy with a fresh, seeded ensemble regressor."""
    extractor = FeatureExtractor(lookback_window=settings.lookback_window)
    regressor = EnsembleRegressor(
        num_trees=settings.num_trees,
        max_depth=settings.max_depth,
        seed=settings.random_seed,
        feature_names=extractor.feature_names,
        model_dir=settings.model_dir,
    )
    return ModelDrivenStrategy(
        regressor=regressor,
        extractor=extractor,
        buy_threshold=settings.buy_threshold,
        sell_threshold=settings.sell_threshold,
    )


def default_registry() -> StrategyRegistry:
    """A new registry holding the built-in strategies."""
    registry = StrategyRegistry()
    registry.register("moving_average", build_crossover_strategy, "ma")
    registry.register("ml", build_model_driven_strategy, "machine_learning")
    return registry


def create_strategy(
    name: str | None = None,
    settings: Settings | None = None,
    registry: StrategyRegistry | None = None,
) -> TradingStrategy:
    """Build a strategy by name.

    Args:
        name: Registered strategy name; defaults to ``settings.strategy_type``.
        settings: Configuration source; defaults to ``get_settings()``.
        registry: Lookup table; defaults to ``default_registry()``.

    Returns:
        A configured, untrained strategy instance.
    """
    settings = settings or get_settings()
    registry = registry or default_registry()
    return registry.create(name or settings.strategy_type, settings)
