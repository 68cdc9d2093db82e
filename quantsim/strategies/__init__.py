"""Trading strategies — turn observation histories into BUY/SELL/HOLD signals."""

from __future__ import annotations

from quantsim.strategies.base import TradingStrategy, generate_signals
from quantsim.strategies.crossover import MovingAverageCrossoverStrategy
from quantsim.strategies.ml_strategy import ModelDrivenStrategy
from quantsim.strategies.registry import StrategyRegistry, create_strategy, default_registry

__all__ = [
    "ModelDrivenStrategy",
    "MovingAverageCrossoverStrategy",
    "StrategyRegistry",
    "TradingStrategy",
    "create_strategy",
    "default_registry",
    "generate_signals",
]
