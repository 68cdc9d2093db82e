"""Moving-average crossover strategy.

BUY while the short moving average of the recent history sits above the
long one, SELL while it sits below, HOLD on a tie or when the history is
shorter than the long window.
"""

from __future__ import annotations

from quantsim.common.exceptions import StrategyConfigError
from quantsim.common.logging import get_logger
from quantsim.common.schemas import NormalizedObservation, TradeSignal
from quantsim.strategies.base import TradingStrategy, read_param

logger = get_logger("STRATEGY")

DEFAULT_SHORT_WINDOW = 5
DEFAULT_LONG_WINDOW = 20


class MovingAverageCrossoverStrategy(TradingStrategy):
    """Short-vs-long simple moving average crossover."""

    name = "moving_average"

    def __init__(
        self,
        short_window: int = DEFAULT_SHORT_WINDOW,
        long_window: int = DEFAULT_LONG_WINDOW,
    ) -> None:
        _validate_windows(short_window, long_window)
        self.short_window = short_window
        self.long_window = long_window

    def set_parameters(self, params: dict[str, float]) -> None:
        short = read_param(params, "shortWindow", "short_window")
        long = read_param(params, "longWindow", "long_window")
        short_window = int(short) if short is not None else self.short_window
        long_window = int(long) if long is not None else self.long_window
        _validate_windows(short_window, long_window)
        self.short_window = short_window
        self.long_window = long_window
        logger.info(
            "Crossover strategy configured",
            extra={"data": {"short_window": short_window, "long_window": long_window}},
        )

    def generate_signal(
        self,
        current: NormalizedObservation,
        history: list[NormalizedObservation],
    ) -> TradeSignal:
        if len(history) < self.long_window:
            return TradeSignal.HOLD

        short_ma = _front_average(history, self.short_window)
        long_ma = _front_average(history, self.long_window)

        if short_ma > long_ma:
            return TradeSignal.BUY
        if short_ma < long_ma:
            return TradeSignal.SELL
        return TradeSignal.HOLD


def _front_average(history: list[NormalizedObservation], window: int) -> float:
    """Mean of the first ``window`` (most recent) history values."""
    return sum(h.value for h in history[:window]) / window


def _validate_windows(short_window: int, long_window: int) -> None:
    if short_window < 1 or long_window < 1:
        raise StrategyConfigError(
            "Moving-average windows must be >= 1",
            context={"short_window": short_window, "long_window": long_window},
        )
    if short_window >= long_window:
        raise StrategyConfigError(
            "short_window must be smaller than long_window",
            context={"short_window": short_window, "long_window": long_window},
        )
