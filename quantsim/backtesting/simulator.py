"""Single-position portfolio simulator.

The account is either Flat (all cash) or Invested (all shares):

    Flat     --BUY-->  Invested   fee = cash * fee_rate, shares = (cash - fee) / price
    Invested --SELL--> Flat       cash = shares * price * (1 - fee_rate)

A BUY while Invested or a SELL while Flat is ignored. Each day's value is
recorded after that day's signal has been applied. A position still open at
the end is marked to market at the last price, never force-sold.

Usage:
    sim = PortfolioSimulator(initial_capital=10_000, transaction_fee=0.001)
    result = sim.run(prices, signals)
"""

from __future__ import annotations

from datetime import date

from quantsim.backtesting.schemas import OpenPosition, SimulationResult, SimulationStep
from quantsim.common.logging import get_logger
from quantsim.common.metrics import TRADES_CLOSED_TOTAL
from quantsim.common.schemas import PortfolioState, PricePoint, Trade, TradeSignal

logger = get_logger("BACKTEST")


class PortfolioSimulator:
    """In-memory account that executes BUY/SELL signals at the daily close.

    Attributes:
        initial_capital: Starting cash.
        transaction_fee: Fee charged per side as a fraction of traded value.
    """

    def __init__(self, initial_capital: float = 10_000.0, transaction_fee: float = 0.001) -> None:
        self.initial_capital = initial_capital
        self.transaction_fee = transaction_fee

        self._state = PortfolioState(cash=initial_capital, shares=0.0)
        self._entry: OpenPosition | None = None
        self._trades: list[Trade] = []

    @property
    def cash(self) -> float:
        """Cash on hand."""
        return self._state.cash

    @property
    def shares(self) -> float:
        """Shares held."""
        return self._state.shares

    @property
    def is_invested(self) -> bool:
        """True while a position is open."""
        return self._state.is_invested

    @property
    def trades(self) -> list[Trade]:
        """Round trips closed so far."""
        return list(self._trades)

    def value_at(self, price: float) -> float:
        """Mark-to-market account value at ``price``."""
        return self._state.cash + self._state.shares * price

    def reset(self) -> None:
        """Return to the initial all-cash state."""
        self._state = PortfolioState(cash=self.initial_capital, shares=0.0)
        self._entry = None
        self._trades = []

    def apply(self, signal: TradeSignal | None, day: date, price: float) -> bool:
        """Apply one day's signal at that day's price.

        Args:
            signal: BUY, SELL, HOLD or None (no signal).
            day: The trading date.
            price: Execution price (the close).

        Returns:
            True if the signal changed the position.
        """
        if signal is TradeSignal.BUY and not self.is_invested and self._state.cash > 0:
            if price <= 0:
                logger.warning(
                    "Ignoring BUY at non-positive price",
                    extra={"data": {"date": str(day), "price": price}},
                )
                return False
            fee = self._state.cash * self.transaction_fee
            shares = (self._state.cash - fee) / price
            self._state = PortfolioState(cash=0.0, shares=shares)
            self._entry = OpenPosition(entry_date=day, entry_price=price)
            return True

        if signal is TradeSignal.SELL and self.is_invested:
            proceeds = self._state.shares * price
            fee = proceeds * self.transaction_fee
            self._state = PortfolioState(cash=proceeds - fee, shares=0.0)
            self._close_trade(day, price)
            return True

        return False

    def run(
        self,
        prices: list[PricePoint],
        signals: dict[date, TradeSignal],
    ) -> SimulationResult:
        """Replay a sparse signal map over an ascending price series.

        Args:
            prices: Price series ordered ascending by date.
            signals: Mapping of date → signal; missing dates mean HOLD.

        Returns:
            SimulationResult with one step per price point.
        """
        self.reset()
        steps: list[SimulationStep] = []

        for point in prices:
            signal = signals.get(point.date)
            executed = self.apply(signal, point.date, point.close)
            steps.append(
                SimulationStep(
                    date=point.date,
                    price=point.close,
                    signal=signal,
                    executed=executed,
                    cash=self._state.cash,
                    shares=self._state.shares,
                    value=self.value_at(point.close),
                )
            )

        result = SimulationResult(
            initial_capital=self.initial_capital,
            transaction_fee=self.transaction_fee,
            steps=steps,
            trades=list(self._trades),
            open_position=self._entry,
        )

        logger.debug(
            "Simulation finished",
            extra={
                "data": {
                    "days": len(steps),
                    "trades": len(self._trades),
                    "open_position": self._entry is not None,
                    "final_value": round(result.final_value, 2),
                }
            },
        )
        return result

    def _close_trade(self, day: date, price: float) -> None:
        entry = self._entry
        self._entry = None
        if entry is None:
            return

        trade = build_trade(entry, day, price, self.transaction_fee)
        self._trades.append(trade)
        TRADES_CLOSED_TOTAL.labels(outcome="win" if trade.won else "loss").inc()


def build_trade(
    entry: OpenPosition,
    exit_date: date,
    exit_price: float,
    transaction_fee: float,
    synthetic: bool = False,
) -> Trade:
    """Round trip with a fee-adjusted return: (exit - entry) / entry - 2 * fee."""
    profit = (exit_price - entry.entry_price) / entry.entry_price - 2 * transaction_fee
    return Trade(
        entry_date=entry.entry_date,
        exit_date=exit_date,
        entry_price=entry.entry_price,
        exit_price=exit_price,
        net_profit_fraction=profit,
        synthetic=synthetic,
    )
